import math
import pytest
from lox.lox_scanner import scan
from lox.lox_parser import parse
from lox.lox_resolver import resolve
from lox.lox_interpreter import interpret, is_truthy, kind_of, Evaluator
from lox.lox_datatypes import Scope, Literal, Binary, LoxInstance, LoxClass
from lox.lox_errors import LoxRuntimeError


def run(source):
    """Run source through the whole pipeline and return the printed lines."""
    steps = parse(scan(source))
    evaluator = interpret(resolve(steps), steps)
    return [e['message'] for e in evaluator.side_effects if e['topics'] == ['stdout']]


def run_error(source):
    with pytest.raises(LoxRuntimeError) as exc:
        run(source)
    return exc.value


# --- Truthiness ---

@pytest.mark.parametrize("value, expected", [
    (None, False),
    (False, False),
    (True, True),
    (0.0, False),
    (1.0, True),
    (-0.5, True),
    ("", False),
    ("a", True),
    (LoxClass("A"), True),
])
def test_truthiness(value, expected):
    assert is_truthy(value) is expected


def test_truthiness_in_conditions():
    assert run('if 0 { print "yes"; } else { print "no"; }') == ["no"]
    assert run('if "" { print "yes"; } else { print "no"; }') == ["no"]
    assert run('if clock { print "yes"; }') == ["yes"]
    assert run('print !nil;') == ["true"]


# --- Operators ---

@pytest.mark.parametrize("source, expected", [
    ("print 1 + 2;", "3"),
    ("print 10 - 2 - 3;", "5"),
    ("print 10 * 4 + 3;", "43"),
    ("print 7 / 2;", "3.5"),
    ("print -(2 + 3);", "-5"),
    ('print "foo" + "bar";', "foobar"),
    ("print 1 < 2;", "true"),
    ("print 2 <= 2;", "true"),
    ("print 1 > 2;", "false"),
    ("print 3 >= 4;", "false"),
    ("print 1 == 1;", "true"),
    ('print "a" != "b";', "true"),
    ("print nil == nil;", "true"),
    ("print true == false;", "false"),
    ("print 1 / 0;", "inf"),
    ("print -1 / 0;", "-inf"),
])
def test_operators(source, expected):
    assert run(source) == [expected]


def test_zero_over_zero_is_nan():
    steps = parse(scan("let r = 0 / 0;"))
    evaluator = interpret(resolve(steps), steps)
    assert math.isnan(evaluator.globals.get("r"))


def test_logical_operators_return_deciding_operand():
    assert run('print nil or "fallback";') == ["fallback"]
    assert run('print 1 or missing;') == ["1"]
    assert run('print false and missing;') == ["false"]
    assert run('print 1 and "last";') == ["last"]


@pytest.mark.parametrize("source, message", [
    ("10 == true;", "Tried to compare invalid types to each other: 10 and true"),
    ('"a" == nil;', 'Tried to compare invalid types to each other: "a" and nil'),
    ("clock == clock;", "Tried to compare invalid types to each other: <native fn clock> and <native fn clock>"),
    ('1 < "2";', 'Cannot compare types 1 and "2"'),
    ('"a" + 1;', 'Cannot add values "a" and 1'),
    ('"a" - 1;', 'Cannot subtract values "a" and 1'),
    ("nil * 2;", "Cannot multiply types nil and 2"),
    ("true / 2;", "Cannot divide types true and 2"),
    ("-nil;", "Tried to Negate Nil value"),
    ('-"x";', 'Tried to Negate invalid literal: "x"'),
])
def test_type_mismatches_are_runtime_errors(source, message):
    err = run_error(source)
    assert err.message == message
    assert err.line == 1


# --- Variables and scopes ---

def test_shadowing_end_to_end():
    assert run("let a = 1; { let a = 2; print a; } print a;") == ["2", "1"]


def test_assignment_updates_enclosing_scope():
    assert run("let a = 1; { a = 2; } print a;") == ["2"]


def test_assignment_is_an_expression():
    assert run("let a; let b; a = b = 3; print a; print b;") == ["3", "3"]


def test_closure_sees_binding_at_definition_site():
    source = """
    let a = "global";
    {
      fun show() { print a; }
      show();
      let a = "block";
      show();
    }
    """
    assert run(source) == ["global", "global"]


def test_unknown_variable_read():
    err = run_error("print missing;")
    assert err.message == "Variable missing not found in scope"


def test_unknown_variable_assignment():
    err = run_error("missing = 1;")
    assert err.message == "Variable missing not defined"


# --- Control flow ---

def test_if_else_if_chain():
    source = """
    fun grade(n) {
      if n > 90 { return "A"; } else if n > 80 { return "B"; } else { return "C"; }
    }
    print grade(95); print grade(85); print grade(10);
    """
    assert run(source) == ["A", "B", "C"]


def test_while_loop():
    assert run("let i = 0; while i < 3 { print i; i = i + 1; }") == ["0", "1", "2"]


def test_for_loop():
    assert run("for (let i = 0; i < 3; i = i + 1) { print i; }") == ["0", "1", "2"]


def test_for_loop_variable_is_scoped_to_the_loop():
    err = run_error("for (let i = 0; i < 1; i = i + 1) { } print i;")
    assert err.message == "Variable i not found in scope"


def test_return_exits_loops_and_blocks():
    source = """
    fun first_over(limit) {
      let i = 0;
      while true {
        { if i > limit { return i; } }
        i = i + 1;
      }
    }
    print first_over(3);
    """
    assert run(source) == ["4"]


def test_top_level_return_stops_execution_silently():
    assert run('print 1; return; print 2;') == ["1"]


# --- Functions ---

def test_function_without_return_yields_nil():
    assert run("fun f() { } print f();") == ["nil"]


def test_bare_return_yields_nil():
    assert run("fun f() { return; } print f();") == ["nil"]


def test_recursion():
    source = "fun fib(n) { if n < 2 { return n; } return fib(n - 1) + fib(n - 2); } print fib(10);"
    assert run(source) == ["55"]


def test_closure_counter_shares_captured_scope():
    source = """
    fun counter() {
      let x = 0;
      fun inc() { x = x + 1; print x; }
      return inc;
    }
    let c = counter();
    c();
    c();
    """
    assert run(source) == ["1", "2"]


def test_independent_closures_do_not_share_state():
    source = """
    fun counter() { let x = 0; fun inc() { x = x + 1; return x; } return inc; }
    let a = counter(); let b = counter();
    a(); a();
    print a(); print b();
    """
    assert run(source) == ["3", "1"]


def test_user_function_arity_mismatch():
    err = run_error("fun add(a, b) { return a + b; } add(1);")
    assert err.message == "Expected 2 arguments, received 1"


def test_native_arity_mismatch():
    err = run_error("now(1);")
    assert err.message == "Expected 0 arguments, received 1"


def test_arguments_are_not_evaluated_when_arity_is_wrong():
    assert run_error("fun f() { } f(missing);").message == "Expected 0 arguments, received 1"


def test_calling_a_non_callable():
    err = run_error('"text"();')
    assert err.message == 'Expected function or method reference, found "text"'


def test_functions_print_as_references():
    assert run("fun f() { } print f; print clock;") == ["<fn f>", "<native fn clock>"]


def test_natives():
    assert run("print now() > 0;") == ["true"]
    assert run('println("hi");') == ["hi"]


# --- Classes ---

def test_class_instantiation_and_fields():
    source = """
    class Point { }
    let p = Point();
    p.x = 1;
    p.y = p.x + 1;
    print p.y;
    print p;
    print Point;
    """
    assert run(source) == ["2", "<Point instance>", "<class Point>"]


def test_methods_bind_this():
    source = """
    class Counter {
      init(start) { this.n = start; }
      bump() { this.n = this.n + 1; return this.n; }
    }
    let c = Counter(10);
    c.bump();
    print c.bump();
    let m = c.bump;
    print m();
    """
    assert run(source) == ["12", "13"]


def test_init_returns_the_instance():
    source = "class A { init() { this.v = 1; return; } } let a = A(); print a.init().v;"
    assert run(source) == ["1"]


def test_class_arity_comes_from_init():
    err = run_error("class A { init(a, b) { } } A(1);")
    assert err.message == "Expected 2 arguments, received 1"


def test_fields_shadow_methods():
    source = 'class A { m() { return "method"; } } let a = A(); a.m = "field"; print a.m;'
    assert run(source) == ["field"]


def test_missing_property():
    err = run_error("class A { } A().nope;")
    assert err.message == "Unable to find property nope"


def test_property_on_a_class():
    err = run_error("class A { } A.x;")
    assert err.message == "Can't access properties on a class, only an instance"


def test_property_on_a_non_instance():
    err = run_error("let n = 1; n.x = 2;")
    assert err.message == "Can only access properties on an instance, found number"


def test_calling_an_instance():
    err = run_error("class A { } let a = A(); a();")
    assert err.message == "Can't call a class instance, only a class type"


# --- Evaluator internals ---

def test_kind_of():
    assert kind_of(None) == "nil"
    assert kind_of(True) == "boolean"
    assert kind_of(1.0) == "number"
    assert kind_of("s") == "string"
    assert kind_of(LoxClass("A")) == "class"
    assert kind_of(LoxInstance(LoxClass("A"))) == "instance"


def test_evaluate_without_resolution_walks_the_chain():
    outer = Scope()
    outer.define("a", 2.0)
    inner = Scope(parent=outer)
    evaluator = Evaluator()
    expr = Binary("*", Literal(3.0), Literal(4.0), 1)
    assert evaluator.evaluate(expr, inner) == 12.0
    steps = parse(scan("print a;"))
    evaluator.execute_steps(steps, inner)
    assert evaluator.side_effects[-1] == {'topics': ['stdout'], 'message': '2'}


def test_call_stack_keeps_frames_of_failed_calls():
    steps = parse(scan("fun inner(x) { return x + nil; }\nfun outer(y) { return inner(y); }\nouter(5);"))
    evaluator = Evaluator(resolve(steps))
    with pytest.raises(LoxRuntimeError):
        evaluator.execute_steps(steps, evaluator.globals)
    assert [f['name'] for f in evaluator.call_stack] == ["outer", "inner"]
    assert evaluator.call_stack[0]['args'] == [5.0]
