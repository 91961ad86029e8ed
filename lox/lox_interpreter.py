"""
The core Lox interpreter: the Evaluator walks resolved statement trees.
"""
import math
import os
import sys
from typing import Any, Dict, List, Optional

from lox.lox_datatypes import (
    Expr, Literal, Grouping, Unary, Binary, Logical, Variable, Assign, This, Call, Get, Set,
    Block, Var, Print, If, While, Function, Return, Class,
    Scope, BlockReturn, NO_RETURN, RETURN_NIL, is_return,
    LoxCallable, LoxFunction, LoxClass, LoxInstance,
)
from lox.lox_errors import LoxRuntimeError, ParsingError
from lox.lox_printer import Printer


def is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_truthy(value) -> bool:
    """nil, false, 0 and "" are falsy; everything else, references included, is truthy."""
    if value is None or value is False:
        return False
    if is_number(value):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return True


def kind_of(value) -> str:
    """Name of the value family used in runtime error messages."""
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, LoxClass):
        return "class"
    if isinstance(value, LoxInstance):
        return "instance"
    if isinstance(value, LoxCallable):
        return "function"
    return type(value).__name__


def _divide(left: float, right: float) -> float:
    # IEEE-754: x/0 is a signed infinity and 0/0 is NaN.
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


class Evaluator:
    """The Lox execution engine.

    `locals` is the resolver's map from use-site node to scope depth. Program
    output and other events are recorded in `side_effects`; when an `output`
    stream is given, printed lines are also written to it as they happen.
    """

    def __init__(self, locals: Optional[Dict[Any, int]] = None, globals: Optional[Scope] = None, output=None):
        self.locals: Dict[Any, int] = dict(locals or {})
        self.globals = globals if globals is not None else Scope()
        self.output = output
        self.printer = Printer()
        self.side_effects: List[Dict[str, Any]] = []
        self.call_stack: List[Dict[str, Any]] = []

    # --- Diagnostics ---

    def _push_frame(self, name, args, line):
        self.call_stack.append({
            'name': name,
            'args': args,
            'line': line,
        })

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if os.environ.get("LOX_DEBUG"):
            try:
                print("[DBG]", *parts, file=sys.stderr)
            except OSError:
                pass

    def emit(self, topics, message, line: int = 0):
        """Record a side effect; stdout messages also go to the live output stream."""
        if isinstance(topics, str):
            topics = [topics]
        self.side_effects.append({'topics': list(topics), 'message': message})
        if self.output is not None and 'stdout' in topics:
            try:
                self.output.write(message + "\n")
                self.output.flush()
            except (OSError, ValueError):
                raise LoxRuntimeError(line, "Failed to access stdout")

    # --- Statements ---

    def execute_steps(self, steps, scope: Scope) -> BlockReturn:
        """Runs steps in order, stopping at the first return signal."""
        for step in steps:
            result = self.execute_step(step, scope)
            if is_return(result):
                return result
        return NO_RETURN

    def execute_step(self, step, scope: Scope) -> BlockReturn:
        match step:
            case Block():
                return self.execute_steps(step.steps, Scope(parent=scope))
            case Var():
                scope.define(step.name, self.evaluate(step.initializer, scope), step.line)
            case Function():
                scope.define(step.name, LoxFunction(step, scope), step.line)
            case Class():
                methods = {
                    m.name: LoxFunction(m, scope, is_initializer=(m.name == "init"))
                    for m in step.methods
                }
                scope.define(step.name, LoxClass(step.name, methods), step.line)
            case Print():
                value = self.evaluate(step.expression, scope)
                self.emit('stdout', self.printer.stringify(value), step.line)
            case If():
                if is_truthy(self.evaluate(step.condition, scope)):
                    return self.execute_step(step.then_branch, scope)
                if step.else_branch is not None:
                    return self.execute_step(step.else_branch, scope)
            case While():
                while is_truthy(self.evaluate(step.condition, scope)):
                    result = self.execute_step(step.body, scope)
                    if is_return(result):
                        return result
            case Return():
                if step.value is None:
                    return RETURN_NIL
                return BlockReturn.returned(self.evaluate(step.value, scope))
            case ParsingError():
                raise step
            case Expr():
                self.evaluate(step, scope)
            case _:
                raise TypeError(f"Cannot execute step of type {type(step).__name__}")
        return NO_RETURN

    # --- Expressions ---

    def evaluate(self, node: Expr, scope: Scope) -> Any:
        match node:
            case Literal():
                return node.value
            case Grouping():
                return self.evaluate(node.expression, scope)
            case Variable():
                return self._lookup(node, node.name, scope)
            case This():
                return self._lookup(node, "this", scope)
            case Assign():
                value = self.evaluate(node.value, scope)
                depth = self.locals.get(node)
                if depth is not None:
                    return scope.assign_at(depth, node.name, value)
                return scope.assign(node.name, value, node.line)
            case Unary():
                return self._unary(node, scope)
            case Logical():
                left = self.evaluate(node.left, scope)
                if node.operator == "or":
                    return left if is_truthy(left) else self.evaluate(node.right, scope)
                return left if not is_truthy(left) else self.evaluate(node.right, scope)
            case Binary():
                left = self.evaluate(node.left, scope)
                right = self.evaluate(node.right, scope)
                return self._binary(node.operator, left, right, node.line)
            case Call():
                return self._call_expr(node, scope)
            case Get():
                instance = self._instance_for(self.evaluate(node.object, scope), node.line)
                return instance.get(node.name, node.line)
            case Set():
                instance = self._instance_for(self.evaluate(node.object, scope), node.line)
                return instance.set(node.name, self.evaluate(node.value, scope))
            case _:
                raise TypeError(f"Cannot evaluate node of type {type(node).__name__}")

    def _lookup(self, node, name: str, scope: Scope):
        depth = self.locals.get(node)
        if depth is not None:
            return scope.get_at(depth, name, node.line)
        return scope.get(name, node.line)

    def _unary(self, node: Unary, scope: Scope):
        value = self.evaluate(node.operand, scope)
        if node.operator == "!":
            return not is_truthy(value)
        if value is None:
            raise LoxRuntimeError(node.line, "Tried to Negate Nil value")
        if not is_number(value):
            raise LoxRuntimeError(node.line, f"Tried to Negate invalid literal: {self.printer.pformat(value)}")
        return -value

    def _binary(self, op: str, left, right, line: int):
        fmt = self.printer.pformat
        match op:
            case "==" | "!=":
                family = kind_of(left)
                if family != kind_of(right) or family not in ("nil", "boolean", "number", "string"):
                    raise LoxRuntimeError(line, f"Tried to compare invalid types to each other: {fmt(left)} and {fmt(right)}")
                return (left == right) if op == "==" else (left != right)
            case ">" | ">=" | "<" | "<=":
                if not (is_number(left) and is_number(right)):
                    raise LoxRuntimeError(line, f"Cannot compare types {fmt(left)} and {fmt(right)}")
                match op:
                    case ">":
                        return left > right
                    case ">=":
                        return left >= right
                    case "<":
                        return left < right
                    case "<=":
                        return left <= right
            case "+":
                if is_number(left) and is_number(right):
                    return left + right
                if isinstance(left, str) and isinstance(right, str):
                    return left + right
                raise LoxRuntimeError(line, f"Cannot add values {fmt(left)} and {fmt(right)}")
            case "-":
                if is_number(left) and is_number(right):
                    return left - right
                raise LoxRuntimeError(line, f"Cannot subtract values {fmt(left)} and {fmt(right)}")
            case "*":
                if is_number(left) and is_number(right):
                    return left * right
                raise LoxRuntimeError(line, f"Cannot multiply types {fmt(left)} and {fmt(right)}")
            case "/":
                if is_number(left) and is_number(right):
                    return _divide(float(left), float(right))
                raise LoxRuntimeError(line, f"Cannot divide types {fmt(left)} and {fmt(right)}")
        raise LoxRuntimeError(line, f"Unknown operator {op}")

    def _instance_for(self, value, line: int) -> LoxInstance:
        match value:
            case LoxInstance():
                return value
            case LoxClass():
                raise LoxRuntimeError(line, "Can't access properties on a class, only an instance")
        raise LoxRuntimeError(line, f"Can only access properties on an instance, found {kind_of(value)}")

    def _call_expr(self, node: Call, scope: Scope):
        callee = self.evaluate(node.callee, scope)
        match callee:
            case LoxInstance():
                raise LoxRuntimeError(node.line, "Can't call a class instance, only a class type")
            case LoxCallable():
                pass
            case _:
                raise LoxRuntimeError(
                    node.line, f"Expected function or method reference, found {self.printer.pformat(callee)}"
                )
        if len(node.arguments) != callee.arity:
            raise LoxRuntimeError(
                node.line, f"Expected {callee.arity} arguments, received {len(node.arguments)}"
            )
        args = [self.evaluate(arg, scope) for arg in node.arguments]
        return self.call(callee, args, node.line)

    def call(self, func: LoxCallable, args: List[Any], line: int = 0):
        """Calls a Lox callable with already-evaluated arguments."""
        name = getattr(func, 'name', type(func).__name__)
        self._dbg("Evaluator.call", name, "argc", len(args), "line", line)
        self._push_frame(name, args, line)
        result = func.call(self, args, line)
        # Frames stay on the stack when an error unwinds so the host can render them.
        self._pop_frame()
        return result


def interpret(locals: Dict[Any, int], steps, output=None) -> Evaluator:
    """Runs top-level steps against a fresh global scope seeded with the natives.

    Returns the Evaluator so callers can inspect its side effects.
    """
    from lox.lox_runtime import StdLib

    evaluator = Evaluator(locals, output=output)
    StdLib(evaluator).install(evaluator.globals)
    # A top-level return stops the program without an error.
    evaluator.execute_steps(steps, evaluator.globals)
    return evaluator
