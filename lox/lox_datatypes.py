"""
Defines the syntax tree and the runtime data types for the Lox interpreter.

The tree classes are produced by the parser and consumed by the resolver and
the evaluator. The runtime classes (Scope, callables, classes, instances and
the block-return signal) are what the evaluator works with while executing.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import collections.abc

from lox.lox_errors import LoxError, LoxRuntimeError

if TYPE_CHECKING:
    from lox.lox_interpreter import Evaluator


# =================================================================
# Syntax Tree: Expressions
# =================================================================

class Expr(ABC):
    """Base class for expression nodes."""
    line: int = 0


class Literal(Expr):
    """A number, string, boolean, nil or pre-built callable value."""
    def __init__(self, value: Any, line: int = 0):
        self.value = value
        self.line = line

    def __repr__(self) -> str:
        return f"Literal({self.value!r})"


class Grouping(Expr):
    def __init__(self, expression: Expr, line: int = 0):
        self.expression = expression
        self.line = line

    def __repr__(self) -> str:
        return f"Grouping({self.expression!r})"


class Unary(Expr):
    """`!operand` or `-operand`."""
    def __init__(self, operator: str, operand: Expr, line: int):
        self.operator = operator
        self.operand = operand
        self.line = line

    def __repr__(self) -> str:
        return f"Unary({self.operator!r}, {self.operand!r})"


class Binary(Expr):
    """Arithmetic, comparison and equality operators."""
    def __init__(self, operator: str, left: Expr, right: Expr, line: int):
        self.operator = operator
        self.left = left
        self.right = right
        self.line = line

    def __repr__(self) -> str:
        return f"Binary({self.operator!r}, {self.left!r}, {self.right!r})"


class Logical(Expr):
    """Short-circuiting `and` / `or`."""
    def __init__(self, operator: str, left: Expr, right: Expr, line: int):
        self.operator = operator
        self.left = left
        self.right = right
        self.line = line

    def __repr__(self) -> str:
        return f"Logical({self.operator!r}, {self.left!r}, {self.right!r})"


# Variable, Assign and This are keys of the resolved-variable map, so they keep
# identity hashing: two uses of one name on one line are distinct sites.

class Variable(Expr):
    def __init__(self, name: str, line: int):
        self.name = name
        self.line = line

    def __repr__(self) -> str:
        return f"Variable({self.name!r}, line={self.line})"


class Assign(Expr):
    def __init__(self, name: str, value: Expr, line: int):
        self.name = name
        self.value = value
        self.line = line

    def __repr__(self) -> str:
        return f"Assign({self.name!r}, {self.value!r}, line={self.line})"


class This(Expr):
    name = "this"

    def __init__(self, line: int):
        self.line = line

    def __repr__(self) -> str:
        return f"This(line={self.line})"


class Call(Expr):
    def __init__(self, callee: Expr, arguments: List[Expr], line: int):
        self.callee = callee
        self.arguments = arguments
        self.line = line

    def __repr__(self) -> str:
        return f"Call({self.callee!r}, {self.arguments!r})"


class Get(Expr):
    def __init__(self, object: Expr, name: str, line: int):
        self.object = object
        self.name = name
        self.line = line

    def __repr__(self) -> str:
        return f"Get({self.object!r}, {self.name!r})"


class Set(Expr):
    def __init__(self, object: Expr, name: str, value: Expr, line: int):
        self.object = object
        self.name = name
        self.value = value
        self.line = line

    def __repr__(self) -> str:
        return f"Set({self.object!r}, {self.name!r}, {self.value!r})"


# =================================================================
# Syntax Tree: Statements and Blocks
# =================================================================

class Stmt(ABC):
    """Base class for statement nodes. An expression statement is the bare Expr."""
    line: int = 0


class Block(collections.abc.MutableSequence):
    """A braced sequence of parse results.

    Elements are expressions, statements, nested blocks, or ParsingError
    values for sub-steps that failed to parse.
    """
    def __init__(self, steps: List[Any], line: int = 0):
        self.steps = list(steps)
        self.line = line

    def __getitem__(self, index):
        return self.steps[index]

    def __setitem__(self, index, value):
        self.steps[index] = value

    def __delitem__(self, index):
        del self.steps[index]

    def __len__(self) -> int:
        return len(self.steps)

    def insert(self, index, value):
        self.steps.insert(index, value)

    def __repr__(self) -> str:
        return f"Block({self.steps!r})"


class Var(Stmt):
    def __init__(self, name: str, initializer: Expr, line: int):
        self.name = name
        self.initializer = initializer
        self.line = line

    def __repr__(self) -> str:
        return f"Var({self.name!r}, {self.initializer!r})"


class Print(Stmt):
    def __init__(self, expression: Expr, line: int):
        self.expression = expression
        self.line = line

    def __repr__(self) -> str:
        return f"Print({self.expression!r})"


class If(Stmt):
    def __init__(self, condition: Expr, then_branch: Any, else_branch: Any, line: int):
        self.condition = condition
        self.then_branch = then_branch
        self.else_branch = else_branch
        self.line = line

    def __repr__(self) -> str:
        return f"If({self.condition!r}, {self.then_branch!r}, {self.else_branch!r})"


class While(Stmt):
    def __init__(self, condition: Expr, body: Any, line: int):
        self.condition = condition
        self.body = body
        self.line = line

    def __repr__(self) -> str:
        return f"While({self.condition!r}, {self.body!r})"


class Function(Stmt):
    """A `fun` declaration or a class method."""
    def __init__(self, name: str, params: List[str], body: Block, line: int):
        self.name = name
        self.params = params
        self.body = body
        self.line = line

    def __repr__(self) -> str:
        return f"Function({self.name!r}, {self.params!r})"


class Return(Stmt):
    def __init__(self, value: Optional[Expr], line: int):
        self.value = value
        self.line = line

    def __repr__(self) -> str:
        return f"Return({self.value!r})"


class Class(Stmt):
    def __init__(self, name: str, methods: List[Function], line: int):
        self.name = name
        self.methods = methods
        self.line = line

    def __repr__(self) -> str:
        return f"Class({self.name!r}, methods={[m.name for m in self.methods]!r})"


# =================================================================
# Runtime: Block-return signal
# =================================================================

class BlockReturn:
    """Outcome of executing a step: keep going, or return (with or without a value)."""
    __slots__ = ("kind", "value")

    def __init__(self, kind: str, value: Any = None):
        self.kind = kind
        self.value = value

    @classmethod
    def returned(cls, value: Any) -> 'BlockReturn':
        return cls("return-value", value)

    def __repr__(self) -> str:
        if self.kind == "return-value":
            return f"BlockReturn(return {self.value!r})"
        return f"BlockReturn({self.kind})"


NO_RETURN = BlockReturn("no-return")
RETURN_NIL = BlockReturn("return")


def is_return(x) -> bool:
    return isinstance(x, BlockReturn) and x.kind != "no-return"


def unwrap_return(x):
    """The value carried by a return signal; nil for a bare `return;` or no return."""
    return x.value if isinstance(x, BlockReturn) else x


# =================================================================
# Runtime: Scopes
# =================================================================

class Scope:
    """A Lox environment: name bindings plus an optional parent scope.

    Scopes are shared by reference. Closures keep the scope they were defined
    in, so a write through one holder is seen by every other holder.
    """
    def __init__(self, parent: Optional['Scope'] = None):
        self.bindings: Dict[str, Any] = {}
        self.parent = parent

    def define(self, name: str, value: Any, line: int = 0):
        if name in self.bindings:
            raise LoxRuntimeError(line, f"Variable {name} already defined")
        self.bindings[name] = value

    def find_owner(self, name: str) -> Optional['Scope']:
        """Walks self → parent chain and returns the scope that binds `name`."""
        scope = self
        while scope is not None:
            if name in scope.bindings:
                return scope
            scope = scope.parent
        return None

    def get(self, name: str, line: int = 0) -> Any:
        owner = self.find_owner(name)
        if owner is None:
            raise LoxRuntimeError(line, f"Variable {name} not found in scope")
        return owner.bindings[name]

    def assign(self, name: str, value: Any, line: int = 0) -> Any:
        owner = self.find_owner(name)
        if owner is None:
            raise LoxRuntimeError(line, f"Variable {name} not defined")
        owner.bindings[name] = value
        return value

    def ancestor(self, depth: int) -> 'Scope':
        scope = self
        for _ in range(depth):
            if scope.parent is None:
                raise RuntimeError(f"scope chain is shorter than resolved depth {depth}")
            scope = scope.parent
        return scope

    def get_at(self, depth: int, name: str, line: int = 0) -> Any:
        bindings = self.ancestor(depth).bindings
        if name not in bindings:
            raise LoxRuntimeError(line, f"Variable {name} not found in scope")
        return bindings[name]

    def assign_at(self, depth: int, name: str, value: Any) -> Any:
        self.ancestor(depth).bindings[name] = value
        return value

    def __contains__(self, name: str) -> bool:
        return self.find_owner(name) is not None

    def keys(self) -> collections.abc.KeysView:
        """Keys bound in this scope only."""
        return self.bindings.keys()

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Scope bindings=[{keys}]{parent_id}>"


# =================================================================
# Runtime: Callables, Classes and Instances
# =================================================================

class LoxCallable(ABC):
    """Anything a Lox call expression may invoke."""
    arity: int = 0

    @abstractmethod
    def call(self, evaluator: 'Evaluator', args: List[Any], line: int) -> Any:
        raise NotImplementedError


class LoxFunction(LoxCallable):
    """A user function: its declaration plus the scope it was defined in."""
    def __init__(self, declaration: Function, closure: Scope, is_initializer: bool = False):
        self.declaration = declaration
        self.closure = closure
        self.is_initializer = is_initializer

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def arity(self) -> int:
        return len(self.declaration.params)

    def bind(self, instance: 'LoxInstance') -> 'LoxFunction':
        """Returns this method closed over a scope holding `this`."""
        scope = Scope(parent=self.closure)
        scope.define("this", instance)
        return LoxFunction(self.declaration, scope, self.is_initializer)

    def call(self, evaluator: 'Evaluator', args: List[Any], line: int) -> Any:
        call_scope = Scope(parent=self.closure)
        for param, value in zip(self.declaration.params, args):
            call_scope.define(param, value, line)

        result = evaluator.execute_step(self.declaration.body, call_scope)
        if self.is_initializer:
            return self.closure.get_at(0, "this", line)
        return unwrap_return(result)

    def __repr__(self) -> str:
        return f"<fn {self.name}>"


class NativeFunction(LoxCallable):
    """A host-provided function with a fixed arity."""
    def __init__(self, name: str, arity: int, fn):
        self.name = name
        self.arity = arity
        self.fn = fn

    def call(self, evaluator: 'Evaluator', args: List[Any], line: int) -> Any:
        try:
            return self.fn(*args)
        except (LoxError, RecursionError):
            raise
        except Exception as e:
            raise LoxRuntimeError(line, f"Native function {self.name} failed: {e}") from e

    def __repr__(self) -> str:
        return f"<native fn {self.name}>"


class LoxClass(LoxCallable):
    """A class: its name and a shared, mutable method table."""
    def __init__(self, name: str, methods: Optional[Dict[str, LoxFunction]] = None):
        self.name = name
        self.methods: Dict[str, LoxFunction] = methods if methods is not None else {}

    def find_method(self, name: str) -> Optional[LoxFunction]:
        return self.methods.get(name)

    @property
    def arity(self) -> int:
        init = self.find_method("init")
        return init.arity if init is not None else 0

    def call(self, evaluator: 'Evaluator', args: List[Any], line: int) -> Any:
        instance = LoxInstance(self)
        init = self.find_method("init")
        if init is not None:
            init.bind(instance).call(evaluator, args, line)
        return instance

    def __repr__(self) -> str:
        return f"<class {self.name}>"


class LoxInstance:
    """An instance: a back-reference to its class plus its own fields."""
    def __init__(self, klass: LoxClass):
        self.klass = klass
        self.fields: Dict[str, Any] = {}

    def get(self, name: str, line: int = 0) -> Any:
        if name in self.fields:
            return self.fields[name]
        method = self.klass.find_method(name)
        if method is not None:
            return method.bind(self)
        raise LoxRuntimeError(line, f"Unable to find property {name}")

    def set(self, name: str, value: Any) -> Any:
        self.fields[name] = value
        return value

    def __repr__(self) -> str:
        return f"<{self.klass.name} instance>"
