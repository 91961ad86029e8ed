"""
Static resolution pass: computes, for every variable use, how many scopes
separate it from the scope that declares the name.
"""
from typing import Any, Dict, List

from lox.lox_datatypes import (
    Literal, Grouping, Unary, Binary, Logical, Variable, Assign, This, Call, Get, Set,
    Block, Var, Print, If, While, Function, Return, Class,
)
from lox.lox_errors import ParsingError, ResolvingError


class ScopeStack:
    """Stack of lexical scopes, innermost last.

    Each scope maps a name to whether its declaration is finished (`True`)
    or still resolving its initializer (`False`). The bottom scope is global.
    """

    def __init__(self):
        self.scopes: List[Dict[str, bool]] = [{}]

    def begin(self):
        self.scopes.append({})

    def end(self):
        self.scopes.pop()

    @property
    def innermost(self) -> Dict[str, bool]:
        return self.scopes[-1]

    def declare(self, name: str, line: int):
        scope = self.innermost
        if name in scope:
            raise ResolvingError(line, f"Variable {name} already exists in this scope")
        scope[name] = False

    def define(self, name: str):
        self.innermost[name] = True

    def depth_of(self, name: str):
        """Distance from the innermost scope to the nearest one declaring `name`, or None."""
        for distance, scope in enumerate(reversed(self.scopes)):
            if name in scope:
                return distance
        return None


class Resolver:
    def __init__(self):
        self.scopes = ScopeStack()
        self.locals: Dict[Any, int] = {}
        self.class_depth = 0

    def resolve(self, steps) -> Dict[Any, int]:
        for step in steps:
            self._resolve(step)
        return self.locals

    def _resolve_local(self, node, name: str):
        depth = self.scopes.depth_of(name)
        if depth is not None:
            self.locals[node] = depth

    def _resolve_function(self, func: Function):
        self.scopes.begin()
        for param in func.params:
            self.scopes.declare(param, func.line)
            self.scopes.define(param)
        # The body Block opens its own scope, as it does at runtime.
        self._resolve(func.body)
        self.scopes.end()

    def _resolve(self, node):
        match node:
            case ParsingError():
                raise node
            case None | Literal():
                pass
            case Block():
                self.scopes.begin()
                for step in node:
                    self._resolve(step)
                self.scopes.end()
            case Var():
                self.scopes.declare(node.name, node.line)
                self._resolve(node.initializer)
                self.scopes.define(node.name)
            case Function():
                self.scopes.declare(node.name, node.line)
                self.scopes.define(node.name)
                self._resolve_function(node)
            case Class():
                self.scopes.declare(node.name, node.line)
                self.scopes.define(node.name)
                self.class_depth += 1
                self.scopes.begin()
                self.scopes.define("this")
                for method in node.methods:
                    self._resolve_function(method)
                self.scopes.end()
                self.class_depth -= 1
            case Print():
                self._resolve(node.expression)
            case If():
                self._resolve(node.condition)
                self._resolve(node.then_branch)
                self._resolve(node.else_branch)
            case While():
                self._resolve(node.condition)
                self._resolve(node.body)
            case Return():
                self._resolve(node.value)
            case Variable():
                if self.scopes.innermost.get(node.name) is False:
                    raise ResolvingError(node.line, f"Can't read local variable ({node.name}) in its own initializer")
                self._resolve_local(node, node.name)
            case Assign():
                self._resolve(node.value)
                self._resolve_local(node, node.name)
            case This():
                if self.class_depth == 0:
                    raise ResolvingError(node.line, "Can't use 'this' outside of a class")
                self._resolve_local(node, "this")
            case Grouping():
                self._resolve(node.expression)
            case Unary():
                self._resolve(node.operand)
            case Binary() | Logical():
                self._resolve(node.left)
                self._resolve(node.right)
            case Call():
                self._resolve(node.callee)
                for arg in node.arguments:
                    self._resolve(arg)
            case Get():
                self._resolve(node.object)
            case Set():
                self._resolve(node.value)
                self._resolve(node.object)
            case _:
                raise TypeError(f"Cannot resolve node of type {type(node).__name__}")


def resolve(steps) -> Dict[Any, int]:
    """Map each Variable, Assign and This node to its scope depth, or raise ResolvingError."""
    return Resolver().resolve(steps)
