"""
A printer for Lox values and syntax trees.
"""
from lox.lox_datatypes import (
    Literal, Grouping, Unary, Binary, Logical, Variable, Assign, This, Call, Get, Set,
    Block, Var, Print, If, While, Function, Return, Class,
    LoxFunction, NativeFunction, LoxClass, LoxInstance,
)
from lox.lox_errors import LoxError


def format_number(value: float) -> str:
    """Integral floats print without a fraction (`2`, not `2.0`)."""
    if value.is_integer() and abs(value) < 1e16:
        return f"{value:.0f}"
    return repr(value)


class Printer:
    """Formats Lox values for output and trees as S-expressions.

    `stringify` is what `print` writes: strings are bare. `pformat` is used
    for diagnostics and tree dumps: strings are quoted and tree nodes render
    as `(op operand ...)`.
    """

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def stringify(self, value) -> str:
        if isinstance(value, str):
            return value
        return self.pformat(value)

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, LoxError):
            return self._pformat_error
        if isinstance(obj, list):
            return self._pformat_steps
        # Default to Python's repr for unknown types
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            float: self._pformat_number,
            int: self._pformat_number,
            bool: self._pformat_bool,
            type(None): self._pformat_nil,
            Literal: self._pformat_literal,
            Grouping: self._pformat_grouping,
            Unary: self._pformat_unary,
            Binary: self._pformat_binary,
            Logical: self._pformat_binary,
            Variable: self._pformat_variable,
            Assign: self._pformat_assign,
            This: self._pformat_this,
            Call: self._pformat_call,
            Get: self._pformat_get,
            Set: self._pformat_set,
            Block: self._pformat_block,
            Var: self._pformat_var,
            Print: self._pformat_print,
            If: self._pformat_if,
            While: self._pformat_while,
            Function: self._pformat_function,
            Return: self._pformat_return,
            Class: self._pformat_class,
            LoxFunction: self._pformat_reference,
            NativeFunction: self._pformat_reference,
            LoxClass: self._pformat_reference,
            LoxInstance: self._pformat_reference,
        }

    # --- Values ---

    def _pformat_str(self, obj, level):
        return f'"{obj}"'

    def _pformat_number(self, obj, level):
        return format_number(float(obj))

    def _pformat_bool(self, obj, level):
        return 'true' if obj else 'false'

    def _pformat_nil(self, obj, level):
        return 'nil'

    def _pformat_reference(self, obj, level):
        return repr(obj)

    def _pformat_error(self, obj, level):
        return f"<{obj.kind} line {obj.line}: {obj.message}>"

    # --- Expressions ---

    def _pformat_literal(self, obj, level):
        return self.pformat(obj.value, level)

    def _pformat_grouping(self, obj, level):
        return f"(group {self.pformat(obj.expression, level)})"

    def _pformat_unary(self, obj, level):
        return f"({obj.operator} {self.pformat(obj.operand, level)})"

    def _pformat_binary(self, obj, level):
        return f"({obj.operator} {self.pformat(obj.left, level)} {self.pformat(obj.right, level)})"

    def _pformat_variable(self, obj, level):
        return obj.name

    def _pformat_assign(self, obj, level):
        return f"(= {obj.name} {self.pformat(obj.value, level)})"

    def _pformat_this(self, obj, level):
        return "this"

    def _pformat_call(self, obj, level):
        parts = [self.pformat(obj.callee, level)] + [self.pformat(a, level) for a in obj.arguments]
        return f"(call {' '.join(parts)})"

    def _pformat_get(self, obj, level):
        return f"(. {self.pformat(obj.object, level)} {obj.name})"

    def _pformat_set(self, obj, level):
        return f"(= (. {self.pformat(obj.object, level)} {obj.name}) {self.pformat(obj.value, level)})"

    # --- Statements ---

    def _pformat_steps(self, steps, level):
        return "\n".join(self._indent_char * level + self.pformat(s, level) for s in steps)

    def _pformat_block(self, obj, level):
        if not obj.steps:
            return "{}"
        inner = self._pformat_steps(obj.steps, level + 1)
        return "{\n" + inner + "\n" + self._indent_char * level + "}"

    def _pformat_var(self, obj, level):
        return f"(let {obj.name} {self.pformat(obj.initializer, level)})"

    def _pformat_print(self, obj, level):
        return f"(print {self.pformat(obj.expression, level)})"

    def _pformat_if(self, obj, level):
        out = f"(if {self.pformat(obj.condition, level)} {self.pformat(obj.then_branch, level)}"
        if obj.else_branch is not None:
            out += f" else {self.pformat(obj.else_branch, level)}"
        return out + ")"

    def _pformat_while(self, obj, level):
        return f"(while {self.pformat(obj.condition, level)} {self.pformat(obj.body, level)})"

    def _pformat_function(self, obj, level):
        return f"(fun {obj.name} ({' '.join(obj.params)}) {self.pformat(obj.body, level)})"

    def _pformat_return(self, obj, level):
        if obj.value is None:
            return "(return)"
        return f"(return {self.pformat(obj.value, level)})"

    def _pformat_class(self, obj, level):
        if not obj.methods:
            return f"(class {obj.name})"
        indent = self._indent_char * (level + 1)
        methods = "\n".join(indent + self.pformat(m, level + 1) for m in obj.methods)
        return f"(class {obj.name}\n{methods})"
