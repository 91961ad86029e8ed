from __future__ import annotations

import json
from typing import Any, Dict, List
import collections.abc

import yaml

from lox.lox_datatypes import Expr, Stmt, Block, LoxCallable, LoxInstance
from lox.lox_errors import LoxError
from lox.lox_tokens import Token


# --------------------------
# Helpers
# --------------------------

def _node_to_builtin(node) -> Dict[str, Any]:
    out: Dict[str, Any] = {'node': type(node).__name__}
    for key, value in vars(node).items():
        out[key] = to_builtin(value)
    return out


def to_builtin(obj: Any) -> Any:
    """Convert tokens, syntax trees, errors and runtime values to plain Python data."""
    match obj:
        case None | bool() | int() | float() | str():
            return obj
        case Token():
            return {'type': obj.type.name, 'lexeme': obj.lexeme, 'line': obj.line, 'literal': obj.literal}
        case LoxError():
            return {'kind': obj.kind, 'line': obj.line, 'message': obj.message}
        case Block():
            return {'node': 'Block', 'line': obj.line, 'steps': [to_builtin(s) for s in obj]}
        case Expr() | Stmt():
            return _node_to_builtin(obj)
        case LoxCallable() | LoxInstance():
            return repr(obj)
        case list() | tuple():
            return [to_builtin(x) for x in obj]
        case collections.abc.Mapping():
            return {str(k): to_builtin(v) for k, v in obj.items()}
    return repr(obj)


def locals_table(resolved: Dict[Any, int]) -> List[Dict[str, Any]]:
    """Flatten a resolved-variable map (keyed by node) into rows sorted by line."""
    rows = [
        {'name': node.name, 'line': node.line, 'node': type(node).__name__, 'depth': depth}
        for node, depth in resolved.items()
    ]
    rows.sort(key=lambda r: (r['line'], r['name']))
    return rows


# --------------------------
# Public API
# --------------------------

def serialize(value: Any,
              *,
              fmt: str,
              pretty: bool = True) -> str:
    """
    Convert a pipeline value (tokens, trees, resolved rows) into text.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = to_builtin(value)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "serialize",
    "to_builtin",
    "locals_table",
]
