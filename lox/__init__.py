from lox.lox_runtime import ScriptRunner, ExecutionResult, LoxHost, lox_api_method, execute
from lox.lox_scanner import scan
from lox.lox_parser import parse, collect_errors
from lox.lox_resolver import resolve
from lox.lox_interpreter import interpret

__all__ = [
    "ScriptRunner",
    "ExecutionResult",
    "LoxHost",
    "lox_api_method",
    "execute",
    "scan",
    "parse",
    "collect_errors",
    "resolve",
    "interpret",
]
