import inspect
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from lox.lox_scanner import scan
from lox.lox_parser import parse, collect_errors
from lox.lox_resolver import resolve
from lox.lox_interpreter import Evaluator
from lox.lox_datatypes import Scope, NativeFunction, is_return, unwrap_return
from lox.lox_errors import LoxError, LoxRuntimeError, ScanningErrors, ResolvingError
from lox.lox_printer import Printer

# ===================================================================
# 1. Host Binding
# ===================================================================

def lox_api_method(func):
    """A decorator to explicitly mark host methods as callable from Lox."""
    func._is_lox_api = True
    return func


def _arity_of(func) -> int:
    """Number of required positional parameters of a Python callable."""
    params = inspect.signature(func).parameters.values()
    return sum(
        1 for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
    )


class LoxHost:
    """Base class for Python objects exposed to Lox scripts.

    Methods marked with @lox_api_method become global native functions
    under the same name.
    """

    def api_methods(self) -> Dict[str, Any]:
        methods = {}
        for name, member in inspect.getmembers(self):
            if not callable(member) or name.startswith('_'):
                continue
            # Decorator may mark the bound method or the underlying function
            func = getattr(member, "__func__", member)
            if getattr(func, "_is_lox_api", False):
                methods[name] = member
        return methods


# ===================================================================
# 2. Native Functions
# ===================================================================

class StdLib:
    """Python implementations of the Lox built-ins.

    Every `_name` method is installed as the native `name`; its arity is
    read from the Python signature.
    """
    def __init__(self, evaluator: Evaluator):
        self.evaluator = evaluator

    def install(self, scope: Scope):
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                lox_name = name[1:]
                scope.bindings[lox_name] = NativeFunction(lox_name, _arity_of(member), member)

    def _now(self):
        return time.time()

    def _clock(self):
        return time.time()

    def _println(self, value):
        self.evaluator.emit('stdout', self.evaluator.printer.stringify(value))
        return None


# ===================================================================
# 3. Script Execution
# ===================================================================

Token = Dict[str, Any]

# A Lox call costs several Python frames, so evaluation gets more room
# than the interpreter's defaults.
RECURSION_LIMIT = 30_000
EVAL_STACK_SIZE = 256 * 1024 * 1024


def _run_with_deep_stack(fn, *args):
    """Runs fn(*args) on a worker thread with a large stack and a raised recursion limit."""
    outcome: Dict[str, Any] = {}

    def target():
        try:
            outcome['value'] = fn(*args)
        except BaseException as e:
            outcome['error'] = e

    old_limit = sys.getrecursionlimit()
    old_stack = threading.stack_size()
    try:
        threading.stack_size(EVAL_STACK_SIZE)
        sys.setrecursionlimit(max(old_limit, RECURSION_LIMIT))
        worker = threading.Thread(target=target, name="lox-eval")
        worker.start()
        worker.join()
    finally:
        threading.stack_size(old_stack)
        sys.setrecursionlimit(old_limit)
    if 'error' in outcome:
        raise outcome['error']
    return outcome.get('value')

@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None
    side_effects: List[Dict] = field(default_factory=list)
    diagnostics: List[LoxError] = field(default_factory=list)
    elapsed: float = 0.0

    def format_error(self) -> str:
        """Prefixes the kind-tagged error message with the line of the first error."""
        if self.status != 'error':
            return ""
        msg = self.error_message or "Unknown error"
        if self.error_token and 'line' in self.error_token:
            return f"Error on line {self.error_token['line']}: {msg}"
        return msg

    @property
    def output(self) -> List[str]:
        """Lines the program printed, in order."""
        return [e['message'] for e in self.side_effects if 'stdout' in e.get('topics', [])]


class ScriptRunner:
    """Scans, parses, resolves and executes Lox code.

    Globals persist between `handle_script` calls, so a REPL session keeps
    its variables, functions and classes.
    """

    def __init__(self, host_object: Optional[LoxHost] = None, output=None):
        self.host_object = host_object
        self.root_scope = Scope()
        self.evaluator = Evaluator(globals=self.root_scope, output=output)
        StdLib(self.evaluator).install(self.root_scope)
        self._host_api_names: set = set()

    # --- Error formatting ---

    def _source_context(self, source: str, line: int, radius: int = 2) -> str:
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            out.append(f"{prefix} {str(i).rjust(width)} | {lines[i - 1]}")
        return "\n".join(out)

    def _format_error(self, err: LoxError, source: str) -> str:
        msg = f"{err.kind}: {err.message} (line {err.line})"
        context = self._source_context(source, err.line)
        if context:
            msg = f"{msg}\n{context}"
        return msg

    def _format_stacktrace(self) -> str:
        stack = self.evaluator.call_stack
        if not stack:
            return ""
        pf = Printer().pformat
        frames = []
        for frame in stack:
            args = " ".join(pf(a) for a in frame.get('args') or [])
            frames.append(f"({frame.get('name') or '<call>'}" + (f" {args}" if args else "") + ")")
        return "Lox stacktrace: " + " ".join(frames)

    def _error_result(self, errors: List[LoxError], source: str, with_stack: bool = False) -> ExecutionResult:
        msg = "\n".join(self._format_error(e, source) for e in errors)
        if with_stack:
            st = self._format_stacktrace()
            if st:
                msg += "\n" + st
        self.evaluator.side_effects.append({'topics': ['stderr'], 'message': msg})
        return ExecutionResult(
            status='error',
            error_message=msg,
            error_token={'line': errors[0].line},
            side_effects=list(self.evaluator.side_effects),
            diagnostics=list(errors),
        )

    def _progress(self, message: str):
        self.evaluator.side_effects.append({'topics': ['progress'], 'message': message})

    def _bind_host_api_methods(self):
        """Bind @lox_api_method methods of the host into the global scope."""
        for n in self._host_api_names:
            self.root_scope.bindings.pop(n, None)
        self._host_api_names = set()

        host = self.host_object
        if not host:
            return
        for name, member in host.api_methods().items():
            self.root_scope.bindings[name] = NativeFunction(name, _arity_of(member), member)
            self._host_api_names.add(name)

    # --- Entry point ---

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script."""
        self.evaluator.side_effects.clear()
        self.evaluator.call_stack.clear()
        self._bind_host_api_methods()

        # 1. Scan
        try:
            tokens = scan(source_code)
        except ScanningErrors as e:
            return self._error_result(e.errors, source_code)
        self._progress(f"Scanned {len(tokens)} tokens")

        # 2. Parse: every error is reported before giving up
        steps = parse(tokens)
        parse_errors = collect_errors(steps)
        if parse_errors:
            return self._error_result(parse_errors, source_code)
        self._progress(f"Parsed tokens into {len(steps)} blocks")

        # 3. Resolve
        try:
            resolved = resolve(steps)
        except ResolvingError as e:
            return self._error_result([e], source_code)
        # Functions from earlier runs still look up their own nodes.
        self.evaluator.locals.update(resolved)

        # 4. Evaluate
        started = time.perf_counter()
        try:
            result = _run_with_deep_stack(self.evaluator.execute_steps, steps, self.root_scope)
        except LoxRuntimeError as e:
            return self._error_result([e], source_code, with_stack=True)
        except RecursionError:
            stack = self.evaluator.call_stack
            line = stack[-1]['line'] if stack else 0
            # Only the outermost frames are worth showing.
            del stack[8:]
            return self._error_result([LoxRuntimeError(line, "Stack overflow")], source_code, with_stack=True)
        elapsed = time.perf_counter() - started
        self._progress(f"Executed in {int(elapsed * 1_000_000)}μs")

        return ExecutionResult(
            status='success',
            value=unwrap_return(result) if is_return(result) else None,
            side_effects=list(self.evaluator.side_effects),
            elapsed=elapsed,
        )


def execute(source: str, host_object: Optional[LoxHost] = None) -> ExecutionResult:
    """Runs `source` on a fresh runner and returns its ExecutionResult."""
    return ScriptRunner(host_object=host_object).handle_script(source)
