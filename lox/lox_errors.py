"""
The four error kinds raised by the Lox pipeline.

Every error carries the 1-based source line it was found on and a
human-readable message; the runner decides how to surface them.
"""
from typing import List


class LoxError(Exception):
    """Base class for scanning, parsing, resolution and runtime errors."""
    kind = "Error"

    def __init__(self, line: int, message: str):
        super().__init__(message)
        self.line = line
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(line={self.line}, message={self.message!r})"

    def __eq__(self, other):
        if not isinstance(other, LoxError):
            return NotImplemented
        return type(self) is type(other) and self.line == other.line and self.message == other.message

    def __hash__(self):
        return hash((type(self).__name__, self.line, self.message))


class ScanningError(LoxError):
    kind = "ScanError"


class ScanningErrors(Exception):
    """Raised once a scan pass is over, carrying every malformed lexeme found."""
    def __init__(self, errors: List[ScanningError]):
        super().__init__(f"{len(errors)} scanning error(s)")
        self.errors = list(errors)


class ParsingError(LoxError):
    kind = "ParseError"


class ResolvingError(LoxError):
    kind = "ResolveError"


class LoxRuntimeError(LoxError):
    kind = "RuntimeError"
