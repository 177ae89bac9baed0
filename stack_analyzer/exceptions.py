"""Custom exceptions for stack-analyzer."""


class AnalyzerError(Exception):
    """Base exception for all analyzer errors."""


class StreamFormatError(AnalyzerError):
    """Raised when the disassembly stream cannot be trusted any more.

    Carries the 1-based line number and the offending text so the user can
    locate the problem in the listing.
    """

    def __init__(self, message: str, line_number: int = 0, line: str = ""):
        self.line_number = line_number
        self.line = line.rstrip("\n")
        location = f"line {line_number}: " if line_number else ""
        detail = f" ({self.line!r})" if self.line else ""
        super().__init__(f"{location}{message}{detail}")


class DisassemblerError(AnalyzerError):
    """Raised when the disassembler cannot be run or exits abnormally."""


class FunctionNotFoundError(AnalyzerError):
    """Raised when a function name is not present in the call graph."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Function '{name}' not found in call graph")
