"""Test doubles for stack_analyzer, for use where no objdump is installed.

Usage::

    from stack_analyzer.testing import FakeDisassembler

    disassembler = FakeDisassembler(listing_text)
    orchestrator = StackAnalysisOrchestrator(disassembler=disassembler)
    output = orchestrator.analyze_binary("firmware.elf")
"""

from __future__ import annotations

from stack_analyzer.exceptions import DisassemblerError
from stack_analyzer.objdump.runner import ObjdumpDisassembler


class FakeDisassembler(ObjdumpDisassembler):
    """Drop-in replacement for ObjdumpDisassembler returning a canned listing.

    Parameters
    ----------
    listing:
        Text returned (split into lines) for every binary.
    error:
        If given, ``disassemble`` raises DisassemblerError with this message.
    """

    def __init__(self, listing: str = "", *, error: str | None = None) -> None:
        # Skip real __init__, no executable needed.
        self.objdump = "fake-objdump"
        self.extra_args = []
        self.timeout = 0
        self._listing = listing
        self._error = error
        self._calls: list[str] = []

    @property
    def calls(self) -> list[str]:
        """Binary paths received, for assertions in tests."""
        return self._calls

    def disassemble(self, binary_path: str) -> list[str]:
        self._calls.append(binary_path)
        if self._error is not None:
            raise DisassemblerError(self._error)
        return self._listing.splitlines()

    def check_prerequisites(self) -> list[str]:
        return []
