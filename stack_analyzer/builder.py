"""Call-graph builder: folds classified listing lines into function records."""

from __future__ import annotations

import logging
from typing import Iterable

from stack_analyzer.models.callgraph import CallGraph
from stack_analyzer.models.function import FunctionRecord
from stack_analyzer.objdump.line_classifier import (
    Event,
    FunctionLabel,
    Instruction,
    InstructionKind,
    SectionBoundary,
    classify_line,
    is_executable_section,
    match_section,
)

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE_SECTIONS: tuple[str, ...] = (".text",)


class CallGraphBuilder:
    """
    Sequential consumer of one disassembly listing.

    Exactly one record is open at a time. A label or a section header closes
    it; only then is its end address final, so edge filtering happens at
    close time. Sections whose name does not start with one of
    *executable_sections* are skipped up to the next section header.

    Usage::

        graph = CallGraphBuilder().feed_lines(lines).finish()
    """

    def __init__(self, executable_sections: Iterable[str] = DEFAULT_EXECUTABLE_SECTIONS) -> None:
        self._prefixes = tuple(executable_sections)
        self._records: list[FunctionRecord] = []
        self._current: FunctionRecord | None = None
        self._scratch_edges: list[int] = []
        self._section: str | None = None
        self._in_executable = False
        self._seen_executable = False
        self.orphan_instructions = 0

    def feed_lines(self, lines: Iterable[str]) -> CallGraphBuilder:
        for line_number, line in enumerate(lines, start=1):
            self.feed(line, line_number)
        return self

    def feed(self, line: str, line_number: int = 0) -> None:
        if not self._in_executable:
            # only a section header can end a skipped region
            boundary = match_section(line)
            if boundary is not None:
                self.feed_event(boundary)
            return
        event = classify_line(line, line_number)
        if event is not None:
            self.feed_event(event)

    def feed_event(self, event: Event) -> None:
        if isinstance(event, SectionBoundary):
            self._enter_section(event.name)
        elif not self._in_executable:
            return
        elif isinstance(event, FunctionLabel):
            self._close_current()
            self._open(event)
        elif isinstance(event, Instruction):
            self._apply(event)

    def finish(self) -> CallGraph:
        """Close the last record and hand the records over as a CallGraph."""
        self._close_current()
        if not self._seen_executable:
            logger.warning(
                "No executable section (%s) found in disassembly", ", ".join(self._prefixes)
            )
        if self.orphan_instructions:
            logger.debug(
                "%d instructions preceded the first label of their section and were ignored",
                self.orphan_instructions,
            )
        return CallGraph(self._records)

    def _enter_section(self, name: str) -> None:
        self._close_current()
        self._section = name
        self._in_executable = is_executable_section(name, self._prefixes)
        if self._in_executable:
            self._seen_executable = True
            logger.debug("Scanning section %s", name)
        else:
            logger.debug("Skipping section %s", name)

    def _open(self, label: FunctionLabel) -> None:
        self._current = FunctionRecord(
            name=label.name,
            start=label.address,
            end=label.address,
            section=self._section or "",
        )
        self._records.append(self._current)
        self._scratch_edges = []

    def _close_current(self) -> None:
        if self._current is None:
            return
        self._current.close(self._scratch_edges)
        self._scratch_edges = []
        self._current = None

    def _apply(self, insn: Instruction) -> None:
        record = self._current
        if record is None:
            self.orphan_instructions += 1
            return

        if insn.address > record.end:
            record.end = insn.address

        if insn.kind is InstructionKind.STACK_GROWTH:
            record.own_stack_bytes += insn.stack_delta
        elif insn.kind is InstructionKind.INDIRECT_CALL:
            record.has_indirect_call = True
        elif insn.kind is InstructionKind.DIRECT_TRANSFER and insn.target is not None:
            self._scratch_edges.append(insn.target)


def build_call_graph(
    lines: Iterable[str],
    executable_sections: Iterable[str] = DEFAULT_EXECUTABLE_SECTIONS,
) -> CallGraph:
    """Build a CallGraph from listing lines in one pass."""
    return CallGraphBuilder(executable_sections).feed_lines(lines).finish()
