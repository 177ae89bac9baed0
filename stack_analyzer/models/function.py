"""Per-function record produced by the call-graph builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ResolutionState(Enum):
    """Depth resolver marker. IN_PROGRESS on re-entry means a call cycle."""

    UNVISITED = "unvisited"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


@dataclass
class FunctionRecord:
    """
    One function discovered in the disassembly.

    Mutated only by CallGraphBuilder while open; after close() the builder
    leaves it alone and the resolver only touches the resolution fields.
    call_edges hold target addresses, not records; CallGraph resolves them.
    """

    name: str
    start: int
    end: int
    section: str = ".text"
    own_stack_bytes: int = 0
    call_edges: list[int] = field(default_factory=list)
    has_indirect_call: bool = False
    resolution_state: ResolutionState = ResolutionState.UNVISITED
    deepest_stack_bytes: int = 0
    closed: bool = False

    def contains(self, address: int) -> bool:
        return self.start <= address <= self.end

    def close(self, scratch_edges: list[int]) -> None:
        """Freeze the record, keeping only edges that leave its own range.

        Targets inside [start, end] are loops and local branches. Duplicates
        are dropped in first-seen order.
        """
        kept: dict[int, None] = {}
        for target in scratch_edges:
            if not self.contains(target):
                kept.setdefault(target, None)
        self.call_edges = list(kept)
        self.closed = True
