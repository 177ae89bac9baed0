"""Depth resolver: worst-case cumulative stack usage over the call graph."""

from __future__ import annotations

import sys
from dataclasses import dataclass

import structlog

from stack_analyzer.models.callgraph import CallGraph
from stack_analyzer.models.function import FunctionRecord, ResolutionState

LOGGER_NAME = "stack_analyzer.resolver"

# Frames needed per resolve() level, plus headroom for the caller's stack
_FRAMES_PER_LEVEL = 2
_RECURSION_HEADROOM = 200


@dataclass(frozen=True)
class UnresolvedCall:
    """A call edge whose target address lies in no known function."""

    caller: str
    target: int

    def __str__(self) -> str:
        return f"{self.caller} -> 0x{self.target:08x}"


class DepthResolver:
    """
    Memoized depth-first resolution of ``deepest_stack_bytes``.

    Each record carries a three-state marker. Reaching an IN_PROGRESS record
    again means the walk closed a cycle (direct or mutual recursion); the
    partial value accumulated so far is returned instead of recursing. The
    walk therefore always terminates, and results through a cycle are a
    lower bound on the real usage.

    Usage::

        resolver = DepthResolver(graph)
        unresolved = resolver.resolve_all()
    """

    def __init__(self, graph: CallGraph) -> None:
        self._graph = graph
        self.unresolved: list[UnresolvedCall] = []
        self._log = structlog.get_logger(LOGGER_NAME)

    def resolve_all(self) -> list[UnresolvedCall]:
        """Resolve every record in discovery order; return the diagnostics."""
        needed = len(self._graph) * _FRAMES_PER_LEVEL + _RECURSION_HEADROOM
        previous_limit = sys.getrecursionlimit()
        if previous_limit < needed:
            sys.setrecursionlimit(needed)
        try:
            for record in self._graph:
                self.resolve(record)
        finally:
            sys.setrecursionlimit(previous_limit)
        return list(self.unresolved)

    def resolve(self, record: FunctionRecord) -> int:
        if record.resolution_state is ResolutionState.RESOLVED:
            return record.deepest_stack_bytes

        if record.resolution_state is ResolutionState.IN_PROGRESS:
            self._log.debug(
                "resolver.cycle",
                function=record.name,
                partial=record.deepest_stack_bytes,
            )
            return record.deepest_stack_bytes

        record.resolution_state = ResolutionState.IN_PROGRESS
        record.deepest_stack_bytes = 0
        for target in record.call_edges:
            callee = self._graph.find_by_address(target)
            if callee is None:
                self._report_unresolved(record, target)
                continue
            branch = self.resolve(callee)
            if branch > record.deepest_stack_bytes:
                record.deepest_stack_bytes = branch

        record.deepest_stack_bytes += record.own_stack_bytes
        record.resolution_state = ResolutionState.RESOLVED
        return record.deepest_stack_bytes

    def _report_unresolved(self, record: FunctionRecord, target: int) -> None:
        unresolved = UnresolvedCall(caller=record.name, target=target)
        self.unresolved.append(unresolved)
        self._log.warning(
            "resolver.unresolved_target",
            function=record.name,
            target=f"0x{target:08x}",
        )


def resolve_depths(graph: CallGraph) -> list[UnresolvedCall]:
    """Resolve all records of *graph* in place."""
    return DepthResolver(graph).resolve_all()
