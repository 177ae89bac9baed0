"""Call graph: owned collection of function records with an address index."""

from __future__ import annotations

import logging
from bisect import bisect_right
from typing import Iterable, Iterator

from stack_analyzer.exceptions import FunctionNotFoundError
from stack_analyzer.models.function import FunctionRecord

logger = logging.getLogger(__name__)


class CallGraph:
    """
    All function records of one analysis run.

    Iteration order is discovery order. Address lookup goes through an
    index sorted by start address, so resolving an edge is O(log n) when
    function ranges do not overlap, which holds for a linked image.
    Overlapping ranges (relocatable objects built with -ffunction-sections
    put every function at 0) are still found, at the cost of walking back
    over the overlapping records.
    Records are expected to be closed; the index is built once here.
    """

    def __init__(self, records: Iterable[FunctionRecord] = ()) -> None:
        self._records: list[FunctionRecord] = list(records)
        # (start, discovery index): ties on start resolve to the later label
        ordered = sorted(
            range(len(self._records)),
            key=lambda i: (self._records[i].start, i),
        )
        self._starts: list[int] = [self._records[i].start for i in ordered]
        self._by_start: list[FunctionRecord] = [self._records[i] for i in ordered]
        # _reach[i]: highest end address among _by_start[:i + 1]
        self._reach: list[int] = []
        overlaps = 0
        for record in self._by_start:
            if self._reach and self._reach[-1] >= record.start:
                overlaps += 1
                self._reach.append(max(self._reach[-1], record.end))
            else:
                self._reach.append(record.end)
        if overlaps:
            logger.debug("%d function ranges overlap an earlier function", overlaps)

    def __iter__(self) -> Iterator[FunctionRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> FunctionRecord:
        return self._records[index]

    @property
    def records(self) -> list[FunctionRecord]:
        return list(self._records)

    def find_by_address(self, address: int) -> FunctionRecord | None:
        """Return the record whose [start, end] range contains *address*.

        Of several containing records, the one with the highest start wins;
        equal starts go to the later label.
        """
        pos = bisect_right(self._starts, address) - 1
        while pos >= 0 and self._reach[pos] >= address:
            candidate = self._by_start[pos]
            if candidate.contains(address):
                return candidate
            pos -= 1
        return None

    def find_by_name(self, name: str) -> FunctionRecord:
        for record in self._records:
            if record.name == name:
                return record
        raise FunctionNotFoundError(name)

    @property
    def edge_count(self) -> int:
        return sum(len(r.call_edges) for r in self._records)

    @property
    def indirect_count(self) -> int:
        return sum(1 for r in self._records if r.has_indirect_call)
