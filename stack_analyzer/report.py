"""Ranking and rendering of resolved function records.

The markdown table is meant to be pasted (or piped) straight into project
documentation, so its layout is fixed and identical input always yields
identical bytes.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Callable, Iterable

from stack_analyzer.models.function import FunctionRecord

NAME_WIDTH = 50
VALUE_WIDTH = 15
INDIRECT_MARKER = "*"

_HEADER = ("Name", "Own", "Deepest", "Indirect Calls")


class SortKey(Enum):
    OWN = "own"
    DEEPEST = "deepest"


def _sort_value(key: SortKey) -> Callable[[FunctionRecord], int]:
    if key is SortKey.OWN:
        return lambda r: r.own_stack_bytes
    return lambda r: r.deepest_stack_bytes


def rank_functions(
    records: Iterable[FunctionRecord],
    key: SortKey = SortKey.DEEPEST,
    limit: int | None = None,
) -> list[FunctionRecord]:
    """Return records by descending *key*, at most *limit* of them.

    sorted() is stable and keeps that guarantee with reverse=True, so equal
    values stay in discovery order. None or a negative limit returns all.
    """
    ranked = sorted(records, key=_sort_value(key), reverse=True)
    if limit is None or limit < 0:
        return ranked
    return ranked[:limit]


def _row(cells: tuple[str, str, str, str]) -> str:
    name, own, deepest, indirect = cells
    return (
        f"|{name:<{NAME_WIDTH}}|{own:<{VALUE_WIDTH}}"
        f"|{deepest:<{VALUE_WIDTH}}|{indirect:<{VALUE_WIDTH}}|\n"
    )


def render_markdown(records: Iterable[FunctionRecord]) -> str:
    lines = [_row(_HEADER)]
    lines.append(
        "|" + "-" * NAME_WIDTH + ("|" + "-" * VALUE_WIDTH) * 3 + "|\n"
    )
    for r in records:
        lines.append(
            _row(
                (
                    r.name,
                    str(r.own_stack_bytes),
                    str(r.deepest_stack_bytes),
                    INDIRECT_MARKER if r.has_indirect_call else " ",
                )
            )
        )
    return "".join(lines)


def render_json(records: Iterable[FunctionRecord]) -> str:
    rows = [
        {
            "name": r.name,
            "section": r.section,
            "start": f"0x{r.start:08x}",
            "end": f"0x{r.end:08x}",
            "own": r.own_stack_bytes,
            "deepest": r.deepest_stack_bytes,
            "indirect_calls": r.has_indirect_call,
            "call_targets": [f"0x{t:08x}" for t in r.call_edges],
        }
        for r in records
    ]
    return json.dumps(rows, indent=2) + "\n"


REPORT_FORMATS: dict[str, Callable[[Iterable[FunctionRecord]], str]] = {
    "markdown": render_markdown,
    "json": render_json,
}


def render_report(
    records: Iterable[FunctionRecord],
    key: SortKey = SortKey.DEEPEST,
    limit: int | None = None,
    fmt: str = "markdown",
) -> str:
    """Rank *records* and render them in *fmt*."""
    renderer = REPORT_FORMATS[fmt]
    return renderer(rank_functions(records, key, limit))
