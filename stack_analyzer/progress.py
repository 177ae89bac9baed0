"""Phase tracking for the analysis pipeline (disassemble, build, resolve).

Each phase records what it produced as named counts (lines, functions,
call_edges, ...). The CLI prints them with ``-v``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class PhaseProgress:
    phase: str
    status: str = "pending"  # "pending" | "running" | "completed" | "failed"
    start_time: float | None = None
    end_time: float | None = None
    counts: dict[str, int] = field(default_factory=dict)
    error: str | None = None

    @property
    def duration(self) -> float | None:
        if self.start_time is not None and self.end_time is not None:
            return round(self.end_time - self.start_time, 3)
        return None

    @property
    def detail(self) -> str:
        """``counts`` as text, e.g. ``4 functions, 3 call edges``."""
        return ", ".join(f"{n} {name.replace('_', ' ')}" for name, n in self.counts.items())


class ProgressTracker:
    """Record start/end/failure and the output counts of each pipeline phase."""

    def __init__(self) -> None:
        self.phases: list[PhaseProgress] = []
        self._by_name: dict[str, PhaseProgress] = {}

    def start_phase(self, phase: str) -> None:
        p = PhaseProgress(phase=phase, status="running", start_time=time.monotonic())
        self.phases.append(p)
        self._by_name[phase] = p
        logger.debug("Phase %s started", phase)

    def complete_phase(self, phase: str, **counts: int) -> None:
        p = self._by_name.get(phase)
        if p is None:
            logger.debug("Phase %s completed without being started", phase)
            return
        p.status = "completed"
        p.end_time = time.monotonic()
        p.counts.update(counts)
        logger.debug("Phase %s completed in %ss: %s", phase, p.duration, p.detail)

    def fail_phase(self, phase: str, error: str) -> None:
        p = self._by_name.get(phase)
        if p is None:
            return
        p.status = "failed"
        p.end_time = time.monotonic()
        p.error = error
        logger.debug("Phase %s failed: %s", phase, error)

    def get(self, phase: str) -> PhaseProgress | None:
        return self._by_name.get(phase)

    def count(self, phase: str, name: str) -> int:
        """A single count of *phase*; 0 if the phase or count is missing."""
        p = self._by_name.get(phase)
        return p.counts.get(name, 0) if p else 0

    @property
    def total_duration(self) -> float:
        return round(sum(p.duration or 0 for p in self.phases), 3)

    def get_summary(self) -> dict[str, Any]:
        return {
            "phases": [
                {
                    "phase": p.phase,
                    "status": p.status,
                    "duration": p.duration,
                    "counts": dict(p.counts),
                    "error": p.error,
                }
                for p in self.phases
            ],
            "total_duration": self.total_duration,
        }

    def format_summary(self) -> list[str]:
        """Human-readable summary, one line per phase."""
        lines = [f"Pipeline summary (total: {self.total_duration}s):"]
        for p in self.phases:
            text = p.error if p.status == "failed" else p.detail
            suffix = f" - {text}" if text else ""
            lines.append(f"  [{p.status}] {p.phase}{suffix}")
        return lines
