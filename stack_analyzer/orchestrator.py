"""Stack analysis orchestrator: 3-phase pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from stack_analyzer.builder import DEFAULT_EXECUTABLE_SECTIONS, CallGraphBuilder
from stack_analyzer.models.callgraph import CallGraph
from stack_analyzer.models.function import FunctionRecord
from stack_analyzer.objdump.runner import ObjdumpDisassembler
from stack_analyzer.progress import ProgressTracker
from stack_analyzer.resolver import DepthResolver, UnresolvedCall

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutput:
    """Orchestrator return value."""

    source: str
    graph: CallGraph
    unresolved: list[UnresolvedCall] = field(default_factory=list)

    @property
    def functions(self) -> list[FunctionRecord]:
        return self.graph.records

    @property
    def function_count(self) -> int:
        return len(self.graph)

    @property
    def edge_count(self) -> int:
        return self.graph.edge_count

    @property
    def indirect_count(self) -> int:
        return self.graph.indirect_count


class StackAnalysisOrchestrator:
    """
    Run the analysis pipeline.

    Phase 1: ObjdumpDisassembler.disassemble() (binaries only)
    Phase 2: CallGraphBuilder over the listing lines
    Phase 3: DepthResolver.resolve_all()

    Ranking and rendering are left to the caller (see report.py).
    """

    def __init__(
        self,
        disassembler: ObjdumpDisassembler | None = None,
        executable_sections: Iterable[str] = DEFAULT_EXECUTABLE_SECTIONS,
    ) -> None:
        self.disassembler = disassembler or ObjdumpDisassembler()
        self.executable_sections = tuple(executable_sections)
        self.progress = ProgressTracker()

    def analyze_binary(self, binary_path: str) -> AnalysisOutput:
        """Disassemble *binary_path* and analyze the resulting listing."""
        self.progress = ProgressTracker()
        self.progress.start_phase("disassemble")
        try:
            lines = self.disassembler.disassemble(binary_path)
        except Exception as e:
            self.progress.fail_phase("disassemble", str(e))
            raise
        self.progress.complete_phase("disassemble", lines=len(lines))
        return self._analyze(lines, source=binary_path)

    def analyze_lines(self, lines: Iterable[str], source: str = "<stream>") -> AnalysisOutput:
        """Analyze an already produced listing."""
        self.progress = ProgressTracker()
        return self._analyze(lines, source=source)

    def _analyze(self, lines: Iterable[str], source: str) -> AnalysisOutput:
        progress = self.progress

        progress.start_phase("build")
        try:
            graph = (
                CallGraphBuilder(self.executable_sections).feed_lines(lines).finish()
            )
        except Exception as e:
            progress.fail_phase("build", str(e))
            raise
        progress.complete_phase(
            "build",
            functions=len(graph),
            call_edges=graph.edge_count,
            indirect_callers=graph.indirect_count,
        )

        progress.start_phase("resolve")
        unresolved = DepthResolver(graph).resolve_all()
        progress.complete_phase("resolve", unresolved_targets=len(unresolved))

        logger.info(
            "Analyzed %s: %d functions, %d edges, %d with indirect calls",
            source,
            len(graph),
            graph.edge_count,
            graph.indirect_count,
        )
        return AnalysisOutput(source=source, graph=graph, unresolved=unresolved)
