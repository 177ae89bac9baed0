"""stack-analyzer: static worst-case stack usage estimation from objdump listings."""

__version__ = "0.1.0"

from stack_analyzer.builder import CallGraphBuilder, build_call_graph
from stack_analyzer.exceptions import (
    AnalyzerError,
    DisassemblerError,
    FunctionNotFoundError,
    StreamFormatError,
)
from stack_analyzer.models.callgraph import CallGraph
from stack_analyzer.models.function import FunctionRecord, ResolutionState
from stack_analyzer.objdump.runner import ObjdumpDisassembler
from stack_analyzer.orchestrator import AnalysisOutput, StackAnalysisOrchestrator
from stack_analyzer.report import SortKey, rank_functions, render_markdown, render_report
from stack_analyzer.resolver import DepthResolver, UnresolvedCall, resolve_depths

__all__ = [
    "AnalysisOutput",
    "AnalyzerError",
    "CallGraph",
    "CallGraphBuilder",
    "DepthResolver",
    "DisassemblerError",
    "FunctionNotFoundError",
    "FunctionRecord",
    "ObjdumpDisassembler",
    "ResolutionState",
    "SortKey",
    "StackAnalysisOrchestrator",
    "StreamFormatError",
    "UnresolvedCall",
    "build_call_graph",
    "rank_functions",
    "render_markdown",
    "render_report",
    "resolve_depths",
]
