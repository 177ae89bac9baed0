"""CLI entry point: stack-analyze.

Subcommands:
    stack-analyze analyze firmware.elf          # disassemble + report
    stack-analyze listing firmware.lst          # report from an objdump -d listing
    stack-analyze check                         # is the disassembler available?
"""

from __future__ import annotations

import sys
from typing import Callable, NoReturn

import click

from stack_analyzer.builder import DEFAULT_EXECUTABLE_SECTIONS
from stack_analyzer.core.logging import setup_logging
from stack_analyzer.exceptions import AnalyzerError
from stack_analyzer.objdump.runner import ObjdumpDisassembler
from stack_analyzer.orchestrator import AnalysisOutput, StackAnalysisOrchestrator
from stack_analyzer.report import REPORT_FORMATS, SortKey, render_report

_REPORT_COLUMNS_HELP = """\
The report is a markdown table, ready to be included in documentation:

\b
  Name:           function name as the label in the binary states
  Own:            stack bytes the function reserves by itself
  Deepest:        worst-case stack bytes of the function and its callees
  Indirect Calls: '*' if the function calls through a register; Deepest
                  is then a lower bound

Recursive call cycles are cut at the first repeated function, so Deepest is
also a lower bound for functions on a cycle.
"""


def _validate_count(ctx: click.Context, param: click.Parameter, value: int) -> int | None:
    if value == 0:
        raise click.BadParameter("must be a positive number, or -1 for all")
    if value < 0:
        return None
    return value


def _report_options(func: Callable) -> Callable:
    """Options shared by every command that prints a report."""
    func = click.option(
        "-s",
        "--sort",
        "sort_key",
        type=click.Choice([k.value for k in SortKey]),
        default=SortKey.DEEPEST.value,
        show_default=True,
        help="Sort by deepest or own stack usage",
    )(func)
    func = click.option(
        "-n",
        "--count",
        type=int,
        default=10,
        show_default=True,
        callback=_validate_count,
        help="Number of functions to report, -1 for all",
    )(func)
    func = click.option(
        "-f",
        "--format",
        "fmt",
        type=click.Choice(sorted(REPORT_FORMATS)),
        default="markdown",
        show_default=True,
        help="Report format",
    )(func)
    func = click.option(
        "--section",
        "sections",
        multiple=True,
        default=DEFAULT_EXECUTABLE_SECTIONS,
        show_default=True,
        help="Executable section name prefix (repeatable)",
    )(func)
    return func


def _make_disassembler(objdump: str | None) -> ObjdumpDisassembler:
    disassembler = ObjdumpDisassembler.from_env()
    if objdump:
        disassembler.objdump = objdump
    return disassembler


def _print_summary(orchestrator: StackAnalysisOrchestrator) -> None:
    if click.get_current_context().find_root().params.get("verbose"):
        for line in orchestrator.progress.format_summary():
            click.echo(line, err=True)


def _fail(orchestrator: StackAnalysisOrchestrator, error: AnalyzerError) -> NoReturn:
    click.echo(f"Error: {error}", err=True)
    _print_summary(orchestrator)
    sys.exit(1)


def _emit(
    orchestrator: StackAnalysisOrchestrator,
    output: AnalysisOutput,
    sort_key: str,
    count: int | None,
    fmt: str,
) -> None:
    click.echo(render_report(output.functions, SortKey(sort_key), count, fmt), nl=False)

    unresolved = orchestrator.progress.count("resolve", "unresolved_targets")
    if unresolved:
        click.echo(f"Unresolved call targets: {unresolved}", err=True)
    _print_summary(orchestrator)


@click.group(epilog=_REPORT_COLUMNS_HELP)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """Static worst-case stack usage analyzer for MIPS32 binaries."""
    setup_logging(verbose)


@main.command("analyze")
@click.argument("binary", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--objdump",
    default=None,
    help="Disassembler executable [env: STACK_ANALYZER_OBJDUMP, default: xc32-objdump]",
)
@_report_options
def analyze(
    binary: str,
    objdump: str | None,
    sort_key: str,
    count: int | None,
    fmt: str,
    sections: tuple[str, ...],
) -> None:
    """Disassemble BINARY and report its stack usage."""
    orchestrator = StackAnalysisOrchestrator(
        disassembler=_make_disassembler(objdump),
        executable_sections=sections,
    )
    try:
        output = orchestrator.analyze_binary(binary)
    except AnalyzerError as e:
        _fail(orchestrator, e)
    _emit(orchestrator, output, sort_key, count, fmt)


@main.command("listing")
# symbol names are raw bytes in objdump output; undecodable ones become U+FFFD
@click.argument("listing_file", type=click.File("r", errors="replace"))
@_report_options
def listing(
    listing_file,
    sort_key: str,
    count: int | None,
    fmt: str,
    sections: tuple[str, ...],
) -> None:
    """Report stack usage from an objdump -d LISTING_FILE ('-' for stdin)."""
    orchestrator = StackAnalysisOrchestrator(executable_sections=sections)
    try:
        source = getattr(listing_file, "name", "<stdin>")
        output = orchestrator.analyze_lines(listing_file, source=source)
    except AnalyzerError as e:
        _fail(orchestrator, e)
    _emit(orchestrator, output, sort_key, count, fmt)


@main.command("check")
@click.option("--objdump", default=None, help="Disassembler executable to check")
def check(objdump: str | None) -> None:
    """Check that the disassembler can be run."""
    disassembler = _make_disassembler(objdump)
    missing = disassembler.check_prerequisites()
    if missing:
        for item in missing:
            click.echo(f"Missing: {item}", err=True)
        sys.exit(1)
    click.echo(f"Disassembler: {disassembler.objdump} (timeout {disassembler.timeout}s)")


if __name__ == "__main__":
    main()
