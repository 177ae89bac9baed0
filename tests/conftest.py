"""Shared pytest fixtures for stack-analyzer tests."""

import pytest

from stack_analyzer.models.callgraph import CallGraph
from stack_analyzer.models.function import FunctionRecord

# xc32-objdump -d output, trimmed. _reset lives in .reset and is skipped;
# .rodata is skipped as well, including its label-looking junk.
#
#   _startup -> main -> read_sensor -> filter
#   read_sensor also calls through t9, filter dispatches through a jump table
SAMPLE_LISTING = """
firmware.elf:     file format elf32-tradlittlemips


Disassembly of section .reset:

bfc00000 <_reset>:
bfc00000:\t0f40001c \tjal\t9d000070 <_startup>
bfc00004:\t00000000 \tnop

Disassembly of section .text:

9d000000 <main>:
9d000000:\t27bdffe8 \taddiu\tsp,sp,-24
9d000004:\tafbf0014 \tsw\tra,20(sp)
9d000008:\t0f400008 \tjal\t9d000020 <read_sensor>
9d00000c:\t00000000 \tnop
9d000010:\t8fbf0014 \tlw\tra,20(sp)
9d000014:\t27bd0018 \taddiu\tsp,sp,24
9d000018:\t03e00008 \tjr\tra
9d00001c:\t00000000 \tnop

9d000020 <read_sensor>:
9d000020:\t27bdffd0 \taddiu\tsp,sp,-48
9d000024:\tafbf002c \tsw\tra,44(sp)
9d000028:\t10400003 \tbeqz\tv0,9d000038 <read_sensor+0x18>
9d00002c:\t00000000 \tnop
9d000030:\t0f400014 \tjal\t9d000050 <filter>
9d000034:\t00000000 \tnop
9d000038:\t0320f809 \tjalr\tt9
9d00003c:\t00000000 \tnop
9d000040:\t8fbf002c \tlw\tra,44(sp)
9d000044:\t27bd0030 \taddiu\tsp,sp,48
9d000048:\t03e00008 \tjr\tra
9d00004c:\t00000000 \tnop

9d000050 <filter>:
9d000050:\t27bdfff0 \taddiu\tsp,sp,-16
9d000054:\t00021080 \tsll\tv0,v0,0x2
9d000058:\t00400008 \tjr\tv0
9d00005c:\t00000000 \tnop

9d000060 <.L4>:
9d000060:\t27bd0010 \taddiu\tsp,sp,16
9d000064:\t03e00008 \tjr\tra
9d000068:\t00000000 \tnop
9d00006c:\t00000000 \tnop

9d000070 <_startup>:
9d000070:\t0b400000 \tj\t9d000000 <main>
9d000074:\t00000000 \tnop

Disassembly of section .rodata:

9d001000 <version_string>:
9d001000:\t302e3176 \t.word\t0x302e3176
garbage <>:
"""


@pytest.fixture
def sample_listing() -> str:
    return SAMPLE_LISTING


@pytest.fixture
def sample_lines() -> list[str]:
    return SAMPLE_LISTING.splitlines()


def _make_record(
    name: str,
    start: int,
    end: int,
    own: int = 0,
    edges: list[int] | None = None,
    indirect: bool = False,
) -> FunctionRecord:
    """Closed FunctionRecord for resolver / report tests."""
    record = FunctionRecord(
        name=name,
        start=start,
        end=end,
        own_stack_bytes=own,
        has_indirect_call=indirect,
    )
    record.close(edges or [])
    return record


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def graph_factory():
    def _factory(*records: FunctionRecord) -> CallGraph:
        return CallGraph(records)

    return _factory
