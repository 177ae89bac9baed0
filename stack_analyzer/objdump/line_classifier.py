"""Classify MIPS32 objdump -d lines into call-graph events.

objdump emits three kinds of lines that matter here::

    Disassembly of section .text:
    9d000000 <main>:
    9d000000:	27bdffe8 	addiu	sp,sp,-24

Everything else (file header, blank lines, ``...`` fill markers) is noise.
Classification looks at one line at a time; the builder owns all state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from stack_analyzer.exceptions import StreamFormatError

# Labels whose bracketed name starts with this are compiler-local (.L12 etc.)
INTERNAL_LABEL_PREFIX = "."

_SECTION_RE = re.compile(r"^Disassembly of section (?P<name>\S+?):?\s*$")
_LABEL_RE = re.compile(r"^(?P<address>[0-9a-fA-F]+)\s+<(?P<name>.+)>:\s*$")
_INSN_RE = re.compile(r"^\s*(?P<address>[0-9a-fA-F]+):\t(?P<body>.*)$")

_SP = r"(?:\$?sp|\$29)"
_STACK_ADJUST_RE = re.compile(
    rf"^{_SP}\s*,\s*{_SP}\s*,\s*(?P<imm>-?(?:0[xX][0-9a-fA-F]+|\d+))$"
)
_RA_RE = re.compile(r"^(?:\$?ra|\$31)$")

_STACK_ADJUST_MNEMONICS = frozenset({"addiu", "daddiu", "addi", "daddi"})
# b*/j* mnemonics that are not control transfers
_NON_TRANSFER_MNEMONICS = frozenset({"break", "bitswap", "dbitswap"})
_INDIRECT_CALL_PREFIXES = ("jalr", "jialc")
_REGISTER_JUMP_PREFIXES = ("jr", "jic")


class InstructionKind(Enum):
    PLAIN = "plain"
    STACK_GROWTH = "stack_growth"
    DIRECT_TRANSFER = "direct_transfer"
    INDIRECT_CALL = "indirect_call"
    RETURN = "return"
    SWITCH_DISPATCH = "switch_dispatch"


@dataclass(frozen=True)
class SectionBoundary:
    name: str


@dataclass(frozen=True)
class FunctionLabel:
    address: int
    name: str


@dataclass(frozen=True)
class Instruction:
    """An addressed instruction line.

    stack_delta is the number of bytes a STACK_GROWTH instruction reserves;
    target is the literal address of a DIRECT_TRANSFER.
    """

    address: int
    mnemonic: str
    operands: str = ""
    kind: InstructionKind = InstructionKind.PLAIN
    stack_delta: int = 0
    target: int | None = None


Event = Union[SectionBoundary, FunctionLabel, Instruction]


def classify_line(line: str, line_number: int = 0) -> Event | None:
    """Turn one listing line into an event, or None for noise.

    Raises:
        StreamFormatError: the line looks like a label (ends in ``>:``)
            but has no parsable address or bracketed name.
    """
    text = line.rstrip("\r\n")

    boundary = match_section(text)
    if boundary is not None:
        return boundary

    if text.rstrip().endswith(">:"):
        return _parse_label(text, line_number)

    m = _INSN_RE.match(text)
    if m:
        return _parse_instruction(int(m.group("address"), 16), m.group("body"))

    return None


def match_section(line: str) -> SectionBoundary | None:
    """Recognize only section headers; used while skipping other sections."""
    m = _SECTION_RE.match(line.rstrip("\r\n"))
    if m:
        return SectionBoundary(name=m.group("name"))
    return None


def _parse_label(text: str, line_number: int) -> FunctionLabel | None:
    m = _LABEL_RE.match(text.strip())
    if not m or not m.group("name").strip():
        raise StreamFormatError("malformed function label", line_number, text)
    name = m.group("name")
    if name.startswith(INTERNAL_LABEL_PREFIX):
        return None
    return FunctionLabel(address=int(m.group("address"), 16), name=name)


def _parse_instruction(address: int, body: str) -> Instruction:
    # body: "<encoding>\t<mnemonic>\t<operands>"; mnemonic may be absent
    # on continuation lines of long encodings
    parts = body.split("\t", 1)
    tokens = parts[1].strip().split(None, 1) if len(parts) > 1 else []
    if not tokens:
        return Instruction(address=address, mnemonic="")

    mnemonic = tokens[0].lower()
    operands = tokens[1].strip() if len(tokens) > 1 else ""

    if mnemonic in _STACK_ADJUST_MNEMONICS:
        delta = _stack_decrement(operands)
        if delta:
            return Instruction(
                address, mnemonic, operands, InstructionKind.STACK_GROWTH, stack_delta=delta
            )
        return Instruction(address, mnemonic, operands)

    if _is_transfer(mnemonic):
        return _classify_transfer(address, mnemonic, operands)

    return Instruction(address, mnemonic, operands)


def _stack_decrement(operands: str) -> int:
    """Bytes reserved by ``addiu sp,sp,-N``; 0 for increments and other registers."""
    m = _STACK_ADJUST_RE.match(operands)
    if not m:
        return 0
    imm = m.group("imm")
    negative = imm.startswith("-")
    digits = imm.lstrip("-")
    value = int(digits, 16) if digits.lower().startswith("0x") else int(digits, 10)
    return value if negative else 0


def _is_transfer(mnemonic: str) -> bool:
    return mnemonic[:1] in ("b", "j") and mnemonic not in _NON_TRANSFER_MNEMONICS


def _classify_transfer(address: int, mnemonic: str, operands: str) -> Instruction:
    first_operand = operands.split(",", 1)[0].strip()

    if mnemonic.startswith(_REGISTER_JUMP_PREFIXES) and _RA_RE.match(first_operand):
        return Instruction(address, mnemonic, operands, InstructionKind.RETURN)

    if mnemonic.startswith(_INDIRECT_CALL_PREFIXES):
        return Instruction(address, mnemonic, operands, InstructionKind.INDIRECT_CALL)

    if mnemonic.startswith(_REGISTER_JUMP_PREFIXES):
        # jump table dispatch; targets stay inside the function
        return Instruction(address, mnemonic, operands, InstructionKind.SWITCH_DISPATCH)

    target = parse_target(operands)
    if target is None:
        return Instruction(address, mnemonic, operands)
    return Instruction(
        address, mnemonic, operands, InstructionKind.DIRECT_TRANSFER, target=target
    )


def parse_target(operands: str) -> int | None:
    """Extract the literal branch target from an operand string.

    ``beq v0,zero,9d000040 <main+0x40>`` -> 0x9d000040. Returns None when
    the last operand is not a hex literal.
    """
    annotation = operands.find("<")
    if annotation >= 0:
        operands = operands[:annotation]
    last = operands.rsplit(",", 1)[-1].strip()
    if not last:
        return None
    try:
        return int(last, 16)
    except ValueError:
        return None


def is_executable_section(name: str, prefixes: tuple[str, ...] = (".text",)) -> bool:
    return name.startswith(prefixes)
