"""objdump runner: produces the disassembly listing the analyzer consumes.

The default executable is the Microchip xc32 toolchain's objdump (PIC32 /
MIPS32r5). Any binutils objdump that understands the target works; point
STACK_ANALYZER_OBJDUMP or ``--objdump`` at it.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Sequence

from stack_analyzer.exceptions import DisassemblerError

logger = logging.getLogger(__name__)

DEFAULT_OBJDUMP = "xc32-objdump"
OBJDUMP_TIMEOUT = 300  # seconds; bounds the wait for a slow producer


class ObjdumpDisassembler:
    """
    Run ``objdump -d`` on a binary and return its listing as lines.

    The whole listing is captured before parsing starts. A producer that is
    slow to emit output is waited for up to *timeout* seconds; a non-zero
    exit status means the listing may be truncated and is rejected.
    """

    def __init__(
        self,
        objdump: str = DEFAULT_OBJDUMP,
        extra_args: Sequence[str] = (),
        timeout: float = OBJDUMP_TIMEOUT,
    ) -> None:
        self.objdump = objdump
        self.extra_args = list(extra_args)
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> ObjdumpDisassembler:
        """Build from STACK_ANALYZER_OBJDUMP / STACK_ANALYZER_OBJDUMP_TIMEOUT."""
        objdump = os.environ.get("STACK_ANALYZER_OBJDUMP", DEFAULT_OBJDUMP)
        raw_timeout = os.environ.get("STACK_ANALYZER_OBJDUMP_TIMEOUT")
        timeout: float = OBJDUMP_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                logger.warning(
                    "STACK_ANALYZER_OBJDUMP_TIMEOUT=%r is not a number, using %ss",
                    raw_timeout,
                    OBJDUMP_TIMEOUT,
                )
        return cls(objdump=objdump, timeout=timeout)

    def command(self, binary_path: str) -> list[str]:
        return [self.objdump, "-d", *self.extra_args, binary_path]

    def disassemble(self, binary_path: str) -> list[str]:
        if not Path(binary_path).is_file():
            raise DisassemblerError(f"Binary not found: {binary_path}")

        cmd = self.command(binary_path)
        logger.info("Running disassembler: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise DisassemblerError(f"Disassembler executable not found: {self.objdump}")
        except subprocess.TimeoutExpired:
            raise DisassemblerError(f"Disassembler timed out after {self.timeout}s")

        if result.returncode != 0:
            raise DisassemblerError(
                f"{self.objdump} exited with status {result.returncode}; "
                f"listing may be incomplete. stderr: {result.stderr[-500:]}"
            )
        if result.stderr:
            logger.warning("Disassembler stderr: %s", result.stderr[-2000:])

        return result.stdout.splitlines()

    def check_prerequisites(self) -> list[str]:
        """Return missing prerequisites (empty = can run)."""
        if shutil.which(self.objdump) is None:
            return [f"Disassembler '{self.objdump}' not found on PATH"]
        return []
