"""
Trace Format Definitions

Defines the trace file formats accepted by the simulator.
"""

import logging
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, BinaryIO, TextIO

logger = logging.getLogger(__name__)


@dataclass
class BranchRecord:
    """Single branch record from a trace."""
    pc: int              # Program counter
    target: int          # Branch target
    taken: bool          # Branch outcome
    branch_type: int     # Type of branch (conditional, call, return, etc.)

    # Optional metadata
    instruction_count: Optional[int] = None

    @property
    def is_conditional(self) -> bool:
        return (self.branch_type & 0x1) != 0

    @property
    def is_call(self) -> bool:
        return (self.branch_type & 0x2) != 0

    @property
    def is_return(self) -> bool:
        return (self.branch_type & 0x4) != 0

    @property
    def is_indirect(self) -> bool:
        return (self.branch_type & 0x8) != 0


def _parse_int(text: str) -> int:
    if text.lower().startswith('0x'):
        return int(text, 16)
    return int(text)


class TraceFormat(ABC):
    """Abstract base class for trace formats."""

    binary = True

    @abstractmethod
    def parse(self, file_handle) -> Iterator[BranchRecord]:
        """
        Parse trace file and yield branch records.

        Args:
            file_handle: Open file handle

        Yields:
            BranchRecord for each branch in trace
        """
        pass

    @abstractmethod
    def get_format_name(self) -> str:
        """Return format name."""
        pass


class CBPTraceFormat(TraceFormat):
    """
    Championship Branch Prediction (CBP) style binary records.

    Each record: 8 bytes PC + 8 bytes target + 1 byte flags, little endian.
    Flags: bit 0 = taken, bits 1-4 = branch type.
    """

    RECORD = struct.Struct('<QQB')

    def __init__(self):
        self.record_size = self.RECORD.size

    def get_format_name(self) -> str:
        return "CBP"

    def parse(self, file_handle: BinaryIO) -> Iterator[BranchRecord]:
        """Parse CBP binary trace format."""
        while True:
            data = file_handle.read(self.record_size)
            if not data or len(data) < self.record_size:
                if data:
                    logger.debug("Ignoring %d trailing bytes", len(data))
                break

            pc, target, flags = self.RECORD.unpack(data)

            yield BranchRecord(
                pc=pc,
                target=target,
                taken=(flags & 0x1) != 0,
                branch_type=(flags >> 1) & 0xF
            )

    def encode(self, record: BranchRecord) -> bytes:
        """Pack one record."""
        flags = (1 if record.taken else 0) | ((record.branch_type & 0xF) << 1)
        return self.RECORD.pack(record.pc, record.target, flags)


class SimpleTextFormat(TraceFormat):
    """
    Simple text trace format.

    Format: PC OUTCOME [TARGET], OUTCOME being one of TAKEN_TOKENS or
    NOT_TAKEN_TOKENS (any case)
    Example:
        0x1000 T 0x1040
        0x1004 N
    """

    binary = False

    TAKEN_TOKENS = frozenset({"T", "1", "TAKEN", "TRUE", "Y"})
    NOT_TAKEN_TOKENS = frozenset({"N", "0", "NOT_TAKEN", "FALSE"})

    def __init__(self):
        self.skipped_lines = 0

    def get_format_name(self) -> str:
        return "SimpleText"

    def parse(self, file_handle: TextIO) -> Iterator[BranchRecord]:
        """Parse simple text format."""
        for line_num, line in enumerate(file_handle, 1):
            line = line.strip()

            # Skip empty lines and comments
            if not line or line.startswith('#'):
                continue

            parts = line.split()
            if len(parts) < 2:
                self._skip(line_num, line)
                continue

            try:
                pc = _parse_int(parts[0])
                target = _parse_int(parts[2]) if len(parts) >= 3 else 0
            except ValueError:
                self._skip(line_num, line)
                continue

            if pc < 0:
                self._skip(line_num, line)
                continue

            outcome = parts[1].upper()
            if outcome in self.TAKEN_TOKENS:
                taken = True
            elif outcome in self.NOT_TAKEN_TOKENS:
                taken = False
            else:
                self._skip(line_num, line)
                continue

            yield BranchRecord(
                pc=pc,
                target=target,
                taken=taken,
                branch_type=1  # Assume conditional
            )

    def _skip(self, line_num: int, line: str) -> None:
        self.skipped_lines += 1
        logger.debug("Skipping malformed trace line %d: %r", line_num, line)

    @staticmethod
    def format_record(record: BranchRecord) -> str:
        outcome = 'T' if record.taken else 'N'
        return f"0x{record.pc:x} {outcome} 0x{record.target:x}"
