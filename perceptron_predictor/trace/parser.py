"""
Trace Parser

Unified trace parser supporting multiple formats.
Handles compressed traces and provides streaming interface.
"""

import gzip
import lzma
import bz2
import logging
from pathlib import Path
from typing import Iterator, Optional, List, Union
from dataclasses import dataclass

from .formats import (
    TraceFormat, BranchRecord,
    CBPTraceFormat, SimpleTextFormat
)

logger = logging.getLogger(__name__)


@dataclass
class TraceInfo:
    """Information about a trace file."""
    path: str
    format: str
    compression: Optional[str]
    size_bytes: int
    estimated_branches: int


class BranchTrace:
    """
    Container for branch trace data.

    Holds records in memory, e.g. a loaded trace file or a synthetic workload.
    """

    def __init__(self, records: Optional[List[BranchRecord]] = None,
                 name: str = "memory"):
        self._records = records if records is not None else []
        self.name = name

    def add(self, record: BranchRecord) -> None:
        """Add a branch record."""
        self._records.append(record)

    def __iter__(self) -> Iterator[BranchRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, idx: int) -> BranchRecord:
        return self._records[idx]

    def get_statistics(self) -> dict:
        """Get trace statistics."""
        if not self._records:
            return {'count': 0}

        taken_count = sum(1 for r in self._records if r.taken)
        unique_pcs = len(set(r.pc for r in self._records))
        conditional = sum(1 for r in self._records if r.is_conditional)

        return {
            'count': len(self._records),
            'taken': taken_count,
            'not_taken': len(self._records) - taken_count,
            'taken_ratio': taken_count / len(self._records),
            'unique_pcs': unique_pcs,
            'conditional': conditional
        }


class TraceParser:
    """
    Unified trace parser with format detection and decompression.
    """

    # Supported formats
    FORMATS = {
        'cbp': CBPTraceFormat,
        'text': SimpleTextFormat,
    }

    # Compression handlers
    COMPRESSION = {
        '.gz': gzip.open,
        '.gzip': gzip.open,
        '.xz': lzma.open,
        '.bz2': bz2.open,
        '.lzma': lzma.open,
    }

    def __init__(self, format_name: Optional[str] = None):
        """
        Initialize parser.

        Args:
            format_name: Force specific format (auto-detect if None)
        """
        if format_name and format_name.lower() not in self.FORMATS:
            raise ValueError(f"Unknown trace format: {format_name}. "
                             f"Supported: {self.list_supported_formats()}")
        self.format_name = format_name

    def parse_file(self, filepath: Union[str, Path],
                   max_branches: Optional[int] = None,
                   skip_branches: int = 0) -> Iterator[BranchRecord]:
        """
        Parse a trace file.

        Args:
            filepath: Path to trace file
            max_branches: Maximum branches to read (None = all)
            skip_branches: Number of branches to skip

        Yields:
            BranchRecord for each branch
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Trace file not found: {filepath}")

        compression_ext = self._compression_ext(filepath)
        effective_path = filepath.with_suffix('') if compression_ext else filepath

        format_obj = self._get_format(effective_path)
        mode = 'rb' if format_obj.binary else 'rt'

        if compression_ext:
            file_handle = self.COMPRESSION[compression_ext](filepath, mode)
        else:
            file_handle = open(filepath, mode)

        with file_handle:
            count = 0
            skipped = 0

            for record in format_obj.parse(file_handle):
                if skipped < skip_branches:
                    skipped += 1
                    continue

                yield record
                count += 1

                if max_branches is not None and count >= max_branches:
                    break

        if isinstance(format_obj, SimpleTextFormat) and format_obj.skipped_lines:
            logger.warning("%s: skipped %d malformed lines",
                           filepath.name, format_obj.skipped_lines)

    def load_trace(self, filepath: Union[str, Path],
                   max_branches: Optional[int] = None,
                   skip_branches: int = 0) -> BranchTrace:
        """
        Load entire trace into memory.

        Args:
            filepath: Path to trace file
            max_branches: Maximum branches to load
            skip_branches: Branches to skip

        Returns:
            BranchTrace with all records
        """
        records = list(self.parse_file(filepath, max_branches, skip_branches))
        return BranchTrace(records, name=Path(filepath).name)

    def get_trace_info(self, filepath: Union[str, Path]) -> TraceInfo:
        """Get information about a trace file."""
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Trace file not found: {filepath}")

        compression_ext = self._compression_ext(filepath)
        effective_path = filepath.with_suffix('') if compression_ext else filepath
        format_name = (self.format_name or self._detect_format(effective_path)).lower()

        size = filepath.stat().st_size
        if format_name == 'cbp':
            estimated = size // CBPTraceFormat.RECORD.size
        else:
            estimated = size // 16  # ~16 characters per text line
        if compression_ext:
            # Compressed files: assume ~10x compression
            estimated *= 10

        return TraceInfo(
            path=str(filepath),
            format=format_name,
            compression=compression_ext[1:] if compression_ext else None,
            size_bytes=size,
            estimated_branches=estimated
        )

    def _compression_ext(self, filepath: Path) -> Optional[str]:
        suffix = filepath.suffix.lower()
        return suffix if suffix in self.COMPRESSION else None

    def _get_format(self, filepath: Path) -> TraceFormat:
        """Get format parser for file."""
        format_name = self.format_name or self._detect_format(filepath)
        return self.FORMATS[format_name.lower()]()

    def _detect_format(self, filepath: Path) -> str:
        """Detect trace format from filename."""
        name = filepath.name.lower()

        if 'cbp' in name or filepath.suffix.lower() == '.bin':
            return 'cbp'
        return 'text'

    @classmethod
    def list_supported_formats(cls) -> List[str]:
        """List supported trace formats."""
        return list(cls.FORMATS.keys())

    @classmethod
    def list_supported_compressions(cls) -> List[str]:
        """List supported compression formats."""
        return [ext[1:] for ext in cls.COMPRESSION.keys()]


def write_text_trace(trace: BranchTrace, filepath: Union[str, Path]) -> Path:
    """
    Write a trace in the simple text format.

    A ``.gz``/``.xz``/``.bz2`` suffix compresses the output.

    Args:
        trace: Records to write
        filepath: Output path

    Returns:
        The path written
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    opener = TraceParser.COMPRESSION.get(filepath.suffix.lower(), open)
    with opener(filepath, 'wt') as f:
        f.write(f"# Branch trace: {trace.name}\n")
        f.write("# Format: PC TAKEN TARGET\n")
        for record in trace:
            f.write(SimpleTextFormat.format_record(record) + "\n")

    return filepath
