"""Engine entry points for per-file and multi-file extraction."""

from .extract import (
    ExtractionResult,
    FileChange,
    FileContext,
    extract_code_blocks,
    extract_many,
    prepare_file_context,
    uncovered_changed_lines,
)

__all__ = [
    "ExtractionResult",
    "FileChange",
    "FileContext",
    "extract_code_blocks",
    "extract_many",
    "prepare_file_context",
    "uncovered_changed_lines",
]
