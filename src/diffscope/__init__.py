"""
Diffscope: diff-to-context extraction for LLM code review.

Turns one changed file's unified diff into the material a review prompt
needs: a line-numbered rendering of the diff, the smallest enclosing
functions, classes and methods around the added lines (size-bounded), and a
token count checked against the model budget.

Modules:
- core: diff parsing, structural parsing, block selection, prompt assembly
"""

try:
    from importlib.metadata import version
    __version__ = version("diffscope")
except Exception:
    __version__ = "0.1.0"

from .modules.core import (
    ExtractionConfig,
    ExtractionResult,
    FileChange,
    FileContext,
    ParsedDiff,
    SelectedBlock,
    extract_code_blocks,
    extract_many,
    parse_diff,
    prepare_file_context,
    render_numbered_diff,
)

from . import modules

__all__ = [
    "modules",
    "ExtractionConfig",
    "ExtractionResult",
    "FileChange",
    "FileContext",
    "ParsedDiff",
    "SelectedBlock",
    "extract_code_blocks",
    "extract_many",
    "parse_diff",
    "prepare_file_context",
    "render_numbered_diff",
]
