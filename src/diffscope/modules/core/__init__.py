"""Core extraction pipeline: diff in, size-bounded review context out."""

from .block_governor import SelectedBlock, govern_span
from .block_select import SyntaxSpan, collect_spans, select_minimal_spans
from .config import ExtractionConfig, get_file_extension, is_supported_file
from .diff_parser import (
    DiffLine,
    ParsedDiff,
    changed_line_numbers,
    extract_line_range,
    parse_diff,
    render_numbered_diff,
)
from .engines import (
    ExtractionResult,
    FileChange,
    FileContext,
    extract_code_blocks,
    extract_many,
    prepare_file_context,
    uncovered_changed_lines,
)
from .parser_adapter import ParseOutcome, StructuralParser
from .prompt import build_prompt, load_system_prompt
from .review_issues import ReviewIssue, position_issues
from .sfc import ScriptSectionParser
from .source_rebuild import ReconstructedSource, rebuild_source
from .token_utils import Budget, count_tokens, estimate_tokens

__all__ = [
    "Budget",
    "DiffLine",
    "ExtractionConfig",
    "ExtractionResult",
    "FileChange",
    "FileContext",
    "ParseOutcome",
    "ParsedDiff",
    "ReconstructedSource",
    "ReviewIssue",
    "ScriptSectionParser",
    "SelectedBlock",
    "StructuralParser",
    "SyntaxSpan",
    "build_prompt",
    "changed_line_numbers",
    "collect_spans",
    "count_tokens",
    "estimate_tokens",
    "extract_code_blocks",
    "extract_line_range",
    "extract_many",
    "get_file_extension",
    "govern_span",
    "is_supported_file",
    "load_system_prompt",
    "parse_diff",
    "position_issues",
    "prepare_file_context",
    "rebuild_source",
    "render_numbered_diff",
    "select_minimal_spans",
    "uncovered_changed_lines",
]
