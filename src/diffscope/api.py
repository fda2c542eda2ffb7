"""
Diffscope API - diff-to-context extraction for LLM code review.

Usage:
    from diffscope.api import FileChange, prepare_file_context

    context = prepare_file_context(
        FileChange(new_path="src/app.ts", diff=unified_diff_text),
    )
    if context.should_review:
        send_to_model(context.prompt)
"""

from .modules.core.block_governor import SelectedBlock
from .modules.core.config import ExtractionConfig
from .modules.core.diff_parser import (
    DiffLine,
    ParsedDiff,
    changed_line_numbers,
    extract_line_range,
    parse_diff,
    render_numbered_diff,
)
from .modules.core.engines.extract import (
    ExtractionResult,
    FileChange,
    FileContext,
    extract_code_blocks,
    extract_many,
    prepare_file_context,
    uncovered_changed_lines,
)
from .modules.core.errors import make_error
from .modules.core.parser_adapter import StructuralParser
from .modules.core.prompt import build_prompt, load_system_prompt
from .modules.core.review_issues import Anchor, PositionedIssue, ReviewIssue, Severity, position_issues
from .modules.core.sfc import ScriptSectionParser
from .modules.core.token_utils import Budget, calculate_available_tokens, count_tokens, estimate_tokens

__all__ = [
    # Data model
    "DiffLine",
    "ParsedDiff",
    "SelectedBlock",
    "ExtractionConfig",
    "ExtractionResult",
    "FileChange",
    "FileContext",
    # Diff handling
    "parse_diff",
    "render_numbered_diff",
    "changed_line_numbers",
    "extract_line_range",
    # Extraction
    "StructuralParser",
    "ScriptSectionParser",
    "extract_code_blocks",
    "extract_many",
    "prepare_file_context",
    "uncovered_changed_lines",
    # Prompt and budget
    "build_prompt",
    "load_system_prompt",
    "Budget",
    "calculate_available_tokens",
    "count_tokens",
    "estimate_tokens",
    # Review findings
    "Anchor",
    "PositionedIssue",
    "ReviewIssue",
    "Severity",
    "position_issues",
    # Errors
    "make_error",
]
