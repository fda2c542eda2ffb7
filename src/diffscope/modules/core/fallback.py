"""Textual fallback when no syntax tree is available."""
from __future__ import annotations

from collections.abc import Iterable
import logging

from .block_governor import SelectedBlock
from .diff_parser import DiffLine

logger = logging.getLogger(__name__)


def fallback_block(
    lines: Iterable[DiffLine],
    max_chars: int,
    max_lines: int,
) -> SelectedBlock | None:
    """One block spanning the first to last added line, or ``None``.

    There is no structural anchor to truncate around, so a block over either
    ceiling is dropped rather than cut.
    """
    added = [line for line in lines if line.kind == "added"]
    if not added:
        return None

    first_line = added[0].new_line_no or 1
    last_line = added[-1].new_line_no or 1
    code = "\n".join(line.content[1:] if line.content.startswith("+") else line.content for line in added)

    if len(code) > max_chars:
        logger.debug("fallback block dropped: %d chars > %d", len(code), max_chars)
        return None
    if last_line - first_line + 1 > max_lines:
        logger.debug(
            "fallback block dropped: lines %d-%d exceed %d", first_line, last_line, max_lines
        )
        return None

    return SelectedBlock(
        code=code,
        start_line=first_line,
        end_line=last_line,
        kind="unknown",
    )
