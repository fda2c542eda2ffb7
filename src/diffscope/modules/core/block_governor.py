"""Per-block size ceilings.

Three outcomes per span, in priority order:

1. character ceiling exceeded: hard-truncate and append a machine-readable
   marker carrying the original length (protects against minified code and
   huge literals on few lines);
2. line ceiling exceeded: keep windows of ``radius`` lines around the changed
   lines, clipped to the span, with markers where code was omitted;
3. otherwise the span is emitted verbatim.

Line windowing and character truncation never apply to the same block.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Literal

from .block_select import SyntaxSpan

Truncation = Literal["none", "chars", "window"]

DEFAULT_WINDOW_RADIUS = 8

TRUNCATION_MARKER = "[diffscope:truncated original_chars={original} kept_chars={kept}]"
OMITTED_MARKER = "[diffscope:omitted lines={count}]"
CAPPED_MARKER = "[diffscope:window_capped max_lines={max_lines} dropped_changed_lines={dropped}]"


@dataclass(frozen=True)
class SelectedBlock:
    code: str
    start_line: int
    end_line: int
    kind: str  # function | class | method | unknown
    name: str | None = None
    truncation: Truncation = "none"

    @property
    def line_count(self) -> int:
        return len(self.code.split("\n")) if self.code else 0

    def to_dict(self) -> dict:
        return asdict(self)


def comment(text: str, family: str) -> str:
    """Wrap a marker in the line-comment syntax of ``family``."""
    if family == "python":
        return f"# {text}"
    return f"/* {text} */"


def merge_windows(changed_lines: list[int], radius: int) -> list[tuple[int, int]]:
    """Merge ``[line - radius, line + radius]`` windows that touch or overlap."""
    if not changed_lines:
        return []
    windows: list[tuple[int, int]] = []
    sorted_lines = sorted(changed_lines)
    start = sorted_lines[0] - radius
    end = sorted_lines[0] + radius
    for line in sorted_lines[1:]:
        window_start = line - radius
        window_end = line + radius
        if window_start <= end + 1:
            end = max(end, window_end)
        else:
            windows.append((start, end))
            start = window_start
            end = window_end
    windows.append((start, end))
    return windows


def truncate_chars(snippet: str, max_chars: int, family: str) -> str:
    """Cut ``snippet`` so that it plus the truncation marker fits ``max_chars``."""
    # Marker length depends on kept_chars; compute with the widest plausible value
    widest = comment(TRUNCATION_MARKER.format(original=len(snippet), kept=max_chars), family)
    budget = max_chars - len(widest) - 1
    if budget <= 0:
        marker = comment(TRUNCATION_MARKER.format(original=len(snippet), kept=0), family)
        return marker[:max_chars]
    marker = comment(TRUNCATION_MARKER.format(original=len(snippet), kept=budget), family)
    return f"{snippet[:budget]}\n{marker}"


def window_lines(
    lines: list[str],
    span: SyntaxSpan,
    radius: int,
    max_lines: int,
    family: str,
) -> str:
    """Render the windows around ``span.covered_lines`` within the span."""
    windows: list[tuple[int, int]] = []
    for win_start, win_end in merge_windows(sorted(span.covered_lines), radius):
        clipped_start = max(span.start_line, win_start)
        clipped_end = min(span.end_line, win_end)
        if clipped_start <= clipped_end:
            windows.append((clipped_start, clipped_end))

    # (text, file line) pairs; markers carry no file line
    rendered: list[tuple[str, int | None]] = []
    cursor = span.start_line
    for win_start, win_end in windows:
        if win_start > cursor:
            rendered.append((comment(OMITTED_MARKER.format(count=win_start - cursor), family), None))
        for offset, text in enumerate(lines[win_start - 1:win_end]):
            rendered.append((text, win_start + offset))
        cursor = win_end + 1
    if cursor <= span.end_line:
        rendered.append((comment(OMITTED_MARKER.format(count=span.end_line - cursor + 1), family), None))

    if len(rendered) > max_lines:
        kept = rendered[:max(0, max_lines - 1)]
        kept_lines = {line_no for _, line_no in kept if line_no is not None}
        dropped = len(span.covered_lines - kept_lines)
        capped = comment(CAPPED_MARKER.format(max_lines=max_lines, dropped=dropped), family)
        rendered = kept + [(capped, None)]
    return "\n".join(text for text, _ in rendered)


def govern_span(
    span: SyntaxSpan,
    lines: list[str],
    max_chars: int,
    max_lines: int,
    radius: int = DEFAULT_WINDOW_RADIUS,
    family: str = "javascript",
) -> SelectedBlock:
    """Apply the size ceilings to one span of ``lines`` (1-based span lines)."""
    snippet = "\n".join(lines[span.start_line - 1:span.end_line])
    size = span.end_line - span.start_line + 1

    def _block(code: str, truncation: Truncation) -> SelectedBlock:
        return SelectedBlock(
            code=code,
            start_line=span.start_line,
            end_line=span.end_line,
            kind=span.kind,
            name=span.name,
            truncation=truncation,
        )

    if len(snippet) > max_chars:
        return _block(truncate_chars(snippet, max_chars, family), "chars")

    if size > max_lines:
        windowed = window_lines(lines, span, radius, max_lines, family)
        if len(windowed) > max_chars:
            # Markers pushed a near-ceiling window over the character limit
            return _block(truncate_chars(snippet, max_chars, family), "chars")
        return _block(windowed, "window")

    return _block(snippet, "none")
