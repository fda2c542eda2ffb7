"""Unified diff parsing with old/new line-number tracking.

The parser never rejects input: hosting APIs occasionally emit hunks whose
declared counts disagree with their bodies, so counts are only consulted to
tell a ``---``/``+++`` content line apart from a file header.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Literal

LineKind = Literal["added", "removed", "context"]

HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


@dataclass(frozen=True)
class DiffLine:
    """One record of a parsed diff.

    ``line_no`` is the display line number: the new-file number for added and
    context records, the old-file number for removed ones, and a best-effort
    position for records the parser could not classify.
    """

    content: str
    kind: LineKind
    old_line_no: int | None = None
    new_line_no: int | None = None
    line_no: int = 1

    @property
    def is_hunk_header(self) -> bool:
        return HUNK_HEADER_RE.match(self.content) is not None

    @property
    def is_unlabeled(self) -> bool:
        return self.old_line_no is None and self.new_line_no is None and self.kind == "context"


@dataclass(frozen=True)
class HunkHeader:
    old_start: int
    old_count: int
    new_start: int
    new_count: int


@dataclass
class ParsedDiff:
    file_path: str
    old_path: str | None
    lines: list[DiffLine] = field(default_factory=list)
    hunks: list[HunkHeader] = field(default_factory=list)

    def added(self) -> list[DiffLine]:
        return [line for line in self.lines if line.kind == "added"]

    def removed(self) -> list[DiffLine]:
        return [line for line in self.lines if line.kind == "removed"]

    def body_lines(self) -> list[DiffLine]:
        """Records other than hunk headers."""
        return [line for line in self.lines if not line.is_hunk_header]

    def to_dict(self) -> dict:
        return {
            "file_path": self.file_path,
            "old_path": self.old_path,
            "lines": [
                {
                    "content": line.content,
                    "kind": line.kind,
                    "old_line_no": line.old_line_no,
                    "new_line_no": line.new_line_no,
                }
                for line in self.lines
            ],
        }


def parse_hunk_header(line: str) -> HunkHeader | None:
    """Parse ``@@ -a[,b] +c[,d] @@``; absent counts default to 0."""
    match = HUNK_HEADER_RE.match(line)
    if not match:
        return None
    return HunkHeader(
        old_start=int(match.group(1)),
        old_count=int(match.group(2) or "0"),
        new_start=int(match.group(3)),
        new_count=int(match.group(4) or "0"),
    )


def parse_diff(diff_text: str, file_path: str, old_path: str | None = None) -> ParsedDiff:
    """Parse a unified diff body into ordered ``DiffLine`` records."""
    parsed = ParsedDiff(file_path=file_path, old_path=old_path)
    old_line = 0
    new_line = 0
    # Declared lines still expected on each side of the current hunk
    old_left = 0
    new_left = 0

    rows = diff_text.split("\n")
    if rows and rows[-1] == "":
        # Terminating newline, not an empty context line
        rows.pop()

    for raw in rows:
        raw = raw.rstrip("\r")
        if raw.startswith("@@"):
            header = parse_hunk_header(raw)
            if header is not None:
                parsed.hunks.append(header)
                old_line, new_line = header.old_start, header.new_start
                old_left, new_left = header.old_count, header.new_count
                parsed.lines.append(
                    DiffLine(
                        content=raw,
                        kind="context",
                        old_line_no=old_line,
                        new_line_no=new_line,
                        line_no=new_line,
                    )
                )
                continue

        if raw.startswith("+") and (not raw.startswith("+++") or new_left > 0):
            parsed.lines.append(
                DiffLine(content=raw, kind="added", new_line_no=new_line, line_no=new_line)
            )
            new_line += 1
            new_left = max(0, new_left - 1)
        elif raw.startswith("-") and (not raw.startswith("---") or old_left > 0):
            parsed.lines.append(
                DiffLine(content=raw, kind="removed", old_line_no=old_line, line_no=old_line)
            )
            old_line += 1
            old_left = max(0, old_left - 1)
        elif raw.startswith(" ") or raw == "":
            parsed.lines.append(
                DiffLine(
                    content=raw,
                    kind="context",
                    old_line_no=old_line,
                    new_line_no=new_line,
                    line_no=new_line,
                )
            )
            old_line += 1
            new_line += 1
            old_left = max(0, old_left - 1)
            new_left = max(0, new_left - 1)
        else:
            # File headers, "\ No newline at end of file", stray metadata
            parsed.lines.append(DiffLine(content=raw, kind="context", line_no=new_line or 1))

    return parsed


def added_lines(parsed: ParsedDiff) -> list[DiffLine]:
    return parsed.added()


def changed_line_numbers(parsed: ParsedDiff) -> set[int]:
    """New-file line numbers of every added record."""
    return {line.new_line_no for line in parsed.lines if line.kind == "added" and line.new_line_no}


def _line_prefix(line: DiffLine) -> str:
    if line.kind == "added":
        return "+"
    if line.kind == "removed":
        return "-"
    return " "


def _line_info(line: DiffLine) -> str:
    if line.kind == "added" and line.new_line_no:
        return f"[{line.new_line_no}] "
    if line.kind == "removed" and line.old_line_no:
        return f"[{line.old_line_no}] "
    if line.kind == "context":
        if line.new_line_no and line.old_line_no:
            return f"[{line.old_line_no}->{line.new_line_no}] "
        if line.new_line_no:
            return f"[{line.new_line_no}] "
    return ""


def render_numbered_diff(parsed: ParsedDiff) -> str:
    """Render ``prefix + [line numbers] + content`` for prompt assembly."""
    return "\n".join(
        f"{_line_prefix(line)}{_line_info(line)}{line.content}" for line in parsed.lines
    )


def extract_line_range(
    parsed: ParsedDiff,
    start_line: int,
    end_line: int,
    context_lines: int = 3,
) -> str:
    """Return diff content whose new line number falls in the padded window."""
    actual_start = max(1, start_line - context_lines)
    actual_end = end_line + context_lines
    return "\n".join(
        line.content
        for line in parsed.lines
        if line.new_line_no and actual_start <= line.new_line_no <= actual_end
    )
