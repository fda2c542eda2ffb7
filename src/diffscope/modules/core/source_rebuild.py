"""Best-effort post-change source text rebuilt from diff records.

The rebuilt text interleaves context and added lines, drops removed lines and
blank lines, and is only meant as parser input. ``line_map`` keeps each text
line's new-file line number so syntax spans can be reported against the file.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .diff_parser import DiffLine


@dataclass
class ReconstructedSource:
    text: str
    line_map: list[int] = field(default_factory=list)

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")

    def file_line(self, source_line: int) -> int:
        """Map a 1-based source line to its new-file line number."""
        idx = min(max(source_line, 1), len(self.line_map)) - 1
        return self.line_map[idx]

    def source_lines_for(self, file_lines: Iterable[int]) -> set[int]:
        """1-based source lines whose new-file number is in ``file_lines``."""
        wanted = set(file_lines)
        return {idx + 1 for idx, file_no in enumerate(self.line_map) if file_no in wanted}


def _strip_marker(content: str) -> str:
    if content[:1] in ("+", "-", " "):
        return content[1:]
    return content


def rebuild_source(lines: Iterable[DiffLine]) -> ReconstructedSource | None:
    """Concatenate context and added content; ``None`` when nothing remains."""
    text_lines: list[str] = []
    line_map: list[int] = []
    for line in lines:
        if line.kind == "removed":
            continue
        if line.is_unlabeled or line.is_hunk_header:
            # File headers and diff metadata are not source
            continue
        content = _strip_marker(line.content)
        if not content.strip():
            continue
        text_lines.append(content)
        line_map.append(line.new_line_no if line.new_line_no is not None else line.line_no)

    if not text_lines:
        return None
    return ReconstructedSource(text="\n".join(text_lines), line_map=line_map)
