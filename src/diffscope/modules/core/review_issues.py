"""Model findings positioned against the parsed diff.

Decoding the model's YAML happens upstream; this module takes the decoded
mappings, normalises them, and decides where each finding can be attached.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, replace
import enum
import logging

from .diff_parser import ParsedDiff

logger = logging.getLogger(__name__)


class Severity(str, enum.Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class Anchor(str, enum.Enum):
    ADDED = "added"  # inline on an added line
    CONTEXT = "context"  # inline on an unchanged line shown in the diff
    FILE = "file"  # file-level only


@dataclass(frozen=True)
class ReviewIssue:
    severity: Severity
    file: str
    line: int
    title: str
    description: str
    code: str | None = None
    suggestion: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ReviewIssue":
        raw_severity = str(data.get("type") or data.get("severity") or "info").lower()
        try:
            severity = Severity(raw_severity)
        except ValueError:
            logger.debug("unknown issue severity %r, treating as info", raw_severity)
            severity = Severity.INFO
        try:
            line = int(data.get("line") or 0)
        except (TypeError, ValueError):
            line = 0
        return cls(
            severity=severity,
            file=str(data.get("file") or ""),
            line=line,
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            code=_optional_str(data.get("code")),
            suggestion=_optional_str(data.get("suggestion")),
        )

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["severity"] = self.severity.value
        return payload


@dataclass(frozen=True)
class PositionedIssue:
    issue: ReviewIssue
    anchor: Anchor

    @property
    def inline(self) -> bool:
        return self.anchor is not Anchor.FILE

    def to_dict(self) -> dict:
        payload = self.issue.to_dict()
        payload["anchor"] = self.anchor.value
        return payload


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def position_issues(
    issues: Iterable[ReviewIssue | Mapping[str, object]],
    parsed: ParsedDiff,
) -> list[PositionedIssue]:
    """Default missing file paths and anchor each issue on the diff."""
    added = {line.new_line_no for line in parsed.lines if line.kind == "added" and line.new_line_no}
    context = {
        line.new_line_no
        for line in parsed.lines
        if line.kind == "context" and line.new_line_no and not line.is_hunk_header
    }

    positioned: list[PositionedIssue] = []
    for raw in issues:
        issue = raw if isinstance(raw, ReviewIssue) else ReviewIssue.from_dict(raw)
        if not issue.file:
            issue = replace(issue, file=parsed.file_path)

        if issue.file != parsed.file_path:
            anchor = Anchor.FILE
        elif issue.line in added:
            anchor = Anchor.ADDED
        elif issue.line in context:
            anchor = Anchor.CONTEXT
        else:
            anchor = Anchor.FILE
        positioned.append(PositionedIssue(issue=issue, anchor=anchor))
    return positioned
