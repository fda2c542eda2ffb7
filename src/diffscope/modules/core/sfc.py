"""Script-section extraction for single-file components (``.vue``).

Only the ``<script>`` and ``<script setup>`` sections carry code worth
structural analysis; templates and styles are left to the textual fallback.
The parser is handed to ``StructuralParser`` at construction time, so a
deployment without SFC support passes ``None`` and gets a typed
"capability unavailable" outcome instead of a runtime check.
"""
from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Protocol

_SCRIPT_RE = re.compile(
    r"<script\b(?P<attrs>[^>]*)>(?P<body>.*?)</script\s*>",
    re.IGNORECASE | re.DOTALL,
)
_LANG_RE = re.compile(r"""\blang\s*=\s*["']?([A-Za-z]+)""", re.IGNORECASE)
_SETUP_RE = re.compile(r"\bsetup\b", re.IGNORECASE)


@dataclass(frozen=True)
class ScriptSection:
    content: str
    start_line: int  # 1-based line of the enclosing text where content starts
    lang: str = ""
    setup: bool = False


class SfcParser(Protocol):
    def parse(self, source: str) -> list[ScriptSection]: ...


class ScriptSectionParser:
    """Locate script sections and their starting line in the enclosing text."""

    def parse(self, source: str) -> list[ScriptSection]:
        sections: list[ScriptSection] = []
        for match in _SCRIPT_RE.finditer(source):
            body = match.group("body")
            if not body.strip():
                continue
            attrs = match.group("attrs") or ""
            lang_match = _LANG_RE.search(attrs)
            start_line = source.count("\n", 0, match.start("body")) + 1
            sections.append(
                ScriptSection(
                    content=body,
                    start_line=start_line,
                    lang=(lang_match.group(1).lower() if lang_match else ""),
                    setup=bool(_SETUP_RE.search(attrs)),
                )
            )
        return sections
