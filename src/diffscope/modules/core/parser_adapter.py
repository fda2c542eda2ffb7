"""Uniform "parse or fail" contract over tree-sitter grammars.

Each extension maps to an ordered pair of ``ParseProfile``s: the full profile
first, then a lenient retry. tree-sitter always recovers from syntax errors,
so a tree is only rejected when it is unusable (the root is an error node or
nothing but error nodes was recognised).

The wall-clock budget is enforced by joining a daemon worker thread with a
timeout. A parse that overruns is abandoned rather than interrupted, since
CPU-bound native work cannot be pre-empted. The daemon flag keeps an abandoned
parse from holding up interpreter exit, and the traversal's node ceiling is
the hard bound on work done with a tree.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import logging
import textwrap
import threading
import time
from typing import Any

from .errors import ERR_CAPABILITY, ERR_PARSE, ERR_TIMEOUT, ERR_UNSUPPORTED
from .languages import (
    PROFILES_BY_SCRIPT_LANG,
    SFC_EXTENSIONS,
    ParseProfile,
    make_parser,
    profiles_for_extension,
)
from .sfc import SfcParser

logger = logging.getLogger(__name__)


@dataclass
class ParsedUnit:
    """A parsed tree plus where its line 1 sits in the enclosing text."""

    tree: Any
    source: bytes
    profile: ParseProfile
    line_offset: int = 0

    @property
    def root(self) -> Any:
        return self.tree.root_node

    @property
    def family(self) -> str:
        return self.profile.family


@dataclass
class ParseOutcome:
    units: list[ParsedUnit] = field(default_factory=list)
    error_code: str | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.error_code is None and bool(self.units)

    @classmethod
    def failure(cls, code: str, reason: str) -> "ParseOutcome":
        return cls(units=[], error_code=code, reason=reason)


class _ParseTimeout(Exception):
    pass


def tree_is_usable(root: Any) -> bool:
    if root is None or root.type == "ERROR":
        return False
    named = [child for child in root.children if child.is_named]
    if not named:
        return False
    return any(child.type != "ERROR" for child in named)


class StructuralParser:
    """Parse code fragments with escalating leniency under a deadline.

    ``parser_factory`` builds a parser object exposing ``parse(bytes)`` for a
    grammar name; it defaults to tree-sitter and exists so tests can supply
    slow or failing parsers.
    """

    def __init__(
        self,
        sfc_parser: SfcParser | None = None,
        parser_factory: Callable[[str], Any | None] = make_parser,
    ) -> None:
        self._sfc_parser = sfc_parser
        self._parser_factory = parser_factory

    @property
    def sfc_available(self) -> bool:
        return self._sfc_parser is not None

    def parse(self, code: str, extension: str, timeout_ms: int) -> ParseOutcome:
        ext = extension.lower().lstrip(".")
        deadline = time.monotonic() + timeout_ms / 1000.0

        if not code or not code.strip():
            return ParseOutcome.failure(ERR_PARSE, "empty source")

        if ext in SFC_EXTENSIONS:
            return self._parse_sfc(code, deadline)

        profiles = profiles_for_extension(ext)
        if not profiles:
            return ParseOutcome.failure(ERR_UNSUPPORTED, f"no grammar for .{ext}")
        return self._parse_with_profiles(code, profiles, deadline, line_offset=0)

    def _parse_sfc(self, code: str, deadline: float) -> ParseOutcome:
        if self._sfc_parser is None:
            return ParseOutcome.failure(ERR_CAPABILITY, "single-file component parser not configured")

        sections = self._sfc_parser.parse(code)
        if not sections:
            return ParseOutcome.failure(ERR_PARSE, "no script section found")

        units: list[ParsedUnit] = []
        last_failure: ParseOutcome | None = None
        for section in sections:
            profiles = PROFILES_BY_SCRIPT_LANG.get(section.lang)
            if profiles is None:
                logger.debug("skipping <script lang=%s>: no grammar", section.lang)
                continue
            outcome = self._parse_with_profiles(
                section.content,
                profiles,
                deadline,
                line_offset=section.start_line - 1,
            )
            if outcome.ok:
                units.extend(outcome.units)
            else:
                last_failure = outcome
                if outcome.error_code == ERR_TIMEOUT:
                    return outcome

        if units:
            return ParseOutcome(units=units)
        if last_failure is not None:
            return last_failure
        return ParseOutcome.failure(ERR_PARSE, "no parseable script section")

    def _parse_with_profiles(
        self,
        code: str,
        profiles: tuple[ParseProfile, ...],
        deadline: float,
        line_offset: int,
    ) -> ParseOutcome:
        reasons: list[str] = []
        for profile in profiles:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return ParseOutcome.failure(ERR_TIMEOUT, "parse budget exhausted")

            parser = self._parser_factory(profile.grammar)
            if parser is None:
                reasons.append(f"{profile.name}: grammar unavailable")
                continue

            logger.debug(
                "parsing with %s (capabilities: %s)",
                profile.name,
                ", ".join(sorted(profile.capabilities)) or "none",
            )
            text = textwrap.dedent(code) if profile.dedent else code
            source = text.encode("utf-8", errors="replace")
            try:
                tree = _run_with_deadline(parser.parse, source, remaining)
            except _ParseTimeout:
                logger.debug("parse with %s timed out after %.3fs", profile.name, remaining)
                return ParseOutcome.failure(ERR_TIMEOUT, f"{profile.name}: timed out")
            except Exception as exc:
                reasons.append(f"{profile.name}: {exc}")
                logger.debug("parse with %s raised: %s", profile.name, exc)
                continue

            if tree_is_usable(getattr(tree, "root_node", None)):
                return ParseOutcome(
                    units=[ParsedUnit(tree=tree, source=source, profile=profile, line_offset=line_offset)]
                )
            reasons.append(f"{profile.name}: unusable tree")
            logger.debug("parse with %s produced an unusable tree, retrying", profile.name)

        return ParseOutcome.failure(ERR_PARSE, "; ".join(reasons) or "no profile available")


def _run_with_deadline(fn: Callable[[bytes], Any], source: bytes, timeout_s: float) -> Any:
    result: dict[str, Any] = {}

    def _target() -> None:
        try:
            result["tree"] = fn(source)
        except Exception as exc:
            result["error"] = exc

    worker = threading.Thread(target=_target, name="diffscope-parse", daemon=True)
    worker.start()
    worker.join(timeout_s)
    if worker.is_alive():
        raise _ParseTimeout()
    if "error" in result:
        raise result["error"]
    return result.get("tree")
