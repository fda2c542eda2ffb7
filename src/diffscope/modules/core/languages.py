"""Tree-sitter grammars, parse profiles, and node-kind tables.

Grammar loading follows the lazy, cached pattern: a grammar package that is not
installed yields ``None`` and the caller routes the file to the textual
fallback. ``Language`` objects are immutable and cached per process; parsers
are built per parse call because they are not safe to share across threads.
"""
from __future__ import annotations

from dataclasses import dataclass
import enum
from functools import lru_cache
import logging
from typing import Any

logger = logging.getLogger(__name__)


class NodeKind(enum.Enum):
    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    OTHER = "other"


# Capability flags a profile advertises; informative for callers and logs.
CAP_MODULE = "module"
CAP_TYPING = "typing"
CAP_JSX = "jsx"
CAP_DECORATORS = "decorators"
CAP_OPTIONAL_CHAINING = "optional_chaining"
CAP_NULLISH_COALESCING = "nullish_coalescing"
CAP_TOP_LEVEL_AWAIT = "top_level_await"
CAP_DYNAMIC_IMPORT = "dynamic_import"

_ES_CAPS = frozenset({
    CAP_MODULE,
    CAP_DECORATORS,
    CAP_OPTIONAL_CHAINING,
    CAP_NULLISH_COALESCING,
    CAP_TOP_LEVEL_AWAIT,
    CAP_DYNAMIC_IMPORT,
})


@dataclass(frozen=True)
class ParseProfile:
    """One parse attempt: which grammar, which syntax it admits."""

    name: str
    grammar: str  # javascript | typescript | tsx | python | go
    capabilities: frozenset[str]
    dedent: bool = False

    @property
    def family(self) -> str:
        """Node-table family for the grammar."""
        return "typescript" if self.grammar == "tsx" else self.grammar


_FULL_JS = ParseProfile("javascript", "javascript", _ES_CAPS | {CAP_JSX})
_FULL_TS = ParseProfile("typescript", "typescript", _ES_CAPS | {CAP_TYPING})
_FULL_TSX = ParseProfile("tsx", "tsx", _ES_CAPS | {CAP_TYPING, CAP_JSX})
# Lenient retries: module/script auto-detection, exotic syntax dropped
_LENIENT_TS = ParseProfile("typescript-lenient", "typescript", frozenset({CAP_TYPING}))
_LENIENT_TSX = ParseProfile("tsx-lenient", "tsx", frozenset({CAP_TYPING, CAP_JSX}))
_FULL_PY = ParseProfile("python", "python", frozenset({CAP_MODULE, CAP_DECORATORS, CAP_TYPING}))
_LENIENT_PY = ParseProfile("python-dedent", "python", frozenset({CAP_MODULE}), dedent=True)
_FULL_GO = ParseProfile("go", "go", frozenset({CAP_MODULE, CAP_TYPING}))
_LENIENT_GO = ParseProfile("go-dedent", "go", frozenset({CAP_TYPING}), dedent=True)

PROFILES_BY_EXTENSION: dict[str, tuple[ParseProfile, ...]] = {
    "js": (_FULL_JS, _LENIENT_TSX),
    "mjs": (_FULL_JS, _LENIENT_TSX),
    "cjs": (_FULL_JS, _LENIENT_TSX),
    "jsx": (_FULL_JS, _LENIENT_TSX),
    "ts": (_FULL_TS, _LENIENT_TSX),
    "mts": (_FULL_TS, _LENIENT_TSX),
    "cts": (_FULL_TS, _LENIENT_TSX),
    "tsx": (_FULL_TSX, _LENIENT_TS),
    "py": (_FULL_PY, _LENIENT_PY),
    "go": (_FULL_GO, _LENIENT_GO),
}

# <script lang="..."> inside single-file components
PROFILES_BY_SCRIPT_LANG: dict[str, tuple[ParseProfile, ...]] = {
    "": (_FULL_JS, _LENIENT_TSX),
    "js": (_FULL_JS, _LENIENT_TSX),
    "javascript": (_FULL_JS, _LENIENT_TSX),
    "jsx": (_FULL_JS, _LENIENT_TSX),
    "ts": (_FULL_TS, _LENIENT_TSX),
    "typescript": (_FULL_TS, _LENIENT_TSX),
    "tsx": (_FULL_TSX, _LENIENT_TS),
}

SFC_EXTENSIONS = frozenset({"vue"})


def profiles_for_extension(extension: str) -> tuple[ParseProfile, ...]:
    return PROFILES_BY_EXTENSION.get(extension.lower(), ())


def has_structural_support(extension: str) -> bool:
    ext = extension.lower()
    return ext in PROFILES_BY_EXTENSION or ext in SFC_EXTENSIONS


@lru_cache(maxsize=None)
def tree_sitter_language(grammar: str) -> Any | None:
    try:
        from tree_sitter import Language
    except Exception:
        return None

    try:
        if grammar == "python":
            import tree_sitter_python

            return Language(tree_sitter_python.language())
        if grammar == "javascript":
            import tree_sitter_javascript

            return Language(tree_sitter_javascript.language())
        if grammar == "typescript":
            import tree_sitter_typescript

            return Language(tree_sitter_typescript.language_typescript())
        if grammar == "tsx":
            import tree_sitter_typescript

            return Language(tree_sitter_typescript.language_tsx())
        if grammar == "go":
            import tree_sitter_go

            return Language(tree_sitter_go.language())
    except Exception as exc:
        logger.debug("grammar %s unavailable: %s", grammar, exc)
        return None
    return None


def make_parser(grammar: str) -> Any | None:
    """Build a fresh tree-sitter parser for ``grammar`` or ``None``."""
    lang = tree_sitter_language(grammar)
    if lang is None:
        return None
    from tree_sitter import Parser

    try:
        return Parser(lang)
    except TypeError:
        parser = Parser()
        parser.language = lang
        return parser


# ---------------------------------------------------------------------------
# Node-kind tables
# ---------------------------------------------------------------------------

_JS_KINDS = {
    "function_declaration": NodeKind.FUNCTION,
    "generator_function_declaration": NodeKind.FUNCTION,
    "function_expression": NodeKind.FUNCTION,
    "function": NodeKind.FUNCTION,
    "generator_function": NodeKind.FUNCTION,
    "arrow_function": NodeKind.FUNCTION,
    "class_declaration": NodeKind.CLASS,
    "class": NodeKind.CLASS,
    "method_definition": NodeKind.METHOD,
    "field_definition": NodeKind.METHOD,
}

NODE_KINDS: dict[str, dict[str, NodeKind]] = {
    "javascript": _JS_KINDS,
    "typescript": {
        **_JS_KINDS,
        "abstract_class_declaration": NodeKind.CLASS,
        "public_field_definition": NodeKind.METHOD,
    },
    "python": {
        "function_definition": NodeKind.FUNCTION,
        "class_definition": NodeKind.CLASS,
    },
    "go": {
        "function_declaration": NodeKind.FUNCTION,
        "func_literal": NodeKind.FUNCTION,
        "method_declaration": NodeKind.METHOD,
        "type_spec": NodeKind.CLASS,
    },
}

_GO_TYPE_BODIES = frozenset({"struct_type", "interface_type"})


def classify_node(node: Any, family: str) -> NodeKind:
    """Map a tree-sitter node onto the function/class/method union."""
    kind = NODE_KINDS.get(family, {}).get(node.type, NodeKind.OTHER)
    if kind is NodeKind.OTHER:
        return kind
    if family == "python" and kind is NodeKind.FUNCTION and _inside_python_class(node):
        return NodeKind.METHOD
    if family == "go" and node.type == "type_spec":
        body = node.child_by_field_name("type")
        if body is None or body.type not in _GO_TYPE_BODIES:
            return NodeKind.OTHER
    return kind


def _inside_python_class(node: Any) -> bool:
    parent = node.parent
    if parent is not None and parent.type == "decorated_definition":
        parent = parent.parent
    if parent is None or parent.type != "block":
        return False
    owner = parent.parent
    return owner is not None and owner.type == "class_definition"


def span_rows(node: Any) -> tuple[int, int]:
    """0-based (start_row, end_row), widened to include Python decorators."""
    start = node.start_point[0]
    parent = node.parent
    if parent is not None and parent.type == "decorated_definition":
        start = parent.start_point[0]
    return start, node.end_point[0]


def _node_text(node: Any, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def node_name(node: Any, source: bytes) -> str:
    """Identifier, else declarator name, else property key, else anonymous."""
    name = node.child_by_field_name("name")
    if name is not None:
        return _node_text(name, source)

    parent = node.parent
    if parent is not None:
        if parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
            if target is not None:
                return _node_text(target, source)
        if parent.type == "pair":
            key = parent.child_by_field_name("key")
            if key is not None:
                return _node_text(key, source).strip("'\"")
        if parent.type in ("assignment_expression", "assignment"):
            left = parent.child_by_field_name("left")
            if left is not None:
                return _node_text(left, source)

    key = node.child_by_field_name("property") or node.child_by_field_name("key")
    if key is not None:
        return _node_text(key, source).strip("'\"")
    return "anonymous"
