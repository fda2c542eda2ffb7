"""Minimal enclosing block selection over parsed syntax trees.

Traversal is an explicit pre-order worklist carrying each node's depth, so the
depth and node-count ceilings stop the walk without exceptions and keep every
span found so far. Line numbers are in the coordinate space of the parsed text
(a unit's ``line_offset`` is applied here).
"""
from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections.abc import Iterable
from dataclasses import dataclass, field
import logging

from .errors import ERR_DEPTH, ERR_NODES
from .languages import NodeKind, classify_node, node_name, span_rows
from .parser_adapter import ParsedUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyntaxSpan:
    start_line: int
    end_line: int
    kind: str  # function | class | method
    name: str
    covered_lines: frozenset[int]
    order: int = 0  # traversal index, for deterministic tie-breaks

    @property
    def size(self) -> int:
        return self.end_line - self.start_line

    def contains(self, other: "SyntaxSpan") -> bool:
        return self.start_line <= other.start_line and self.end_line >= other.end_line


@dataclass
class TraversalResult:
    spans: list[SyntaxSpan] = field(default_factory=list)
    visited: int = 0
    stopped: str | None = None  # ERR_DEPTH / ERR_NODES when cut short

    @property
    def complete(self) -> bool:
        return self.stopped is None


def collect_spans(
    unit: ParsedUnit,
    changed_lines: Iterable[int],
    max_depth: int = 60,
    max_nodes: int = 200000,
    order_start: int = 0,
) -> TraversalResult:
    """Collect every function/class/method span that covers a changed line."""
    result = TraversalResult()
    changed = sorted(set(changed_lines))
    if not changed:
        return result

    offset = unit.line_offset
    family = unit.family
    order = order_start
    stack = [(unit.root, 1)]

    while stack:
        node, depth = stack.pop()
        if depth > max_depth:
            result.stopped = ERR_DEPTH
            logger.warning(
                "syntax tree deeper than %d levels; keeping %d spans collected so far",
                max_depth,
                len(result.spans),
            )
            break
        if result.visited >= max_nodes:
            result.stopped = ERR_NODES
            logger.warning(
                "syntax tree visit limit of %d nodes reached; keeping %d spans",
                max_nodes,
                len(result.spans),
            )
            break
        result.visited += 1

        kind = classify_node(node, family)
        if kind is not NodeKind.OTHER:
            start_row, end_row = span_rows(node)
            start = start_row + 1 + offset
            end = end_row + 1 + offset
            lo = bisect_left(changed, start)
            hi = bisect_right(changed, end)
            if lo < hi:
                result.spans.append(
                    SyntaxSpan(
                        start_line=start,
                        end_line=end,
                        kind=kind.value,
                        name=node_name(node, unit.source),
                        covered_lines=frozenset(changed[lo:hi]),
                        order=order,
                    )
                )
                order += 1

        children = [child for child in node.children if child.is_named]
        for child in reversed(children):
            stack.append((child, depth + 1))

    return result


def select_minimal_spans(spans: Iterable[SyntaxSpan]) -> list[SyntaxSpan]:
    """Reduce spans to the smallest non-nested set covering their lines.

    Spans are considered smallest first; ties go to the earlier start line,
    then to traversal order. A span is accepted when it covers a changed line
    no accepted span covers and no accepted span contains it. Accepting an
    ancestor (needed for a line only it covers) evicts the descendants it
    contains, so every changed line ends up in exactly one block.
    """
    ordered = sorted(spans, key=lambda s: (s.size, s.start_line, s.order))
    selected: list[SyntaxSpan] = []
    covered: set[int] = set()
    for span in ordered:
        if span.covered_lines <= covered:
            continue
        if any(accepted.contains(span) for accepted in selected):
            continue
        selected = [accepted for accepted in selected if not span.contains(accepted)]
        selected.append(span)
        covered.update(span.covered_lines)
    selected.sort(key=lambda s: (s.start_line, s.order))
    return selected
