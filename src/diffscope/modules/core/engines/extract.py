from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
import logging

from ..block_governor import SelectedBlock, govern_span
from ..block_select import SyntaxSpan, collect_spans, select_minimal_spans
from ..config import ExtractionConfig, get_file_extension
from ..diff_parser import ParsedDiff, changed_line_numbers, parse_diff, render_numbered_diff
from ..errors import ERR_TOKENIZER, ERR_UNSUPPORTED, make_budget_warning, make_warning
from ..fallback import fallback_block
from ..languages import has_structural_support
from ..parser_adapter import StructuralParser
from ..prompt import build_prompt
from ..sfc import ScriptSectionParser
from ..source_rebuild import ReconstructedSource, rebuild_source
from ..token_utils import Budget, count_tokens, estimate_tokens

logger = logging.getLogger(__name__)

STRATEGY_STRUCTURAL = "structural"
STRATEGY_FALLBACK = "fallback"
STRATEGY_UNSUPPORTED = "unsupported"
STRATEGY_EMPTY = "empty"


@dataclass(frozen=True)
class FileChange:
    """One changed file as delivered by the Git integration layer."""

    new_path: str
    diff: str
    old_path: str | None = None


@dataclass
class ExtractionResult:
    blocks: list[SelectedBlock] = field(default_factory=list)
    strategy: str = STRATEGY_EMPTY
    warnings: list[dict] = field(default_factory=list)


@dataclass
class FileContext:
    file_path: str
    old_path: str | None
    numbered_diff: str
    blocks: list[SelectedBlock]
    strategy: str
    prompt: str
    prompt_tokens: int
    available_tokens: int
    should_review: bool
    warnings: list[dict] = field(default_factory=list)

    def to_dict(self, include_prompt: bool = False) -> dict:
        payload = {
            "file_path": self.file_path,
            "old_path": self.old_path,
            "strategy": self.strategy,
            "numbered_diff": self.numbered_diff,
            "blocks": [block.to_dict() for block in self.blocks],
            "prompt_tokens": self.prompt_tokens,
            "available_tokens": self.available_tokens,
            "should_review": self.should_review,
            "warnings": self.warnings,
        }
        if include_prompt:
            payload["prompt"] = self.prompt
        return payload


def default_parser() -> StructuralParser:
    return StructuralParser(sfc_parser=ScriptSectionParser())


def _fallback(parsed: ParsedDiff, config: ExtractionConfig, warnings: list[dict]) -> ExtractionResult:
    block = fallback_block(parsed.lines, config.max_block_chars, config.max_block_lines)
    return ExtractionResult(
        blocks=[block] if block is not None else [],
        strategy=STRATEGY_FALLBACK,
        warnings=warnings,
    )


def _to_file_block(block: SelectedBlock, source: ReconstructedSource) -> SelectedBlock:
    return replace(
        block,
        start_line=source.file_line(block.start_line),
        end_line=source.file_line(block.end_line),
    )


def extract_code_blocks(
    parsed: ParsedDiff,
    config: ExtractionConfig | None = None,
    parser: StructuralParser | None = None,
) -> ExtractionResult:
    """Select size-bounded enclosing blocks for the added lines of one file.

    Extensions outside ``config.supported_extensions`` yield no blocks. A
    supported extension without a grammar, a failed or timed-out parse, or a
    tree with no enclosing function/class/method takes the textual fallback.
    """
    config = config or ExtractionConfig()
    if not parsed.added():
        return ExtractionResult(strategy=STRATEGY_EMPTY)

    if not config.is_supported(parsed.file_path):
        logger.debug("%s: extension not in supported list, no extraction", parsed.file_path)
        return ExtractionResult(strategy=STRATEGY_UNSUPPORTED)

    warnings: list[dict] = []
    extension = get_file_extension(parsed.file_path)
    if not has_structural_support(extension):
        warnings.append(
            make_warning(ERR_UNSUPPORTED, f"no grammar for .{extension}", file=parsed.file_path)
        )
        return _fallback(parsed, config, warnings)

    source = rebuild_source(parsed.lines)
    if source is None:
        return _fallback(parsed, config, warnings)

    parser = parser or default_parser()
    outcome = parser.parse(source.text, extension, config.parse_timeout_ms)
    if not outcome.ok:
        logger.debug(
            "%s: structural parse failed (%s: %s), using fallback",
            parsed.file_path,
            outcome.error_code,
            outcome.reason,
        )
        warnings.append(make_warning(outcome.error_code, outcome.reason, file=parsed.file_path))
        return _fallback(parsed, config, warnings)

    changed = source.source_lines_for(changed_line_numbers(parsed))
    spans: list[SyntaxSpan] = []
    for unit in outcome.units:
        traversal = collect_spans(
            unit,
            changed,
            max_depth=config.max_depth,
            max_nodes=config.max_nodes,
            order_start=len(spans),
        )
        spans.extend(traversal.spans)
        if not traversal.complete:
            warnings.append(
                make_warning(
                    traversal.stopped,
                    f"traversal stopped early after {traversal.visited} nodes",
                    file=parsed.file_path,
                    spans=len(traversal.spans),
                )
            )

    if not spans:
        logger.debug("%s: no enclosing block for changed lines, using fallback", parsed.file_path)
        return _fallback(parsed, config, warnings)

    family = outcome.units[0].family
    lines = source.lines
    blocks = [
        _to_file_block(
            govern_span(
                span,
                lines,
                max_chars=config.max_block_chars,
                max_lines=config.max_block_lines,
                radius=config.window_radius,
                family=family,
            ),
            source,
        )
        for span in select_minimal_spans(spans)
    ]
    return ExtractionResult(blocks=blocks, strategy=STRATEGY_STRUCTURAL, warnings=warnings)


def uncovered_changed_lines(parsed: ParsedDiff, blocks: Iterable[SelectedBlock]) -> list[int]:
    """Changed lines no block's range contains, for callers that want a plain range."""
    ranges = [(block.start_line, block.end_line) for block in blocks]
    return sorted(
        line
        for line in changed_line_numbers(parsed)
        if not any(start <= line <= end for start, end in ranges)
    )


def prepare_file_context(
    change: FileChange,
    config: ExtractionConfig | None = None,
    parser: StructuralParser | None = None,
    system_prompt: str | None = None,
    additional_context: str | None = None,
) -> FileContext:
    """Run the full per-file pipeline: parse, extract, render, budget."""
    config = config or ExtractionConfig()
    parsed = parse_diff(change.diff, change.new_path, change.old_path)
    extraction = extract_code_blocks(parsed, config, parser)
    numbered = render_numbered_diff(parsed)
    prompt = build_prompt(
        numbered,
        extraction.blocks,
        additional_context=additional_context,
        system_prompt=system_prompt,
    )

    warnings = list(extraction.warnings)
    if config.exact_tokens:
        try:
            prompt_tokens = count_tokens(prompt, config.model)
        except Exception as exc:
            logger.debug("tokenizer for %s unavailable, estimating: %s", config.model, exc)
            prompt_tokens = estimate_tokens(prompt)
            warnings.append(
                make_warning(
                    ERR_TOKENIZER,
                    f"Exact token count for {config.model} unavailable; using estimate",
                    file=change.new_path,
                    model=config.model,
                )
            )
    else:
        prompt_tokens = estimate_tokens(prompt)
    budget = Budget(config.model_token_ceiling, config.reserved_output_tokens)
    available = budget.available(prompt_tokens)
    should_review = not budget.exceeded(prompt_tokens)
    if not should_review:
        logger.warning(
            "%s: prompt needs %d tokens, budget exhausted; skipping model call",
            change.new_path,
            prompt_tokens,
        )
        warnings.append(
            make_budget_warning(
                change.new_path,
                prompt_tokens,
                config.model_token_ceiling,
                config.reserved_output_tokens,
            )
        )

    logger.info(
        "%s: %d blocks via %s, %d prompt tokens, %d available",
        change.new_path,
        len(extraction.blocks),
        extraction.strategy,
        prompt_tokens,
        available,
    )
    return FileContext(
        file_path=change.new_path,
        old_path=change.old_path,
        numbered_diff=numbered,
        blocks=extraction.blocks,
        strategy=extraction.strategy,
        prompt=prompt,
        prompt_tokens=prompt_tokens,
        available_tokens=available,
        should_review=should_review,
        warnings=warnings,
    )


def extract_many(
    changes: Sequence[FileChange],
    config: ExtractionConfig | None = None,
    max_workers: int = 1,
    parser: StructuralParser | None = None,
    system_prompt: str | None = None,
) -> list[FileContext]:
    """Prepare every file independently; results keep the input order."""
    config = config or ExtractionConfig()
    parser = parser or default_parser()

    def _one(change: FileChange) -> FileContext:
        return prepare_file_context(change, config, parser, system_prompt=system_prompt)

    if max_workers <= 1 or len(changes) <= 1:
        return [_one(change) for change in changes]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(_one, changes))
