"""Review prompt assembly from a numbered diff and extracted blocks."""
from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
import logging
from pathlib import Path

from .block_governor import SelectedBlock

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """\
You are a senior code reviewer who is good at finding latent problems in code changes.

## Responsibilities
- Analyse the code change (diff) carefully and identify potential problems
- Focus on correctness, security, performance and maintainability
- Give clear, actionable suggestions

## Diff format
- Lines starting with `+` are added code
- Lines starting with `-` are removed code
- Lines starting with a space are unchanged context
- `[n]` is the line number of an added or removed line; `[old->new]` maps a context line
- Hunk headers look like `@@ -oldStart,oldCount +newStart,newCount @@`

## Review focus
1. Logic errors: latent bugs, mishandled edge cases
2. Security: injection, XSS, leaked secrets
3. Performance: needless loops, leaks, inefficient algorithms
4. Code quality: readability, duplication
5. Practices: naming, error handling, resource management

## Output format
Answer in YAML only:

```yaml
issues:
  - type: critical|warning|info
    file: "path/to/file"
    line: 42
    title: "Short title"
    description: "What is wrong and why"
    code: "Relevant snippet (optional)"
    suggestion: "How to fix it (optional)"
summary: "Overall assessment (optional)"
```

## Notes
- Report real problems only; do not nitpick
- Reference new-file line numbers from the diff
- Classify by severity: critical, warning, info"""


@lru_cache(maxsize=8)
def _read_prompt_file(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def load_system_prompt(path: str | Path | None = None) -> str:
    """Read the system prompt from ``path``; fall back to the built-in one."""
    if path is None:
        return DEFAULT_SYSTEM_PROMPT
    try:
        return _read_prompt_file(str(path))
    except OSError as exc:
        logger.warning("failed to load system prompt %s, using default: %s", path, exc)
        return DEFAULT_SYSTEM_PROMPT


def clear_prompt_cache() -> None:
    _read_prompt_file.cache_clear()


def format_block(block: SelectedBlock) -> str:
    label = block.kind if not block.name else f"{block.kind} {block.name}"
    return f"### {label} (lines {block.start_line}-{block.end_line})\n```\n{block.code}\n```"


def build_prompt(
    numbered_diff: str,
    blocks: Sequence[SelectedBlock] = (),
    additional_context: str | None = None,
    system_prompt: str | None = None,
) -> str:
    """Assemble the full review prompt for one file."""
    parts = [system_prompt if system_prompt is not None else DEFAULT_SYSTEM_PROMPT]
    if additional_context:
        parts.append(f"## Additional context\n{additional_context}")
    if blocks:
        rendered = "\n\n".join(format_block(block) for block in blocks)
        parts.append(f"## Enclosing code\n{rendered}")
    parts.append(f"## Code change\n\n```diff\n{numbered_diff}\n```")
    parts.append(
        "Analyse the change above carefully and report the result in the required format."
    )
    return "\n\n".join(parts)
