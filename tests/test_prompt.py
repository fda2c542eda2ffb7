import logging

from diffscope.modules.core.block_governor import SelectedBlock
from diffscope.modules.core.prompt import (
    DEFAULT_SYSTEM_PROMPT,
    build_prompt,
    clear_prompt_cache,
    format_block,
    load_system_prompt,
)

BLOCK = SelectedBlock(code="greet(name) {\n  return name;\n}", start_line=2, end_line=4, kind="method", name="greet")


def test_format_block_labels_kind_name_and_lines() -> None:
    rendered = format_block(BLOCK)
    assert rendered.startswith("### method greet (lines 2-4)\n```\n")
    assert rendered.endswith("}\n```")


def test_format_block_without_name() -> None:
    block = SelectedBlock(code="b", start_line=7, end_line=7, kind="unknown")
    assert format_block(block).startswith("### unknown (lines 7-7)")


def test_build_prompt_sections_in_order() -> None:
    prompt = build_prompt("+[2] +x", [BLOCK], additional_context="PR title: fix greet")
    assert prompt.startswith(DEFAULT_SYSTEM_PROMPT)
    context_at = prompt.index("## Additional context\nPR title: fix greet")
    blocks_at = prompt.index("## Enclosing code")
    diff_at = prompt.index("## Code change\n\n```diff\n+[2] +x\n```")
    assert context_at < blocks_at < diff_at


def test_build_prompt_without_blocks_or_context() -> None:
    prompt = build_prompt("+[1] +x", system_prompt="SYSTEM")
    assert prompt.startswith("SYSTEM\n\n## Code change")
    assert "## Enclosing code" not in prompt
    assert "## Additional context" not in prompt


def test_load_system_prompt_from_file(tmp_path) -> None:
    path = tmp_path / "prompt.md"
    path.write_text("Review carefully.", encoding="utf-8")
    clear_prompt_cache()
    assert load_system_prompt(path) == "Review carefully."
    assert load_system_prompt() == DEFAULT_SYSTEM_PROMPT


def test_load_system_prompt_missing_file_falls_back(tmp_path, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="diffscope.modules.core.prompt"):
        prompt = load_system_prompt(tmp_path / "missing.md")
    assert prompt == DEFAULT_SYSTEM_PROMPT
    assert "failed to load system prompt" in caplog.text
