import pytest

from diffscope.modules.core.config import ExtractionConfig, get_file_extension, is_supported_file


def test_defaults() -> None:
    config = ExtractionConfig()
    assert config.max_block_chars == 10000
    assert config.max_block_lines == 150
    assert config.parse_timeout_ms == 8000
    assert config.max_depth == 60
    assert config.window_radius == 8
    assert config.reserved_output_tokens == 2000
    assert config.supported_extensions == ("ts", "tsx", "js", "jsx", "vue", "py")


def test_from_env_reads_prefixed_variables() -> None:
    config = ExtractionConfig.from_env(
        {
            "DIFFSCOPE_AST_MAX_CHARS": "500",
            "DIFFSCOPE_MAX_TOKENS": "32000",
            "DIFFSCOPE_MODEL": "gpt-4o",
            "DIFFSCOPE_SUPPORTED_EXTENSIONS": ".TS, py",
            "DIFFSCOPE_EXACT_TOKENS": "false",
            "DIFFSCOPE_AST_MAX_LINES": "",
            "UNRELATED": "1",
        }
    )
    assert config.max_block_chars == 500
    assert config.model_token_ceiling == 32000
    assert config.model == "gpt-4o"
    assert config.supported_extensions == ("ts", "py")
    assert config.exact_tokens is False
    assert config.max_block_lines == 150


def test_from_env_rejects_bad_integer() -> None:
    with pytest.raises(ValueError, match="DIFFSCOPE_AST_MAX_LINES"):
        ExtractionConfig.from_env({"DIFFSCOPE_AST_MAX_LINES": "lots"})


def test_non_positive_ceiling_rejected() -> None:
    with pytest.raises(ValueError, match="max_block_lines"):
        ExtractionConfig(max_block_lines=0)


def test_with_overrides_ignores_none() -> None:
    config = ExtractionConfig().with_overrides(max_block_chars=None, model="gpt-4o")
    assert config.model == "gpt-4o"
    assert config.max_block_chars == 10000
    assert ExtractionConfig().with_overrides(model=None) == ExtractionConfig()


def test_file_extension_helpers() -> None:
    assert get_file_extension("src/App.VUE") == "vue"
    assert get_file_extension("Makefile") == ""
    assert get_file_extension("a.d/b") == ""
    assert get_file_extension("dir\\mod.py") == "py"
    assert is_supported_file("x.ts", ("ts",))
    assert not is_supported_file("README.md", ("ts",))
    assert not ExtractionConfig().is_supported("README.md")
