"""Extraction settings and file-extension helpers.

Every numeric ceiling used by the pipeline lives on ``ExtractionConfig`` so
the surrounding service can tune it per deployment. ``from_env`` mirrors the
environment-driven configuration of the review service this package feeds.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
import os


DEFAULT_SUPPORTED_EXTENSIONS = ("ts", "tsx", "js", "jsx", "vue", "py")

ENV_PREFIX = "DIFFSCOPE_"

# field name -> environment variable (without prefix)
_ENV_FIELDS = {
    "max_block_chars": "AST_MAX_CHARS",
    "max_block_lines": "AST_MAX_LINES",
    "parse_timeout_ms": "AST_TIMEOUT_MS",
    "max_depth": "AST_MAX_DEPTH",
    "max_nodes": "AST_MAX_NODES",
    "window_radius": "WINDOW_RADIUS",
    "model": "MODEL",
    "model_token_ceiling": "MAX_TOKENS",
    "reserved_output_tokens": "RESERVED_OUTPUT_TOKENS",
    "supported_extensions": "SUPPORTED_EXTENSIONS",
    "exact_tokens": "EXACT_TOKENS",
}


@dataclass(frozen=True)
class ExtractionConfig:
    max_block_chars: int = 10000
    max_block_lines: int = 150
    parse_timeout_ms: int = 8000
    max_depth: int = 60
    max_nodes: int = 200000
    window_radius: int = 8
    model: str = "gpt-4"
    model_token_ceiling: int = 8192
    reserved_output_tokens: int = 2000
    supported_extensions: tuple[str, ...] = DEFAULT_SUPPORTED_EXTENSIONS
    exact_tokens: bool = True

    def __post_init__(self) -> None:
        for name in (
            "max_block_chars",
            "max_block_lines",
            "parse_timeout_ms",
            "max_depth",
            "max_nodes",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.window_radius < 0:
            raise ValueError(f"window_radius must be >= 0, got {self.window_radius}")
        if self.reserved_output_tokens < 0:
            raise ValueError(
                f"reserved_output_tokens must be >= 0, got {self.reserved_output_tokens}"
            )
        normalized = tuple(
            ext.strip().lower().lstrip(".") for ext in self.supported_extensions if ext.strip()
        )
        object.__setattr__(self, "supported_extensions", normalized)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ExtractionConfig":
        """Build a config from ``DIFFSCOPE_*`` variables, defaults elsewhere."""
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        types = {f.name: f.type for f in fields(cls)}
        for name, suffix in _ENV_FIELDS.items():
            key = f"{ENV_PREFIX}{suffix}"
            raw = env.get(key)
            if raw is None or raw.strip() == "":
                continue
            overrides[name] = _coerce(key, raw, types[name])
        return cls(**overrides)

    def with_overrides(self, **changes) -> "ExtractionConfig":
        """Return a copy with the non-None keyword arguments applied."""
        applied = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **applied) if applied else self

    def is_supported(self, file_path: str) -> bool:
        return is_supported_file(file_path, self.supported_extensions)


def _coerce(key: str, raw: str, annotation: str):
    raw = raw.strip()
    if annotation == "int":
        try:
            return int(raw)
        except ValueError as exc:
            raise ValueError(f"{key} must be an integer, got {raw!r}") from exc
    if annotation == "bool":
        return raw.lower() in {"1", "true", "yes", "on"}
    if annotation.startswith("tuple"):
        return tuple(part for part in raw.split(",") if part.strip())
    return raw


def get_file_extension(file_path: str) -> str:
    """Lower-cased extension without the dot, or "" when there is none."""
    name = file_path.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def is_supported_file(file_path: str, supported_extensions) -> bool:
    ext = get_file_extension(file_path)
    return bool(ext) and ext in supported_extensions
