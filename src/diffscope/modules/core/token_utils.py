from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging
import math
import re
from typing import Iterable

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4"
FALLBACK_ENCODING = "cl100k_base"

# CJK ideographs, kana and hangul tokenize at roughly 1.5 chars per token
_WIDE_CHAR_RE = re.compile(
    r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af\uf900-\ufaff]"
)


@lru_cache(maxsize=None)
def get_encoder(model: str = DEFAULT_MODEL):
    """Get the cached tiktoken encoder for ``model``.

    Unknown model names share the ``cl100k_base`` encoding.
    """
    import tiktoken

    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        logger.debug("no tiktoken mapping for %s, using %s", model, FALLBACK_ENCODING)
        return tiktoken.get_encoding(FALLBACK_ENCODING)


def _as_text(text_or_lines: str | Iterable[str]) -> str:
    if isinstance(text_or_lines, str):
        return text_or_lines
    return "\n".join(text_or_lines)


def count_tokens(text_or_lines: str | Iterable[str], model: str = DEFAULT_MODEL) -> int:
    """Exact token count with the model's subword tokenizer."""
    text = _as_text(text_or_lines)
    return len(get_encoder(model).encode(text, disallowed_special=()))


def estimate_tokens(text_or_lines: str | Iterable[str]) -> int:
    """Fast heuristic: wide-script chars / 1.5 plus other chars / 4."""
    text = _as_text(text_or_lines)
    wide = len(_WIDE_CHAR_RE.findall(text))
    narrow = len(text) - wide
    return math.ceil(wide / 1.5 + narrow / 4)


@dataclass(frozen=True)
class Budget:
    model_token_ceiling: int
    reserved_output_tokens: int = 0

    def available(self, prompt_tokens: int) -> int:
        """Headroom left for the prompt; zero means the budget is exceeded."""
        return max(0, self.model_token_ceiling - prompt_tokens - self.reserved_output_tokens)

    def exceeded(self, prompt_tokens: int) -> bool:
        return self.available(prompt_tokens) == 0

    def fits(self, text: str, model: str = DEFAULT_MODEL, exact: bool = True) -> bool:
        tokens = count_tokens(text, model) if exact else estimate_tokens(text)
        return not self.exceeded(tokens)


def calculate_available_tokens(model_token_ceiling: int, prompt_tokens: int, reserved_output_tokens: int) -> int:
    return Budget(model_token_ceiling, reserved_output_tokens).available(prompt_tokens)
