"""
Diffscope structured error codes for machine-parseable failures.

Error codes callers can handle programmatically:
- DIFFSCOPE_ERR_PARSE: structural parse failed after the lenient retry
- DIFFSCOPE_ERR_TIMEOUT: structural parse exceeded its wall-clock budget
- DIFFSCOPE_ERR_DEPTH: tree traversal hit the depth ceiling (partial result)
- DIFFSCOPE_ERR_NODES: tree traversal hit the node-count ceiling (partial result)
- DIFFSCOPE_ERR_CAPABILITY: an optional sub-parser is not installed
- DIFFSCOPE_ERR_UNSUPPORTED: file extension has no extraction support
- DIFFSCOPE_ERR_BUDGET: prompt does not fit the model token budget
- DIFFSCOPE_ERR_TOKENIZER: exact tokenizer unavailable, token count estimated
- DIFFSCOPE_ERR_CONFIG: invalid configuration value
- DIFFSCOPE_ERR_NOT_FOUND: input file not found
"""

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


# Error codes
ERR_PARSE = "DIFFSCOPE_ERR_PARSE"
ERR_TIMEOUT = "DIFFSCOPE_ERR_TIMEOUT"
ERR_DEPTH = "DIFFSCOPE_ERR_DEPTH"
ERR_NODES = "DIFFSCOPE_ERR_NODES"
ERR_CAPABILITY = "DIFFSCOPE_ERR_CAPABILITY"
ERR_UNSUPPORTED = "DIFFSCOPE_ERR_UNSUPPORTED"
ERR_BUDGET = "DIFFSCOPE_ERR_BUDGET"
ERR_TOKENIZER = "DIFFSCOPE_ERR_TOKENIZER"
ERR_CONFIG = "DIFFSCOPE_ERR_CONFIG"
ERR_NOT_FOUND = "DIFFSCOPE_ERR_NOT_FOUND"
ERR_INTERNAL = "DIFFSCOPE_ERR_INTERNAL"


@dataclass
class DiffscopeError:
    """Structured error response for machine parsing."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


def make_error(code: str, message: str, **details) -> dict:
    """Create a structured error response dict."""
    return DiffscopeError(code=code, message=message, details=details).to_dict()


def make_warning(code: str, message: str, **details) -> dict:
    """Create a non-fatal warning entry (same shape, ``error`` is False)."""
    payload = make_error(code, message, **details)
    payload["error"] = False
    return payload


def make_not_found_error(item_type: str, name: str) -> dict:
    """Create a not found error."""
    return make_error(
        ERR_NOT_FOUND,
        f"{item_type} '{name}' not found",
        type=item_type,
        name=name,
    )


def make_budget_warning(file_path: str, prompt_tokens: int, ceiling: int, reserved: int) -> dict:
    """Signal that a file's prompt leaves no room in the model budget."""
    return make_warning(
        ERR_BUDGET,
        f"Prompt for {file_path} uses {prompt_tokens} tokens; "
        f"budget {ceiling} with {reserved} reserved for output is exhausted",
        file=file_path,
        prompt_tokens=prompt_tokens,
        ceiling=ceiling,
        reserved=reserved,
    )
