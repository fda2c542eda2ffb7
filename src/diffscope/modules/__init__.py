"""Diffscope modules.

Modules:
- core: diff-to-context extraction pipeline
"""


def __getattr__(name: str):
    if name == "core":
        from . import core
        return core
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["core"]
