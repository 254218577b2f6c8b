"""
llm-memory - scoped memories, plans and todos for coding agents.

Records are either global or bound to a working directory; directories can
be grouped to share their private records.
"""

from .core import LLMMemory
from .types import BatchResult, Scope, ScopeContext, VisibilityFilter

try:
    from importlib.metadata import version

    __version__ = version("llm-memory")
except Exception:
    __version__ = "0.0.0"

__all__ = ["LLMMemory", "BatchResult", "Scope", "ScopeContext", "VisibilityFilter"]
