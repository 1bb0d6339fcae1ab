"""Observability: LangSmith tracing (optional, env-controlled)."""

from codesearch.observability.tracing import flush, traceable, tracing_enabled

__all__ = ["flush", "traceable", "tracing_enabled"]
