"""Orchestrators: multi-step pipelines that coordinate engines and tools."""

from codesearch.orchestrators.search import CodeSearchService

__all__ = ["CodeSearchService"]
