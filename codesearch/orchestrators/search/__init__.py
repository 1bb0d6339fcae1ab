"""Code search: request validation, engine selection, sandboxed execution."""

from codesearch.contracts.search_v1 import SearchResponse
from codesearch.orchestrators.search.interface import SearchEngineAdapter
from codesearch.orchestrators.search.orchestrator import CodeSearchService
from codesearch.orchestrators.search.validate import SearchValidationError

__all__ = [
    "CodeSearchService",
    "SearchEngineAdapter",
    "SearchResponse",
    "SearchValidationError",
]
