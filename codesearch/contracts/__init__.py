"""Code search contract v1: shared request, response, and match types."""

from codesearch.contracts.search_v1 import (
    AstSearchRequest,
    NormalizedAstSearchRequest,
    NormalizedTextSearchRequest,
    SearchMatch,
    SearchRequest,
    SearchResponse,
    TextSearchRequest,
)

__all__ = [
    "AstSearchRequest",
    "NormalizedAstSearchRequest",
    "NormalizedTextSearchRequest",
    "SearchMatch",
    "SearchRequest",
    "SearchResponse",
    "TextSearchRequest",
]
