"""Code Search Contract v1.

Defines the canonical types for:
  - Untrusted search requests (TextSearchRequest, AstSearchRequest)
  - Validated, clamped requests (NormalizedTextSearchRequest, NormalizedAstSearchRequest)
  - Standardized result payload (SearchMatch, SearchStats, SearchResponse)

Wire format is camelCase JSON; Python attributes are snake_case. Optional
fields that are unset are omitted from serialized output.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Numbers from untrusted callers are clamped later, never rejected here.
_Numeric = int | float | str | None

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SearchMode(StrEnum):
    LITERAL = "literal"
    REGEX = "regex"


class ResponseMode(StrEnum):
    LITERAL = "literal"
    REGEX = "regex"
    AST = "ast"


class JsonStyle(StrEnum):
    """ast-grep --json output style."""

    PRETTY = "pretty"
    STREAM = "stream"  # newline-delimited objects (default)
    COMPACT = "compact"


class SearchEngine(StrEnum):
    RIPGREP = "ripgrep"
    GIT_GREP = "git-grep"
    GREP = "grep"
    AST_GREP = "ast-grep"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Untrusted requests
# ---------------------------------------------------------------------------


class TextSearchRequest(_WireModel):
    """Text search as sent by an agent or user. Nothing here is trusted."""

    type: Literal["text"] = "text"
    query: str | None = Field(default=None, description="Literal string or regex")
    mode: str | None = Field(default=None, description="literal | regex (default literal)")
    case_sensitive: bool | None = Field(default=None)
    include_globs: list[Any] | None = Field(default=None)
    exclude_globs: list[Any] | None = Field(default=None)
    paths: list[Any] | None = Field(
        default=None, description="Workspace-relative paths to search (default ['.'])"
    )
    max_results: _Numeric = Field(default=None)
    max_matches_per_file: _Numeric = Field(default=None)
    context_lines: _Numeric = Field(default=None)
    timeout_ms: _Numeric = Field(default=None)


class AstSearchRequest(_WireModel):
    """Structural (ast-grep) search as sent by an agent or user."""

    type: Literal["ast"] = "ast"
    pattern: str | None = Field(default=None, description="ast-grep pattern, e.g. console.log($X)")
    language: str | None = Field(default=None)
    paths: list[Any] | None = Field(default=None)
    max_results: _Numeric = Field(default=None)
    timeout_ms: _Numeric = Field(default=None)
    json_style: str | None = Field(default=None, description="pretty | stream | compact")


SearchRequest = Annotated[
    TextSearchRequest | AstSearchRequest, Field(discriminator="type")
]


# ---------------------------------------------------------------------------
# Normalized requests
# ---------------------------------------------------------------------------


class NormalizedTextSearchRequest(_WireModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    query: str
    mode: SearchMode
    case_sensitive: bool
    include_globs: tuple[str, ...]
    exclude_globs: tuple[str, ...]
    paths: tuple[str, ...]
    max_results: int = Field(ge=1, le=1000)
    max_matches_per_file: int = Field(ge=1, le=200)
    context_lines: int = Field(ge=0, le=3)
    timeout_ms: int = Field(ge=500, le=15000)


class NormalizedAstSearchRequest(_WireModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["ast"] = "ast"
    pattern: str
    language: str | None = None
    paths: tuple[str, ...]
    max_results: int = Field(ge=1, le=1000)
    timeout_ms: int = Field(ge=500, le=15000)
    json_style: JsonStyle


NormalizedSearchRequest = NormalizedTextSearchRequest | NormalizedAstSearchRequest


# ---------------------------------------------------------------------------
# Standardized result payload
# ---------------------------------------------------------------------------


class Submatch(_WireModel):
    """Byte span of a match inside the snippet line (ripgrep only)."""

    start: int
    end: int
    text: str | None = None


class SearchMatch(_WireModel):
    """One match. Line and column are always 1-based."""

    file: str = Field(description="Path relative to the search working directory")
    line: int = Field(ge=1)
    column: int = Field(ge=1)
    end_line: int | None = None
    end_column: int | None = None
    snippet: str = Field(default="")
    submatches: list[Submatch] | None = None


class SearchStats(_WireModel):
    duration_ms: int = 0
    files_scanned: int | None = Field(
        default=None, description="Best effort; only engines that report it"
    )
    files_matched: int = 0
    matches_returned: int = 0


class SearchResponse(_WireModel):
    """Returned by every search, whichever engine produced it."""

    engine: SearchEngine
    query: str
    mode: ResponseMode
    truncated: bool = False
    stats: SearchStats = Field(default_factory=SearchStats)
    warnings: list[str] = Field(default_factory=list)
    matches: list[SearchMatch] = Field(default_factory=list)
