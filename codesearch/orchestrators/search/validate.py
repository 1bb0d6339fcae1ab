"""Request validation and workspace sandboxing.

Every request is normalized here before anything executes: required fields
are checked, numeric limits are clamped (never rejected), and every path is
made workspace-relative and checked against the denylist.
"""

import math
import posixpath
from collections.abc import Mapping
from typing import Any

from pydantic import TypeAdapter, ValidationError

from codesearch.contracts.search_v1 import (
    AstSearchRequest,
    JsonStyle,
    NormalizedAstSearchRequest,
    NormalizedSearchRequest,
    NormalizedTextSearchRequest,
    SearchMode,
    SearchRequest,
    TextSearchRequest,
)
from codesearch.orchestrators.search.constants import (
    AST_TIMEOUT_MS,
    CONTEXT_LINES,
    DENYLIST_EXACT,
    DENYLIST_PREFIXES,
    DENYLIST_SUFFIXES,
    ENV_FILE_PREFIX,
    MAX_MATCHES_PER_FILE,
    MAX_RESULTS,
    TEXT_TIMEOUT_MS,
    Bounds,
)

_REQUEST_ADAPTER: TypeAdapter[TextSearchRequest | AstSearchRequest] = TypeAdapter(
    SearchRequest
)


class SearchValidationError(ValueError):
    """Request rejected before execution. The message is safe to show callers."""


def clamp_int(value: Any, bounds: Bounds) -> int:
    if value is None or isinstance(value, bool):
        return bounds.default
    try:
        num = float(value)
    except (TypeError, ValueError, OverflowError):
        return bounds.default
    if not math.isfinite(num):
        return bounds.default
    return max(bounds.minimum, min(bounds.maximum, math.floor(num)))


def _clean_strings(value: list[Any] | None) -> list[str]:
    if not value:
        return []
    return [s.strip() for s in value if isinstance(s, str) and s.strip()]


def to_workspace_relative_path(input_path: str) -> str:
    """Normalize a caller path to forward-slashed, workspace-relative form."""
    normalized = input_path.replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    resolved = posixpath.normpath(normalized or ".")

    if resolved == ".." or resolved.startswith("../") or resolved.startswith("/"):
        raise SearchValidationError(f"Path escapes workspace: {input_path}")
    return resolved


def is_denied_path(relative_path: str) -> bool:
    normalized = to_workspace_relative_path(relative_path)
    if normalized == ".":
        return False

    if normalized in DENYLIST_EXACT:
        return True

    for prefix in DENYLIST_PREFIXES:
        if normalized == prefix[:-1] or normalized.startswith(prefix):
            return True

    return normalized.endswith(DENYLIST_SUFFIXES) or normalized.startswith(ENV_FILE_PREFIX)


def normalize_paths(value: list[Any] | None) -> tuple[str, ...]:
    paths = [to_workspace_relative_path(p) for p in _clean_strings(value)] or ["."]
    for p in paths:
        if is_denied_path(p):
            raise SearchValidationError(f"Path is not searchable: {p}")
    return tuple(paths)


def validate_text_search_request(request: TextSearchRequest) -> NormalizedTextSearchRequest:
    query = (request.query or "").strip()
    if not query:
        raise SearchValidationError("query is required")

    return NormalizedTextSearchRequest(
        query=query,
        mode=SearchMode.REGEX if request.mode == SearchMode.REGEX else SearchMode.LITERAL,
        case_sensitive=request.case_sensitive is True,
        include_globs=tuple(_clean_strings(request.include_globs)),
        exclude_globs=tuple(_clean_strings(request.exclude_globs)),
        paths=normalize_paths(request.paths),
        max_results=clamp_int(request.max_results, MAX_RESULTS),
        max_matches_per_file=clamp_int(request.max_matches_per_file, MAX_MATCHES_PER_FILE),
        context_lines=clamp_int(request.context_lines, CONTEXT_LINES),
        timeout_ms=clamp_int(request.timeout_ms, TEXT_TIMEOUT_MS),
    )


def validate_ast_search_request(request: AstSearchRequest) -> NormalizedAstSearchRequest:
    pattern = (request.pattern or "").strip()
    if not pattern:
        raise SearchValidationError("pattern is required")

    try:
        json_style = JsonStyle(request.json_style)
    except ValueError:
        json_style = JsonStyle.STREAM

    return NormalizedAstSearchRequest(
        pattern=pattern,
        language=(request.language or "").strip() or None,
        paths=normalize_paths(request.paths),
        max_results=clamp_int(request.max_results, MAX_RESULTS),
        timeout_ms=clamp_int(request.timeout_ms, AST_TIMEOUT_MS),
        json_style=json_style,
    )


def validate_search_request(
    request: TextSearchRequest | AstSearchRequest,
) -> NormalizedSearchRequest:
    if isinstance(request, AstSearchRequest):
        return validate_ast_search_request(request)
    return validate_text_search_request(request)


def invalid_request(error: ValidationError) -> SearchValidationError:
    """Wrap a pydantic shape error as a caller-facing validation error."""
    details = []
    for err in error.errors():
        loc = [str(p) for p in err["loc"]]
        if loc and loc[0] in ("text", "ast"):
            loc = loc[1:]
        details.append(f"{'.'.join(loc) or 'request'}: {err['msg']}")
    return SearchValidationError(f"Invalid search request: {'; '.join(details)}")


def parse_search_request(payload: Mapping[str, Any]) -> TextSearchRequest | AstSearchRequest:
    """Turn a raw JSON object into a typed request; shape errors become validation errors."""
    if payload.get("type") not in ("text", "ast"):
        raise SearchValidationError('type must be "text" or "ast"')
    try:
        return _REQUEST_ADAPTER.validate_python(dict(payload))
    except ValidationError as e:
        raise invalid_request(e) from e
