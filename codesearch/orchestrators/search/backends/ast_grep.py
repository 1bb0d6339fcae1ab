"""ast-grep backend: structural search. Has no fallback engine."""

import json
import logging
from typing import Any

from codesearch.contracts.search_v1 import (
    NormalizedAstSearchRequest,
    ResponseMode,
    SearchEngine,
    SearchMatch,
)
from codesearch.orchestrators.search.constants import (
    WARNING_AST_OUTPUT_TRUNCATED,
    WARNING_AST_TIMED_OUT,
)
from codesearch.orchestrators.search.interface import (
    MatchCollector,
    ParsedOutput,
    SearchEngineAdapter,
)

logger = logging.getLogger(__name__)


def _position(value: Any) -> tuple[int, int] | None:
    """0-based (line, column) from an ast-grep range endpoint."""
    if not isinstance(value, dict):
        return None
    line = value.get("line")
    column = value.get("column")
    for v in (line, column):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
    return int(line), int(column)


def _match_from_item(item: Any) -> SearchMatch | None:
    if not isinstance(item, dict):
        return None
    file = item.get("file")
    rng = item.get("range")
    if not isinstance(file, str) or not file or not isinstance(rng, dict):
        return None
    start = _position(rng.get("start"))
    if start is None or min(start) < 0:
        return None
    end = _position(rng.get("end"))
    text = item.get("text")

    return SearchMatch(
        file=file,
        line=start[0] + 1,
        column=start[1] + 1,
        end_line=end[0] + 1 if end else None,
        end_column=end[1] + 1 if end else None,
        snippet=text if isinstance(text, str) else "",
    )


def _iter_items(stdout: str) -> list[Any]:
    """Items from either one JSON array (pretty/compact) or JSON lines (stream)."""
    trimmed = stdout.strip()
    if not trimmed:
        return []
    if trimmed.startswith("["):
        try:
            parsed = json.loads(trimmed)
        except json.JSONDecodeError:
            # A capped array is cut mid-document; nothing in it is usable.
            logger.debug("ast-grep: output array is not valid JSON")
            return []
        return parsed if isinstance(parsed, list) else []

    items: list[Any] = []
    for line in trimmed.splitlines():
        if not line.strip():
            continue
        try:
            items.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug("ast-grep: skipping non-JSON line: %s", line[:200])
    return items


class AstGrepAdapter(SearchEngineAdapter[NormalizedAstSearchRequest]):
    engine = SearchEngine.AST_GREP
    timeout_warning = WARNING_AST_TIMED_OUT
    truncated_warning = WARNING_AST_OUTPUT_TRUNCATED

    def build_args(self, request: NormalizedAstSearchRequest) -> list[str]:
        args = ["run", "--pattern", request.pattern, f"--json={request.json_style}"]
        if request.language:
            args.extend(["--lang", request.language])
        args.extend(request.paths)
        return args

    def parse(self, stdout: str, max_results: int) -> ParsedOutput:
        collector = MatchCollector(max_results)
        for item in _iter_items(stdout):
            match = _match_from_item(item)
            if match is None:
                continue
            if not collector.add(match):
                break
        return collector.result()

    def describe_request(self, request: NormalizedAstSearchRequest) -> tuple[str, ResponseMode]:
        return request.pattern, ResponseMode.AST
