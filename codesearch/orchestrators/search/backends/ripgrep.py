"""ripgrep backend: structured --json output. Preferred text engine."""

import base64
import binascii
import json
import logging
from typing import Any

from codesearch.contracts.search_v1 import (
    NormalizedTextSearchRequest,
    SearchEngine,
    SearchMatch,
    SearchMode,
    Submatch,
)
from codesearch.orchestrators.search.interface import (
    MatchCollector,
    ParsedOutput,
    SearchEngineAdapter,
)

logger = logging.getLogger(__name__)


def _decode_data(value: Any) -> str | None:
    """Decode ripgrep's arbitrary-data object: {"text": ...} or {"bytes": base64}."""
    if not isinstance(value, dict):
        return None
    text = value.get("text")
    if isinstance(text, str):
        return text
    raw = value.get("bytes")
    if isinstance(raw, str):
        try:
            return base64.b64decode(raw, validate=True).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError):
            return None
    return None


def _parse_event(line: str) -> dict[str, Any] | None:
    try:
        event = json.loads(line)
    except json.JSONDecodeError:
        logger.debug("ripgrep: skipping non-JSON line: %s", line[:200])
        return None
    return event if isinstance(event, dict) else None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _submatches(data: dict[str, Any]) -> list[Submatch]:
    out: list[Submatch] = []
    raw = data.get("submatches")
    if not isinstance(raw, list):
        return out
    for sm in raw:
        if not isinstance(sm, dict):
            continue
        start = _as_int(sm.get("start"))
        end = _as_int(sm.get("end"))
        if start is None or end is None or start < 0 or end < start:
            continue
        out.append(Submatch(start=start, end=end, text=_decode_data(sm.get("match")) or None))
    return out


def _match_from_event(event: dict[str, Any]) -> SearchMatch | None:
    data = event.get("data")
    if event.get("type") != "match" or not isinstance(data, dict):
        return None
    path = _decode_data(data.get("path"))
    if not path:
        return None

    line_number = _as_int(data.get("line_number"))
    lines = _decode_data(data.get("lines")) or ""
    submatches = _submatches(data)

    return SearchMatch(
        file=path,
        line=line_number if line_number and line_number > 0 else 1,
        column=submatches[0].start + 1 if submatches else 1,
        snippet=lines.rstrip("\r\n"),
        submatches=submatches,
    )


def _files_scanned(event: dict[str, Any]) -> int | None:
    data = event.get("data")
    if not isinstance(data, dict):
        return None
    stats = data.get("stats")
    if not isinstance(stats, dict):
        return None
    return _as_int(stats.get("searches"))


class RipgrepAdapter(SearchEngineAdapter[NormalizedTextSearchRequest]):
    engine = SearchEngine.RIPGREP

    def build_args(self, request: NormalizedTextSearchRequest) -> list[str]:
        args = ["--json", "--line-number", "--column", "--no-messages"]

        if request.mode == SearchMode.LITERAL:
            args.append("-F")
        if not request.case_sensitive:
            args.append("-i")

        args.extend(["--max-count", str(request.max_matches_per_file)])

        if request.context_lines > 0:
            args.extend(["-C", str(request.context_lines)])

        for glob in request.include_globs:
            args.extend(["--glob", glob])
        for glob in request.exclude_globs:
            args.extend(["--glob", glob if glob.startswith("!") else f"!{glob}"])

        # Query after "-e" so a pattern starting with "-" is not read as a flag.
        args.extend(["-e", request.query])
        args.extend(request.paths)
        return args

    def parse(self, stdout: str, max_results: int) -> ParsedOutput:
        collector = MatchCollector(max_results)
        files_scanned: int | None = None

        for line in stdout.splitlines():
            if not line.strip():
                continue
            event = _parse_event(line)
            if event is None:
                continue
            if event.get("type") == "summary":
                files_scanned = _files_scanned(event)
                continue
            if collector.capped:
                # Keep reading only for the trailing summary event.
                continue
            match = _match_from_event(event)
            if match is not None:
                collector.add(match)

        return collector.result(files_scanned=files_scanned)
