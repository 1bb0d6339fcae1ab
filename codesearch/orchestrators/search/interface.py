"""Standard interface for search engine adapters used by the search service.

Each adapter knows how to build one tool's command line and how to parse that
tool's output into SearchMatch values. Running the tool and assembling the
SearchResponse is shared.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, Protocol, TypeVar

from codesearch.contracts.search_v1 import (
    NormalizedAstSearchRequest,
    NormalizedTextSearchRequest,
    ResponseMode,
    SearchEngine,
    SearchMatch,
    SearchResponse,
    SearchStats,
)
from codesearch.orchestrators.search.constants import (
    NON_ERROR_EXIT_CODES,
    WARNING_OUTPUT_TRUNCATED,
    WARNING_TIMED_OUT,
)
from codesearch.orchestrators.search.runner import RunnerResult

RequestT = TypeVar("RequestT", NormalizedTextSearchRequest, NormalizedAstSearchRequest)


class CommandRunner(Protocol):
    async def run(
        self,
        binary: str,
        args: list[str],
        *,
        cwd: Path | str,
        timeout_ms: int,
        max_output_bytes: int | None = None,
    ) -> RunnerResult: ...


@dataclass
class ParsedOutput:
    matches: list[SearchMatch] = field(default_factory=list)
    files_matched: int = 0
    files_scanned: int | None = None
    capped: bool = False  # stopped at max_results with more matches left


class MatchCollector:
    """Accumulates matches up to a cap and tracks distinct files."""

    def __init__(self, max_results: int) -> None:
        self._max_results = max_results
        self._files: set[str] = set()
        self.matches: list[SearchMatch] = []
        self.capped = False

    def add(self, match: SearchMatch) -> bool:
        """Add a match; returns False once the cap is hit and parsing should stop."""
        if len(self.matches) >= self._max_results:
            self.capped = True
            return False
        self.matches.append(match)
        self._files.add(match.file)
        return True

    def result(self, files_scanned: int | None = None) -> ParsedOutput:
        return ParsedOutput(
            matches=self.matches,
            files_matched=len(self._files),
            files_scanned=files_scanned,
            capped=self.capped,
        )


class SearchEngineAdapter(ABC, Generic[RequestT]):
    """Base class for all engine adapters."""

    engine: SearchEngine
    fallback_warning: str | None = None
    timeout_warning: str = WARNING_TIMED_OUT
    truncated_warning: str = WARNING_OUTPUT_TRUNCATED

    def __init__(self, binary: str) -> None:
        self.binary = binary

    @abstractmethod
    def build_args(self, request: RequestT) -> list[str]:
        """Command-line arguments for this engine (binary excluded)."""

    @abstractmethod
    def parse(self, stdout: str, max_results: int) -> ParsedOutput:
        """Turn raw engine output into canonical matches, at most max_results."""

    def describe_request(self, request: RequestT) -> tuple[str, ResponseMode]:
        return request.query, ResponseMode(request.mode)

    async def execute(
        self,
        request: RequestT,
        runner: CommandRunner,
        cwd: Path | str,
    ) -> SearchResponse:
        result = await runner.run(
            self.binary,
            self.build_args(request),
            cwd=cwd,
            timeout_ms=request.timeout_ms,
        )
        parsed = self.parse(result.stdout, request.max_results)
        query, mode = self.describe_request(request)

        return SearchResponse(
            engine=self.engine,
            query=query,
            mode=mode,
            truncated=parsed.capped or result.truncated,
            stats=SearchStats(
                duration_ms=result.duration_ms,
                files_scanned=parsed.files_scanned,
                files_matched=parsed.files_matched,
                matches_returned=len(parsed.matches),
            ),
            warnings=self.collect_warnings(result),
            matches=parsed.matches,
        )

    def collect_warnings(self, result: RunnerResult) -> list[str]:
        warnings: list[str] = []
        if self.fallback_warning:
            warnings.append(self.fallback_warning)
        if result.timed_out:
            warnings.append(self.timeout_warning)
        if result.truncated:
            warnings.append(self.truncated_warning)
        if result.exit_code not in NON_ERROR_EXIT_CODES and not result.timed_out:
            stderr = result.stderr.strip()
            if stderr:
                warnings.append(stderr)
        return warnings
