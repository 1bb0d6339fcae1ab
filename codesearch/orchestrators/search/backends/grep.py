"""POSIX grep backend. Universal fallback; assumed present everywhere."""

from codesearch.contracts.search_v1 import (
    NormalizedTextSearchRequest,
    SearchEngine,
    SearchMatch,
    SearchMode,
)
from codesearch.orchestrators.search.constants import WARNING_GREP_FALLBACK
from codesearch.orchestrators.search.interface import (
    MatchCollector,
    ParsedOutput,
    SearchEngineAdapter,
)


def split_colon_fields(line: str, count: int) -> list[str] | None:
    """Split on the first `count` colons: `path:f1:...:content`.

    A path that itself contains ':' is split in the wrong place. That is a
    known limitation of grep's plain output format.
    """
    parts = line.split(":", count)
    if len(parts) != count + 1 or not parts[0]:
        return None
    return parts


def parse_line_number(value: str) -> int | None:
    value = value.strip()
    if not value.isdigit():
        return None
    number = int(value)
    return number if number > 0 else None


def _parse_grep_line(line: str) -> SearchMatch | None:
    parts = split_colon_fields(line, 2)
    if parts is None:
        return None
    file, raw_line, snippet = parts
    line_number = parse_line_number(raw_line)
    if line_number is None:
        return None
    return SearchMatch(file=file, line=line_number, column=1, snippet=snippet)


def collect_lines(stdout: str, max_results: int, parse_line) -> ParsedOutput:
    collector = MatchCollector(max_results)
    for line in stdout.splitlines():
        if not line.strip():
            continue
        match = parse_line(line)
        if match is None:
            continue
        if not collector.add(match):
            break
    return collector.result()


class GrepAdapter(SearchEngineAdapter[NormalizedTextSearchRequest]):
    engine = SearchEngine.GREP
    fallback_warning = WARNING_GREP_FALLBACK

    def build_args(self, request: NormalizedTextSearchRequest) -> list[str]:
        # -r, not -R: symlinks met while recursing are not followed out of the workspace.
        args = ["-r", "-H", "--line-number", "-I", "--binary-files=without-match"]

        args.append("-F" if request.mode == SearchMode.LITERAL else "-E")
        if not request.case_sensitive:
            args.append("-i")

        args.extend(["-m", str(request.max_matches_per_file)])

        for glob in request.include_globs:
            args.extend(["--include", glob])
        for glob in request.exclude_globs:
            args.extend(["--exclude", glob])

        args.extend(["-e", request.query])
        args.extend(request.paths)
        return args

    def parse(self, stdout: str, max_results: int) -> ParsedOutput:
        return collect_lines(stdout, max_results, _parse_grep_line)
