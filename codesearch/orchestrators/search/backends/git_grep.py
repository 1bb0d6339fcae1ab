"""git grep backend: used when ripgrep is missing but cwd is a git work tree."""

from codesearch.contracts.search_v1 import (
    NormalizedTextSearchRequest,
    SearchEngine,
    SearchMatch,
    SearchMode,
)
from codesearch.orchestrators.search.backends.grep import (
    collect_lines,
    parse_line_number,
    split_colon_fields,
)
from codesearch.orchestrators.search.constants import WARNING_GIT_GREP_FALLBACK
from codesearch.orchestrators.search.interface import ParsedOutput, SearchEngineAdapter


def _parse_git_grep_line(line: str) -> SearchMatch | None:
    # --column adds one field: path:line:column:content
    parts = split_colon_fields(line, 3)
    if parts is None:
        return None
    file, raw_line, raw_column, snippet = parts
    line_number = parse_line_number(raw_line)
    column = parse_line_number(raw_column)
    if line_number is None or column is None:
        return None
    return SearchMatch(file=file, line=line_number, column=column, snippet=snippet)


class GitGrepAdapter(SearchEngineAdapter[NormalizedTextSearchRequest]):
    """Text search through `git grep`, scoped with pathspecs.

    Known limitation: git ORs positive pathspecs, so `:(glob)` include globs
    are alternatives to the search paths rather than a filter on them. With
    the default path `.` every tracked file is still searched; exclude globs
    do narrow the result.
    """

    engine = SearchEngine.GIT_GREP
    fallback_warning = WARNING_GIT_GREP_FALLBACK

    def build_args(self, request: NormalizedTextSearchRequest) -> list[str]:
        args = ["grep", "--line-number", "--column", "-I"]

        args.append("-F" if request.mode == SearchMode.LITERAL else "-E")
        if not request.case_sensitive:
            args.append("-i")

        args.extend(["-m", str(request.max_matches_per_file)])
        args.extend(["-e", request.query])

        pathspecs = list(request.paths)
        pathspecs.extend(f":(glob){glob}" for glob in request.include_globs)
        pathspecs.extend(f":(exclude,glob){glob}" for glob in request.exclude_globs)
        if pathspecs:
            args.append("--")
            args.extend(pathspecs)
        return args

    def parse(self, stdout: str, max_results: int) -> ParsedOutput:
        return collect_lines(stdout, max_results, _parse_git_grep_line)
