from __future__ import annotations

import json

import pytest

from codesearch.contracts.search_v1 import (
    AstSearchRequest,
    ResponseMode,
    SearchEngine,
    TextSearchRequest,
)
from codesearch.orchestrators.search import SearchValidationError
from codesearch.orchestrators.search.constants import (
    WARNING_AST_UNAVAILABLE,
    WARNING_GREP_FALLBACK,
    WARNING_RESULTS_FILTERED,
    WARNING_TIMED_OUT,
)
from codesearch.orchestrators.search.validate import is_denied_path

from conftest import FakeRunner, runner_result

_RG_OK = {("rg", "--version"): runner_result("ripgrep 14.1.0\n")}


def rg_match(path: str, line: int, text: str, start: int = 0) -> str:
    return json.dumps(
        {
            "type": "match",
            "data": {
                "path": {"text": path},
                "lines": {"text": text + "\n"},
                "line_number": line,
                "submatches": [
                    {"match": {"text": "SearchResponse"}, "start": start, "end": start + 14}
                ],
            },
        }
    )


def rg_output(*lines: str, searches: int = 1) -> str:
    summary = json.dumps({"type": "summary", "data": {"stats": {"searches": searches}}})
    return "\n".join([*lines, summary]) + "\n"


def _rg_runner(stdout: str, **kwargs) -> FakeRunner:
    return FakeRunner({**_RG_OK, ("rg", "--json"): runner_result(stdout, **kwargs)})


@pytest.mark.asyncio
async def test_literal_search_returns_three_matches(tmp_path, make_service):
    stdout = rg_output(
        rg_match("src/contracts.ts", 2, "export interface SearchResponse {", 17),
        rg_match("src/contracts.ts", 5, "  const r: SearchResponse = x;", 12),
        rg_match("src/contracts.ts", 9, "return SearchResponse;", 7),
    )
    service = make_service(tmp_path, _rg_runner(stdout))

    response = await service.execute_search(
        {"type": "text", "query": "SearchResponse", "mode": "literal", "maxResults": 10}
    )

    assert response.engine == SearchEngine.RIPGREP
    assert response.mode == ResponseMode.LITERAL
    assert response.query == "SearchResponse"
    assert [m.line for m in response.matches] == [2, 5, 9]
    assert [m.column for m in response.matches] == [18, 13, 8]
    assert response.stats.matches_returned == len(response.matches) == 3
    assert response.stats.files_matched == 1
    assert response.stats.files_scanned == 1
    assert response.truncated is False
    assert response.warnings == []
    assert response.to_wire()["mode"] == "literal"


@pytest.mark.asyncio
async def test_denied_output_paths_are_filtered_with_one_warning(tmp_path, make_service):
    stdout = rg_output(
        rg_match("node_modules/pkg/index.js", 1, "SearchResponse"),
        rg_match("src/app.ts", 4, "SearchResponse"),
        rg_match(".env.local", 1, "SearchResponse"),
        rg_match("./keys/deploy.pem", 1, "SearchResponse"),
    )
    service = make_service(tmp_path, _rg_runner(stdout))

    response = await service.execute_search(TextSearchRequest(query="SearchResponse"))

    assert [m.file for m in response.matches] == ["src/app.ts"]
    assert response.warnings.count(WARNING_RESULTS_FILTERED) == 1
    assert response.stats.matches_returned == 1
    assert all(not is_denied_path(m.file) for m in response.matches)


@pytest.mark.asyncio
async def test_match_paths_normalized_to_relative_form(tmp_path, make_service):
    runner = FakeRunner({("grep", "-r"): runner_result("./src/a.py:3:SearchResponse\n")})
    service = make_service(tmp_path, runner)

    response = await service.execute_search(TextSearchRequest(query="SearchResponse"))

    assert response.engine == SearchEngine.GREP
    assert response.warnings == [WARNING_GREP_FALLBACK]
    assert response.matches[0].file == "src/a.py"
    assert response.matches[0].column == 1


@pytest.mark.asyncio
async def test_engine_reported_escape_is_dropped(tmp_path, make_service):
    stdout = rg_output(rg_match("../outside/secret.txt", 1, "SearchResponse"))
    service = make_service(tmp_path, _rg_runner(stdout))

    response = await service.execute_search(TextSearchRequest(query="SearchResponse"))
    assert response.matches == []
    assert WARNING_RESULTS_FILTERED in response.warnings


@pytest.mark.asyncio
async def test_result_cap_marks_truncated(tmp_path, make_service):
    stdout = rg_output(*(rg_match("a.ts", i, "SearchResponse") for i in range(1, 4)))
    service = make_service(tmp_path, _rg_runner(stdout))

    response = await service.execute_search(
        TextSearchRequest(query="SearchResponse", max_results=2)
    )
    assert response.truncated is True
    assert response.stats.matches_returned == 2


@pytest.mark.asyncio
async def test_timeout_is_a_warning_not_an_error(tmp_path, make_service):
    runner = _rg_runner(
        rg_output(rg_match("a.ts", 1, "SearchResponse")),
        exit_code=124,
        timed_out=True,
        stderr="Process timed out after 500ms",
    )
    service = make_service(tmp_path, runner)

    response = await service.execute_search(TextSearchRequest(query="SearchResponse"))
    assert response.warnings == [WARNING_TIMED_OUT]
    assert len(response.matches) == 1


@pytest.mark.asyncio
async def test_ast_unavailable_is_soft_empty(tmp_path, make_service):
    runner = FakeRunner()
    service = make_service(tmp_path, runner)

    response = await service.execute_search(AstSearchRequest(pattern="console.log($X)"))

    assert response.engine == SearchEngine.AST_GREP
    assert response.mode == ResponseMode.AST
    assert response.matches == []
    assert response.warnings == [WARNING_AST_UNAVAILABLE]
    assert response.stats.matches_returned == 0
    assert runner.binaries_called() == ["ast-grep"]


@pytest.mark.asyncio
async def test_ast_search_runs_when_available(tmp_path, make_service):
    item = {
        "text": "console.log(x)",
        "file": "src/a.ts",
        "range": {"start": {"line": 0, "column": 2}, "end": {"line": 0, "column": 16}},
    }
    runner = FakeRunner(
        {
            ("ast-grep", "--version"): runner_result("ast-grep 0.25.0\n"),
            ("ast-grep", "run"): runner_result(json.dumps(item) + "\n"),
        }
    )
    service = make_service(tmp_path, runner)

    response = await service.execute_search(
        {"type": "ast", "pattern": "console.log($X)", "language": "ts"}
    )
    assert [(m.file, m.line, m.column) for m in response.matches] == [("src/a.ts", 1, 3)]
    assert response.warnings == []


@pytest.mark.asyncio
async def test_git_path_rejected_before_any_process(tmp_path, make_service):
    runner = FakeRunner(_RG_OK)
    service = make_service(tmp_path, runner)

    with pytest.raises(SearchValidationError, match="not searchable"):
        await service.execute_search({"type": "text", "query": "x", "paths": [".git"]})
    assert runner.calls == []


@pytest.mark.asyncio
async def test_empty_query_rejected_before_any_process(tmp_path, make_service):
    runner = FakeRunner(_RG_OK)
    service = make_service(tmp_path, runner)

    with pytest.raises(SearchValidationError, match="query is required"):
        await service.execute_search(TextSearchRequest(query="", max_results=5))
    assert runner.calls == []


@pytest.mark.asyncio
async def test_unknown_type_rejected(tmp_path, make_service):
    service = make_service(tmp_path, FakeRunner())
    with pytest.raises(SearchValidationError, match='type must be "text" or "ast"'):
        await service.execute_search({"type": "semantic", "query": "x"})


class TestWorkingDirectory:
    @pytest.mark.asyncio
    async def test_search_runs_in_subdirectory(self, tmp_path, make_service):
        (tmp_path / "packages" / "app").mkdir(parents=True)
        runner = _rg_runner(rg_output(rg_match("index.ts", 1, "SearchResponse")))
        service = make_service(tmp_path, runner)

        response = await service.execute_search(
            TextSearchRequest(query="SearchResponse"), working_directory="packages/app"
        )

        assert response.matches[0].file == "index.ts"
        assert runner.calls[-1][2] == str((tmp_path / "packages" / "app").resolve())

    @pytest.mark.parametrize("working_directory", ["../elsewhere", "/etc", "a/../../b"])
    def test_escape_rejected(self, tmp_path, make_service, working_directory):
        service = make_service(tmp_path, FakeRunner())
        with pytest.raises(SearchValidationError, match="must stay within project root"):
            service.resolve_cwd(working_directory)

    def test_denied_directory_rejected(self, tmp_path, make_service):
        service = make_service(tmp_path, FakeRunner())
        with pytest.raises(SearchValidationError, match="not searchable"):
            service.resolve_cwd("node_modules")

    def test_symlink_escape_rejected(self, tmp_path, make_service):
        outside = tmp_path / "outside"
        root = tmp_path / "root"
        outside.mkdir()
        root.mkdir()
        (root / "link").symlink_to(outside, target_is_directory=True)
        service = make_service(root, FakeRunner())

        with pytest.raises(SearchValidationError, match="must stay within project root"):
            service.resolve_cwd("link")

    def test_default_is_workspace_root(self, tmp_path, make_service):
        service = make_service(tmp_path, FakeRunner())
        assert service.resolve_cwd(None) == tmp_path.resolve()
        assert service.resolve_cwd(".") == tmp_path.resolve()


class TestSymlinkedSearchPaths:
    @pytest.mark.asyncio
    async def test_path_linking_outside_workspace_rejected(self, tmp_path, make_service):
        root = tmp_path / "root"
        outside = tmp_path / "outside"
        root.mkdir()
        outside.mkdir()
        (root / "link").symlink_to(outside, target_is_directory=True)
        runner = FakeRunner(_RG_OK)
        service = make_service(root, runner)

        with pytest.raises(SearchValidationError, match="escapes workspace: link"):
            await service.execute_search(TextSearchRequest(query="x", paths=["link"]))
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_path_linking_into_denied_dir_rejected(self, tmp_path, make_service):
        (tmp_path / ".git").mkdir()
        (tmp_path / "meta").symlink_to(tmp_path / ".git", target_is_directory=True)
        runner = FakeRunner(_RG_OK)
        service = make_service(tmp_path, runner)

        with pytest.raises(SearchValidationError, match="not searchable: meta"):
            await service.execute_search(AstSearchRequest(pattern="f($A)", paths=["meta"]))
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_plain_directories_pass(self, tmp_path, make_service):
        (tmp_path / "src").mkdir()
        runner = _rg_runner(rg_output())
        service = make_service(tmp_path, runner)

        response = await service.execute_search(TextSearchRequest(query="x", paths=["src"]))
        assert response.matches == []
        assert runner.calls[-1][1][-1] == "src"
