from __future__ import annotations

import pytest

from codesearch.contracts.search_v1 import SearchEngine, TextSearchRequest
from codesearch.orchestrators.search.backends import GitGrepAdapter, GrepAdapter
from codesearch.orchestrators.search.backends.grep import (
    parse_line_number,
    split_colon_fields,
)
from codesearch.orchestrators.search.constants import (
    WARNING_GIT_GREP_FALLBACK,
    WARNING_GREP_FALLBACK,
)
from codesearch.orchestrators.search.validate import validate_text_search_request

from conftest import FakeRunner, runner_result


def _request(**overrides):
    fields = {"query": "needle"}
    fields.update(overrides)
    return validate_text_search_request(TextSearchRequest(**fields))


class TestGrep:
    def test_args_literal(self):
        args = GrepAdapter("grep").build_args(
            _request(include_globs=["*.py"], exclude_globs=["*_test.py"], paths=["src"])
        )
        assert args[:5] == ["-r", "-H", "--line-number", "-I", "--binary-files=without-match"]
        assert "-F" in args and "-E" not in args
        assert "-i" in args
        assert args[args.index("-m") + 1] == "50"
        assert args[args.index("--include") + 1] == "*.py"
        assert args[args.index("--exclude") + 1] == "*_test.py"
        assert args[-3:] == ["-e", "needle", "src"]

    def test_args_regex_case_sensitive(self):
        args = GrepAdapter("grep").build_args(
            _request(mode="regex", case_sensitive=True, max_matches_per_file=3)
        )
        assert "-E" in args and "-F" not in args
        assert "-i" not in args
        assert args[args.index("-m") + 1] == "3"

    def test_parse_path_line_content(self):
        stdout = "./src/a.py:12:    x = needle:value\nsrc/b.py:1:needle\n\ngarbage line\nsrc/c.py:zero:x\n"
        parsed = GrepAdapter("grep").parse(stdout, max_results=10)

        assert [(m.file, m.line, m.column) for m in parsed.matches] == [
            ("./src/a.py", 12, 1),
            ("src/b.py", 1, 1),
        ]
        assert parsed.matches[0].snippet == "    x = needle:value"
        assert parsed.files_matched == 2
        assert parsed.files_scanned is None

    def test_parse_caps_results(self):
        stdout = "\n".join(f"a.py:{i}:needle" for i in range(1, 6))
        parsed = GrepAdapter("grep").parse(stdout, max_results=4)
        assert len(parsed.matches) == 4
        assert parsed.capped is True

    @pytest.mark.asyncio
    async def test_execute_always_warns_fallback(self, tmp_path):
        runner = FakeRunner({("grep", "-r"): runner_result("a.py:1:needle\n")})
        response = await GrepAdapter("grep").execute(_request(), runner, tmp_path)

        assert response.engine == SearchEngine.GREP
        assert response.warnings == [WARNING_GREP_FALLBACK]
        assert response.stats.matches_returned == 1

    @pytest.mark.asyncio
    async def test_no_match_exit_code_is_not_an_error(self, tmp_path):
        runner = FakeRunner({("grep", "-r"): runner_result(exit_code=1, stderr="noise")})
        response = await GrepAdapter("grep").execute(_request(), runner, tmp_path)
        assert response.matches == []
        assert "noise" not in response.warnings

    @pytest.mark.asyncio
    async def test_error_exit_surfaces_stderr(self, tmp_path):
        runner = FakeRunner(
            {("grep", "-r"): runner_result(exit_code=2, stderr="grep: bad regex")}
        )
        response = await GrepAdapter("grep").execute(_request(), runner, tmp_path)
        assert "grep: bad regex" in response.warnings


class TestGitGrep:
    def test_args_with_pathspecs(self):
        args = GitGrepAdapter("git").build_args(
            _request(include_globs=["*.ts"], exclude_globs=["*.spec.ts"], paths=["src"])
        )
        assert args[:4] == ["grep", "--line-number", "--column", "-I"]
        assert "-F" in args and "-i" in args
        assert args[args.index("-e") + 1] == "needle"
        dash = args.index("--")
        assert args[dash + 1 :] == ["src", ":(glob)*.ts", ":(exclude,glob)*.spec.ts"]

    def test_default_path_is_kept_alongside_include_globs(self):
        args = GitGrepAdapter("git").build_args(_request(include_globs=["*.ts"]))

        dash = args.index("--")
        assert args[dash + 1 :] == [".", ":(glob)*.ts"]

    def test_parse_reads_column(self):
        stdout = "src/a.ts:4:11:const x = needle;\nbroken:line\n"
        parsed = GitGrepAdapter("git").parse(stdout, max_results=10)

        assert len(parsed.matches) == 1
        match = parsed.matches[0]
        assert (match.file, match.line, match.column) == ("src/a.ts", 4, 11)
        assert match.snippet == "const x = needle;"

    @pytest.mark.asyncio
    async def test_execute_warns_fallback(self, tmp_path):
        runner = FakeRunner({("git", "grep"): runner_result("a.ts:1:1:needle\n")})
        response = await GitGrepAdapter("git").execute(_request(), runner, tmp_path)
        assert response.engine == SearchEngine.GIT_GREP
        assert response.warnings == [WARNING_GIT_GREP_FALLBACK]


def test_split_colon_fields():
    assert split_colon_fields("a:1:b:c", 2) == ["a", "1", "b:c"]
    assert split_colon_fields("a:1", 2) is None
    assert split_colon_fields(":1:x", 2) is None


@pytest.mark.parametrize("raw,expected", [("7", 7), (" 12 ", 12), ("0", None), ("x", None), ("-3", None)])
def test_parse_line_number(raw, expected):
    assert parse_line_number(raw) == expected
