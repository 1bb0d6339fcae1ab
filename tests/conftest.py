import os
from collections.abc import Sequence
from pathlib import Path

# Config is read at import time; keep test runs off the log file and tracing.
os.environ.setdefault("CODESEARCH_LOG_FILE", "false")
os.environ.setdefault("LANGSMITH_TRACING", "false")

import pytest  # noqa: E402

from codesearch.contracts.search_v1 import SearchEngine  # noqa: E402
from codesearch.orchestrators.search import CodeSearchService  # noqa: E402
from codesearch.orchestrators.search.backends import (  # noqa: E402
    AstGrepAdapter,
    GitGrepAdapter,
    GrepAdapter,
    RipgrepAdapter,
)
from codesearch.orchestrators.search.runner import RunnerResult  # noqa: E402
from codesearch.orchestrators.search.selector import (  # noqa: E402
    AvailabilityCache,
    EngineSelector,
)


def runner_result(
    stdout: str = "",
    *,
    exit_code: int = 0,
    stderr: str = "",
    timed_out: bool = False,
    truncated: bool = False,
    duration_ms: int = 5,
) -> RunnerResult:
    return RunnerResult(
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        duration_ms=duration_ms,
        timed_out=timed_out,
        truncated=truncated,
    )


class FakeRunner:
    """Scripted CommandRunner keyed by (binary, first arg). Unscripted calls fail to spawn."""

    def __init__(self, responses: dict[tuple[str, str], RunnerResult] | None = None):
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, list[str], str]] = []

    async def run(self, binary, args, *, cwd, timeout_ms, max_output_bytes=None):
        self.calls.append((binary, list(args), str(cwd)))
        key = (binary, args[0] if args else "")
        result = self.responses.get(key)
        if result is None:
            return runner_result(exit_code=127, stderr=f"Failed to start {binary}")
        return result

    def binaries_called(self) -> list[str]:
        return [binary for binary, _, _ in self.calls]


@pytest.fixture
def make_service():
    def _make(workspace_root: Path, runner: FakeRunner) -> CodeSearchService:
        selector = EngineSelector(
            runner, AvailabilityCache(), rg_command="rg", git_command="git"
        )
        return CodeSearchService(
            workspace_root=workspace_root,
            runner=runner,
            selector=selector,
            text_adapters={
                SearchEngine.RIPGREP: RipgrepAdapter("rg"),
                SearchEngine.GIT_GREP: GitGrepAdapter("git"),
                SearchEngine.GREP: GrepAdapter("grep"),
            },
            ast_adapter=AstGrepAdapter("ast-grep"),
        )

    return _make


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration/e2e tests that spawn real search binaries.",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "integration: requires real search binaries on PATH"
    )
    config.addinivalue_line("markers", "e2e: end-to-end runtime tests")
    config.addinivalue_line("markers", "property: property-based deterministic tests")


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: Sequence[pytest.Item],
) -> None:
    run_integration = config.getoption("--run-integration")
    skip_integration = pytest.mark.skip(
        reason="integration/e2e is opt-in; rerun with --run-integration"
    )

    for item in items:
        if "tests/e2e/" in item.nodeid:
            item.add_marker("integration")
            item.add_marker("e2e")
        if (
            item.get_closest_marker("integration") or item.get_closest_marker("e2e")
        ) and not run_integration:
            item.add_marker(skip_integration)
