"""Engine selection: checks which search tools are installed and picks one.

Availability results are memoized per (cwd, command) for the life of the owning
AvailabilityCache. There is no expiry: a binary installed or removed while
the process runs is not noticed until a fresh cache is used.
"""

import logging
from pathlib import Path

from codesearch.contracts.search_v1 import SearchEngine
from codesearch.core.config import config
from codesearch.orchestrators.search.constants import GIT_REPO_CHECK_MAX_OUTPUT_BYTES
from codesearch.orchestrators.search.interface import CommandRunner

logger = logging.getLogger(__name__)


class AvailabilityCache:
    """Append-only map of (cwd, command) -> available.

    Values are idempotent booleans, so concurrent checks racing to write the
    same key need no lock.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], bool] = {}

    def get(self, cwd: str, command: str) -> bool | None:
        return self._entries.get((cwd, command))

    def set(self, cwd: str, command: str, available: bool) -> None:
        self._entries[(cwd, command)] = available

    def __len__(self) -> int:
        return len(self._entries)


class EngineSelector:
    """Chooses the best available text engine; answers availability for ast-grep."""

    def __init__(
        self,
        runner: CommandRunner,
        cache: AvailabilityCache | None = None,
        *,
        rg_command: str | None = None,
        git_command: str | None = None,
        check_timeout_ms: int | None = None,
        check_max_output_bytes: int | None = None,
    ) -> None:
        self._runner = runner
        self._cache = cache if cache is not None else AvailabilityCache()
        self._rg = rg_command or config.rg_command
        self._git = git_command or config.git_command
        self._check_timeout_ms = check_timeout_ms or config.check_timeout_ms
        self._check_max_output_bytes = (
            check_max_output_bytes or config.check_max_output_bytes
        )

    @property
    def cache(self) -> AvailabilityCache:
        return self._cache

    async def is_command_available(self, command: str, cwd: Path | str) -> bool:
        key = str(cwd)
        cached = self._cache.get(key, command)
        if cached is not None:
            return cached

        result = await self._runner.run(
            command,
            ["--version"],
            cwd=cwd,
            timeout_ms=self._check_timeout_ms,
            max_output_bytes=self._check_max_output_bytes,
        )
        available = result.exit_code == 0
        self._cache.set(key, command, available)
        logger.info(
            "Engine check: %s %s (cwd=%s)",
            command,
            "available" if available else "unavailable",
            key,
        )
        return available

    async def is_inside_git_repo(self, cwd: Path | str) -> bool:
        result = await self._runner.run(
            self._git,
            ["rev-parse", "--is-inside-work-tree"],
            cwd=cwd,
            timeout_ms=self._check_timeout_ms,
            max_output_bytes=GIT_REPO_CHECK_MAX_OUTPUT_BYTES,
        )
        return result.exit_code == 0 and result.stdout.strip() == "true"

    async def select_text_search_engine(self, cwd: Path | str) -> SearchEngine:
        if await self.is_command_available(self._rg, cwd):
            return SearchEngine.RIPGREP

        if await self.is_command_available(self._git, cwd) and await self.is_inside_git_repo(cwd):
            return SearchEngine.GIT_GREP

        # grep is assumed present; text search never fails for lack of tooling.
        return SearchEngine.GREP
