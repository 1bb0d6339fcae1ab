"""Code search service: sandboxed, multi-engine, one canonical response.

Pipeline:
  1. Resolve the working directory inside the fixed workspace root
  2. Validate and clamp the request, check every input path and its symlink
     target against the workspace root and the denylist
  3. Dispatch: ast -> ast-grep (no fallback); text -> selected engine
  4. Run the engine under timeout and output caps, parse its output
  5. Re-filter returned matches against the denylist
"""

import posixpath
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from codesearch.contracts.search_v1 import (
    AstSearchRequest,
    NormalizedAstSearchRequest,
    NormalizedTextSearchRequest,
    ResponseMode,
    SearchEngine,
    SearchMatch,
    SearchResponse,
    SearchStats,
    TextSearchRequest,
)
from codesearch.core.config import config
from codesearch.core.logger import logger
from codesearch.observability import traceable
from codesearch.orchestrators.search.backends import (
    AstGrepAdapter,
    GitGrepAdapter,
    GrepAdapter,
    RipgrepAdapter,
)
from codesearch.orchestrators.search.constants import (
    WARNING_AST_UNAVAILABLE,
    WARNING_RESULTS_FILTERED,
)
from codesearch.orchestrators.search.interface import CommandRunner, SearchEngineAdapter
from codesearch.orchestrators.search.runner import ProcessRunner
from codesearch.orchestrators.search.selector import EngineSelector
from codesearch.orchestrators.search.validate import (
    SearchValidationError,
    is_denied_path,
    parse_search_request,
    to_workspace_relative_path,
    validate_search_request,
)


def _default_text_adapters() -> dict[SearchEngine, SearchEngineAdapter]:
    return {
        SearchEngine.RIPGREP: RipgrepAdapter(config.rg_command),
        SearchEngine.GIT_GREP: GitGrepAdapter(config.git_command),
        SearchEngine.GREP: GrepAdapter(config.grep_command),
    }


def _filter_denied(matches: list[SearchMatch], cwd_prefix: str = ".") -> list[SearchMatch]:
    """Drop matches in protected paths; normalize the rest to relative form.

    Match files are relative to the search cwd; they are checked both as
    reported and as seen from the workspace root.
    """
    kept: list[SearchMatch] = []
    for m in matches:
        try:
            rel = to_workspace_relative_path(m.file)
            from_root = to_workspace_relative_path(posixpath.join(cwd_prefix, rel))
        except SearchValidationError:
            # An engine reported a path outside the workspace: never returned.
            continue
        if is_denied_path(rel) or is_denied_path(from_root):
            continue
        kept.append(m if rel == m.file else m.model_copy(update={"file": rel}))
    return kept


class CodeSearchService:
    """Validate -> select/dispatch -> execute -> re-filter -> assemble."""

    def __init__(
        self,
        workspace_root: Path | str | None = None,
        runner: CommandRunner | None = None,
        selector: EngineSelector | None = None,
        text_adapters: dict[SearchEngine, SearchEngineAdapter] | None = None,
        ast_adapter: AstGrepAdapter | None = None,
    ):
        self._root = Path(workspace_root or config.workspace_root).resolve()
        self._runner = runner or ProcessRunner()
        self._selector = selector or EngineSelector(self._runner)
        self._text_adapters = text_adapters or _default_text_adapters()
        self._ast_adapter = ast_adapter or AstGrepAdapter(config.ast_grep_command)

    @property
    def workspace_root(self) -> Path:
        return self._root

    @property
    def selector(self) -> EngineSelector:
        return self._selector

    def resolve_cwd(self, working_directory: str | None = None) -> Path:
        if not working_directory:
            return self._root
        try:
            relative = to_workspace_relative_path(working_directory)
        except SearchValidationError as e:
            raise SearchValidationError(
                "Invalid workingDirectory: must stay within project root"
            ) from e
        resolved = (self._root / relative).resolve()
        if not self._contains(resolved):
            raise SearchValidationError(
                "Invalid workingDirectory: must stay within project root"
            )
        if is_denied_path(relative):
            raise SearchValidationError(f"Path is not searchable: {relative}")
        return resolved

    def _contains(self, resolved: Path) -> bool:
        return resolved == self._root or self._root in resolved.parents

    def check_resolved_paths(self, paths: tuple[str, ...], cwd: Path) -> None:
        """Follow symlinks in search paths; the real targets must be searchable too."""
        for p in paths:
            target = (cwd / p).resolve()
            if not self._contains(target):
                raise SearchValidationError(f"Path escapes workspace: {p}")
            if is_denied_path(target.relative_to(self._root).as_posix()):
                raise SearchValidationError(f"Path is not searchable: {p}")

    def _cwd_prefix(self, cwd: Path) -> str:
        return cwd.relative_to(self._root).as_posix()

    @traceable(name="code_search", run_type="retriever")
    async def execute_search(
        self,
        request: TextSearchRequest | AstSearchRequest | Mapping[str, Any],
        working_directory: str | None = None,
    ) -> SearchResponse:
        cwd = self.resolve_cwd(working_directory)
        if isinstance(request, Mapping):
            request = parse_search_request(request)
        normalized = validate_search_request(request)
        self.check_resolved_paths(normalized.paths, cwd)

        if isinstance(normalized, NormalizedAstSearchRequest):
            logger.search_request("ast", normalized.pattern, str(cwd))
            response = await self.run_ast_search(normalized, cwd)
        else:
            logger.search_request("text", normalized.query, str(cwd))
            response = await self.run_text_search(normalized, cwd)

        filtered = _filter_denied(response.matches, self._cwd_prefix(cwd))
        removed = len(response.matches) - len(filtered)
        warnings = list(response.warnings)
        if removed and WARNING_RESULTS_FILTERED not in warnings:
            warnings.append(WARNING_RESULTS_FILTERED)

        result = response.model_copy(
            update={
                "matches": filtered,
                "warnings": warnings,
                "stats": response.stats.model_copy(
                    update={"matches_returned": len(filtered)}
                ),
            }
        )
        logger.search_result(
            result.engine,
            len(filtered),
            truncated=result.truncated,
            warnings=warnings,
            filtered=removed,
        )
        return result

    async def run_text_search(
        self, request: NormalizedTextSearchRequest, cwd: Path
    ) -> SearchResponse:
        engine = await self._selector.select_text_search_engine(cwd)
        logger.engine_selected(engine, str(cwd))
        adapter = self._text_adapters[engine]
        return await adapter.execute(request, self._runner, cwd)

    async def run_ast_search(
        self, request: NormalizedAstSearchRequest, cwd: Path
    ) -> SearchResponse:
        if not await self._selector.is_command_available(self._ast_adapter.binary, cwd):
            logger.warning(WARNING_AST_UNAVAILABLE)
            return SearchResponse(
                engine=SearchEngine.AST_GREP,
                query=request.pattern,
                mode=ResponseMode.AST,
                truncated=False,
                stats=SearchStats(duration_ms=0, files_matched=0, matches_returned=0),
                warnings=[WARNING_AST_UNAVAILABLE],
                matches=[],
            )
        logger.engine_selected(SearchEngine.AST_GREP, str(cwd))
        return await self._ast_adapter.execute(request, self._runner, cwd)
