"""Code search tools: text search and structural (ast-grep) search for the agent."""

from abc import abstractmethod
from typing import Any

from pydantic import ValidationError

from codesearch.contracts.search_v1 import AstSearchRequest, SearchResponse, TextSearchRequest
from codesearch.core.logger import logger
from codesearch.orchestrators.search import CodeSearchService, SearchValidationError
from codesearch.orchestrators.search.validate import invalid_request
from codesearch.tools.base import Tool, ToolParam, ToolResult

_SNIPPET_MAX_CHARS = 200


def _str_list(value: object) -> list[str] | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return None


def format_response(response: SearchResponse) -> str:
    """Compact, LLM-friendly listing of a search response."""
    stats = response.stats
    header = (
        f"Search: {stats.matches_returned} matches in {stats.files_matched} files "
        f"({response.engine}, {response.mode})"
    )
    if stats.duration_ms:
        header += f" [{stats.duration_ms}ms]"
    if response.truncated:
        header += " (truncated)"

    parts = [header]
    for warning in response.warnings:
        parts.append(f"⚠ {warning}")

    if not response.matches:
        parts.append("No matches found.")
        return "\n".join(parts)

    parts.append("")
    for m in response.matches:
        snippet = m.snippet.replace("\n", " ").strip()[:_SNIPPET_MAX_CHARS]
        parts.append(f"{m.file}:{m.line}:{m.column}: {snippet}")
    return "\n".join(parts)


class _CodeSearchTool(Tool):
    def __init__(self, service: CodeSearchService):
        self._service = service

    @abstractmethod
    def _build_request(self, kwargs: dict[str, Any]) -> TextSearchRequest | AstSearchRequest:
        """Typed request from the model's tool arguments."""

    def _typed_request(self, kwargs: dict[str, Any]) -> TextSearchRequest | AstSearchRequest:
        try:
            return self._build_request(kwargs)
        except ValidationError as e:
            raise invalid_request(e) from e

    async def execute(self, **kwargs: object) -> ToolResult:
        working_directory = kwargs.get("working_directory")
        logger.tool_execute(self.name, {k: v for k, v in kwargs.items() if v is not None})
        try:
            request = self._typed_request(dict(kwargs))
            response = await self._service.execute_search(
                request,
                working_directory=str(working_directory) if working_directory else None,
            )
        except SearchValidationError as e:
            logger.tool_result(self.name, 0, False, error_reason=str(e))
            return ToolResult.fail(str(e))
        except Exception as e:
            logger.error("Code search failed: %s", e, exc_info=True)
            fail_msg = f"Code search failed: {e!s}"
            logger.tool_result(self.name, 0, False, error_reason=fail_msg)
            return ToolResult.fail(fail_msg)

        out = format_response(response)
        logger.tool_result(self.name, len(out), True)
        return ToolResult.ok(out, response.to_wire())


_PATHS = ToolParam("Workspace-relative paths to search (default the whole workspace).", "array")
_MAX_RESULTS = ToolParam("Max matches to return (default 200, max 1000).", "integer")
_WORKING_DIRECTORY = ToolParam("Workspace-relative directory to search from.")


class SearchCodeTool(_CodeSearchTool):
    """Text search over the workspace (ripgrep, falling back to git grep or grep)."""

    name = "search_code"
    description = (
        "Search the project's files for a literal string or regex. "
        "Returns file:line:column matches."
    )

    @property
    def parameters(self) -> dict[str, ToolParam]:
        return {
            "query": ToolParam("Text or regex to find.", required=True),
            "mode": ToolParam("How to read the query.", enum=("literal", "regex")),
            "case_sensitive": ToolParam("Match case exactly (default false).", "boolean"),
            "paths": _PATHS,
            "include_globs": ToolParam("Only search files matching these globs.", "array"),
            "exclude_globs": ToolParam("Skip files matching these globs.", "array"),
            "max_results": _MAX_RESULTS,
            "working_directory": _WORKING_DIRECTORY,
        }

    def _build_request(self, kwargs: dict[str, Any]) -> TextSearchRequest:
        return TextSearchRequest(
            query=str(kwargs.get("query") or ""),
            mode=kwargs.get("mode"),
            case_sensitive=kwargs.get("case_sensitive") in (True, "true", "True"),
            paths=_str_list(kwargs.get("paths")),
            include_globs=_str_list(kwargs.get("include_globs")),
            exclude_globs=_str_list(kwargs.get("exclude_globs")),
            max_results=kwargs.get("max_results"),
        )


class SearchCodeAstTool(_CodeSearchTool):
    """Structural search with ast-grep patterns such as `console.log($X)`."""

    name = "search_code_ast"
    description = (
        "Search code structurally with an ast-grep pattern, e.g. 'console.log($X)'. "
        "Reports a warning and no matches when ast-grep is not installed."
    )

    @property
    def parameters(self) -> dict[str, ToolParam]:
        return {
            "pattern": ToolParam("ast-grep pattern to match.", required=True),
            "language": ToolParam("Language hint, e.g. 'ts' or 'python'."),
            "paths": _PATHS,
            "max_results": _MAX_RESULTS,
            "working_directory": _WORKING_DIRECTORY,
        }

    def _build_request(self, kwargs: dict[str, Any]) -> AstSearchRequest:
        return AstSearchRequest(
            pattern=str(kwargs.get("pattern") or ""),
            language=kwargs.get("language"),
            paths=_str_list(kwargs.get("paths")),
            max_results=kwargs.get("max_results"),
        )
