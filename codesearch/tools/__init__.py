from codesearch.tools.base import Tool, ToolParam, ToolRegistry, ToolResult
from codesearch.tools.search_code import SearchCodeAstTool, SearchCodeTool

__all__ = [
    "Tool",
    "ToolParam",
    "ToolRegistry",
    "ToolResult",
    "SearchCodeTool",
    "SearchCodeAstTool",
]
