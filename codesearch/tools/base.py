"""Agent tool surface: Tool base, ToolResult, and a name-keyed ToolRegistry."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolParam:
    """One tool argument as advertised to the model."""

    description: str
    type: str = "string"
    required: bool = False
    enum: tuple[str, ...] = ()


@dataclass
class ToolResult:
    success: bool
    output: str
    error: str = ""
    data: dict[str, Any] = field(default_factory=dict)  # wire payload, when there is one

    @classmethod
    def ok(cls, output: str, data: dict[str, Any] | None = None) -> "ToolResult":
        return cls(success=True, output=output, data=data or {})

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, output="", error=error)

    def to_model_text(self) -> str:
        return self.output if self.success else f"Error: {self.error}"


class Tool(ABC):
    name: str
    description: str

    @property
    @abstractmethod
    def parameters(self) -> dict[str, ToolParam]:
        """Arguments keyed by name."""

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        pass

    def function_schema(self) -> dict[str, Any]:
        """JSON-schema function declaration for tool-calling models."""
        properties: dict[str, Any] = {}
        for key, param in self.parameters.items():
            prop: dict[str, Any] = {"type": param.type, "description": param.description}
            if param.enum:
                prop["enum"] = list(param.enum)
            if param.type == "array":
                prop["items"] = {"type": "string"}
            properties[key] = prop
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": [k for k, p in self.parameters.items() if p.required],
            },
        }

    def prompt_line(self) -> str:
        args = ", ".join(
            f"{k}{'' if p.required else '?'}" for k, p in self.parameters.items()
        )
        return f"- {self.name}({args}): {self.description}"


class ToolRegistry:
    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if not isinstance(tool, Tool):
            raise TypeError(f"Expected Tool instance, got {type(tool)}")
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return sorted(self._tools)

    def function_schemas(self) -> list[dict[str, Any]]:
        return [self._tools[n].function_schema() for n in self.names()]

    def prompt(self) -> str:
        if not self._tools:
            return "No code search tools registered."
        return "\n".join(self._tools[n].prompt_line() for n in self.names())

    async def execute(self, name: str, **kwargs: Any) -> ToolResult:
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult.fail(f"Unknown tool: {name}")
        return await tool.execute(**kwargs)
