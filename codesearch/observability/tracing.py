"""LangSmith tracing for search entry points (enabled with LANGSMITH_TRACING=true).

When tracing is off, `traceable` returns the function untouched and nothing
from langsmith is imported.
"""

from __future__ import annotations

import atexit
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel

RunType = Literal["tool", "chain", "llm", "retriever", "embedding", "prompt", "parser"]


def tracing_enabled() -> bool:
    return os.getenv("LANGSMITH_TRACING", "").strip().lower() == "true"


def _to_traceable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, Path):
        return str(value)
    return value


def wire_inputs(inputs: dict[str, Any]) -> dict[str, Any]:
    """Span inputs in wire form; the bound service instance is not recorded."""
    return {k: _to_traceable(v) for k, v in inputs.items() if k != "self"}


def wire_outputs(output: Any) -> dict[str, Any]:
    value = _to_traceable(output)
    return value if isinstance(value, dict) else {"output": value}


def traceable(
    name: str, run_type: RunType = "chain"
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    if not tracing_enabled():
        return lambda fn: fn

    from langsmith import traceable as ls_traceable

    return ls_traceable(
        name=name,
        run_type=run_type,
        project_name=os.getenv("LANGSMITH_PROJECT", "codesearch"),
        process_inputs=wire_inputs,
        process_outputs=wire_outputs,
    )


def flush() -> None:
    if not tracing_enabled():
        return
    from langsmith.run_trees import get_cached_client

    get_cached_client().flush()


if tracing_enabled():
    atexit.register(flush)
