"""One-shot interface: run a single search request, print the response, exit."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from codesearch.core.logger import logger
from codesearch.orchestrators.search import CodeSearchService, SearchValidationError


def _error(status: int, message: str) -> tuple[int, dict[str, Any]]:
    return status, {"error": message}


async def handle_search_payload(
    raw: str, service: CodeSearchService | None = None
) -> tuple[int, dict[str, Any]]:
    """Map a raw JSON body to (http-like status, response body).

    Body is a search request plus an optional ``workingDirectory`` hint.
    """
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return _error(400, "Invalid JSON body")
    if not isinstance(payload, dict):
        return _error(400, "Invalid JSON body")

    working_directory = payload.pop("workingDirectory", None)
    if working_directory is not None and not isinstance(working_directory, str):
        return _error(400, "Invalid workingDirectory: must be a string")

    service = service or CodeSearchService()
    try:
        response = await service.execute_search(payload, working_directory=working_directory)
    except SearchValidationError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Search failed")
        return _error(500, f"Search failed: {e!s}")
    return 200, response.to_wire()


async def run_oneshot(raw: str, service: CodeSearchService | None = None) -> int:
    text = (raw or "").strip()
    if not text:
        print("Error: request body must not be empty")
        return 2

    status, body = await handle_search_payload(text, service)
    print(json.dumps(body, indent=2))
    if status == 200:
        return 0
    return 2 if status == 400 else 1


def main(raw: str) -> int:
    return asyncio.run(run_oneshot(raw))
