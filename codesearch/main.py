"""Entry point: search | engines | tools."""

import asyncio
import json
import sys


async def _engines() -> int:
    from codesearch.core.config import config
    from codesearch.orchestrators.search import CodeSearchService

    service = CodeSearchService()
    selector = service.selector
    cwd = service.workspace_root
    commands = {
        "ripgrep": config.rg_command,
        "git": config.git_command,
        "grep": config.grep_command,
        "ast-grep": config.ast_grep_command,
    }
    available = {
        name: await selector.is_command_available(command, cwd)
        for name, command in commands.items()
    }
    report = {
        "workspaceRoot": str(cwd),
        "configErrors": config.validate(),
        "available": available,
        "insideGitRepo": await selector.is_inside_git_repo(cwd),
        "textEngine": str(await selector.select_text_search_engine(cwd)),
    }
    print(json.dumps(report, indent=2))
    return 0


def main():
    mode = "search"
    if len(sys.argv) > 1:
        mode = sys.argv[1].lower()

    if mode == "search":
        from codesearch.interfaces.oneshot import main as run_oneshot_main

        raw_parts = sys.argv[2:]
        if raw_parts:
            raw = " ".join(raw_parts).strip()
        else:
            raw = sys.stdin.read().strip()
        sys.exit(run_oneshot_main(raw))

    elif mode == "engines":
        sys.exit(asyncio.run(_engines()))

    elif mode == "tools":
        from codesearch.orchestrators.search import CodeSearchService
        from codesearch.tools import SearchCodeAstTool, SearchCodeTool, ToolRegistry

        service = CodeSearchService()
        registry = ToolRegistry([SearchCodeTool(service), SearchCodeAstTool(service)])
        print(json.dumps(registry.function_schemas(), indent=2))

    else:
        print(f"Unknown mode: {mode}")
        print("Usage: python -m codesearch.main [search <json>|engines|tools]")
        sys.exit(1)


if __name__ == "__main__":
    main()
