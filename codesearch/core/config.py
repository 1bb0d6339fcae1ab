"""Configuration from environment variables (.env)."""

import os
from pathlib import Path
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    project_root: Path
    workspace_root: Path
    logs_dir: Path
    log_to_file: bool
    max_output_bytes: int  # per stream (stdout and stderr are capped separately)
    kill_grace_ms: int
    check_timeout_ms: int
    check_max_output_bytes: int
    rg_command: str
    git_command: str
    grep_command: str
    ast_grep_command: str

    @classmethod
    def load(cls) -> "Config":
        project_root = Path(__file__).parent.parent.parent
        workspace_root = os.getenv("CODESEARCH_WORKSPACE_ROOT", "").strip()
        return cls(
            project_root=project_root,
            workspace_root=Path(workspace_root or os.getcwd()).resolve(),
            logs_dir=Path(os.getenv("CODESEARCH_LOGS_DIR", str(project_root / "logs"))),
            log_to_file=_env_bool("CODESEARCH_LOG_FILE", "true"),
            max_output_bytes=int(os.getenv("CODESEARCH_MAX_OUTPUT_BYTES", str(512 * 1024))),
            kill_grace_ms=int(os.getenv("CODESEARCH_KILL_GRACE_MS", "1500")),
            check_timeout_ms=int(os.getenv("CODESEARCH_CHECK_TIMEOUT_MS", "1000")),
            check_max_output_bytes=int(os.getenv("CODESEARCH_CHECK_MAX_OUTPUT_BYTES", str(8 * 1024))),
            rg_command=os.getenv("CODESEARCH_RG_COMMAND", "rg"),
            git_command=os.getenv("CODESEARCH_GIT_COMMAND", "git"),
            grep_command=os.getenv("CODESEARCH_GREP_COMMAND", "grep"),
            ast_grep_command=os.getenv("CODESEARCH_AST_GREP_COMMAND", "ast-grep"),
        )

    def validate(self) -> list[str]:
        errors = []
        if not self.workspace_root.is_dir():
            errors.append(f"Workspace root not found: {self.workspace_root}")
        if self.max_output_bytes <= 0:
            errors.append("CODESEARCH_MAX_OUTPUT_BYTES must be positive")
        if self.kill_grace_ms < 0:
            errors.append("CODESEARCH_KILL_GRACE_MS must not be negative")
        if self.check_timeout_ms <= 0:
            errors.append("CODESEARCH_CHECK_TIMEOUT_MS must be positive")
        return errors


config = Config.load()
