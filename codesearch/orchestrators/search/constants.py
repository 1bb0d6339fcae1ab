"""Shared typed constants for code search: bounds, denylist, fixed warnings."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Bounds:
    """Clamp range and default for one numeric request field."""

    default: int
    minimum: int
    maximum: int


MAX_RESULTS = Bounds(default=200, minimum=1, maximum=1000)
MAX_MATCHES_PER_FILE = Bounds(default=50, minimum=1, maximum=200)
CONTEXT_LINES = Bounds(default=0, minimum=0, maximum=3)
TEXT_TIMEOUT_MS = Bounds(default=8000, minimum=500, maximum=15000)
AST_TIMEOUT_MS = Bounds(default=10000, minimum=500, maximum=15000)

DENYLIST_PREFIXES: tuple[str, ...] = (
    ".git/",
    ".next/",
    "node_modules/",
    "dist/",
    "coverage/",
    ".turbo/",
    ".cache/",
)
DENYLIST_EXACT: frozenset[str] = frozenset(
    {".env", ".env.local", ".env.production", ".env.development"}
)
DENYLIST_SUFFIXES: tuple[str, ...] = (".pem", ".key")
ENV_FILE_PREFIX = ".env."

# Runner exit codes that are not real process exit codes.
EXIT_TIMED_OUT = 124
EXIT_SPAWN_FAILED = 127
EXIT_SIGNAL_BASE = 128

# grep-family tools exit 1 for "no matches"; that is not an error.
NON_ERROR_EXIT_CODES = frozenset({0, 1})

GIT_REPO_CHECK_MAX_OUTPUT_BYTES = 4 * 1024

WARNING_TIMED_OUT = "Search timed out"
WARNING_OUTPUT_TRUNCATED = "Search output was truncated"
WARNING_AST_TIMED_OUT = "AST search timed out"
WARNING_AST_OUTPUT_TRUNCATED = "AST search output was truncated"
WARNING_AST_UNAVAILABLE = "ast-grep is not available in this environment"
WARNING_GREP_FALLBACK = (
    "Using fallback engine grep; results may be less precise than ripgrep."
)
WARNING_GIT_GREP_FALLBACK = (
    "Using fallback engine git-grep; output and regex behavior may differ from ripgrep."
)
WARNING_RESULTS_FILTERED = "Some matches were filtered due to protected paths."
