"""Structured logging for code search.

Every search writes a short, human-readable trail to the console and, when
enabled, one JSON object per event to ``<logs_dir>/search.log``.
"""

import contextvars
import json
import logging
import os
import sys
import threading
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from codesearch.core.config import config

_STD_LOG_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})
_MAX_EVENT_TEXT = 500

# Monotonic start of the search / tool call running in this context.
_search_started: contextvars.ContextVar[float | None] = contextvars.ContextVar(
    "search_started", default=None
)
_tool_started: contextvars.ContextVar[float | None] = contextvars.ContextVar(
    "tool_started", default=None
)

_ANSI = {
    "engine": "\033[38;5;81m",
    "ok": "\033[38;5;78m",
    "fail": "\033[38;5;203m",
    "timing": "\033[38;5;221m",
    "warn": "\033[38;5;214m",
}


def _paint(role: str, text: str) -> str:
    if os.environ.get("NO_COLOR") or not getattr(sys.stderr, "isatty", lambda: False)():
        return text
    return f"{_ANSI.get(role, '')}{text}\033[0m"


def _elapsed(started: float | None) -> float:
    return time.monotonic() - started if started is not None else 0.0


def _human_ms(ms: float) -> str:
    if ms < 1000:
        return f"{ms:.0f}ms"
    if ms < 60_000:
        return f"{ms / 1000:.1f}s"
    minutes, rest = divmod(ms / 1000, 60)
    return f"{minutes:.0f}m {rest:.0f}s"


def _one_line(text: str | None, limit: int = 80) -> str:
    flat = " ".join((text or "").split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


def _std_kwargs(kwargs: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k in _STD_LOG_KWARGS}


@dataclass
class LogEvent:
    event_type: str
    data: dict[str, Any]
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)


class SearchLogger:
    def __init__(self):
        self.log_file = config.logs_dir / "search.log"
        self.console = logging.getLogger("codesearch")
        self.console.setLevel(logging.DEBUG)
        if not self.console.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(logging.INFO)
            handler.setFormatter(
                logging.Formatter("%(asctime)s │ %(message)s", datefmt="%H:%M:%S")
            )
            self.console.addHandler(handler)
        self._lock = threading.Lock()
        self._handle = None

    def log_event(self, event: LogEvent) -> None:
        if not config.log_to_file:
            return
        with self._lock:
            if self._handle is None:
                config.logs_dir.mkdir(parents=True, exist_ok=True)
                self._handle = open(self.log_file, "a", encoding="utf-8")
            self._handle.write(event.to_json() + "\n")
            self._handle.flush()

    def _emit(self, event_type: str, **data: Any) -> None:
        self.log_event(LogEvent(event_type=event_type, data=data))

    def _indent(self) -> str:
        return "  │ " if _search_started.get() is not None else ""

    # -- search lifecycle ---------------------------------------------------

    def search_request(self, kind: str, query: str, cwd: str) -> None:
        _search_started.set(time.monotonic())
        self._emit("SEARCH_REQUEST", type=kind, query=query[:_MAX_EVENT_TEXT], cwd=cwd)
        self.console.info(f"Search [{kind}] {_one_line(query)!r} in {cwd}")

    def engine_selected(self, engine: str, cwd: str) -> None:
        self._emit("ENGINE_SELECTED", engine=engine, cwd=cwd)
        self.console.debug(f"{self._indent()}engine {_paint('engine', str(engine))}")

    def process_spawn(self, binary: str, args: list[str], cwd: str) -> None:
        self._emit("PROCESS_SPAWN", binary=binary, args=args, cwd=cwd)
        self.console.debug(
            f"{self._indent()}$ {_paint('engine', binary)} {_one_line(' '.join(args), 96)}"
        )

    def process_result(
        self,
        binary: str,
        exit_code: int,
        duration_ms: int,
        *,
        timed_out: bool = False,
        truncated: bool = False,
        stdout_bytes: int = 0,
    ) -> None:
        self._emit(
            "PROCESS_RESULT",
            binary=binary,
            exit_code=exit_code,
            duration_ms=duration_ms,
            timed_out=timed_out,
            truncated=truncated,
            stdout_bytes=stdout_bytes,
        )
        flags = [name for name, on in (("timed out", timed_out), ("truncated", truncated)) if on]
        suffix = f"  {_paint('warn', '[' + ', '.join(flags) + ']')}" if flags else ""
        self.console.debug(
            f"{self._indent()}{binary} → exit {exit_code}, "
            f"{_paint('timing', _human_ms(duration_ms))}, {stdout_bytes} bytes{suffix}"
        )

    def search_result(
        self,
        engine: str,
        matches: int,
        *,
        truncated: bool,
        warnings: list[str],
        filtered: int = 0,
    ) -> None:
        elapsed_ms = _elapsed(_search_started.get()) * 1000
        _search_started.set(None)
        self._emit(
            "SEARCH_RESULT",
            engine=engine,
            matches=matches,
            truncated=truncated,
            warnings=warnings,
            filtered=filtered,
            duration_ms=round(elapsed_ms),
        )
        notes = []
        if truncated:
            notes.append("truncated")
        if filtered:
            notes.append(f"{filtered} filtered")
        if warnings:
            notes.append(f"{len(warnings)} warning(s)")
        tail = f"  ({', '.join(notes)})" if notes else ""
        self.console.info(
            f"  {_paint('ok', '✓')} {_paint('engine', str(engine))}  {matches} matches  "
            f"{_paint('timing', _human_ms(elapsed_ms))}{tail}"
        )

    # -- agent tools --------------------------------------------------------

    def tool_execute(self, tool_name: str, args: dict):
        _tool_started.set(time.monotonic())
        self._emit("TOOL_EXECUTE", tool=tool_name, args=args)
        shown = ", ".join(_one_line(f"{k}={v!r}", 60) for k, v in (args or {}).items())
        self.console.info(f"▶ {_paint('engine', tool_name)}({shown})")

    def tool_result(
        self,
        tool_name: str,
        result_length: int,
        success: bool,
        *,
        error_reason: str | None = None,
    ) -> None:
        elapsed_ms = _elapsed(_tool_started.get()) * 1000
        _tool_started.set(None)
        data: dict[str, Any] = {
            "tool": tool_name,
            "result_length": result_length,
            "success": success,
            "duration_ms": round(elapsed_ms),
        }
        if not success and error_reason:
            data["error_reason"] = error_reason[:_MAX_EVENT_TEXT]
        self._emit("TOOL_RESULT", **data)

        if success:
            status = _paint("ok", "ok")
        else:
            status = _paint("fail", "failed") + (
                f" {_one_line(error_reason)}" if error_reason else ""
            )
        self.console.info(
            f"◀ {_paint('engine', tool_name)}  {_paint('timing', _human_ms(elapsed_ms))}  "
            f"{result_length} chars  {status}"
        )

    # -- plain messages -----------------------------------------------------

    def error(self, message: str, *args, exception: Exception | None = None, **kwargs):
        self._emit(
            "ERROR",
            message=message[:_MAX_EVENT_TEXT],
            exception=str(exception) if exception else None,
        )
        log_kwargs = _std_kwargs(kwargs)
        if exception and "exc_info" not in log_kwargs:
            log_kwargs["exc_info"] = exception
        self.console.error(f"❌ {message}", *args, **log_kwargs)

    def exception(self, message: str, *args, **kwargs):
        self._emit("ERROR", message=message[:_MAX_EVENT_TEXT])
        self.console.exception(f"❌ {message}", *args, **_std_kwargs(kwargs))

    def warning(self, message: str, *args, **kwargs):
        self._emit("WARNING", message=message[:_MAX_EVENT_TEXT])
        self.console.warning(f"⚠️ {message}", *args, **_std_kwargs(kwargs))

    def info(self, message: str, *args, **kwargs):
        self.console.info(message, *args, **_std_kwargs(kwargs))

    def debug(self, message: str, *args, **kwargs):
        self.console.debug(message, *args, **_std_kwargs(kwargs))


logger = SearchLogger()
