# common/config/structlog_config.py
"""
structlog setup, done once per process by initialize_config().

Lines go to stderr, rendered by Rich for humans or as JSON for log
shippers (LOG_FORMAT=json). Anything bound with
structlog.contextvars.bind_contextvars, such as the request id, is merged
into every line.
"""
import os
import sys
import threading
from typing import Any, Optional
import structlog
from rich.traceback import install as install_rich_traceback

install_rich_traceback(show_locals=False, width=None, extra_lines=3)

# Frames from these packages are collapsed in console tracebacks
QUIET_TRACEBACK_PACKAGES = ["starlette", "uvicorn", "fastapi", "sqlalchemy", "anyio"]

_lock = threading.Lock()
# (pid, level) of the last configure_structlog() call; uvicorn --reload forks
_configured: Optional[tuple[int, int]] = None


def _renderer(json_logs: bool) -> list[Any]:
    if json_logs:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    console = structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(
            show_locals=False,
            width=None,
            suppress=QUIET_TRACEBACK_PACKAGES,
        ),
    )
    return [console]


def _processors(json_logs: bool) -> list[Any]:
    timestamp_format = "iso" if json_logs else "%Y-%m-%d %H:%M:%S"
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt=timestamp_format),
        *_renderer(json_logs),
    ]


def is_configured() -> bool:
    return _configured is not None and _configured[0] == os.getpid()


def configure_structlog(log_level: int, json_logs: bool = False) -> None:
    """
    Install the processor chain and level filter.

    A repeat call with the same level is ignored; a different level in
    the same process raises RuntimeError, since loggers cached on first
    use would keep the old filter.
    """
    global _configured

    with _lock:
        if is_configured():
            current_level = _configured[1]  # type: ignore[index]
            if current_level == log_level:
                return
            raise RuntimeError(
                f"structlog already configured in this process "
                f"(level {current_level}, attempted {log_level})"
            )

        structlog.configure(
            processors=_processors(json_logs),
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
            cache_logger_on_first_use=True,
        )
        _configured = (os.getpid(), log_level)


def get_logger(name: str = "app") -> structlog.BoundLogger:
    """
    Raises:
        RuntimeError: If configure_structlog() has not run in this process
    """
    if not is_configured():
        raise RuntimeError(
            "structlog not configured. Call configure_structlog() at application startup."
        )
    return structlog.get_logger(name)


__all__ = [
    "configure_structlog",
    "get_logger",
    "is_configured",
]
