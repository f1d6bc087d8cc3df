# common/logger/logger.py
"""
Thin wrapper over structlog used across the service.

    from common.logger import get_app_logger

    logger = get_app_logger(__name__)
    logger.info("Appointment confirmed", appointment_id=appointment_id)

    log = logger.bind(appointment_id=appointment_id)
    log.warning("Concurrent status change lost", expected="pending")

Loggers are created at import time, before configure_structlog() runs, so
the underlying structlog logger is only resolved on first use.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
import structlog

from common.config.structlog_config import get_logger as _get_structlog_logger


@dataclass
class TimingStats:
    """How long this logger's own calls take; reported on /metrics."""

    total_calls: int = 0
    total_seconds: float = 0.0
    max_seconds: float = 0.0

    def record(self, elapsed: float) -> None:
        self.total_calls += 1
        self.total_seconds += elapsed
        if elapsed > self.max_seconds:
            self.max_seconds = elapsed

    def as_dict(self) -> Dict[str, Any]:
        average = self.total_seconds / self.total_calls if self.total_calls else 0.0
        return {
            "total_calls": self.total_calls,
            "avg_time_ms": round(average * 1000, 4),
            "max_time_ms": round(self.max_seconds * 1000, 4),
        }


class AppLogger:
    def __init__(
        self,
        name: str = "app",
        track_timing: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._name = name
        self._context: Dict[str, Any] = dict(context or {})
        self._bound: Optional[structlog.BoundLogger] = None
        self._stats: Optional[TimingStats] = TimingStats() if track_timing else None

    def _resolve(self) -> structlog.BoundLogger:
        if self._bound is None:
            base = _get_structlog_logger(self._name)
            self._bound = base.bind(**self._context) if self._context else base
        return self._bound

    def bind(self, **context: Any) -> "AppLogger":
        """Child logger that adds `context` to every line. Timing is not inherited."""
        return AppLogger(name=self._name, context={**self._context, **context})

    def _log(self, level: str, msg: str, **fields: Any) -> None:
        if self._stats is None:
            getattr(self._resolve(), level)(msg, **fields)
            return
        started = time.perf_counter()
        try:
            getattr(self._resolve(), level)(msg, **fields)
        finally:
            self._stats.record(time.perf_counter() - started)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log("debug", msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log("info", msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log("warning", msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log("error", msg, **fields)

    def exception(self, msg: str, **fields: Any) -> None:
        """ERROR line with the active exception's traceback attached."""
        self._log("exception", msg, **fields)

    def get_timing_stats(self) -> Dict[str, Any]:
        if self._stats is None:
            return {"error": "Timing tracking not enabled"}
        return self._stats.as_dict()


def get_app_logger(name: str = "app", track_timing: bool = False) -> AppLogger:
    return AppLogger(name=name, track_timing=track_timing)


logger = get_app_logger()

__all__ = ["logger", "AppLogger", "get_app_logger"]
