# common/logger/logger_middleware/request_timer.py
import time
from contextlib import contextmanager
from typing import Iterator


class RequestTimer:
    """
    Per-request stopwatch.

    `timings` holds accumulated milliseconds per phase ("app", "db", "sql");
    `counters` holds plain counts such as "query_count".
    """

    def __init__(self) -> None:
        self.timings: dict[str, float] = {}
        self.counters: dict[str, int] = {}

    @contextmanager
    def capture(self, phase: str) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            self.add(phase, (time.perf_counter() - started) * 1000)

    def add(self, phase: str, elapsed_ms: float) -> None:
        self.timings[phase] = self.timings.get(phase, 0.0) + elapsed_ms

    def increment(self, counter: str, by: int = 1) -> None:
        self.counters[counter] = self.counters.get(counter, 0) + by

    def elapsed(self, phase: str) -> float:
        return round(self.timings.get(phase, 0.0), 2)

    def count(self, counter: str) -> int:
        return self.counters.get(counter, 0)

    def format_server_timing(self, total_ms: float) -> str:
        """Server-Timing header value, e.g. "app;dur=10.50, sql;dur=2.10, total;dur=11.02"."""
        parts = [f"{phase};dur={ms:.2f}" for phase, ms in self.timings.items()]
        parts.append(f"total;dur={total_ms:.2f}")
        return ", ".join(parts)


__all__ = ["RequestTimer"]
