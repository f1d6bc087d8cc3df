# common/logger/logger_middleware/middleware_types.py
"""
Models for the single structured line RequestLoggingMiddleware writes per request.
"""

from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field, computed_field

# Query counts above these point at lazy loads that escaped selectinload
HIGH_QUERY_COUNT = 5
N_PLUS_ONE_QUERY_COUNT = 10
# Requests faster than this are never flagged for DB share
DB_SHARE_MIN_TOTAL_MS = 200
DB_SHARE_LIMIT_PERCENT = 80


class PerformanceBreakdown(BaseModel):
    total_ms: float
    app_logic_ms: float
    db_session_total_ms: float
    sql_execution_total_ms: float
    query_count: int = 0

    model_config = {"frozen": True}

    @computed_field
    def db_overhead_ms(self) -> float:
        """Session time not spent executing SQL: pool checkout, commit, flush."""
        return round(max(self.db_session_total_ms - self.sql_execution_total_ms, 0.0), 2)


class RequestMetadata(BaseModel):
    method: str
    path: str = Field(..., description="Path without the query string")
    status_code: int = Field(..., ge=100, le=599)
    duration_ms: float = Field(..., ge=0)

    model_config = {"frozen": True}


class RequestDetails(BaseModel):
    """Optional context; fields left None are dropped from the log line."""

    request_id: Optional[str] = None
    user_id: Optional[str] = Field(None, description="Authenticated caller, if any")
    role: Optional[str] = None
    client_host: Optional[str] = None
    user_agent: Optional[str] = None
    query_params: Optional[Dict[str, Any]] = None
    path_params: Optional[Dict[str, Any]] = None
    content_length: Optional[int] = Field(None, ge=0)

    model_config = {"frozen": True}


class RequestLogEntry(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: RequestMetadata
    details: Optional[RequestDetails] = None
    performance: Optional[PerformanceBreakdown] = None
    slow_threshold_ms: float = Field(1000.0, exclude=True)

    model_config = {"frozen": True}

    @property
    def is_server_error(self) -> bool:
        return self.metadata.status_code >= 500

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.metadata.status_code < 500

    @computed_field
    def is_slow(self) -> bool:
        return self.metadata.duration_ms > self.slow_threshold_ms

    @computed_field
    def optimization_warnings(self) -> list[str]:
        perf = self.performance
        if perf is None:
            return []

        warnings: list[str] = []
        if perf.query_count > N_PLUS_ONE_QUERY_COUNT:
            warnings.append(
                f"N+1_QUERY_SUSPECTED: {perf.query_count} queries (likely missing selectinload)"
            )
        elif perf.query_count > HIGH_QUERY_COUNT:
            warnings.append(f"HIGH_QUERY_COUNT: {perf.query_count} queries")

        if perf.sql_execution_total_ms > self.slow_threshold_ms:
            warnings.append(f"SLOW_SQL: Query execution took {perf.sql_execution_total_ms:.0f}ms")

        total = self.metadata.duration_ms
        if total > DB_SHARE_MIN_TOTAL_MS:
            share = perf.db_session_total_ms / total * 100
            if share > DB_SHARE_LIMIT_PERCENT:
                warnings.append(
                    f"DB_DOMINATED_REQUEST: {share:.0f}% of {total:.0f}ms spent in DB"
                )
        return warnings


__all__ = [
    "RequestMetadata",
    "RequestDetails",
    "RequestLogEntry",
    "PerformanceBreakdown",
]
