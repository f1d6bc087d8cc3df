# common/logger/logger_middleware/logger_middleware.py
"""
Access log middleware: one structured line per request, carrying the
request id, the authenticated caller and a timing breakdown fed by the
DB layer through request_timer_context_var.

    app.add_middleware(RequestLoggingMiddleware, expose_performance_headers=True)
"""

import time
import uuid
import structlog
from typing import Callable, Awaitable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from common.context_vars import request_timer_context_var
from ..logger import get_app_logger
from .request_timer import RequestTimer
from .middleware_types import (
    RequestMetadata,
    RequestDetails,
    RequestLogEntry,
    PerformanceBreakdown,
)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        *,
        expose_performance_headers: bool = False,
        log_details: bool = True,
        slow_request_threshold: float = 1000.0,
        log_query_params: bool = True,
        log_client_info: bool = True,
        logger_name: Optional[str] = None,
    ):
        """
        Args:
            expose_performance_headers: Send Server-Timing on every response.
                Routes can opt in individually with `enable_perf_headers`.
            slow_request_threshold: Milliseconds above which a request logs at WARNING
            log_query_params: Include query parameters (may carry personal data)
            log_client_info: Include client address and User-Agent
        """
        super().__init__(app)
        self.expose_performance_headers = expose_performance_headers
        self.log_details = log_details
        self.slow_request_threshold = slow_request_threshold
        self.log_query_params = log_query_params
        self.log_client_info = log_client_info
        self.logger = get_app_logger(name=logger_name or __name__, track_timing=True)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        timer = RequestTimer()
        token = request_timer_context_var.set(timer)
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.perf_counter()
        try:
            with timer.capture("app"):
                response = await call_next(request)
        finally:
            request_timer_context_var.reset(token)
            structlog.contextvars.unbind_contextvars("request_id")
        total_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        if self.expose_performance_headers or getattr(request.state, "expose_perf", False):
            response.headers["Server-Timing"] = timer.format_server_timing(total_ms)

        self._emit(self._build_entry(request, response, total_ms, timer))
        return response

    def _build_entry(
        self,
        request: Request,
        response: Response,
        total_ms: float,
        timer: RequestTimer,
    ) -> RequestLogEntry:
        details = None
        if self.log_details:
            client_info = self.log_client_info
            details = RequestDetails(
                request_id=request.state.request_id,
                user_id=getattr(request.state, "user_id", None),
                role=getattr(request.state, "role", None),
                client_host=request.client.host if client_info and request.client else None,
                user_agent=request.headers.get("user-agent") if client_info else None,
                query_params=(
                    dict(request.query_params)
                    if self.log_query_params and request.query_params
                    else None
                ),
                path_params=request.path_params or None,
                content_length=int(response.headers.get("content-length", 0)) or None,
            )

        return RequestLogEntry(
            metadata=RequestMetadata(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(total_ms, 2),
            ),
            details=details,
            performance=PerformanceBreakdown(
                total_ms=round(total_ms, 2),
                app_logic_ms=timer.elapsed("app"),
                db_session_total_ms=timer.elapsed("db"),
                sql_execution_total_ms=timer.elapsed("sql"),
                query_count=timer.count("query_count"),
            ),
            slow_threshold_ms=self.slow_request_threshold,
        )

    def _emit(self, entry: RequestLogEntry) -> None:
        fields = entry.model_dump(mode="json", exclude_none=True)
        if entry.is_server_error:
            self.logger.error("Request failed with server error", **fields)
        elif entry.is_slow:  # type: ignore[truthy-function]
            self.logger.warning(f"Slow request ({entry.metadata.duration_ms}ms)", **fields)
        elif entry.is_client_error:
            self.logger.warning("Request rejected", **fields)
        else:
            self.logger.info("Request completed", **fields)


async def enable_perf_headers(request: Request) -> None:
    """
    Router dependency that turns on Server-Timing for its routes.

        router = APIRouter(dependencies=[Depends(enable_perf_headers)])
    """
    request.state.expose_perf = True


__all__ = [
    "RequestLoggingMiddleware",
    "enable_perf_headers",
]
