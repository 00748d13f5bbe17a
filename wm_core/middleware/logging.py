"""
请求日志中间件

记录入站请求的方法、路径、状态码和耗时，
并通过 X-Trace-Id 响应头回传 trace_id。
"""
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from wm_core.utils.logger import get_logger, LogContext

# 不记录请求日志的路径
SKIP_PATHS = {
    "/healthz",
    "/favicon.ico",
}

# 敏感查询参数
SENSITIVE_FIELDS = {"code", "token", "secret", "authorization"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求日志中间件"""

    def __init__(self, app, logger=None):
        super().__init__(app)
        self.logger = logger or get_logger("middleware.logging")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id = request.headers.get("x-trace-id") or str(uuid.uuid4())
        request.state.trace_id = trace_id

        method = request.method
        path = request.url.path
        skip = path in SKIP_PATHS or path.endswith("/system/metrics")
        user_id: Optional[int] = getattr(request.state, "user_id", None)

        start_time = time.perf_counter()

        with LogContext(trace_id=trace_id, user_id=user_id):
            if not skip:
                self.logger.info(
                    "API request",
                    method=method,
                    path=path,
                    client_ip=self._get_client_ip(request),
                    query_params=self._mask_sensitive(dict(request.query_params)) or None,
                )

            try:
                response = await call_next(request)
            except Exception as e:
                self.logger.error(
                    "API request failed",
                    method=method,
                    path=path,
                    latency_ms=int((time.perf_counter() - start_time) * 1000),
                    result="error",
                    err=str(e),
                    exc_info=True
                )
                raise

            latency_ms = int((time.perf_counter() - start_time) * 1000)
            if not skip:
                log_data = {
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "latency_ms": latency_ms,
                    "result": "success" if response.status_code < 400 else "error",
                }
                if response.status_code >= 400:
                    self.logger.warning("API response error", **log_data)
                else:
                    self.logger.info("API response", **log_data)

            response.headers["X-Trace-Id"] = trace_id
            return response

    def _mask_sensitive(self, data: dict) -> dict:
        return {k: ("***MASKED***" if k.lower() in SENSITIVE_FIELDS else v) for k, v in data.items()}

    def _get_client_ip(self, request: Request) -> str:
        """获取客户端 IP"""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"
