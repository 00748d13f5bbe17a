"""
指标收集中间件
"""
import re
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from wm_core.config import get_settings
from wm_core.utils.logger import get_logger

# 指标在模块级注册，多次创建应用时复用同一组指标
_PREFIX = get_settings().metrics_prefix

REQUEST_COUNT = Counter(
    f"{_PREFIX}_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"]
)

REQUEST_DURATION = Histogram(
    f"{_PREFIX}_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"]
)

ORDERS_CREATED = Counter(
    f"{_PREFIX}_orders_created_total",
    "Orders created"
)

_ID_PATTERN = re.compile(r"/\d+")


class MetricsMiddleware(BaseHTTPMiddleware):
    """指标收集中间件"""

    def __init__(self, app, logger=None):
        super().__init__(app)
        self.logger = logger or get_logger("middleware.metrics")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        endpoint = self._get_endpoint_pattern(request)
        start_time = time.perf_counter()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
            return response
        finally:
            REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
            REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(time.perf_counter() - start_time)

    def _get_endpoint_pattern(self, request: Request) -> str:
        """获取端点模式（数字 ID 替换为占位符，用于聚合指标）"""
        return _ID_PATTERN.sub("/{id}", request.url.path) or "/"


def metrics_response() -> Response:
    """Prometheus 指标响应"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
