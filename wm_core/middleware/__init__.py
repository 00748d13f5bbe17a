"""
WeMall 中间件
"""
from .auth import AuthMiddleware
from .logging import LoggingMiddleware
from .metrics import MetricsMiddleware

__all__ = ["AuthMiddleware", "LoggingMiddleware", "MetricsMiddleware"]
