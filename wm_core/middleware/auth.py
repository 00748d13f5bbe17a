"""
认证中间件
校验 Bearer 令牌，并把 user_id 放到 request.state 上
"""
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from wm_core.config import get_settings
from wm_core.services.auth_service import AuthService
from wm_core.utils.errors import UnauthorizedError, WeMallException
from wm_core.utils.logger import get_logger


class AuthMiddleware(BaseHTTPMiddleware):
    """认证中间件"""

    # 无需认证的路径（相对于 API 前缀的路径在 __init__ 中补全）
    PUBLIC_PATHS = {
        "/healthz",
        "/docs",
        "/redoc",
        "/openapi.json",
    }

    PREFIXED_PUBLIC_PATHS = {
        "/system/health",
        "/system/metrics",
        "/user/login",
    }

    # GET 请求公开的前缀（商品浏览）
    PUBLIC_GET_PREFIXES = [
        "/products",
    ]

    def __init__(self, app, auth_service: Optional[AuthService] = None, api_prefix: Optional[str] = None, logger=None):
        super().__init__(app)
        self.logger = logger or get_logger("middleware.auth")
        self._auth_service = auth_service
        prefix = api_prefix if api_prefix is not None else get_settings().api_prefix
        self.public_paths = self.PUBLIC_PATHS | {f"{prefix}{p}" for p in self.PREFIXED_PUBLIC_PATHS}
        self.public_get_prefixes = [f"{prefix}{p}" for p in self.PUBLIC_GET_PREFIXES]

    @property
    def auth_service(self) -> AuthService:
        if self._auth_service is None:
            self._auth_service = AuthService()
        return self._auth_service

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self._is_public_path(request):
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if not auth_header:
            return UnauthorizedError(
                code="MISSING_AUTH_HEADER",
                detail="Authorization header is required"
            ).to_response(request)

        if not auth_header.startswith("Bearer "):
            return UnauthorizedError(
                code="INVALID_AUTH_FORMAT",
                detail="Authorization header must start with 'Bearer '"
            ).to_response(request)

        try:
            user_id = self.auth_service.user_id_from_token(auth_header[7:])
        except WeMallException as e:
            self.logger.warning("Token rejected", path=request.url.path, code=e.code)
            return e.to_response(request)

        request.state.user_id = user_id
        return await call_next(request)

    def _is_public_path(self, request: Request) -> bool:
        path = request.url.path
        if path in self.public_paths:
            return True
        if request.method == "OPTIONS":
            return True
        if request.method in ("GET", "HEAD"):
            return any(path == p or path.startswith(p + "/") for p in self.public_get_prefixes)
        return False
