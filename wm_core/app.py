"""
WeMall FastAPI 主应用
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wm_core import __version__
from wm_core.config import get_settings
from wm_core.database import get_db_manager
from wm_core.middleware.auth import AuthMiddleware
from wm_core.middleware.logging import LoggingMiddleware
from wm_core.middleware.metrics import MetricsMiddleware
from wm_core.api import api_router
from wm_core.utils.errors import WeMallException, error_envelope
from wm_core.utils.logger import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("Starting WeMall application", version=__version__)

    db_manager = get_db_manager()
    if not await db_manager.check_connection():
        logger.error("Database connection check failed")
        raise RuntimeError("Database connection failed")

    logger.info("WeMall application started successfully")
    yield

    logger.info("Shutting down WeMall application")
    await db_manager.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用"""
    settings = get_settings()

    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format
    )

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="WeMall Mini Program Mall API",
        docs_url="/docs" if settings.api_debug else None,
        redoc_url="/redoc" if settings.api_debug else None,
        openapi_url="/openapi.json" if settings.api_debug else None,
        lifespan=lifespan,
    )

    # 添加中间件（后添加的在外层）
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.api_debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.metrics_enabled:
        app.add_middleware(MetricsMiddleware)

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(AuthMiddleware, api_prefix=settings.api_prefix)

    app.include_router(api_router, prefix=settings.api_prefix)

    # 异常处理器
    @app.exception_handler(WeMallException)
    async def wemall_exception_handler(request: Request, exc: WeMallException):
        """处理 WeMall 业务异常"""
        if exc.status >= 500:
            logger.error("Server error", code=exc.code, detail=exc.detail)
        return exc.to_response(request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """处理 Pydantic 验证异常"""
        logger.warning("Request validation failed", path=request.url.path, errors=str(exc.errors())[:1000])
        return JSONResponse(
            status_code=422,
            content=error_envelope(422, "请求参数不正确", {
                "type": "about:blank",
                "title": "Validation Error",
                "status": 422,
                "detail": "Request validation failed",
                "code": "VALIDATION_ERROR",
                "validation_errors": jsonable_encoder(exc.errors()),
            })
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """处理 HTTP 异常（404 路由不存在、405 等）"""
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.status_code, str(exc.detail), {
                "type": "about:blank",
                "title": str(exc.detail),
                "status": exc.status_code,
                "detail": str(exc.detail),
                "code": f"HTTP_{exc.status_code}",
            })
        )

    @app.exception_handler(Exception)
    async def internal_server_error_handler(request: Request, exc: Exception):
        """处理未捕获的服务器错误"""
        logger.error("Unhandled server error", path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=error_envelope(500, "服务器内部错误", {
                "type": "about:blank",
                "title": "Internal Server Error",
                "status": 500,
                "detail": "An internal server error occurred",
                "code": "INTERNAL_SERVER_ERROR",
            })
        )

    @app.get("/healthz")
    async def health_check():
        """健康检查端点"""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "wm_core.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
        log_level=settings.log_level.lower(),
        access_log=False,  # 使用自定义日志中间件
    )
