"""
系统 API 路由
"""
from datetime import datetime, timezone

from fastapi import APIRouter

from wm_core import __version__
from wm_core.database import get_db_manager
from wm_core.middleware.metrics import metrics_response
from .models import ApiResponse

router = APIRouter()


@router.get("/health", response_model=ApiResponse[dict])
async def health_check():
    """健康检查（含数据库连通性）"""
    db_ok = await get_db_manager().check_connection()
    return ApiResponse.success({
        "status": "healthy" if db_ok else "degraded",
        "database": "ok" if db_ok else "unavailable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    })


@router.get("/metrics")
async def metrics():
    """Prometheus 指标端点"""
    return metrics_response()
