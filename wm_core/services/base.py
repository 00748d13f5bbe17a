"""
基础服务类
"""
from typing import Optional, Dict, Any, List, Tuple, Type, TypeVar

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from wm_core.config import Settings, get_settings
from wm_core.database import DatabaseManager, get_db_manager
from wm_core.utils.logger import get_logger
from wm_core.utils.errors import WeMallException, InternalServerError, ValidationError

T = TypeVar("T")

logger = get_logger(__name__)


def page_payload(items: List[Any], total: int, page: int, page_size: int) -> Dict[str, Any]:
    """分页响应数据"""
    total_pages = (total + page_size - 1) // page_size if page_size else 0
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
    }


class BaseService:
    """基础服务类

    每个写操作通过 execute_with_transaction 在一个工作单元内完成，
    任何异常都会回滚该工作单元内的全部写入。
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None, settings: Optional[Settings] = None):
        self.db_manager = db_manager or get_db_manager()
        self.settings = settings or self.db_manager.settings or get_settings()
        self.logger = get_logger(self.__class__.__name__)

    async def execute_with_transaction(self, operation, *args, **kwargs) -> Any:
        """在事务中执行操作"""
        try:
            async with self.db_manager.get_transaction() as session:
                return await operation(session, *args, **kwargs)
        except WeMallException:
            raise
        except Exception as e:
            self.logger.error("Transaction operation failed", operation=operation.__name__, exc_info=True)
            raise InternalServerError(
                code="TRANSACTION_FAILED",
                detail=f"Database transaction failed: {str(e)}"
            ) from e

    async def execute_with_session(self, operation, *args, **kwargs) -> Any:
        """使用数据库会话执行只读操作"""
        try:
            async with self.db_manager.get_session() as session:
                return await operation(session, *args, **kwargs)
        except WeMallException:
            raise
        except Exception as e:
            self.logger.error("Session operation failed", operation=operation.__name__, exc_info=True)
            raise InternalServerError(
                code="SESSION_OPERATION_FAILED",
                detail=f"Database operation failed: {str(e)}"
            ) from e

    def validate_required_fields(self, data: Dict[str, Any], required_fields: List[str]) -> None:
        """验证必填字段"""
        missing_fields = [f for f in required_fields if data.get(f) is None]
        if missing_fields:
            raise ValidationError(
                code="MISSING_REQUIRED_FIELDS",
                detail=f"Missing required fields: {', '.join(missing_fields)}"
            )

    def sanitize_input(self, data: Dict[str, Any], allowed_fields: List[str]) -> Dict[str, Any]:
        """清理输入数据，只保留允许的字段"""
        return {k: v for k, v in data.items() if k in allowed_fields}


class RepositoryMixin:
    """仓储混入类 - 提供常用的数据库操作"""

    async def get_owned(
        self,
        session: AsyncSession,
        model_class: Type[T],
        record_id: int,
        user_id: int,
        for_update: bool = False
    ) -> Optional[T]:
        """获取属于指定用户的记录"""
        stmt = select(model_class).where(
            model_class.id == record_id,
            model_class.user_id == user_id
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def paginate(
        self,
        session: AsyncSession,
        stmt,
        page: int,
        page_size: int
    ) -> Tuple[List[Any], int]:
        """分页查询，返回 (当前页记录, 总数)"""
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = (await session.execute(count_stmt)).scalar_one()

        result = await session.execute(stmt.offset((page - 1) * page_size).limit(page_size))
        return list(result.scalars().unique().all()), total

    async def create(self, session: AsyncSession, model_class: Type[T], data: Dict[str, Any]) -> T:
        """创建记录"""
        instance = model_class(**data)
        session.add(instance)
        await session.flush()  # 获取生成的ID
        return instance

    async def update(self, session: AsyncSession, instance: T, data: Dict[str, Any]) -> T:
        """更新记录"""
        for key, value in data.items():
            if hasattr(instance, key):
                setattr(instance, key, value)

        await session.flush()
        return instance

    async def exists(self, session: AsyncSession, model_class, **filters) -> bool:
        """检查记录是否存在"""
        stmt = select(model_class.id)
        for field, value in filters.items():
            stmt = stmt.where(getattr(model_class, field) == value)

        result = await session.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None
