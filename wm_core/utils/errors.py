"""
WeMall 错误处理系统
遵循 RFC7807 Problem Details 标准，响应外层统一为 {code, message, data}
"""
import functools
from typing import Optional
from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field


class ProblemDetail(BaseModel):
    """RFC7807 Problem Details 模型"""
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "type": "about:blank",
                "title": "Conflict",
                "status": 409,
                "detail": "商品 纯棉T恤 库存不足",
                "code": "INSUFFICIENT_STOCK"
            }
        }
    )

    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
    code: Optional[str] = None  # 业务错误码


def error_envelope(status: int, message: str, problem: dict) -> dict:
    """错误响应外层：code 非 0 表示失败"""
    return {
        "code": status,
        "message": message,
        "data": None,
        "error": problem,
    }


class WeMallException(Exception):
    """WeMall 基础异常类"""

    def __init__(
        self,
        status: int,
        code: str,
        title: str,
        detail: Optional[str] = None,
        **kwargs
    ):
        self.status = status
        self.code = code
        self.title = title
        self.detail = detail
        self.extra = kwargs
        super().__init__(detail or title)

    def to_problem_detail(self, instance: Optional[str] = None) -> ProblemDetail:
        """转换为 Problem Details 格式"""
        return ProblemDetail(
            type="about:blank",
            title=self.title,
            status=self.status,
            detail=self.detail,
            instance=instance,
            code=self.code,
            **self.extra
        )

    def to_response(self, request: Optional[Request] = None) -> JSONResponse:
        """转换为 JSON 响应"""
        instance = str(request.url) if request else None
        problem = self.to_problem_detail(instance)

        return JSONResponse(
            status_code=self.status,
            content=error_envelope(
                self.status,
                self.detail or self.title,
                problem.model_dump(exclude_none=True, mode="json"),
            )
        )


# 预定义错误类
class UnauthorizedError(WeMallException):
    """401 未授权"""
    def __init__(self, code: str = "UNAUTHORIZED", detail: str = "Authentication required"):
        super().__init__(
            status=401,
            code=code,
            title="Unauthorized",
            detail=detail
        )


class NotFoundError(WeMallException):
    """404 未找到"""
    def __init__(self, code: str, resource: str):
        super().__init__(
            status=404,
            code=code,
            title="Not Found",
            detail=f"{resource}不存在"
        )


class ConflictError(WeMallException):
    """409 冲突"""
    def __init__(self, code: str, detail: str, **kwargs):
        super().__init__(
            status=409,
            code=code,
            title="Conflict",
            detail=detail,
            **kwargs
        )


class ValidationError(WeMallException):
    """422 验证失败"""
    def __init__(self, code: str, detail: str):
        super().__init__(
            status=422,
            code=code,
            title="Validation Failed",
            detail=detail
        )


class InternalServerError(WeMallException):
    """500 内部错误"""
    def __init__(self, code: str = "INTERNAL_ERROR", detail: str = "An internal error occurred"):
        super().__init__(
            status=500,
            code=code,
            title="Internal Server Error",
            detail=detail
        )


# 订单流程错误
class InvalidStateError(ConflictError):
    """当前订单状态不允许该操作"""
    def __init__(self, detail: str = "订单状态不正确", **kwargs):
        super().__init__(code="INVALID_ORDER_STATE", detail=detail, **kwargs)


class InsufficientStockError(ConflictError):
    """库存不足"""
    def __init__(self, product_name: str, product_id: Optional[int] = None):
        super().__init__(
            code="INSUFFICIENT_STOCK",
            detail=f"商品 {product_name} 库存不足",
            product_id=product_id,
        )
        self.product_name = product_name


class AlreadyPaidError(ConflictError):
    """订单已支付"""
    def __init__(self, detail: str = "订单已支付"):
        super().__init__(code="ORDER_ALREADY_PAID", detail=detail)


class NoDefaultAddressError(ValidationError):
    """没有默认收货地址"""
    def __init__(self, detail: str = "请先设置收货地址"):
        super().__init__(code="NO_DEFAULT_ADDRESS", detail=detail)


# 错误处理装饰器
def handle_errors(logger=None):
    """错误处理装饰器：业务异常原样抛出，其余异常记录后包装为 500"""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except WeMallException:
                raise
            except Exception as e:
                if logger:
                    logger.error(f"Unexpected error in {func.__name__}", exc_info=True)
                raise InternalServerError(
                    code="UNEXPECTED_ERROR",
                    detail=str(e) if logger else "An unexpected error occurred"
                ) from e
        return wrapper
    return decorator
