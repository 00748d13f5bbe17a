"""
错误体系测试
"""
import json

import pytest

from wm_core.utils import errors
from wm_core.utils.errors import (
    AlreadyPaidError,
    ConflictError,
    InsufficientStockError,
    InternalServerError,
    InvalidStateError,
    NoDefaultAddressError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    WeMallException,
    handle_errors,
)


@pytest.mark.parametrize("exc, status, code", [
    (UnauthorizedError(), 401, "UNAUTHORIZED"),
    (NotFoundError(code="ORDER_NOT_FOUND", resource="订单"), 404, "ORDER_NOT_FOUND"),
    (InvalidStateError(), 409, "INVALID_ORDER_STATE"),
    (AlreadyPaidError(), 409, "ORDER_ALREADY_PAID"),
    (InsufficientStockError("纯棉T恤", product_id=1), 409, "INSUFFICIENT_STOCK"),
    (NoDefaultAddressError(), 422, "NO_DEFAULT_ADDRESS"),
    (InternalServerError(), 500, "INTERNAL_ERROR"),
])
def test_error_status_and_code(exc, status, code):
    assert exc.status == status
    assert exc.code == code


def test_error_tree_classes():
    names = {
        cls.__name__
        for cls in vars(errors).values()
        if isinstance(cls, type) and issubclass(cls, WeMallException) and cls is not WeMallException
    }

    assert names == {
        "UnauthorizedError",
        "NotFoundError",
        "ConflictError",
        "ValidationError",
        "InternalServerError",
        "InvalidStateError",
        "InsufficientStockError",
        "AlreadyPaidError",
        "NoDefaultAddressError",
    }


def test_error_response_envelope():
    response = InsufficientStockError("纯棉T恤", product_id=7).to_response()

    body = json.loads(response.body)
    assert response.status_code == 409
    assert body["code"] == 409
    assert body["message"] == "商品 纯棉T恤 库存不足"
    assert body["data"] is None
    assert body["error"]["code"] == "INSUFFICIENT_STOCK"
    assert body["error"]["product_id"] == 7
    assert "instance" not in body["error"]


@pytest.mark.asyncio
async def test_handle_errors_wraps_unexpected_exceptions():
    @handle_errors()
    async def broken():
        raise RuntimeError("boom")

    @handle_errors()
    async def conflict():
        raise ConflictError(code="ORDER_NO_CONFLICT", detail="订单号冲突")

    with pytest.raises(InternalServerError) as exc_info:
        await broken()
    assert exc_info.value.code == "UNEXPECTED_ERROR"

    with pytest.raises(ConflictError) as exc_info:
        await conflict()
    assert exc_info.value.code == "ORDER_NO_CONFLICT"

    with pytest.raises(ValidationError):
        await handle_errors()(_raise_validation)()


async def _raise_validation():
    raise ValidationError(code="INVALID_COUPON_AMOUNT", detail="优惠金额无效")
