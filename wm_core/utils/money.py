"""
金额计算工具
所有金额均为 Decimal，保留两位小数，ROUND_HALF_UP
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, str]


def to_money(value: Number) -> Decimal:
    """转换为两位小数的金额"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(price: Number, quantity: int) -> Decimal:
    """单行小计 = 单价 × 数量"""
    return to_money(to_money(price) * quantity)


def sum_money(values: Iterable[Number]) -> Decimal:
    return to_money(sum((to_money(v) for v in values), ZERO))


def shipping_fee_for(total: Number, free_threshold: Number, flat_fee: Number) -> Decimal:
    """运费规则：满额包邮，否则收取固定运费"""
    if to_money(total) >= to_money(free_threshold):
        return ZERO
    return to_money(flat_fee)


def pay_amount_for(total: Number, shipping_fee: Number, discount: Number) -> Decimal:
    """实付金额 = 商品总额 + 运费 - 优惠"""
    return to_money(to_money(total) + to_money(shipping_fee) - to_money(discount))
