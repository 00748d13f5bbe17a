"""
API 请求/响应模型
对外字段使用 camelCase，金额 Decimal 序列化为字符串
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """camelCase 别名，同时接受 snake_case 字段名"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    """统一 API 响应格式，code 为 0 表示成功"""
    code: int = Field(default=0, description="0 成功，非 0 为 HTTP 状态码")
    message: str = Field(default="success", description="提示信息")
    data: Optional[T] = Field(default=None, description="响应数据")

    @classmethod
    def success(cls, data: Any = None, message: str = "success") -> "ApiResponse":
        """创建成功响应"""
        return cls(code=0, message=message, data=data)


class PagedResponse(CamelModel, Generic[T]):
    """分页响应"""
    items: List[T] = Field(description="数据列表")
    total: int = Field(description="总数量")
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


# ========== 用户 ==========

class LoginRequest(CamelModel):
    """小程序登录请求"""
    code: str = Field(..., min_length=1, description="wx.login 返回的 code")
    nick_name: Optional[str] = None
    avatar_url: Optional[str] = None
    gender: Optional[int] = Field(default=None, ge=0, le=2)
    country: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None


class UserOut(CamelModel):
    id: int
    open_id: str
    nick_name: Optional[str] = None
    avatar_url: Optional[str] = None
    gender: int = 0
    country: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime


class LoginOut(CamelModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class UpdateProfileRequest(CamelModel):
    nick_name: Optional[str] = Field(default=None, max_length=100)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    gender: Optional[int] = Field(default=None, ge=0, le=2)
    country: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = Field(default=None, pattern=r"^1[3-9]\d{9}$")
    email: Optional[str] = Field(default=None, max_length=100)


class AddressRequest(CamelModel):
    receiver_name: str = Field(..., min_length=1, max_length=50)
    phone: str = Field(..., max_length=20)
    province: str = Field(..., min_length=1, max_length=50)
    city: str = Field(..., min_length=1, max_length=50)
    district: str = Field(..., min_length=1, max_length=50)
    detail_address: str = Field(..., min_length=1, max_length=200)
    postal_code: Optional[str] = None
    is_default: bool = False


class UpdateAddressRequest(CamelModel):
    receiver_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    province: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    detail_address: Optional[str] = Field(default=None, max_length=200)
    postal_code: Optional[str] = None
    is_default: Optional[bool] = None


class SetDefaultAddressRequest(CamelModel):
    address_id: int


class AddressOut(CamelModel):
    id: int
    receiver_name: str
    phone: str
    province: str
    city: str
    district: str
    detail_address: str
    postal_code: Optional[str] = None
    full_address: str
    is_default: bool
    created_at: datetime


# ========== 商品 ==========

class SkuIn(CamelModel):
    sku_code: str = Field(..., min_length=1, max_length=50)
    sku_name: Optional[str] = None
    specifications: Dict[str, str] = Field(default_factory=dict)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    original_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    image_url: Optional[str] = None


class ProductRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    detail_html: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    original_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    unit: Optional[str] = None
    main_image_url: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)
    category_id: int
    sort_order: int = 0
    is_recommended: bool = False
    is_new: bool = False
    is_hot: bool = False
    skus: List[SkuIn] = Field(default_factory=list)


class UpdateProductRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    detail_html: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    original_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    stock: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    main_image_url: Optional[str] = None
    image_urls: Optional[List[str]] = None
    category_id: Optional[int] = None
    sort_order: Optional[int] = None
    is_recommended: Optional[bool] = None
    is_new: Optional[bool] = None
    is_hot: Optional[bool] = None
    skus: Optional[List[SkuIn]] = None


class SkuOut(CamelModel):
    id: int
    product_id: int
    sku_code: str
    sku_name: Optional[str] = None
    specifications: Dict[str, Any] = Field(default_factory=dict)
    price: Decimal
    original_price: Optional[Decimal] = None
    stock: int
    sales_count: int
    image_url: Optional[str] = None


class ProductOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    detail_html: Optional[str] = None
    price: Decimal
    original_price: Optional[Decimal] = None
    stock: int
    sales_count: int
    unit: Optional[str] = None
    main_image_url: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)
    category_id: int
    category_name: Optional[str] = None
    sort_order: int = 0
    is_recommended: bool
    is_new: bool
    is_hot: bool
    skus: List[SkuOut] = Field(default_factory=list)
    created_at: datetime


class CategoryRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int = 0


class UpdateCategoryRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None


class CategoryChildOut(CamelModel):
    id: int
    name: str
    image_url: Optional[str] = None
    sort_order: int = 0


class CategoryOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int = 0
    product_count: int = 0
    children: List[CategoryChildOut] = Field(default_factory=list)


# ========== 购物车 ==========

class AddToCartRequest(CamelModel):
    product_id: int
    product_sku_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1, le=999)


class UpdateCartItemRequest(CamelModel):
    quantity: Optional[int] = Field(default=None, ge=1, le=999)
    is_selected: Optional[bool] = None


class BatchCartItem(CamelModel):
    id: int
    quantity: Optional[int] = None
    is_selected: Optional[bool] = None


class BatchUpdateCartRequest(CamelModel):
    items: List[BatchCartItem] = Field(..., min_length=1)


class RemoveCartItemsRequest(CamelModel):
    cart_item_ids: List[int] = Field(..., min_length=1)


class CartItemOut(CamelModel):
    id: int
    product_id: int
    product_sku_id: Optional[int] = None
    product_name: str
    product_image: Optional[str] = None
    sku_specifications: Optional[str] = None
    price: Decimal
    stock: int
    quantity: int
    is_selected: bool
    total_amount: Decimal
    created_at: datetime


class CartSummaryOut(CamelModel):
    items: List[CartItemOut]
    total_count: int
    selected_count: int
    total_amount: Decimal
    selected_amount: Decimal


# ========== 订单 ==========

class OrderPreviewRequest(CamelModel):
    cart_item_ids: List[int] = Field(..., min_length=1)


class CreateOrderRequest(CamelModel):
    cart_item_ids: List[int] = Field(..., min_length=1)
    address_id: int
    remark: Optional[str] = Field(default=None, max_length=500)
    coupon_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)


class PayOrderRequest(CamelModel):
    order_id: int
    pay_method: str = Field(..., min_length=1, max_length=50)


class CancelOrderRequest(CamelModel):
    order_id: int
    reason: Optional[str] = Field(default=None, max_length=200)


class ConfirmReceiptRequest(CamelModel):
    order_id: int


class OrderItemOut(CamelModel):
    id: Optional[int] = None
    product_id: int
    product_sku_id: Optional[int] = None
    product_name: str
    product_image: Optional[str] = None
    sku_specifications: Optional[str] = None
    price: Decimal
    quantity: int
    total_amount: Decimal


class OrderOut(CamelModel):
    id: int
    order_no: str
    total_amount: Decimal
    discount_amount: Decimal
    shipping_fee: Decimal
    pay_amount: Decimal
    status: int
    status_text: str
    payment_status: int
    payment_status_text: str
    payment_method: Optional[str] = None
    payment_time: Optional[datetime] = None
    receiver_name: str
    receiver_phone: str
    receiver_address: str
    shipping_company: Optional[str] = None
    shipping_no: Optional[str] = None
    remark: Optional[str] = None
    items: List[OrderItemOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class OrderPreviewOut(CamelModel):
    items: List[OrderItemOut]
    total_amount: Decimal
    discount_amount: Decimal
    shipping_fee: Decimal
    pay_amount: Decimal
    address: AddressOut


class PayOrderOut(CamelModel):
    payment_id: str
    payment_url: str
    payment_params: Dict[str, Any]


class OrderStatisticsOut(BaseModel):
    """键名本身即 camelCase"""
    pendingPayment: int = 0
    pendingShipment: int = 0
    shipped: int = 0
    completed: int = 0
    cancelled: int = 0
