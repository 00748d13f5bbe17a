"""
Pytest 配置和 fixtures
每个测试使用独立的临时 SQLite 数据库
"""
import json
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select, update

from wm_core.config import Settings
from wm_core.database import DatabaseManager, set_db_manager
from wm_core.models import (
    User, UserAddress, Category, Product, ProductSku, CartItem, Order
)
from wm_core.services.addresses import AddressService
from wm_core.services.auth_service import AuthService
from wm_core.services.cart import CartService
from wm_core.services.catalog import CatalogService
from wm_core.services.orders import OrdersService


@pytest.fixture
def settings(tmp_path):
    """测试配置，数据库指向临时文件"""
    return Settings(db_url=f"sqlite+aiosqlite:///{tmp_path / 'wemall_test.db'}")


@pytest_asyncio.fixture
async def db_manager(settings):
    """数据库管理器 fixture"""
    manager = DatabaseManager(settings)
    await manager.create_tables()
    set_db_manager(manager)

    yield manager

    set_db_manager(None)
    await manager.drop_tables()
    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager):
    """数据库会话 fixture"""
    async with db_manager.get_session() as session:
        yield session


@pytest.fixture
def orders_service(db_manager):
    return OrdersService(db_manager)


@pytest.fixture
def cart_service(db_manager):
    return CartService(db_manager)


@pytest.fixture
def address_service(db_manager):
    return AddressService(db_manager)


@pytest.fixture
def catalog_service(db_manager):
    return CatalogService(db_manager)


@pytest.fixture
def auth_service(db_manager):
    return AuthService(db_manager)


@pytest_asyncio.fixture
async def seed(db_manager):
    """示例数据：一个用户、一个默认地址、两个商品（其中一个带 SKU）"""
    async with db_manager.get_transaction() as session:
        user = User(open_id="wx_openid_seed", nick_name="测试用户")
        other_user = User(open_id="wx_openid_other", nick_name="其他用户")
        category = Category(name="服装", sort_order=1)
        session.add_all([user, other_user, category])
        await session.flush()

        tshirt = Product(
            name="纯棉T恤",
            description="舒适透气",
            price=Decimal("50.00"),
            original_price=Decimal("69.00"),
            stock=5,
            category_id=category.id,
            main_image_url="https://img.example.com/tshirt.jpg",
            image_urls=json.dumps(["https://img.example.com/tshirt-1.jpg"]),
            is_hot=True,
        )
        jacket = Product(
            name="夹克",
            description="秋季新款",
            price=Decimal("199.00"),
            stock=20,
            category_id=category.id,
            main_image_url="https://img.example.com/jacket.jpg",
            is_new=True,
        )
        session.add_all([tshirt, jacket])
        await session.flush()

        jacket_sku = ProductSku(
            product_id=jacket.id,
            sku_code="JACKET-RED-L",
            sku_name="红色 L",
            specifications=json.dumps({"颜色": "红色", "尺码": "L"}, ensure_ascii=False),
            price=Decimal("30.00"),
            stock=10,
            image_url="https://img.example.com/jacket-red.jpg",
        )
        address = UserAddress(
            user_id=user.id,
            receiver_name="张三",
            phone="13800138000",
            province="广东省",
            city="深圳市",
            district="南山区",
            detail_address="科技园1号",
            postal_code="518000",
            is_default=True,
        )
        session.add_all([jacket_sku, address])
        await session.flush()

        return SimpleNamespace(
            user_id=user.id,
            other_user_id=other_user.id,
            category_id=category.id,
            tshirt_id=tshirt.id,
            jacket_id=jacket.id,
            jacket_sku_id=jacket_sku.id,
            address_id=address.id,
        )


async def add_cart_item(
    db_manager: DatabaseManager,
    user_id: int,
    product_id: int,
    quantity: int,
    sku_id: Optional[int] = None
) -> int:
    """直接写入购物车条目，返回条目 ID"""
    async with db_manager.get_transaction() as session:
        item = CartItem(user_id=user_id, product_id=product_id, product_sku_id=sku_id, quantity=quantity)
        session.add(item)
        await session.flush()
        return item.id


async def get_stock(db_manager: DatabaseManager, model, record_id: int) -> int:
    async with db_manager.get_session() as session:
        return (await session.execute(select(model.stock).where(model.id == record_id))).scalar_one()


async def get_sales(db_manager: DatabaseManager, model, record_id: int) -> int:
    async with db_manager.get_session() as session:
        return (await session.execute(select(model.sales_count).where(model.id == record_id))).scalar_one()


async def set_order_status(db_manager: DatabaseManager, order_id: int, status: int) -> None:
    """模拟后台推进订单状态（如发货）"""
    async with db_manager.get_transaction() as session:
        await session.execute(update(Order).where(Order.id == order_id).values(status=status))


async def count_rows(db_manager: DatabaseManager, model, **filters) -> int:
    async with db_manager.get_session() as session:
        stmt = select(model)
        for field, value in filters.items():
            stmt = stmt.where(getattr(model, field) == value)
        return len((await session.execute(stmt)).scalars().all())


@pytest.fixture
def helpers():
    return SimpleNamespace(
        add_cart_item=add_cart_item,
        get_stock=get_stock,
        get_sales=get_sales,
        set_order_status=set_order_status,
        count_rows=count_rows,
    )


@pytest_asyncio.fixture
async def app(db_manager):
    from wm_core.app import create_app
    return create_app()


@pytest_asyncio.fixture
async def client(app):
    """HTTP 客户端（不触发 lifespan）"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest_asyncio.fixture
async def auth_headers(seed, auth_service):
    """种子用户的 Bearer 认证头"""
    async with auth_service.db_manager.get_session() as session:
        user = await session.get(User, seed.user_id)
    return {"Authorization": f"Bearer {auth_service.create_access_token(user)}"}
