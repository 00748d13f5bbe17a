"""Create mall tables

Revision ID: create_mall_tables
Revises:
Create Date: 2026-10-01 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_mall_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """用户、地址、分类、商品、SKU、购物车、订单"""
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('open_id', sa.Text(), nullable=False, comment='小程序 OpenID'),
        sa.Column('union_id', sa.Text(), nullable=True, comment='开放平台 UnionID'),
        sa.Column('nick_name', sa.Text(), nullable=True, comment='昵称'),
        sa.Column('avatar_url', sa.Text(), nullable=True, comment='头像'),
        sa.Column('gender', sa.SmallInteger(), nullable=False, comment='0未知 1男 2女'),
        sa.Column('country', sa.Text(), nullable=True),
        sa.Column('province', sa.Text(), nullable=True),
        sa.Column('city', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True, comment='手机号'),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('open_id')
    )

    op.create_table('user_addresses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('receiver_name', sa.Text(), nullable=False, comment='收货人'),
        sa.Column('phone', sa.Text(), nullable=False, comment='联系电话'),
        sa.Column('province', sa.Text(), nullable=False),
        sa.Column('city', sa.Text(), nullable=False),
        sa.Column('district', sa.Text(), nullable=False),
        sa.Column('detail_address', sa.Text(), nullable=False),
        sa.Column('postal_code', sa.Text(), nullable=True, comment='6位邮编'),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_user_addresses_user_default', 'user_addresses', ['user_id', 'is_default'])

    op.create_table('categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True, comment='父分类'),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['parent_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('detail_html', sa.Text(), nullable=True, comment='图文详情'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('original_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('sales_count', sa.Integer(), nullable=False),
        sa.Column('unit', sa.Text(), nullable=True, comment='计量单位'),
        sa.Column('main_image_url', sa.Text(), nullable=True),
        sa.Column('image_urls', sa.Text(), nullable=True, comment='图片列表 JSON 文本'),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_recommended', sa.Boolean(), nullable=False),
        sa.Column('is_new', sa.Boolean(), nullable=False),
        sa.Column('is_hot', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_products_category_active', 'products', ['category_id', 'is_active'])

    op.create_table('product_skus',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('sku_code', sa.Text(), nullable=False),
        sa.Column('sku_name', sa.Text(), nullable=True),
        sa.Column('specifications', sa.Text(), nullable=True, comment='规格 JSON 文本'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('original_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('sales_count', sa.Integer(), nullable=False),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_product_skus_stock_non_negative'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku_code')
    )
    op.create_index('ix_product_skus_product', 'product_skus', ['product_id'])

    op.create_table('cart_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_sku_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('is_selected', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('quantity >= 1', name='ck_cart_items_quantity_positive'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['product_sku_id'], ['product_skus.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'product_id', 'product_sku_id', name='uq_cart_items_user_product_sku')
    )
    op.create_index(
        'uq_cart_items_user_product_no_sku', 'cart_items', ['user_id', 'product_id'],
        unique=True,
        postgresql_where=sa.text('product_sku_id IS NULL'),
        sqlite_where=sa.text('product_sku_id IS NULL'),
    )

    op.create_table('orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_no', sa.Text(), nullable=False, comment='订单号'),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False, comment='商品总额'),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=False, comment='优惠金额'),
        sa.Column('shipping_fee', sa.Numeric(10, 2), nullable=False, comment='运费'),
        sa.Column('pay_amount', sa.Numeric(10, 2), nullable=False, comment='实付金额'),
        sa.Column('status', sa.SmallInteger(), nullable=False),
        sa.Column('payment_status', sa.SmallInteger(), nullable=False),
        sa.Column('payment_method', sa.Text(), nullable=True),
        sa.Column('payment_transaction_id', sa.Text(), nullable=True),
        sa.Column('payment_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('receiver_name', sa.Text(), nullable=False),
        sa.Column('receiver_phone', sa.Text(), nullable=False),
        sa.Column('receiver_address', sa.Text(), nullable=False),
        sa.Column('receiver_postcode', sa.Text(), nullable=True),
        sa.Column('shipping_company', sa.Text(), nullable=True),
        sa.Column('shipping_no', sa.Text(), nullable=True),
        sa.Column('shipping_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivery_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finish_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('remark', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('status BETWEEN 1 AND 6', name='ck_orders_status'),
        sa.CheckConstraint('payment_status BETWEEN 0 AND 3', name='ck_orders_payment_status'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_no', name='uq_orders_order_no')
    )
    op.create_index('ix_orders_user_created', 'orders', ['user_id', 'created_at'])
    op.create_index('ix_orders_user_status', 'orders', ['user_id', 'status'])

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_sku_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.Text(), nullable=False),
        sa.Column('product_image', sa.Text(), nullable=True),
        sa.Column('sku_specifications', sa.Text(), nullable=True, comment='规格快照'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False, comment='price × quantity'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['product_sku_id'], ['product_skus.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_items_order', 'order_items', ['order_id'])


def downgrade() -> None:
    op.drop_index('ix_order_items_order', table_name='order_items')
    op.drop_table('order_items')
    op.drop_index('ix_orders_user_status', table_name='orders')
    op.drop_index('ix_orders_user_created', table_name='orders')
    op.drop_table('orders')
    op.drop_index('uq_cart_items_user_product_no_sku', table_name='cart_items')
    op.drop_table('cart_items')
    op.drop_index('ix_product_skus_product', table_name='product_skus')
    op.drop_table('product_skus')
    op.drop_index('ix_products_category_active', table_name='products')
    op.drop_table('products')
    op.drop_table('categories')
    op.drop_index('ix_user_addresses_user_default', table_name='user_addresses')
    op.drop_table('user_addresses')
    op.drop_table('users')
