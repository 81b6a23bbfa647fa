from sqlalchemy import (
    Table, Column, String, Integer, Numeric, Boolean, Text, Enum, DateTime, JSON, MetaData,
    UniqueConstraint
)
from sqlalchemy.sql import func

from storefront.domain.models import OrderStatus, PaymentStatus, UserRole

metadata = MetaData()


def _enum(enum_cls, name: str) -> Enum:
    # Store "Pending", not "PENDING"
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda members: [m.value for m in members],
    )


products_tbl = Table(
    "products",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("short_description", String(200), nullable=True),
    Column("price", Numeric(10, 2), nullable=False),
    Column("discount_price", Numeric(10, 2), nullable=True),
    Column("category", String, nullable=False, index=True),
    Column("images", JSON, nullable=False, default=list),
    Column("subject", String, nullable=True),
    Column("class_level", String, nullable=True),
    Column("author", String, nullable=True),
    Column("stock", Integer, nullable=False, default=0),
    Column("featured", Boolean, nullable=False, default=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)


users_tbl = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),
    Column("fullname", String, nullable=False),
    Column("email", String, nullable=False, unique=True, index=True),
    Column("phone", String, nullable=True),
    Column("role", _enum(UserRole, "user_role"), nullable=False, default=UserRole.USER),
    Column("street", String, nullable=True),
    Column("city", String, nullable=True),
    Column("state", String, nullable=True),
    Column("pincode", String, nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)


# No FK to products: deleting a product leaves dangling cart entries behind
cart_items_tbl = Table(
    "cart_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String, nullable=False, index=True),
    Column("product_id", String, nullable=False),
    Column("quantity", Integer, nullable=False, default=1),
    UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product")
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("items", JSON, nullable=False),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("shipping_address", JSON, nullable=False),
    Column("gateway_order_id", String, nullable=True, index=True),
    Column("gateway_payment_id", String, nullable=True),
    Column("gateway_signature", String, nullable=True),
    Column("payment_method", String, nullable=False, default="razorpay"),
    Column("status", _enum(OrderStatus, "order_status"), nullable=False, default=OrderStatus.PENDING),
    Column(
        "payment_status",
        _enum(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING
    ),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
)
