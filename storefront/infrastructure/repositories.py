from decimal import Decimal
from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy import select, insert, update, delete, func, or_, Numeric
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.domain.models import (
    Order, OrderItem, OrderStatus, PaymentStatus, PaymentInfo, ShippingAddress,
    Product, User, Address, CartEntry
)
from storefront.infrastructure.db_schema import orders_tbl, products_tbl, users_tbl, cart_items_tbl
from storefront.application.interfaces import (
    OrderRepository, ProductRepository, UserRepository, CartRepository, ProductQuery
)

# Dialects with INSERT .. ON CONFLICT: PostgreSQL in production, SQLite in tests
UPSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _escape_like(text: str) -> str:
    """User text is matched literally, not as a LIKE pattern"""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_for_user(self, order_id: str, user_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(
                orders_tbl.c.id == order_id,
                orders_tbl.c.user_id == user_id
            )
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def create(self, order: Order) -> None:
        stmt = insert(orders_tbl).values(
            id=order.id,
            user_id=order.user_id,
            items=[item.model_dump(mode="json") for item in order.items],
            total_amount=order.total_amount,
            shipping_address=order.shipping_address.model_dump(),
            gateway_order_id=order.payment_info.gateway_order_id,
            gateway_payment_id=order.payment_info.gateway_payment_id,
            gateway_signature=order.payment_info.gateway_signature,
            payment_method=order.payment_info.method,
            status=order.status,
            payment_status=order.payment_status,
            created_at=order.created_at,
            updated_at=order.updated_at
        )
        await self._session.execute(stmt)

    async def update_status(self, order_id: str, status: OrderStatus) -> bool:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(
                status=status,
                updated_at=_utcnow()
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def mark_paid(self, order_id: str, payment_id: str, signature: str) -> bool:
        # Conditional on Pending so concurrent confirmations apply effects once
        stmt = (
            update(orders_tbl)
            .where(
                orders_tbl.c.id == order_id,
                orders_tbl.c.payment_status == PaymentStatus.PENDING
            )
            .values(
                gateway_payment_id=payment_id,
                gateway_signature=signature,
                payment_status=PaymentStatus.PAID,
                status=OrderStatus.CONFIRMED,
                updated_at=_utcnow()
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def mark_failed(self, order_id: str) -> bool:
        stmt = (
            update(orders_tbl)
            .where(
                orders_tbl.c.id == order_id,
                orders_tbl.c.payment_status == PaymentStatus.PENDING
            )
            .values(
                payment_status=PaymentStatus.FAILED,
                updated_at=_utcnow()
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def list_by_user(self, user_id: str, newest_first: bool = True) -> List[Order]:
        order_by = orders_tbl.c.created_at.desc() if newest_first else orders_tbl.c.created_at.asc()
        result = await self._session.execute(
            select(orders_tbl)
            .where(orders_tbl.c.user_id == user_id)
            .order_by(order_by)
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def list_all(self, limit: Optional[int] = None) -> List[Order]:
        stmt = select(orders_tbl).order_by(orders_tbl.c.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [self._to_domain(row) for row in result.fetchall()]

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(orders_tbl))
        return result.scalar_one()

    async def aggregate_revenue(self) -> Decimal:
        result = await self._session.execute(
            select(
                func.coalesce(func.sum(orders_tbl.c.total_amount), 0, type_=Numeric(12, 2))
            ).where(orders_tbl.c.payment_status == PaymentStatus.PAID)
        )
        return Decimal(str(result.scalar_one()))

    def _to_domain(self, row) -> Order:
        """DB row -> Domain"""
        return Order(
            id=row.id,
            user_id=row.user_id,
            items=[OrderItem(**item) for item in row.items],
            total_amount=Decimal(str(row.total_amount)),
            shipping_address=ShippingAddress(**row.shipping_address),
            payment_info=PaymentInfo(
                gateway_order_id=row.gateway_order_id,
                gateway_payment_id=row.gateway_payment_id,
                gateway_signature=row.gateway_signature,
                method=row.payment_method
            ),
            status=OrderStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            created_at=row.created_at,
            updated_at=row.updated_at
        )


class SQLAlchemyProductRepository(ProductRepository):
    SORTS = {
        "newest": products_tbl.c.created_at.desc(),
        "price-low": products_tbl.c.price.asc(),
        "price-high": products_tbl.c.price.desc(),
        "name": products_tbl.c.name.asc(),
    }

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.id == product_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_many(self, product_ids: List[str]) -> dict:
        if not product_ids:
            return {}
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.id.in_(product_ids))
        )
        return {row.id: self._to_domain(row) for row in result.fetchall()}

    async def find(self, query: ProductQuery) -> List[Product]:
        stmt = self._apply_filters(select(products_tbl), query)
        stmt = stmt.order_by(self.SORTS.get(query.sort, self.SORTS["newest"]), products_tbl.c.id)
        if query.offset:
            stmt = stmt.offset(query.offset)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        result = await self._session.execute(stmt)
        return [self._to_domain(row) for row in result.fetchall()]

    async def count(self, query: Optional[ProductQuery] = None) -> int:
        stmt = select(func.count()).select_from(products_tbl)
        if query is not None:
            stmt = self._apply_filters(stmt, query)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def categories(self) -> List[str]:
        result = await self._session.execute(
            select(products_tbl.c.category)
            .where(products_tbl.c.is_active.is_(True))
            .distinct()
            .order_by(products_tbl.c.category)
        )
        return [row.category for row in result.fetchall()]

    async def create(self, product: Product) -> None:
        values = product.model_dump(mode="python")
        values["category"] = product.category.value
        values["created_at"] = product.created_at or _utcnow()
        await self._session.execute(insert(products_tbl).values(**values))

    async def update(self, product: Product) -> bool:
        values = product.model_dump(mode="python", exclude={"id", "created_at"})
        values["category"] = product.category.value
        result = await self._session.execute(
            update(products_tbl)
            .where(products_tbl.c.id == product.id)
            .values(**values)
        )
        return result.rowcount > 0

    async def set_active(self, product_id: str, is_active: bool) -> None:
        await self._session.execute(
            update(products_tbl)
            .where(products_tbl.c.id == product_id)
            .values(is_active=is_active)
        )

    async def delete(self, product_id: str) -> bool:
        result = await self._session.execute(
            delete(products_tbl).where(products_tbl.c.id == product_id)
        )
        return result.rowcount > 0

    async def decrement_stock(self, product_id: str, quantity: int, allow_negative: bool = True) -> bool:
        # stock = stock - n in SQL, never read-modify-write in Python
        stmt = (
            update(products_tbl)
            .where(products_tbl.c.id == product_id)
            .values(stock=products_tbl.c.stock - quantity)
        )
        if not allow_negative:
            stmt = stmt.where(products_tbl.c.stock >= quantity)
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    def _apply_filters(self, stmt, query: ProductQuery):
        if query.active_only:
            stmt = stmt.where(products_tbl.c.is_active.is_(True))
        if query.featured_only:
            stmt = stmt.where(products_tbl.c.featured.is_(True))
        if query.category:
            stmt = stmt.where(products_tbl.c.category == query.category.value)
        if query.exclude_id:
            stmt = stmt.where(products_tbl.c.id != query.exclude_id)
        if query.search:
            pattern = f"%{_escape_like(query.search.strip())}%"
            stmt = stmt.where(
                or_(
                    products_tbl.c.name.ilike(pattern, escape="\\"),
                    products_tbl.c.description.ilike(pattern, escape="\\"),
                    products_tbl.c.subject.ilike(pattern, escape="\\"),
                    products_tbl.c.author.ilike(pattern, escape="\\")
                )
            )
        return stmt

    def _to_domain(self, row) -> Product:
        data = dict(row._mapping)
        data["images"] = data.get("images") or []
        return Product(**data)


class SQLAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self._session.execute(
            select(users_tbl).where(users_tbl.c.id == user_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self._session.execute(
            select(users_tbl).where(users_tbl.c.email == email)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def create(self, user: User) -> None:
        stmt = insert(users_tbl).values(
            id=user.id,
            fullname=user.fullname,
            email=user.email,
            phone=user.phone,
            role=user.role,
            street=user.address.street,
            city=user.address.city,
            state=user.address.state,
            pincode=user.address.pincode,
            created_at=user.created_at or _utcnow()
        )
        await self._session.execute(stmt)

    async def update(self, user: User) -> None:
        await self._session.execute(
            update(users_tbl)
            .where(users_tbl.c.id == user.id)
            .values(
                fullname=user.fullname,
                email=user.email,
                phone=user.phone,
                street=user.address.street,
                city=user.address.city,
                state=user.address.state,
                pincode=user.address.pincode
            )
        )

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(users_tbl))
        return result.scalar_one()

    def _to_domain(self, row) -> User:
        return User(
            id=row.id,
            fullname=row.fullname,
            email=row.email,
            phone=row.phone,
            role=row.role,
            address=Address(
                street=row.street,
                city=row.city,
                state=row.state,
                pincode=row.pincode
            ),
            created_at=row.created_at
        )


class SQLAlchemyCartRepository(CartRepository):
    def __init__(self, session: AsyncSession):
        self._session = session
        self._products = SQLAlchemyProductRepository(session)

    async def get_entries(self, user_id: str) -> List[CartEntry]:
        result = await self._session.execute(
            select(cart_items_tbl.c.product_id, cart_items_tbl.c.quantity)
            .where(cart_items_tbl.c.user_id == user_id)
            .order_by(cart_items_tbl.c.id)
        )
        rows = result.fetchall()
        products = await self._products.get_many([row.product_id for row in rows])
        return [
            CartEntry(
                product_id=row.product_id,
                quantity=row.quantity,
                product=products.get(row.product_id)
            )
            for row in rows
        ]

    async def add(self, user_id: str, product_id: str, quantity: int) -> None:
        # One upsert statement, so concurrent adds of the same product merge
        dialect = self._session.get_bind().dialect.name
        upsert = UPSERTS.get(dialect)
        if upsert is None:
            raise NotImplementedError(f"Cart merge is not supported on {dialect}")

        stmt = upsert(cart_items_tbl).values(
            user_id=user_id,
            product_id=product_id,
            quantity=quantity
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[cart_items_tbl.c.user_id, cart_items_tbl.c.product_id],
            set_={"quantity": cart_items_tbl.c.quantity + stmt.excluded.quantity}
        )
        await self._session.execute(stmt)

    async def set_quantity(self, user_id: str, product_id: str, quantity: int) -> bool:
        result = await self._session.execute(
            update(cart_items_tbl)
            .where(
                cart_items_tbl.c.user_id == user_id,
                cart_items_tbl.c.product_id == product_id
            )
            .values(quantity=quantity)
        )
        return result.rowcount > 0

    async def remove(self, user_id: str, product_id: str) -> None:
        await self._session.execute(
            delete(cart_items_tbl).where(
                cart_items_tbl.c.user_id == user_id,
                cart_items_tbl.c.product_id == product_id
            )
        )

    async def clear(self, user_id: str) -> None:
        await self._session.execute(
            delete(cart_items_tbl).where(cart_items_tbl.c.user_id == user_id)
        )
