"""Pytest fixtures for storefront tests."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from storefront.application.interfaces import PaymentGateway, RemoteOrder
from storefront.domain.exceptions import PaymentGatewayError
from storefront.domain.models import Product, ProductCategory, User, UserRole, ShippingAddress
from storefront.infrastructure.db_schema import metadata
from storefront.infrastructure.unit_of_work import UnitOfWork

KEY_SECRET = "test_key_secret"
KEY_ID = "rzp_test_key"


class FakeGateway(PaymentGateway):
    """In-memory stand-in for Razorpay."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    @property
    def key_id(self) -> str:
        return KEY_ID

    async def create_remote_order(self, amount: int, currency: str, receipt: str) -> RemoteOrder:
        self.calls.append({"amount": amount, "currency": currency, "receipt": receipt})
        if self.fail:
            raise PaymentGatewayError("Payment gateway error: 500")
        return RemoteOrder(id=f"order_{len(self.calls)}", amount=amount, currency=currency)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def uow(session_factory):
    return UnitOfWork(session_factory)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def shipping_address():
    return ShippingAddress(
        fullname="Asha Rao",
        phone="9876543210",
        street="12 MG Road",
        city="Pune",
        state="Maharashtra",
        pincode="411001"
    )


@pytest.fixture
def make_product(uow):
    """Insert a product; later calls are newer unless created_at is given."""
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    async def _make(**overrides) -> Product:
        counter["n"] += 1
        data = dict(
            id=str(uuid.uuid4()),
            name=f"Product {counter['n']}",
            description="Study material",
            price=Decimal("100"),
            category=ProductCategory.BOOKS,
            images=[f"/uploads/p{counter['n']}.jpg"],
            stock=10,
            created_at=base + timedelta(minutes=counter["n"]),
        )
        data.update(overrides)
        product = Product(**data)
        async with uow() as tx:
            await tx.products.create(product)
            await tx.commit()
        return product

    return _make


@pytest.fixture
def make_user(uow):
    async def _make(role: UserRole = UserRole.USER, **overrides) -> User:
        user_id = overrides.pop("id", str(uuid.uuid4()))
        user = User(
            id=user_id,
            fullname=overrides.pop("fullname", "Test User"),
            email=overrides.pop("email", f"{user_id}@example.com"),
            role=role,
            **overrides
        )
        async with uow() as tx:
            await tx.users.create(user)
            await tx.commit()
        return user

    return _make


@pytest.fixture
def add_to_cart(uow):
    async def _add(user_id: str, product_id: str, quantity: int = 1) -> None:
        async with uow() as tx:
            await tx.carts.add(user_id, product_id, quantity)
            await tx.commit()

    return _add


@pytest.fixture
def key_secret():
    return KEY_SECRET


@pytest.fixture
def failing_gateway():
    return FakeGateway(fail=True)
