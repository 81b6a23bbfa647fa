from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel

from storefront.domain.models import (
    Order, OrderStatus, Product, ProductCategory, User, CartEntry
)


class ProductQuery(BaseModel):
    """Catalog filter. offset/limit of None means no pagination"""
    category: Optional[ProductCategory] = None
    search: Optional[str] = None
    sort: str = "newest"
    active_only: bool = True
    featured_only: bool = False
    exclude_id: Optional[str] = None
    offset: int = 0
    limit: Optional[int] = None


class RemoteOrder(BaseModel):
    """Order object on the payment gateway side"""
    id: str
    amount: int
    currency: str


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_for_user(self, order_id: str, user_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def update_status(self, order_id: str, status: OrderStatus) -> bool:
        pass

    @abstractmethod
    async def mark_paid(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Pending -> Paid/Confirmed. Returns False if the order was not Pending"""

    @abstractmethod
    async def mark_failed(self, order_id: str) -> bool:
        """Pending -> Failed. Returns False if the order was not Pending"""

    @abstractmethod
    async def list_by_user(self, user_id: str, newest_first: bool = True) -> List[Order]:
        pass

    @abstractmethod
    async def list_all(self, limit: Optional[int] = None) -> List[Order]:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def aggregate_revenue(self) -> Decimal:
        pass


class ProductRepository(ABC):
    @abstractmethod
    async def get_by_id(self, product_id: str) -> Optional[Product]:
        pass

    @abstractmethod
    async def find(self, query: ProductQuery) -> List[Product]:
        pass

    @abstractmethod
    async def count(self, query: Optional[ProductQuery] = None) -> int:
        pass

    @abstractmethod
    async def categories(self) -> List[str]:
        pass

    @abstractmethod
    async def create(self, product: Product) -> None:
        pass

    @abstractmethod
    async def update(self, product: Product) -> bool:
        """Overwrites the editable fields. Returns False if the product is gone"""

    @abstractmethod
    async def set_active(self, product_id: str, is_active: bool) -> None:
        pass

    @abstractmethod
    async def delete(self, product_id: str) -> bool:
        pass

    @abstractmethod
    async def decrement_stock(self, product_id: str, quantity: int, allow_negative: bool = True) -> bool:
        """Atomic stock -= quantity. Returns False if nothing was updated"""


class UserRepository(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def create(self, user: User) -> None:
        pass

    @abstractmethod
    async def update(self, user: User) -> None:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass


class CartRepository(ABC):
    @abstractmethod
    async def get_entries(self, user_id: str) -> List[CartEntry]:
        """Entries joined with products; deleted products come back as product=None"""

    @abstractmethod
    async def add(self, user_id: str, product_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def set_quantity(self, user_id: str, product_id: str, quantity: int) -> bool:
        pass

    @abstractmethod
    async def remove(self, user_id: str, product_id: str) -> None:
        pass

    @abstractmethod
    async def clear(self, user_id: str) -> None:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @property
    @abstractmethod
    def products(self) -> ProductRepository:
        pass

    @property
    @abstractmethod
    def users(self) -> UserRepository:
        pass

    @property
    @abstractmethod
    def carts(self) -> CartRepository:
        pass

    @abstractmethod
    async def __call__(self):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class PaymentGateway(ABC):
    @property
    @abstractmethod
    def key_id(self) -> str:
        pass

    @abstractmethod
    async def create_remote_order(self, amount: int, currency: str, receipt: str) -> RemoteOrder:
        pass
