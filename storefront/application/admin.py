import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from storefront.domain.models import Order, OrderStatus, Product, ProductCategory
from storefront.domain.exceptions import OrderNotFoundError, ProductNotFoundError
from storefront.application.interfaces import ProductQuery

logger = logging.getLogger(__name__)

# An explicit null clears these; for other fields null means "leave as is"
CLEARABLE_PRODUCT_FIELDS = {"short_description", "discount_price", "subject", "class_level", "author"}


class Dashboard(BaseModel):
    total_products: int
    total_orders: int
    total_users: int
    recent_orders: List[Order]
    total_revenue: Decimal


class CreateProductDTO(BaseModel):
    name: str
    description: str
    short_description: Optional[str] = Field(default=None, max_length=200)
    price: Decimal = Field(ge=0)
    discount_price: Optional[Decimal] = Field(default=None, ge=0)
    category: ProductCategory
    images: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    class_level: Optional[str] = None
    author: Optional[str] = None
    stock: int = Field(default=0, ge=0)
    featured: bool = False


class UpdateProductDTO(BaseModel):
    """Partial edit; only the fields that were sent are applied"""
    name: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = Field(default=None, max_length=200)
    price: Optional[Decimal] = Field(default=None, ge=0)
    discount_price: Optional[Decimal] = Field(default=None, ge=0)
    category: Optional[ProductCategory] = None
    images: Optional[List[str]] = None
    subject: Optional[str] = None
    class_level: Optional[str] = None
    author: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    featured: Optional[bool] = None

    def changes(self) -> dict:
        return {
            field: value
            for field, value in self.model_dump(exclude_unset=True).items()
            if value is not None or field in CLEARABLE_PRODUCT_FIELDS
        }


class DashboardUseCase:
    def __init__(self, unit_of_work, recent_limit: int = 10):
        self._uow = unit_of_work
        self._recent_limit = recent_limit

    async def __call__(self) -> Dashboard:
        async with self._uow() as uow:
            return Dashboard(
                total_products=await uow.products.count(),
                total_orders=await uow.orders.count(),
                total_users=await uow.users.count(),
                recent_orders=await uow.orders.list_all(limit=self._recent_limit),
                total_revenue=await uow.orders.aggregate_revenue()
            )


class ListAllOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> List[Order]:
        async with self._uow() as uow:
            return await uow.orders.list_all()


class UpdateOrderStatusUseCase:
    """Plain assignment: any status may follow any other"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, status: OrderStatus) -> Order:
        async with self._uow() as uow:
            if not await uow.orders.update_status(order_id, status):
                raise OrderNotFoundError(f"Order {order_id} not found")
            order = await uow.orders.get_by_id(order_id)
            await uow.commit()
        logger.info(f"Order {order_id} status set to {status.value}")
        return order


class ListAllProductsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> List[Product]:
        async with self._uow() as uow:
            return await uow.products.find(ProductQuery(active_only=False, sort="newest"))


class CreateProductUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: CreateProductDTO) -> Product:
        product = Product(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            **dto.model_dump()
        )
        async with self._uow() as uow:
            await uow.products.create(product)
            await uow.commit()
        logger.info(f"Product {product.id} created")
        return product


class UpdateProductUseCase:
    """Edits a catalog entry. Orders already placed keep their own snapshot"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, product_id: str, dto: UpdateProductDTO) -> Product:
        async with self._uow() as uow:
            product = await uow.products.get_by_id(product_id)
            if not product:
                raise ProductNotFoundError(f"Product {product_id} not found")

            updated = Product.model_validate({**product.model_dump(), **dto.changes()})
            if not await uow.products.update(updated):
                raise ProductNotFoundError(f"Product {product_id} not found")
            await uow.commit()

        logger.info(f"Product {product_id} updated")
        return updated


class ToggleProductUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, product_id: str) -> Product:
        async with self._uow() as uow:
            product = await uow.products.get_by_id(product_id)
            if not product:
                raise ProductNotFoundError(f"Product {product_id} not found")
            await uow.products.set_active(product_id, not product.is_active)
            await uow.commit()
        product.is_active = not product.is_active
        logger.info(f"Product {product_id} {'activated' if product.is_active else 'deactivated'}")
        return product


class DeleteProductUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, product_id: str) -> None:
        # Carts still pointing at it are filtered on read
        async with self._uow() as uow:
            if not await uow.products.delete(product_id):
                raise ProductNotFoundError(f"Product {product_id} not found")
            await uow.commit()
        logger.info(f"Product {product_id} deleted")
