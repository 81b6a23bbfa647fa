import logging
from decimal import Decimal
from typing import List
from pydantic import BaseModel

from storefront.domain.models import CartEntry
from storefront.domain.exceptions import ProductNotFoundError, OutOfStockError, InvalidQuantityError

logger = logging.getLogger(__name__)


class CartView(BaseModel):
    lines: List[CartEntry]
    total: Decimal


class AddToCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, product_id: str, quantity: int = 1) -> None:
        if quantity < 1:
            raise InvalidQuantityError(f"Quantity must be at least 1, got {quantity}")

        async with self._uow() as uow:
            product = await uow.products.get_by_id(product_id)
            if not product or not product.is_active:
                raise ProductNotFoundError(f"Product {product_id} not found")
            # Stock is only checked here, not again at checkout
            if product.stock < 1:
                raise OutOfStockError(product_id, product.stock)

            await uow.carts.add(user_id, product_id, quantity)
            await uow.commit()
        logger.info(f"Added {quantity} x {product_id} to cart of user {user_id}")


class UpdateCartItemUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, product_id: str, quantity: int) -> None:
        async with self._uow() as uow:
            if quantity <= 0:
                await uow.carts.remove(user_id, product_id)
            else:
                await uow.carts.set_quantity(user_id, product_id, quantity)
            await uow.commit()


class RemoveFromCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, product_id: str) -> None:
        async with self._uow() as uow:
            await uow.carts.remove(user_id, product_id)
            await uow.commit()


class ViewCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> CartView:
        async with self._uow() as uow:
            entries = await uow.carts.get_entries(user_id)

        lines = [entry for entry in entries if not entry.is_dangling]
        total = sum((e.product.effective_price * e.quantity for e in lines), Decimal("0"))
        return CartView(lines=lines, total=total)
