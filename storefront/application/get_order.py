from typing import List

from storefront.domain.models import Order
from storefront.domain.exceptions import OrderNotFoundError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, order_id: str) -> Order:
        # Someone else's order looks exactly like a missing one
        async with self._uow() as uow:
            order = await uow.orders.get_for_user(order_id, user_id)
            if not order:
                raise OrderNotFoundError(f"Order {order_id} not found")
            return order


class ListUserOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> List[Order]:
        async with self._uow() as uow:
            return await uow.orders.list_by_user(user_id, newest_first=True)
