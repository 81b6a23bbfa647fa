import logging
from typing import List
from pydantic import BaseModel, Field

from storefront.domain.models import Order, PaymentStatus
from storefront.domain.exceptions import (
    OrderNotFoundError, SignatureMismatchError, AlreadyFinalizedError
)
from storefront.domain.signature import signature_matches

logger = logging.getLogger(__name__)


class PaymentVerificationDTO(BaseModel):
    order_id: str
    gateway_order_id: str
    gateway_payment_id: str
    signature: str


class VerificationResult(BaseModel):
    success: bool
    reason: str
    order_id: str
    backordered_product_ids: List[str] = Field(default_factory=list)


class VerifyPaymentUseCase:
    """Confirms a client-reported payment and applies its effects exactly once"""

    def __init__(self, unit_of_work, key_secret: str, allow_negative_stock: bool = True):
        self._uow = unit_of_work
        self._key_secret = key_secret
        self._allow_negative_stock = allow_negative_stock

    async def __call__(self, user_id: str, dto: PaymentVerificationDTO) -> VerificationResult:
        logger.info(f"Verifying payment for order {dto.order_id}")

        async with self._uow() as uow:
            order = await uow.orders.get_for_user(dto.order_id, user_id)
            if not order:
                raise OrderNotFoundError(f"Order {dto.order_id} not found")

            try:
                self._check_signature(order, dto)
            except SignatureMismatchError as e:
                if await uow.orders.mark_failed(order.id):
                    await uow.commit()
                    logger.warning(f"Order {order.id} marked Failed: {e}")
                else:
                    logger.warning(f"Rejected signature for order {order.id} in state {order.payment_status.value}")
                return VerificationResult(success=False, reason=e.reason, order_id=order.id)

            try:
                backordered = await self._finalize(uow, order, dto)
            except AlreadyFinalizedError as e:
                current = await uow.orders.get_by_id(order.id)
                logger.info(f"Order {order.id} already finalized as {current.payment_status.value}")
                return VerificationResult(
                    success=current.payment_status == PaymentStatus.PAID,
                    reason=e.reason,
                    order_id=order.id
                )

            await uow.commit()

        logger.info(f"Order {order.id} marked Paid/Confirmed")
        return VerificationResult(
            success=True,
            reason="paid",
            order_id=order.id,
            backordered_product_ids=backordered
        )

    def _check_signature(self, order: Order, dto: PaymentVerificationDTO) -> None:
        # A valid signature for some other gateway order must not confirm this one
        if order.payment_info.gateway_order_id != dto.gateway_order_id:
            raise SignatureMismatchError("Gateway order id does not belong to this order")
        if not signature_matches(self._key_secret, dto.gateway_order_id, dto.gateway_payment_id, dto.signature):
            raise SignatureMismatchError("Payment signature mismatch")

    async def _finalize(self, uow, order: Order, dto: PaymentVerificationDTO) -> List[str]:
        if not await uow.orders.mark_paid(order.id, dto.gateway_payment_id, dto.signature):
            raise AlreadyFinalizedError(f"Order {order.id} is no longer Pending")

        backordered = []
        for item in order.items:
            applied = await uow.products.decrement_stock(
                item.product_id, item.quantity, allow_negative=self._allow_negative_stock
            )
            if not applied:
                product = await uow.products.get_by_id(item.product_id)
                if product is None:
                    logger.warning(f"Product {item.product_id} no longer exists, stock not updated")
                else:
                    logger.warning(
                        f"Product {item.product_id} has {product.stock} in stock, "
                        f"{item.quantity} ordered in {order.id}; left as backorder"
                    )
                    backordered.append(item.product_id)

        await uow.carts.clear(order.user_id)
        return backordered
