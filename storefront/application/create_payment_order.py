import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from pydantic import BaseModel

from storefront.domain.models import (
    Order, OrderItem, OrderStatus, PaymentStatus, PaymentInfo, ShippingAddress
)
from storefront.domain.exceptions import EmptyCartError
from storefront.application.interfaces import PaymentGateway


logger = logging.getLogger(__name__)


class PaymentOrderHandle(BaseModel):
    """What the client-side payment widget needs to collect the payment"""
    order_id: str
    gateway_order_id: str
    amount: int
    currency: str
    key_id: str


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def new_receipt_id() -> str:
    # Razorpay caps receipts at 40 chars
    return f"rcpt_{uuid.uuid4().hex}"


async def build_order_from_cart(uow, user_id: str, shipping_address: ShippingAddress) -> Order:
    """Price the user's cart into an unsaved Pending order.

    Entries whose product has been deleted are skipped. Prices and names are
    copied into the line items so later catalog edits do not touch the order.
    """
    entries = await uow.carts.get_entries(user_id)

    items = []
    total = Decimal("0")
    for entry in entries:
        if entry.is_dangling:
            logger.info(f"Skipping cart entry for deleted product {entry.product_id}")
            continue
        product = entry.product
        item = OrderItem(
            product_id=product.id,
            name=product.name,
            price=product.effective_price,
            quantity=entry.quantity,
            image=product.cover_image
        )
        total += item.subtotal
        items.append(item)

    if not items:
        raise EmptyCartError("Cart is empty")

    now = datetime.now(timezone.utc)
    return Order(
        id=str(uuid.uuid4()),
        user_id=user_id,
        items=items,
        total_amount=total,
        shipping_address=shipping_address,
        payment_info=PaymentInfo(),
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        created_at=now,
        updated_at=now
    )


class CreatePaymentOrderUseCase:
    def __init__(self, unit_of_work, payment_gateway: PaymentGateway, currency: str):
        self._uow = unit_of_work
        self._gateway = payment_gateway
        self._currency = currency

    async def __call__(self, user_id: str, shipping_address: ShippingAddress) -> PaymentOrderHandle:
        logger.info(f"Starting checkout for user {user_id}")

        # 1. Price the cart
        async with self._uow() as uow:
            order = await build_order_from_cart(uow, user_id, shipping_address)

        # 2. Remote transaction on the gateway
        amount = to_minor_units(order.total_amount)
        remote = await self._gateway.create_remote_order(
            amount=amount,
            currency=self._currency,
            receipt=new_receipt_id()
        )
        order.payment_info.gateway_order_id = remote.id

        # 3. The local order exists before the client can pay
        async with self._uow() as uow:
            await uow.orders.create(order)
            await uow.commit()
        logger.info(f"Order {order.id} created with gateway order {remote.id}, amount {amount} {remote.currency}")

        return PaymentOrderHandle(
            order_id=order.id,
            gateway_order_id=remote.id,
            amount=remote.amount,
            currency=remote.currency,
            key_id=self._gateway.key_id
        )
