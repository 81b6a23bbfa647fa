from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from storefront.domain.models import (
    OrderStatus, PaymentStatus, Product, ProductCategory, Order, OrderItem, ShippingAddress, Address, User,
    UserRole
)


class ProductResponse(BaseModel):
    id: str
    name: str
    description: str
    short_description: Optional[str] = None
    price: Decimal
    discount_price: Optional[Decimal] = None
    effective_price: Decimal
    discount_percent: int
    category: ProductCategory
    images: List[str]
    subject: Optional[str] = None
    class_level: Optional[str] = None
    author: Optional[str] = None
    stock: int
    featured: bool
    is_active: bool

    @classmethod
    def from_domain(cls, product: Product):
        return cls(
            effective_price=product.effective_price,
            discount_percent=product.discount_percent,
            **product.model_dump(exclude={"created_at"})
        )


class ProductPageResponse(BaseModel):
    products: List[ProductResponse]
    total: int
    page: int
    total_pages: int
    categories: List[str]


class ProductDetailResponse(BaseModel):
    product: ProductResponse
    related: List[ProductResponse]


class HomePageResponse(BaseModel):
    featured: List[ProductResponse]
    latest: List[ProductResponse]
    categories: List[str]


class RegisterUserRequest(BaseModel):
    fullname: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: Optional[str] = None
    address: Address = Address()


class UserResponse(BaseModel):
    id: str
    fullname: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    address: Address

    @classmethod
    def from_domain(cls, user: User):
        return cls(**user.model_dump(exclude={"created_at"}))


class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CartLineResponse(BaseModel):
    product: ProductResponse
    quantity: int
    subtotal: Decimal


class CartResponse(BaseModel):
    lines: List[CartLineResponse]
    total: Decimal


class CreatePaymentOrderRequest(BaseModel):
    fullname: str
    phone: str
    street: str
    city: str
    state: str
    pincode: str

    def to_address(self) -> ShippingAddress:
        return ShippingAddress(**self.model_dump())


class PaymentOrderResponse(BaseModel):
    order_id: str
    gateway_order_id: str
    amount: int
    currency: str
    key_id: str


class VerifyPaymentRequest(BaseModel):
    order_id: str
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class VerifyPaymentResponse(BaseModel):
    success: bool
    reason: str
    order_id: str


class OrderResponse(BaseModel):
    id: str
    user_id: str
    items: List[OrderItem]
    total_amount: Decimal
    shipping_address: ShippingAddress
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    payment_method: str
    status: OrderStatus
    payment_status: PaymentStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, order: Order):
        # The signature stays server side
        return cls(
            id=order.id,
            user_id=order.user_id,
            items=order.items,
            total_amount=order.total_amount,
            shipping_address=order.shipping_address,
            gateway_order_id=order.payment_info.gateway_order_id,
            gateway_payment_id=order.payment_info.gateway_payment_id,
            payment_method=order.payment_info.method,
            status=order.status,
            payment_status=order.payment_status,
            created_at=order.created_at,
            updated_at=order.updated_at
        )


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus


class DashboardResponse(BaseModel):
    total_products: int
    total_orders: int
    total_users: int
    recent_orders: List[OrderResponse]
    total_revenue: Decimal


class ErrorResponse(BaseModel):
    success: bool = False
    reason: str
    detail: str
