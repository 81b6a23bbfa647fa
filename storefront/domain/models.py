from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class ProductCategory(str, Enum):
    BOOKS = "Books"
    STUDY_MATERIAL = "Study Material"
    TEST_SERIES = "Test Series"
    VIDEO_COURSES = "Video Courses"
    NOTES = "Notes"
    STATIONERY = "Stationery"
    COMBO_PACKS = "Combo Packs"
    OTHER = "Other"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Product(BaseModel):
    """Value Object: product as seen by checkout"""
    id: str
    name: str
    description: str = ""
    short_description: Optional[str] = None
    price: Decimal
    discount_price: Optional[Decimal] = None
    category: ProductCategory
    images: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    class_level: Optional[str] = None
    author: Optional[str] = None
    stock: int = 0
    featured: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None

    @property
    def effective_price(self) -> Decimal:
        """Discount price wins only when it is actually lower"""
        if self.discount_price and self.discount_price < self.price:
            return self.discount_price
        return self.price

    @property
    def discount_percent(self) -> int:
        if self.discount_price and self.discount_price < self.price:
            return round((self.price - self.discount_price) / self.price * 100)
        return 0

    @property
    def cover_image(self) -> str:
        return self.images[0] if self.images else ""


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


class User(BaseModel):
    """Domain Entity: customer or administrator"""
    id: str
    fullname: str
    email: str
    phone: Optional[str] = None
    role: UserRole = UserRole.USER
    address: Address = Field(default_factory=Address)
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class CartEntry(BaseModel):
    """Cart line. product is None when the referenced product was deleted"""
    product_id: str
    quantity: int
    product: Optional[Product] = None

    @property
    def is_dangling(self) -> bool:
        return self.product is None


class OrderItem(BaseModel):
    """Line item, snapshotted when the order is built"""
    product_id: str
    name: str
    price: Decimal
    quantity: int = Field(ge=1)
    image: str = ""

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class ShippingAddress(BaseModel):
    fullname: str
    phone: str
    street: str
    city: str
    state: str
    pincode: str


class PaymentInfo(BaseModel):
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    gateway_signature: Optional[str] = None
    method: str = "razorpay"


class Order(BaseModel):
    """Domain Entity: one checkout attempt"""
    id: str
    user_id: str
    items: List[OrderItem]
    total_amount: Decimal
    shipping_address: ShippingAddress
    payment_info: PaymentInfo = Field(default_factory=PaymentInfo)
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime
    updated_at: datetime
