"""Records persisted in the storage slots and exchanged over HTTP.

Field names are snake_case in Python and camelCase on the wire, which keeps
the stored blobs in the shape the browser storefront wrote.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


logger = logging.getLogger(__name__)


class StorefrontModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Rating(StorefrontModel):
    rate: float = 0.0
    count: int = 0


class Product(StorefrontModel):
    id: int
    title: str
    price: float
    description: str = ""
    category: str = ""
    image: str = ""
    rating: Rating = Field(default_factory=Rating)


class CartItem(StorefrontModel):
    product: Product
    quantity: int = Field(ge=1)

    @property
    def line_total(self) -> float:
        return self.product.price * self.quantity


class OrderStatus(str, Enum):
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class OrderItem(StorefrontModel):
    product_id: int
    name: str
    quantity: int
    price: float
    image: str = ""


class ShippingAddress(StorefrontModel):
    address: str
    city: str
    state: str
    zip_code: str
    country: str


class PaymentSummary(StorefrontModel):
    card_last4: str
    card_type: str


class Order(StorefrontModel):
    id: Optional[int] = None
    customer_name: str
    email: str
    total: float
    date: Optional[str] = None
    status: OrderStatus = OrderStatus.PROCESSING
    shipping_address: ShippingAddress
    payment_method: PaymentSummary
    items: List[OrderItem] = Field(default_factory=list)

    @property
    def placed_at(self) -> datetime:
        return parse_timestamp(self.date)


class InventoryItem(StorefrontModel):
    product_id: int
    product_name: str
    product_image: str = ""
    current_stock: int
    initial_stock: int
    price: float
    category: str = ""
    last_updated: datetime = Field(default_factory=datetime.now)


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class User(StorefrontModel):
    id: int
    email: str
    username: str
    role: UserRole = UserRole.USER
    token: Optional[str] = None
    password: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    phone: Optional[str] = None
    profile_picture: Optional[str] = None

    def without_password(self) -> "User":
        return self.model_copy(update={"password": None})


class PaymentMethodType(str, Enum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    AMEX = "amex"
    PAYPAL = "paypal"


class PaymentMethod(StorefrontModel):
    id: str
    type: PaymentMethodType
    last_four: str
    expiry_month: str
    expiry_year: str
    holder_name: str
    is_default: bool = False


class ShippingDetails(StorefrontModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""


class PaymentDetails(StorefrontModel):
    card_number: str = ""
    card_name: str = ""
    expiry_date: str = ""
    cvv: str = ""


class OrderConfirmation(StorefrontModel):
    order_id: int
    subtotal: float
    tax: float
    total: float
    customer_name: str
    email: str
    item_count: int
    payment_method: PaymentSummary
    estimated_delivery: str
    items: List[OrderItem]


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse the ISO strings stored on orders.

    Browser-written dates end in ``Z``; they are compared as naive local
    values like the rest of the storefront's dates.
    """
    if not value:
        return datetime.min
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        logger.warning(f"Unreadable timestamp {value!r}: {e}")
        return datetime.min
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
