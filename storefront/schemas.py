from typing import Optional

from pydantic import Field

from .models import OrderStatus, PaymentDetails, ShippingDetails, StorefrontModel, UserRole


class SignupRequest(StorefrontModel):
    email: str
    password: str = Field(min_length=6)
    username: str = Field(min_length=1)
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.USER


class LoginRequest(StorefrontModel):
    email: str
    password: str
    login_type: UserRole = UserRole.USER


class ProfileUpdate(StorefrontModel):
    username: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    phone: Optional[str] = None
    profile_picture: Optional[str] = None


class CartItemRequest(StorefrontModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(default=1, ge=1)


class QuantityUpdate(StorefrontModel):
    quantity: int


class CheckoutRequest(StorefrontModel):
    shipping: ShippingDetails
    payment: PaymentDetails


class PaymentMethodRequest(StorefrontModel):
    card_number: str
    expiry_date: str
    holder_name: str


class StatusUpdate(StorefrontModel):
    status: OrderStatus


class StockUpdate(StorefrontModel):
    stock: int


class TrackProductRequest(StorefrontModel):
    product_id: int = Field(gt=0)
    stock: int = Field(ge=0)
