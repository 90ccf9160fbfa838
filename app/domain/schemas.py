"""Request / response models for the HTTP surface (camelCase on the wire)."""
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer, StringConstraints
from pydantic.alias_generators import to_camel

from app.domain.models import ContactStatus, OrderStatus

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
OptionalText = Optional[Annotated[str, StringConstraints(strip_whitespace=True)]]
# Money goes out as a JSON number, not a string
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---

class CartItem(CamelModel):
    product_name: RequiredText
    quantity: int = Field(..., gt=0, le=1000)
    unit_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class CheckoutRequest(CamelModel):
    customer_name: RequiredText
    customer_email: EmailStr
    customer_phone: OptionalText = None
    items: List[CartItem] = Field(..., min_length=1)
    notes: OptionalText = None


class PlaceOrderRequest(CamelModel):
    customer_name: RequiredText
    customer_email: EmailStr
    customer_phone: RequiredText
    delivery_address: RequiredText
    delivery_date: date
    delivery_time: RequiredText
    items: List[CartItem] = Field(..., min_length=1)
    special_instructions: OptionalText = None


class ContactRequest(CamelModel):
    name: RequiredText
    email: EmailStr
    phone: OptionalText = None
    subject: RequiredText
    message: Annotated[str, StringConstraints(strip_whitespace=True, min_length=10)]


class AdminLoginRequest(CamelModel):
    password: str = ""


# --- Responses ---

class OrderItemOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    product_name: str
    quantity: int
    unit_price: Money
    total_price: Money


class OrderOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    total_amount: Money
    deposit_amount: Money
    remaining_amount: Money
    deposit_paid: bool
    deposit_paid_at: Optional[datetime] = None
    payment_intent_id: Optional[str] = None
    payment_setup_error: Optional[str] = None
    delivery_location: Optional[str] = None
    delivery_date: Optional[date] = None
    delivery_time: Optional[str] = None
    delivery_confirmed: bool
    delivery_confirmed_at: Optional[datetime] = None
    status: OrderStatus
    notes: Optional[str] = None
    created_at: datetime
    items: List[OrderItemOut] = []


class CheckoutResponse(CamelModel):
    success: bool = True
    order_id: str
    order_number: str
    client_secret: str
    deposit_amount: Money
    remaining_amount: Money
    total_amount: Money


class PlaceOrderResponse(CamelModel):
    success: bool = True
    order_id: str
    order_number: str


class OrderEnvelope(CamelModel):
    success: bool = True
    order: OrderOut


class OrderListEnvelope(CamelModel):
    success: bool = True
    orders: List[OrderOut]


class ContactResponse(CamelModel):
    success: bool = True
    message_id: str
    status: ContactStatus
    message: str = "Thank you for your message! We will get back to you soon."
