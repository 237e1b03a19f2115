"""
Database Schemas

Pydantic models for the four MongoDB collections. Each model doubles as the
wire DTO: JSON uses camelCase aliases, documents use the snake_case field
names.

- Category -> "category" collection
- Customer -> "customer" collection
- Product  -> "product" collection
- Order    -> "order" collection

*Patch models carry the same fields, all optional, for partial updates.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimal in Python and in the store (Decimal128). On the wire it is a JSON
# number, i.e. a float: values beyond float precision are rounded in responses
Money = Annotated[Decimal, Field(ge=0), PlainSerializer(float, return_type=float, when_used="json")]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Audit fields shared by every entity, stamped by the repositories
class Audited(Schema):
    created_by: Optional[str] = None
    created_date: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    last_modified_date: Optional[datetime] = None


AUDIT_FIELDS = frozenset(Audited.model_fields)


# Category schema
class Category(Audited):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    slug: Optional[str] = Field(None, max_length=50)
    active: bool = Field(True, description="Whether category is active")
    image_url: Optional[str] = Field(None, max_length=255)


class CategoryPatch(Schema):
    id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    slug: Optional[str] = Field(None, max_length=50)
    active: Optional[bool] = None
    image_url: Optional[str] = Field(None, max_length=255)


# Customer schema
class Customer(Audited):
    id: Optional[str] = None
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=50)
    active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class CustomerPatch(Schema):
    id: Optional[str] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=50)
    active: Optional[bool] = None


# Product schema
class Product(Audited):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Money
    stock_quantity: int = Field(..., ge=0)
    category_id: Optional[str] = Field(None, max_length=50)
    category_name: Optional[str] = Field(None, description="Display only, filled from the category")
    image_url: Optional[str] = Field(None, max_length=255)
    active: bool = True


class ProductPatch(Schema):
    id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[Money] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    category_id: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = Field(None, max_length=255)
    active: Optional[bool] = None


# Order schema
class Order(Audited):
    id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = Field(None, description="Display only, filled from the customer")
    order_date: datetime = Field(default_factory=utcnow)
    total_amount: Money
    status: str = Field("PENDING", max_length=50, description="PENDING|COMPLETED|CANCELLED|...")
    shipping_address: Optional[str] = Field(None, max_length=500)
    payment_method: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)


class OrderPatch(Schema):
    id: Optional[str] = None
    customer_id: Optional[str] = None
    order_date: Optional[datetime] = None
    total_amount: Optional[Money] = None
    status: Optional[str] = Field(None, max_length=50)
    shipping_address: Optional[str] = Field(None, max_length=500)
    payment_method: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)
