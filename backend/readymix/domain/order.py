"""
Order Domain Models

Represents orders placed through checkout, their line items (a snapshot of
the product at purchase time) and the extra services bought with them.

Author: ReadyMix
Date: 2025-06-02
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal


ORDER_STATUSES = (
    "pending",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "failed",
    "refunded",
)
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled", "failed", "refunded"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]


class OrderItem(BaseModel):
    """
    Order Item - a line item frozen at order time

    Fields:
        name, grade, price: Copied from the product when ordered
        variant_type: Delivery method the price was resolved for
        image_url: Primary product image at order time
    """

    id: Optional[str] = Field(None, description="Order item UUID")
    order_id: Optional[str] = Field(None, description="Parent order UUID")
    product_id: Optional[str] = Field(None, description="Product UUID")
    name: str = Field(..., description="Product name at order time")
    grade: Optional[str] = Field(None, description="Product grade at order time")
    price: Decimal = Field(..., description="Unit price", ge=0)
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    variant_type: Optional[str] = Field(None, description="Delivery method")
    image_url: Optional[str] = Field(None, description="Product image")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={Decimal: float}
    )

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        data = self.model_dump()
        data['price'] = float(self.price)
        data['line_total'] = float(self.line_total)
        return data


class OrderAdditionalService(BaseModel):
    id: Optional[str] = None
    order_id: Optional[str] = None
    additional_service_id: str
    service_name: str
    rate_per_m3: Decimal = Field(..., ge=0)
    quantity: Decimal = Field(..., ge=0)
    total_price: Decimal = Field(..., ge=0)

    def to_dict(self) -> dict:
        data = self.model_dump()
        for field in ('rate_per_m3', 'quantity', 'total_price'):
            data[field] = float(data[field])
        return data


class Address(BaseModel):
    """Shipping address"""
    id: Optional[str] = None
    user_id: Optional[str] = None
    full_name: str
    phone: Optional[str] = None
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str = "Malaysia"
    is_default: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AddressInput(BaseModel):
    full_name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    address_line1: str = Field(..., min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = "Malaysia"
    is_default: bool = False


class Order(BaseModel):
    """
    Order domain model

    Totals are stored as charged; they are never recomputed from items.
    """

    id: str = Field(..., description="Order UUID")
    user_id: str = Field(..., description="Buyer (auth user id)")
    status: OrderStatus = Field("pending", description="Fulfilment status")
    payment_status: PaymentStatus = Field("pending", description="Payment status")
    payment_intent_id: Optional[str] = Field(None, description="Stripe PaymentIntent id")
    subtotal: Decimal = Field(Decimal('0'), ge=0)
    shipping_cost: Decimal = Field(Decimal('0'), ge=0)
    tax: Decimal = Field(Decimal('0'), ge=0)
    total: Decimal = Field(..., ge=0)
    address_id: Optional[str] = None
    notes: Optional[str] = None
    address: Optional[Address] = None
    items: List[OrderItem] = Field(default_factory=list)
    additional_services: List[OrderAdditionalService] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={
            Decimal: float,
            datetime: lambda v: v.isoformat()
        }
    )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    def to_dict(self) -> dict:
        data = self.model_dump(exclude={'items', 'additional_services'})
        for field in ('subtotal', 'shipping_cost', 'tax', 'total'):
            data[field] = float(data[field])
        data['items'] = [item.to_dict() for item in self.items]
        data['additional_services'] = [svc.to_dict() for svc in self.additional_services]
        data['item_count'] = self.item_count
        data['is_paid'] = self.is_paid
        return data


class OrderItemInput(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    variant_type: Optional[str] = None


class OrderCreate(BaseModel):
    """Body of POST /orders"""
    items: List[OrderItemInput] = Field(default_factory=list)
    address_id: Optional[str] = None
    subtotal: Optional[Decimal] = None
    shipping_cost: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    total: Optional[Decimal] = None
    payment_intent_id: Optional[str] = None
    service_codes: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: str


class OrderBulkDelete(BaseModel):
    ids: List[str] = Field(default_factory=list)
