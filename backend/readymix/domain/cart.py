"""
Cart Domain Models

A shopper has exactly one cart. Each line references a product, a delivery
method (variant_type) and whether it is selected for checkout.

Author: ReadyMix
Date: 2025-06-02
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal

from readymix.domain.product import Product


DeliveryMethod = Literal["normal", "pump", "tremie_1", "tremie_2", "tremie_3"]


class CartItem(BaseModel):
    """A line in the shopper's cart"""
    id: str = Field(..., description="Cart item UUID")
    cart_id: str = Field(..., description="Parent cart UUID")
    product_id: str = Field(..., description="Product UUID")
    quantity: int = Field(..., description="Ordered volume", ge=1)
    variant_type: Optional[str] = Field(None, description="Delivery method")
    selected: bool = Field(True, description="Included in checkout")
    product: Optional[Product] = Field(None, description="Joined product")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Cart(BaseModel):
    id: str
    user_id: str
    items: List[CartItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CartItemAdd(BaseModel):
    """Request body for adding a product to the cart"""
    product_id: str
    quantity: int = Field(1, ge=1)
    variant_type: Optional[DeliveryMethod] = "normal"


class CartItemUpdate(BaseModel):
    quantity: int


class CartSelection(BaseModel):
    selected: bool


class AdditionalService(BaseModel):
    """Optional per-m3 service (e.g. weekend delivery, retarder)"""
    id: str
    service_name: str
    service_code: str
    rate_per_m3: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    is_active: bool = True

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['rate_per_m3'] = float(self.rate_per_m3)
        return data


class FreightCharge(BaseModel):
    """Delivery fee band chosen by total ordered volume"""
    id: str
    min_volume: Decimal = Field(..., ge=0)
    max_volume: Optional[Decimal] = Field(None, description="Open ended when null")
    delivery_fee: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    is_active: bool = True

    def matches(self, volume: float) -> bool:
        if volume < float(self.min_volume):
            return False
        return self.max_volume is None or volume <= float(self.max_volume)

    def to_dict(self) -> dict:
        data = self.model_dump()
        for field in ('min_volume', 'max_volume', 'delivery_fee'):
            if data.get(field) is not None:
                data[field] = float(data[field])
        return data


class QuoteRequest(BaseModel):
    """Body for pricing the selected cart lines with extras"""
    service_codes: List[str] = Field(default_factory=list)
