"""
Product Domain Model

Represents a ready-mix concrete or mortar product sold by the store.
Concrete is identified by strength grade (N10-N30, S30-S45); mortar by
its cement:sand mix ratio (1:3 ... 1:6).

Author: ReadyMix
Date: 2025-06-02
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal


ProductType = Literal["concrete", "mortar"]
ProductStatus = Literal["draft", "published", "archived"]

# Delivery method -> price column
DELIVERY_PRICE_FIELDS = {
    "normal": "normal_price",
    "pump": "pump_price",
    "tremie_1": "tremie_1_price",
    "tremie_2": "tremie_2_price",
    "tremie_3": "tremie_3_price",
}


class ProductImage(BaseModel):
    """Image attached to a product"""
    id: Optional[str] = None
    image_url: str
    alt_text: Optional[str] = None
    is_primary: bool = False
    sort_order: int = 0


class Product(BaseModel):
    """
    Product domain model - represents a product in our catalog

    Fields:
        id: Product UUID
        name: Display name (e.g. "N25 Concrete")
        grade: Strength grade (N20, S30) or mortar code (M034)
        product_type: concrete | mortar
        mortar_ratio: Mix ratio, only for mortar (e.g. "1:4")
        category: Catalog category

        # Pricing per m3, one flat price per delivery method
        normal_price, pump_price, tremie_1_price, tremie_2_price, tremie_3_price

        unit: Selling unit (usually "m3")
        stock_quantity: Available volume
        status: draft | published | archived
        is_featured: Shown on the home page
        keywords: Free-form tags used by the image matcher
        images: Product images, primary first
    """

    id: str = Field(..., description="Product UUID")
    name: str = Field(..., description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    grade: Optional[str] = Field(None, description="Strength grade or mortar code")
    product_type: ProductType = Field("concrete", description="concrete or mortar")
    mortar_ratio: Optional[str] = Field(None, description="Cement:sand ratio for mortar")
    category: Optional[str] = Field(None, description="Catalog category")

    # Pricing (per unit)
    normal_price: Optional[Decimal] = Field(None, description="Standard delivery price", ge=0)
    pump_price: Optional[Decimal] = Field(None, description="Pump delivery price", ge=0)
    tremie_1_price: Optional[Decimal] = Field(None, description="Tremie method 1 price", ge=0)
    tremie_2_price: Optional[Decimal] = Field(None, description="Tremie method 2 price", ge=0)
    tremie_3_price: Optional[Decimal] = Field(None, description="Tremie method 3 price", ge=0)

    unit: Optional[str] = Field(None, description="Selling unit (m3)")
    stock_quantity: int = Field(0, description="Available stock")
    status: ProductStatus = Field("draft", description="Publication status")
    is_featured: bool = Field(False, description="Featured on home page")
    keywords: List[str] = Field(default_factory=list, description="Matching keywords")

    images: List[ProductImage] = Field(default_factory=list, description="Product images")

    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={
            Decimal: float,
            datetime: lambda v: v.isoformat()
        }
    )

    # Computed properties
    @property
    def primary_image_url(self) -> Optional[str]:
        """Primary image, or the first one by sort order"""
        if not self.images:
            return None
        primary = next((img for img in self.images if img.is_primary), None)
        if primary:
            return primary.image_url
        return sorted(self.images, key=lambda img: img.sort_order)[0].image_url

    @property
    def is_in_stock(self) -> bool:
        return self.stock_quantity > 0

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @property
    def available_delivery_methods(self) -> List[str]:
        """Delivery methods that have a positive price"""
        return [
            method for method, field in DELIVERY_PRICE_FIELDS.items()
            if getattr(self, field) is not None and getattr(self, field) > 0
        ]

    def to_dict(self) -> dict:
        """
        Convert to dictionary with computed fields

        Returns dict with all fields plus computed properties
        """
        data = self.model_dump()

        data['primary_image_url'] = self.primary_image_url
        data['is_in_stock'] = self.is_in_stock
        data['available_delivery_methods'] = self.available_delivery_methods

        # Convert Decimal to float for JSON compatibility
        for field in DELIVERY_PRICE_FIELDS.values():
            if data.get(field) is not None:
                data[field] = float(data[field])

        return data


class ProductImageInput(BaseModel):
    image_url: str
    alt_text: Optional[str] = None


class ProductCreate(BaseModel):
    """Schema for creating a new product (staff)"""
    name: str = Field(..., min_length=1)
    grade: str = Field(..., min_length=1)
    product_type: ProductType
    category: str = Field(..., min_length=1)
    unit: str = Field(..., min_length=1)
    status: ProductStatus
    description: Optional[str] = None
    mortar_ratio: Optional[str] = None
    normal_price: Optional[Decimal] = Field(None, ge=0)
    pump_price: Optional[Decimal] = Field(None, ge=0)
    tremie_1_price: Optional[Decimal] = Field(None, ge=0)
    tremie_2_price: Optional[Decimal] = Field(None, ge=0)
    tremie_3_price: Optional[Decimal] = Field(None, ge=0)
    stock_quantity: int = Field(0, ge=0)
    is_featured: bool = False
    keywords: List[str] = Field(default_factory=list)
    images: List[ProductImageInput] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    """Schema for updating an existing product (staff)"""
    name: Optional[str] = None
    grade: Optional[str] = None
    product_type: Optional[ProductType] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    status: Optional[ProductStatus] = None
    description: Optional[str] = None
    mortar_ratio: Optional[str] = None
    normal_price: Optional[Decimal] = Field(None, ge=0)
    pump_price: Optional[Decimal] = Field(None, ge=0)
    tremie_1_price: Optional[Decimal] = Field(None, ge=0)
    tremie_2_price: Optional[Decimal] = Field(None, ge=0)
    tremie_3_price: Optional[Decimal] = Field(None, ge=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    is_featured: Optional[bool] = None
    keywords: Optional[List[str]] = None
    images: Optional[List[ProductImageInput]] = None
