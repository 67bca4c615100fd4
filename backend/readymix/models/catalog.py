"""
Catalog tables: products, images, extra services and freight bands
"""
from sqlalchemy import Column, String, Boolean, DateTime, Text, Integer, DECIMAL, ForeignKey, text
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from readymix.core.database import Base


def uuid_pk():
    return Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))


class Product(Base):
    """
    Ready-mix concrete / mortar product, priced per delivery method
    """
    __tablename__ = "products"

    id = uuid_pk()

    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    grade = Column(String(20), nullable=False, index=True)
    product_type = Column(String(20), nullable=False, default="concrete", index=True)
    mortar_ratio = Column(String(20))
    category = Column(String(100), index=True)

    # Flat prices per delivery method
    normal_price = Column(DECIMAL(12, 2))
    pump_price = Column(DECIMAL(12, 2))
    tremie_1_price = Column(DECIMAL(12, 2))
    tremie_2_price = Column(DECIMAL(12, 2))
    tremie_3_price = Column(DECIMAL(12, 2))

    unit = Column(String(20), default="m3")
    stock_quantity = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="draft", index=True)
    is_featured = Column(Boolean, default=False)
    keywords = Column(ARRAY(Text), server_default=text("'{}'"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    images = relationship("ProductImage", back_populates="product", cascade="all, delete-orphan")


class ProductImage(Base):
    __tablename__ = "product_images"

    id = uuid_pk()
    product_id = Column(UUID(as_uuid=False), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)
    alt_text = Column(String(255))
    is_primary = Column(Boolean, default=False)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product", back_populates="images")


class AdditionalService(Base):
    """Optional extras charged per m3 of the order volume"""
    __tablename__ = "additional_services"

    id = uuid_pk()
    service_name = Column(String(255), nullable=False)
    service_code = Column(String(50), nullable=False, unique=True)
    rate_per_m3 = Column(DECIMAL(12, 2), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class FreightCharge(Base):
    """Delivery fee bands by total ordered volume (max_volume NULL = open ended)"""
    __tablename__ = "freight_charges"

    id = uuid_pk()
    min_volume = Column(DECIMAL(10, 2), nullable=False)
    max_volume = Column(DECIMAL(10, 2))
    delivery_fee = Column(DECIMAL(12, 2), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
