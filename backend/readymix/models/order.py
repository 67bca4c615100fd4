"""
Checkout tables: carts, addresses, orders and their lines
"""
from sqlalchemy import Column, String, Boolean, DateTime, Text, Integer, DECIMAL, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from readymix.core.database import Base
from readymix.models.catalog import uuid_pk


class Cart(Base):
    """One cart per shopper"""
    __tablename__ = "carts"

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("CartItem", back_populates="cart", cascade="all, delete-orphan")


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "variant_type", name="uq_cart_items_product_variant"),
    )

    id = uuid_pk()
    cart_id = Column(UUID(as_uuid=False), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=False), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    variant_type = Column(String(20), default="normal")
    selected = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    cart = relationship("Cart", back_populates="items")


class Address(Base):
    __tablename__ = "addresses"

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(50))
    address_line1 = Column(String(255), nullable=False)
    address_line2 = Column(String(255))
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=False)
    country = Column(String(100), nullable=False, default="Malaysia")
    is_default = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Order(Base):
    """
    Orders placed through checkout. Totals are stored as charged.
    """
    __tablename__ = "orders"

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    address_id = Column(UUID(as_uuid=False), ForeignKey("addresses.id", ondelete="SET NULL"), index=True)

    # States
    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="pending", index=True)
    payment_intent_id = Column(String(255), index=True)

    # Amounts (MYR)
    subtotal = Column(DECIMAL(12, 2), nullable=False, default=0)
    shipping_cost = Column(DECIMAL(12, 2), nullable=False, default=0)
    tax = Column(DECIMAL(12, 2), nullable=False, default=0)
    total = Column(DECIMAL(12, 2), nullable=False)

    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    additional_services = relationship("OrderAdditionalService", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """Product snapshot at order time"""
    __tablename__ = "order_items"

    id = uuid_pk()
    order_id = Column(UUID(as_uuid=False), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=False), ForeignKey("products.id", ondelete="SET NULL"), index=True)
    name = Column(String(255), nullable=False)
    grade = Column(String(20))
    price = Column(DECIMAL(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    variant_type = Column(String(20))
    image_url = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")


class OrderAdditionalService(Base):
    __tablename__ = "order_additional_services"

    id = uuid_pk()
    order_id = Column(UUID(as_uuid=False), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    additional_service_id = Column(UUID(as_uuid=False), ForeignKey("additional_services.id"), nullable=False)
    service_name = Column(String(255), nullable=False)
    rate_per_m3 = Column(DECIMAL(12, 2), nullable=False)
    quantity = Column(DECIMAL(10, 2), nullable=False)
    total_price = Column(DECIMAL(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="additional_services")
