"""
Back-office content and account tables
"""
from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from readymix.core.database import Base
from readymix.models.catalog import uuid_pk


class FaqSection(Base):
    __tablename__ = "faq_sections"

    id = uuid_pk()
    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    faqs = relationship("Faq", back_populates="section")


class Faq(Base):
    __tablename__ = "faq"

    id = uuid_pk()
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    section_id = Column(UUID(as_uuid=False), ForeignKey("faq_sections.id", ondelete="SET NULL"), index=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    section = relationship("FaqSection", back_populates="faqs")


class Post(Base):
    __tablename__ = "posts"

    id = uuid_pk()
    title = Column(String(255), nullable=False)
    body = Column(Text)
    description = Column(Text)
    mobile_description = Column(Text)
    link_name = Column(String(255))
    link = Column(Text)
    image_url = Column(Text)
    status = Column(String(20), nullable=False, default="draft", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Enquiry(Base):
    __tablename__ = "enquiries"

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    subject = Column(String(300), nullable=False)
    message = Column(Text, nullable=False)
    staff_reply = Column(Text)
    status = Column(String(20), nullable=False, default="open", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Notification(Base):
    __tablename__ = "notifications"

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False)
    read = Column(Boolean, nullable=False, default=False, index=True)
    order_id = Column(UUID(as_uuid=False), ForeignKey("orders.id", ondelete="CASCADE"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Wishlist(Base):
    __tablename__ = "wishlists"
    __table_args__ = (
        UniqueConstraint("user_id", "item_type", "item_id", name="uq_wishlists_user_item"),
    )

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    item_type = Column(String(20), nullable=False)
    item_id = Column(UUID(as_uuid=False), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class BanHistory(Base):
    """Append-only moderation log"""
    __tablename__ = "ban_history"

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    action = Column(String(10), nullable=False)
    reason = Column(Text)
    banned_until = Column(DateTime(timezone=True))
    performed_by = Column(UUID(as_uuid=False))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
