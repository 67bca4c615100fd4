"""
Account Domain Models

Wishlist entries and moderation (ban) records for shopper accounts.

Author: ReadyMix
Date: 2025-06-04
"""
from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


WishlistItemType = Literal["blog", "product"]


class WishlistItem(BaseModel):
    id: str
    user_id: str
    item_type: WishlistItemType
    item_id: str
    title: Optional[str] = Field(None, description="Joined product name or post title")
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None


class WishlistAdd(BaseModel):
    item_type: WishlistItemType
    item_id: str


class BanRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    banned_until: datetime


class BanRecord(BaseModel):
    id: str
    user_id: str
    action: Literal["ban", "unban"]
    reason: Optional[str] = None
    banned_until: Optional[datetime] = None
    performed_by: Optional[str] = None
    created_at: Optional[datetime] = None


class StaffPromotion(BaseModel):
    user_id: str
