"""
Notification Domain Model

In-app notifications shown in the shopper's bell menu.
"""
from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


NOTIFICATION_TYPES = ("order", "promotion", "system", "payment", "shipping")
NotificationType = Literal["order", "promotion", "system", "payment", "shipping"]


class Notification(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    type: NotificationType
    read: bool = False
    order_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NotificationCreate(BaseModel):
    user_id: str
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: NotificationType
    order_id: Optional[str] = None
