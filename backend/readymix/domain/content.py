"""
Content Domain Models

Back-office managed content: FAQs (grouped in sections), blog posts and
customer enquiries.

Author: ReadyMix
Date: 2025-06-03
"""
from pydantic import BaseModel, Field, EmailStr
from typing import Optional, Literal
from datetime import datetime


FaqStatus = Literal["draft", "published", "archived"]
PostStatus = Literal["draft", "published"]
EnquiryStatus = Literal["open", "in_progress", "resolved", "closed"]


# ============================================================================
# FAQ
# ============================================================================

class Faq(BaseModel):
    id: str
    question: str
    answer: str
    section_id: Optional[str] = None
    section_name: Optional[str] = None
    status: FaqStatus = "draft"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FaqCreate(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    section: str = Field(..., min_length=1, description="Section name, created if missing")
    status: FaqStatus


class FaqUpdate(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    section: Optional[str] = None
    status: Optional[FaqStatus] = None


# ============================================================================
# POSTS
# ============================================================================

class Post(BaseModel):
    id: str
    title: str
    body: Optional[str] = None
    description: Optional[str] = None
    mobile_description: Optional[str] = None
    link_name: Optional[str] = None
    link: Optional[str] = None
    image_url: Optional[str] = None
    status: PostStatus = "draft"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1)
    status: PostStatus
    body: Optional[str] = None
    description: Optional[str] = None
    mobile_description: Optional[str] = None
    link_name: Optional[str] = None
    link: Optional[str] = None
    image_url: Optional[str] = None


class PostUpdate(BaseModel):
    title: Optional[str] = None
    status: Optional[PostStatus] = None
    body: Optional[str] = None
    description: Optional[str] = None
    mobile_description: Optional[str] = None
    link_name: Optional[str] = None
    link: Optional[str] = None
    image_url: Optional[str] = None


# ============================================================================
# ENQUIRIES
# ============================================================================

class Enquiry(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str
    email: str
    subject: str
    message: str
    staff_reply: Optional[str] = None
    status: EnquiryStatus = "open"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_answered(self) -> bool:
        return bool(self.staff_reply and self.staff_reply.strip())


class EnquiryCreate(BaseModel):
    """Public contact form"""
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=300)
    message: str = Field(..., min_length=1, max_length=5000)


class EnquiryUpdate(BaseModel):
    """Staff reply"""
    staff_reply: Optional[str] = None
    status: EnquiryStatus
