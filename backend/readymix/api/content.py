"""
Public Content API Endpoints
Published FAQs and posts, and the contact (enquiry) form

Author: ReadyMix
Date: 2025-06-06
"""
from fastapi import APIRouter, HTTPException, Query, Depends
from typing import Optional

from readymix.core.auth import TokenUser, get_current_user_optional
from readymix.domain.content import EnquiryCreate
from readymix.repositories.content_repository import ContentRepository
from readymix.services.content_service import ContentService

router = APIRouter()


@router.get("/faqs")
async def get_faqs():
    """Published FAQs grouped by section"""
    try:
        groups = ContentService().published_faqs()
        return {
            "status": "success",
            "count": len(groups),
            "data": groups
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching FAQs: {str(e)}")


@router.get("/posts")
async def get_posts(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    try:
        posts, total = ContentRepository().list_posts(status="published", limit=limit, offset=offset)
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(posts),
            "data": [post.model_dump() for post in posts]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching posts: {str(e)}")


@router.get("/posts/{post_id}")
async def get_post(post_id: str):
    try:
        post = ContentRepository().find_post(post_id, published_only=True)
        if not post:
            raise HTTPException(status_code=404, detail=f"Post {post_id} not found")
        return {"status": "success", "data": post.model_dump()}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching post: {str(e)}")


@router.post("/enquiries")
async def create_enquiry(
    body: EnquiryCreate,
    user: Optional[TokenUser] = Depends(get_current_user_optional)
):
    """Contact form; signed-in senders are linked so they can be notified of the reply"""
    try:
        enquiry = ContentRepository().create_enquiry(body, user_id=user.id if user else None)
        return {"status": "success", "data": enquiry.model_dump()}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error submitting enquiry: {str(e)}")
