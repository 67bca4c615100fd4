"""
Staff API Endpoints
Back-office CRUD for FAQs, enquiries, posts and products.
All endpoints require the staff role or higher.

Author: ReadyMix
Date: 2025-06-06
"""
from fastapi import APIRouter, HTTPException, Query, Depends
from typing import Optional

from readymix.core.auth import TokenUser, require_staff
from readymix.core.exceptions import ReadyMixError
from readymix.domain.content import FaqCreate, FaqUpdate, EnquiryUpdate, PostCreate, PostUpdate
from readymix.domain.product import ProductCreate, ProductUpdate
from readymix.repositories.content_repository import ContentRepository
from readymix.repositories.product_repository import ProductRepository
from readymix.services.content_service import ContentService

router = APIRouter(dependencies=[Depends(require_staff)])


# ============================================================================
# FAQ
# ============================================================================

@router.get("/faqs")
async def list_faqs(status: Optional[str] = Query(None)):
    try:
        faqs = ContentRepository().list_faqs(status=status)
        return {
            "status": "success",
            "count": len(faqs),
            "data": [faq.model_dump() for faq in faqs]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching FAQs: {str(e)}")


@router.post("/faqs")
async def create_faq(body: FaqCreate):
    """The section is matched by name (case-insensitive) or created"""
    try:
        faq = ContentRepository().create_faq(body)
        return {"status": "success", "data": faq.model_dump()}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating FAQ: {str(e)}")


@router.put("/faqs/{faq_id}")
async def update_faq(faq_id: str, body: FaqUpdate):
    try:
        repo = ContentRepository()
        if not repo.update_faq(faq_id, body):
            raise HTTPException(status_code=404, detail=f"FAQ {faq_id} not found")
        return {"status": "success", "data": repo.find_faq(faq_id).model_dump()}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating FAQ: {str(e)}")


@router.delete("/faqs/{faq_id}")
async def delete_faq(faq_id: str):
    try:
        if not ContentRepository().delete_faq(faq_id):
            raise HTTPException(status_code=404, detail=f"FAQ {faq_id} not found")
        return {"status": "success"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting FAQ: {str(e)}")


# ============================================================================
# ENQUIRIES
# ============================================================================

@router.get("/enquiries")
async def list_enquiries(
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    try:
        enquiries, total = ContentRepository().list_enquiries(status=status, limit=limit, offset=offset)
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(enquiries),
            "data": [enquiry.model_dump() for enquiry in enquiries]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching enquiries: {str(e)}")


@router.get("/enquiries/{enquiry_id}")
async def get_enquiry(enquiry_id: str):
    try:
        enquiry = ContentRepository().find_enquiry(enquiry_id)
        if not enquiry:
            raise HTTPException(status_code=404, detail=f"Enquiry {enquiry_id} not found")
        return {"status": "success", "data": enquiry.model_dump()}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching enquiry: {str(e)}")


@router.put("/enquiries/{enquiry_id}")
async def reply_to_enquiry(enquiry_id: str, body: EnquiryUpdate):
    """Store the reply; a linked customer is notified when the reply is non-empty"""
    try:
        enquiry = ContentService().reply_to_enquiry(enquiry_id, body)
        return {"status": "success", "data": enquiry.model_dump()}

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating enquiry: {str(e)}")


@router.delete("/enquiries/{enquiry_id}")
async def delete_enquiry(enquiry_id: str):
    try:
        if not ContentRepository().delete_enquiry(enquiry_id):
            raise HTTPException(status_code=404, detail=f"Enquiry {enquiry_id} not found")
        return {"status": "success"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting enquiry: {str(e)}")


# ============================================================================
# POSTS
# ============================================================================

@router.get("/posts")
async def list_posts(
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    try:
        posts, total = ContentRepository().list_posts(status=status, limit=limit, offset=offset)
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


@router.post("/posts")
async def create_post(body: PostCreate):
    try:
        post = ContentRepository().create_post(body)
        return {"status": "success", "data": post.model_dump()}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating post: {str(e)}")


@router.put("/posts/{post_id}")
async def update_post(post_id: str, body: PostUpdate):
    try:
        post = ContentRepository().update_post(post_id, body)
        if not post:
            raise HTTPException(status_code=404, detail=f"Post {post_id} not found")
        return {"status": "success", "data": post.model_dump()}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating post: {str(e)}")


@router.delete("/posts/{post_id}")
async def delete_post(post_id: str):
    try:
        if not ContentRepository().delete_post(post_id):
            raise HTTPException(status_code=404, detail=f"Post {post_id} not found")
        return {"status": "success"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting post: {str(e)}")


# ============================================================================
# PRODUCTS
# ============================================================================

@router.post("/products")
async def create_product(body: ProductCreate):
    """mortar_ratio is dropped for concrete; the first image becomes primary"""
    try:
        product = ProductRepository().create(body)
        return {"status": "success", "data": product.to_dict()}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating product: {str(e)}")


@router.put("/products/{product_id}")
async def update_product(product_id: str, body: ProductUpdate):
    try:
        repo = ProductRepository()
        if not repo.update(product_id, body):
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
        return {"status": "success", "data": repo.find_by_id(product_id).to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating product: {str(e)}")


@router.delete("/products/{product_id}")
async def delete_product(product_id: str):
    try:
        if not ProductRepository().delete(product_id):
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
        return {"status": "success"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting product: {str(e)}")
