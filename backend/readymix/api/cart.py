"""
Cart API Endpoints
The signed-in shopper's cart, checkout selection and price quotes

Author: ReadyMix
Date: 2025-06-05
"""
from fastapi import APIRouter, HTTPException, Query, Depends

from readymix.core.auth import TokenUser, get_current_user
from readymix.core.exceptions import ReadyMixError
from readymix.domain.cart import CartItemAdd, CartItemUpdate, CartSelection, QuoteRequest
from readymix.services.cart_service import CartService

router = APIRouter()


@router.get("/")
async def get_cart(user: TokenUser = Depends(get_current_user)):
    """Lines with resolved unit prices plus totals over the selected lines"""
    try:
        return {
            "status": "success",
            "data": CartService().get_cart_summary(user.id)
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching cart: {str(e)}")


@router.post("/items")
async def add_item(body: CartItemAdd, user: TokenUser = Depends(get_current_user)):
    try:
        item_id = CartService().add_to_cart(user.id, body.product_id, body.quantity, body.variant_type)
        return {
            "status": "success",
            "data": {"id": item_id}
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error adding to cart: {str(e)}")


@router.put("/items/{item_id}")
async def update_item(item_id: str, body: CartItemUpdate, user: TokenUser = Depends(get_current_user)):
    """Quantity 0 or less removes the line"""
    try:
        item = CartService().update_quantity(user.id, item_id, body.quantity)
        return {
            "status": "success",
            "data": item.model_dump() if item else None,
            "removed": item is None
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating cart item: {str(e)}")


@router.delete("/items/{item_id}")
async def remove_item(item_id: str, user: TokenUser = Depends(get_current_user)):
    try:
        CartService().remove_item(user.id, item_id)
        return {"status": "success"}

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error removing cart item: {str(e)}")


@router.put("/items/{item_id}/select")
async def select_item(item_id: str, body: CartSelection, user: TokenUser = Depends(get_current_user)):
    try:
        CartService().set_selected(user.id, body.selected, item_id)
        return {"status": "success"}

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating selection: {str(e)}")


@router.put("/select-all")
async def select_all(body: CartSelection, user: TokenUser = Depends(get_current_user)):
    try:
        count = CartService().set_selected(user.id, body.selected)
        return {"status": "success", "updated": count}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating selection: {str(e)}")


@router.delete("/")
async def clear_cart(
    selected_only: bool = Query(False, description="Only remove the selected lines"),
    user: TokenUser = Depends(get_current_user)
):
    try:
        count = CartService().clear(user.id, selected_only=selected_only)
        return {"status": "success", "removed": count}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error clearing cart: {str(e)}")


@router.get("/count")
async def get_item_count(user: TokenUser = Depends(get_current_user)):
    try:
        return {"status": "success", "data": {"count": CartService().get_item_count(user.id)}}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error counting cart items: {str(e)}")


@router.get("/stats")
async def get_stats(user: TokenUser = Depends(get_current_user)):
    try:
        return {"status": "success", "data": CartService().get_stats(user.id)}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching cart stats: {str(e)}")


@router.get("/services")
async def get_services():
    """Active additional services, by name"""
    try:
        services = CartService().get_services()
        return {
            "status": "success",
            "count": len(services),
            "data": [service.to_dict() for service in services]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching services: {str(e)}")


@router.get("/freight-charges")
async def get_freight_charges():
    """Active freight bands, by min_volume"""
    try:
        charges = CartService().get_freight_charges()
        return {
            "status": "success",
            "count": len(charges),
            "data": [charge.to_dict() for charge in charges]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching freight charges: {str(e)}")


@router.post("/quote")
async def quote(body: QuoteRequest, user: TokenUser = Depends(get_current_user)):
    try:
        return {
            "status": "success",
            "data": CartService().quote(user.id, body.service_codes)
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error calculating quote: {str(e)}")
