"""
Account API Endpoints
Shipping addresses and wishlist of the signed-in user

Author: ReadyMix
Date: 2025-06-06
"""
from fastapi import APIRouter, HTTPException, Query, Depends
from typing import Optional

from readymix.core.auth import TokenUser, get_current_user
from readymix.domain.account import WishlistAdd, WishlistItemType
from readymix.domain.order import AddressInput
from readymix.repositories.account_repository import AccountRepository

router = APIRouter()


# ============================================================================
# ADDRESSES
# ============================================================================

@router.get("/addresses")
async def list_addresses(user: TokenUser = Depends(get_current_user)):
    try:
        addresses = AccountRepository().list_addresses(user.id)
        return {
            "status": "success",
            "count": len(addresses),
            "data": [address.model_dump() for address in addresses]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching addresses: {str(e)}")


@router.post("/addresses")
async def create_address(body: AddressInput, user: TokenUser = Depends(get_current_user)):
    try:
        address = AccountRepository().create_address(user.id, body)
        return {"status": "success", "data": address.model_dump()}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating address: {str(e)}")


@router.put("/addresses/{address_id}")
async def update_address(address_id: str, body: AddressInput, user: TokenUser = Depends(get_current_user)):
    try:
        address = AccountRepository().update_address(user.id, address_id, body)
        if not address:
            raise HTTPException(status_code=404, detail=f"Address {address_id} not found")
        return {"status": "success", "data": address.model_dump()}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating address: {str(e)}")


@router.put("/addresses/{address_id}/default")
async def set_default_address(address_id: str, user: TokenUser = Depends(get_current_user)):
    """Other addresses of the user lose their default flag"""
    try:
        if not AccountRepository().set_default_address(user.id, address_id):
            raise HTTPException(status_code=404, detail=f"Address {address_id} not found")
        return {"status": "success"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error setting default address: {str(e)}")


@router.delete("/addresses/{address_id}")
async def delete_address(address_id: str, user: TokenUser = Depends(get_current_user)):
    try:
        if not AccountRepository().delete_address(user.id, address_id):
            raise HTTPException(status_code=404, detail=f"Address {address_id} not found")
        return {"status": "success"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting address: {str(e)}")


# ============================================================================
# WISHLIST
# ============================================================================

@router.get("/wishlist")
async def list_wishlist(
    item_type: Optional[WishlistItemType] = Query(None),
    user: TokenUser = Depends(get_current_user)
):
    try:
        items = AccountRepository().list_wishlist(user.id, item_type=item_type)
        return {
            "status": "success",
            "count": len(items),
            "data": [item.model_dump() for item in items]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching wishlist: {str(e)}")


@router.post("/wishlist")
async def add_to_wishlist(body: WishlistAdd, user: TokenUser = Depends(get_current_user)):
    """Adding an item that is already saved is a no-op"""
    try:
        wishlist_id = AccountRepository().add_wishlist_item(user.id, body.item_type, body.item_id)
        return {"status": "success", "data": {"id": wishlist_id}}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error adding to wishlist: {str(e)}")


@router.get("/wishlist/check")
async def check_wishlist(
    item_type: WishlistItemType = Query(...),
    item_id: str = Query(...),
    user: TokenUser = Depends(get_current_user)
):
    try:
        saved = AccountRepository().is_in_wishlist(user.id, item_type, item_id)
        return {"status": "success", "data": {"in_wishlist": saved}}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error checking wishlist: {str(e)}")


@router.delete("/wishlist")
async def remove_from_wishlist(
    item_type: WishlistItemType = Query(...),
    item_id: str = Query(...),
    user: TokenUser = Depends(get_current_user)
):
    try:
        if not AccountRepository().remove_wishlist_item(user.id, item_type, item_id):
            raise HTTPException(status_code=404, detail="Item not in wishlist")
        return {"status": "success"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error removing from wishlist: {str(e)}")
