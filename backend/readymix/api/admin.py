"""
Admin API - User moderation endpoints
Bans, staff promotion and user listing through Supabase Auth

Author: ReadyMix
Date: 2025-06-09
"""
from fastapi import APIRouter, HTTPException, Query, Depends
from typing import Dict, Any
import logging

from readymix.core.auth import TokenUser, require_admin, require_staff
from readymix.core.exceptions import ReadyMixError
from readymix.domain.account import BanRequest, StaffPromotion
from readymix.services.admin_service import AdminService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/users/{user_id}/ban")
async def ban_user(
    user_id: str,
    body: BanRequest,
    admin: TokenUser = Depends(require_staff)
) -> Dict[str, Any]:
    """
    Ban a user until a future date

    The previous ban (if any) is kept in app_metadata.ban_info.previous_bans
    and the action is recorded in ban_history.
    """
    try:
        result = AdminService().ban_user(user_id, body.reason, body.banned_until, admin.id)
        return {
            "status": "success",
            "message": f"User banned until {body.banned_until.date().isoformat()}",
            "data": result
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Ban failed for user {user_id}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error banning user: {str(e)}")


@router.delete("/users/{user_id}/ban")
async def unban_user(user_id: str, admin: TokenUser = Depends(require_staff)) -> Dict[str, Any]:
    try:
        return {
            "status": "success",
            "message": "User unbanned",
            "data": AdminService().unban_user(user_id, admin.id)
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Unban failed for user {user_id}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error unbanning user: {str(e)}")


@router.post("/staff")
async def promote_to_staff(body: StaffPromotion, admin: TokenUser = Depends(require_admin)) -> Dict[str, Any]:
    try:
        return {
            "status": "success",
            "data": AdminService().promote_to_staff(body.user_id)
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error promoting user: {str(e)}")


@router.get("/user-count")
async def get_user_count(admin: TokenUser = Depends(require_staff)) -> Dict[str, Any]:
    try:
        return {"status": "success", "data": {"count": AdminService().count_users()}}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error counting users: {str(e)}")


@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=1000),
    admin: TokenUser = Depends(require_staff)
) -> Dict[str, Any]:
    try:
        users = AdminService().list_users(page=page, per_page=per_page)
        return {
            "status": "success",
            "page": page,
            "per_page": per_page,
            "count": len(users),
            "data": users
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error listing users: {str(e)}")


@router.get("/users/{user_id}")
async def get_user(user_id: str, admin: TokenUser = Depends(require_staff)) -> Dict[str, Any]:
    try:
        return {"status": "success", "data": AdminService().get_user(user_id)}

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"User lookup failed for {user_id}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching user: {str(e)}")


@router.get("/users/{user_id}/ban-history")
async def get_ban_history(user_id: str, admin: TokenUser = Depends(require_staff)) -> Dict[str, Any]:
    try:
        history = AdminService().get_ban_history(user_id)
        return {
            "status": "success",
            "count": len(history),
            "data": [record.model_dump() for record in history]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching ban history: {str(e)}")
