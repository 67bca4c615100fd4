"""
Notifications API Endpoints
The signed-in user's in-app notifications

Author: ReadyMix
Date: 2025-06-06
"""
from fastapi import APIRouter, HTTPException, Query, Depends

from readymix.core.auth import TokenUser, get_current_user
from readymix.core.exceptions import ReadyMixError
from readymix.domain.notification import NotificationCreate
from readymix.services.notification_service import NotificationService

router = APIRouter()


@router.get("/")
async def get_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    user: TokenUser = Depends(get_current_user)
):
    try:
        notifications = NotificationService().list_for_user(user.id, unread_only=unread_only, limit=limit)
        return {
            "status": "success",
            "count": len(notifications),
            "data": [n.model_dump() for n in notifications]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching notifications: {str(e)}")


@router.post("/")
async def create_notification(body: NotificationCreate, user: TokenUser = Depends(get_current_user)):
    """Users notify themselves; staff may notify anyone"""
    try:
        if body.user_id != user.id and not user.is_staff:
            raise HTTPException(status_code=403, detail="Cannot create notifications for other users")

        notification = NotificationService().create(
            body.user_id, body.title, body.message, body.type, body.order_id
        )
        return {"status": "success", "data": notification.model_dump()}

    except HTTPException:
        raise
    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating notification: {str(e)}")


@router.get("/unread-count")
async def get_unread_count(user: TokenUser = Depends(get_current_user)):
    try:
        return {"status": "success", "data": {"count": NotificationService().unread_count(user.id)}}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error counting notifications: {str(e)}")


@router.put("/read-all")
async def mark_all_read(user: TokenUser = Depends(get_current_user)):
    try:
        return {"status": "success", "updated": NotificationService().mark_all_read(user.id)}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating notifications: {str(e)}")


@router.put("/{notification_id}/read")
async def mark_read(notification_id: str, user: TokenUser = Depends(get_current_user)):
    try:
        if not NotificationService().mark_read(user.id, notification_id):
            raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
        return {"status": "success"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating notification: {str(e)}")


@router.delete("/")
async def clear_notifications(user: TokenUser = Depends(get_current_user)):
    try:
        return {"status": "success", "deleted": NotificationService().clear_all(user.id)}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error clearing notifications: {str(e)}")


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, user: TokenUser = Depends(get_current_user)):
    try:
        if not NotificationService().delete(user.id, notification_id):
            raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
        return {"status": "success"}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting notification: {str(e)}")
