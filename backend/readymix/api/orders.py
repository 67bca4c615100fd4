"""
Orders API Endpoints
Customer order history and creation, staff order management and export

Author: ReadyMix
Date: 2025-06-06
"""
from fastapi import APIRouter, HTTPException, Query, Depends
from fastapi.responses import StreamingResponse
from typing import Optional

from readymix.core.auth import TokenUser, get_current_user, require_staff
from readymix.core.exceptions import ReadyMixError
from readymix.domain.order import OrderCreate, OrderStatusUpdate, OrderBulkDelete
from readymix.repositories.order_repository import OrderRepository
from readymix.services.export_service import ExportService
from readymix.services.order_service import OrderService

router = APIRouter()


@router.get("/")
async def get_my_orders(user: TokenUser = Depends(get_current_user)):
    """The current user's orders with items, newest first"""
    try:
        orders = OrderService().list_user_orders(user.id)
        return {
            "status": "success",
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.post("/")
async def create_order(body: OrderCreate, user: TokenUser = Depends(get_current_user)):
    try:
        return OrderService().create_order(user.id, body)

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating order: {str(e)}")


@router.get("/all")
async def get_all_orders(
    status: Optional[str] = Query(None, description="Filter by order status"),
    payment_status: Optional[str] = Query(None, description="Filter by payment status"),
    from_date: Optional[str] = Query(None, description="Created on or after (ISO format)"),
    to_date: Optional[str] = Query(None, description="Created on or before (ISO format)"),
    search: Optional[str] = Query(None, description="Search by order id"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user: TokenUser = Depends(require_staff)
):
    """Staff order list with filters"""
    try:
        orders, total = OrderRepository().find_all(
            status=status,
            payment_status=payment_status,
            from_date=from_date,
            to_date=to_date,
            search=search,
            limit=limit,
            offset=offset
        )

        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.get("/export")
async def export_orders(
    format: str = Query("csv", description="csv or xlsx"),
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    user: TokenUser = Depends(require_staff)
):
    try:
        content, media_type, filename = ExportService().export_orders(
            format, status=status, payment_status=payment_status
        )
        return StreamingResponse(
            content,
            media_type=media_type,
            headers={"Content-Disposition": f"attachment; filename={filename}"}
        )

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error exporting orders: {str(e)}")


@router.delete("/")
async def bulk_delete_orders(body: OrderBulkDelete, user: TokenUser = Depends(require_staff)):
    """Delete orders, their items and addresses no other order uses"""
    try:
        result = OrderService().bulk_delete(body.ids)
        return {"status": "success", "data": result}

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting orders: {str(e)}")


@router.get("/{order_id}")
async def get_order(order_id: str, user: TokenUser = Depends(get_current_user)):
    """Owner or staff; includes address, items and services"""
    try:
        order = OrderService().get_order(order_id, user)
        return {
            "status": "success",
            "data": order.to_dict()
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    user: TokenUser = Depends(require_staff)
):
    try:
        OrderService().update_status(order_id, body.status)
        return {
            "status": "success",
            "data": {"id": order_id, "status": body.status}
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating order status: {str(e)}")
