"""
Analytics API Endpoints
Staff dashboard data: KPI cards, carts, orders, product performance,
daily summary and predictive stock alerts

Author: ReadyMix
Date: 2025-06-07
"""
from fastapi import APIRouter, HTTPException, Query, Depends

from readymix.core.auth import require_staff
from readymix.services.analytics_service import AnalyticsService

router = APIRouter(dependencies=[Depends(require_staff)])


@router.get("/kpis")
async def get_kpis():
    """
    Revenue, orders, published products and open enquiries

    Each metric carries a growth % with has_valid_comparison telling
    whether any comparison period had data.
    """
    try:
        return {"status": "success", "data": AnalyticsService().get_kpis()}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching KPI metrics: {str(e)}")


@router.get("/carts")
async def get_cart_analytics():
    try:
        return {"status": "success", "data": AnalyticsService().get_cart_analytics()}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching cart analytics: {str(e)}")


@router.get("/orders")
async def get_orders_analytics(days: int = Query(30, ge=1, le=365)):
    try:
        return {"status": "success", "data": AnalyticsService().get_orders_analytics(days)}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching order analytics: {str(e)}")


@router.get("/products")
async def get_product_performance(limit: int = Query(20, ge=1, le=100)):
    try:
        performance = AnalyticsService().get_product_performance(limit)
        return {"status": "success", "count": len(performance), "data": performance}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching product performance: {str(e)}")


@router.get("/daily-summary")
async def get_daily_summary():
    try:
        return {"status": "success", "data": AnalyticsService().get_daily_summary()}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error building daily summary: {str(e)}")


@router.get("/predictive-alerts")
async def get_predictive_alerts():
    try:
        alerts = AnalyticsService().get_predictive_alerts()
        return {"status": "success", "count": len(alerts), "data": alerts}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error building predictive alerts: {str(e)}")
