"""
Products API Endpoints
Public catalog browsing, stock lookups, search, export and per-product
recommendations

Author: ReadyMix
Date: 2025-06-05
"""
from fastapi import APIRouter, HTTPException, Query, Depends
from fastapi.responses import StreamingResponse
from typing import Optional

from readymix.core.auth import TokenUser, get_current_user_optional, require_staff
from readymix.core.exceptions import ReadyMixError
from readymix.repositories.product_repository import ProductRepository
from readymix.services.export_service import ExportService
from readymix.services.recommendation_service import RecommendationService

router = APIRouter()


@router.get("/")
async def get_products(
    status: Optional[str] = Query(None, description="Publication status (staff only)"),
    product_type: Optional[str] = Query(None, description="concrete or mortar"),
    category: Optional[str] = Query(None, description="Filter by category"),
    grade: Optional[str] = Query(None, description="Filter by grade"),
    is_featured: Optional[bool] = Query(None, description="Only featured products"),
    search: Optional[str] = Query(None, description="Search by name"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user: Optional[TokenUser] = Depends(get_current_user_optional)
):
    """
    Get products with optional filters

    Anonymous callers and customers only ever see published products.
    """
    try:
        if not user or not user.is_staff:
            status = "published"

        repo = ProductRepository()
        products, total = repo.find_all(
            status=status,
            product_type=product_type,
            category=category,
            grade=grade,
            is_featured=is_featured,
            search=search,
            limit=limit,
            offset=offset
        )

        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(products),
            "data": [product.to_dict() for product in products]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching products: {str(e)}")


@router.get("/search")
async def search_products(
    q: str = Query(..., min_length=1, description="Name fragment"),
    limit: int = Query(10, ge=1, le=10)
):
    try:
        repo = ProductRepository()
        products = repo.search_by_name(q, limit=limit)

        return {
            "status": "success",
            "count": len(products),
            "data": [product.to_dict() for product in products]
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error searching products: {str(e)}")


@router.get("/export")
async def export_products(
    format: str = Query("csv", description="csv or xlsx"),
    status: Optional[str] = Query(None),
    user: TokenUser = Depends(require_staff)
):
    try:
        content, media_type, filename = ExportService().export_products(format, status=status)
        return StreamingResponse(
            content,
            media_type=media_type,
            headers={"Content-Disposition": f"attachment; filename={filename}"}
        )

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error exporting products: {str(e)}")


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    user: Optional[TokenUser] = Depends(get_current_user_optional)
):
    try:
        repo = ProductRepository()
        product = repo.find_by_id(product_id)

        if not product or (not product.is_published and not (user and user.is_staff)):
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

        return {
            "status": "success",
            "data": product.to_dict()
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching product: {str(e)}")


@router.get("/{product_id}/stock")
async def get_product_stock(product_id: str):
    try:
        stock = ProductRepository().get_stock(product_id)
        if not stock:
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

        return {
            "status": "success",
            "data": {
                "id": str(stock['id']),
                "name": stock['name'],
                "stock_quantity": stock['stock_quantity']
            }
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching stock: {str(e)}")


@router.get("/{product_id}/recommendations")
async def get_product_recommendations(product_id: str):
    """Upgrade, budget and alternative groups for a product page"""
    try:
        groups = RecommendationService().for_product(product_id)
        if groups is None:
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

        return {
            "status": "success",
            "data": groups
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching recommendations: {str(e)}")
