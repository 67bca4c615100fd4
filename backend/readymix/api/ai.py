"""
AI API Endpoints
Product comparison, business insights and construction-site photo analysis

Author: ReadyMix
Date: 2025-06-08
"""
from fastapi import APIRouter, HTTPException, Depends, File, UploadFile
from pydantic import BaseModel, Field
from typing import List
import logging

from readymix.core.auth import TokenUser, require_staff
from readymix.core.exceptions import ReadyMixError
from readymix.core.rate_limit import rate_limit_check
from readymix.services.ai_comparison_service import AIComparisonService
from readymix.services.insights_service import InsightsService
from readymix.services.site_analysis_service import SiteAnalysisService

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_IMAGE_BYTES = 10 * 1024 * 1024


class CompareRequest(BaseModel):
    product_ids: List[str] = Field(..., description="2-4 product ids")


@router.post("/compare", dependencies=[Depends(rate_limit_check(max_requests=20))])
async def compare_products(body: CompareRequest):
    """
    Side-by-side comparison of 2-4 products

    Falls back to a rule-based comparison when the AI is unavailable
    (source = "fallback").
    """
    try:
        return {
            "status": "success",
            "data": AIComparisonService().compare(body.product_ids)
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("Comparison failed", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error comparing products: {str(e)}")


@router.get("/insights", dependencies=[Depends(rate_limit_check(max_requests=20))])
async def get_insights(user: TokenUser = Depends(require_staff)):
    """Up to 6 business insights for the back office"""
    try:
        return {
            "status": "success",
            "data": InsightsService().generate()
        }

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("Insights generation failed", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error generating insights: {str(e)}")


@router.post("/detect", dependencies=[Depends(rate_limit_check(max_requests=20))])
async def detect(image: UploadFile = File(..., description="Construction site photo")):
    """
    Estimate concrete volume, grade and cost from a site photo

    Returns detected labels, the matched product, quantity estimate,
    costs per delivery method and project insights.
    """
    try:
        if not image.content_type or not image.content_type.startswith("image/"):
            raise HTTPException(status_code=400, detail="Invalid file type. Please upload an image.")

        content = await image.read()
        if not content:
            raise HTTPException(status_code=400, detail="Empty image file")
        if len(content) > MAX_IMAGE_BYTES:
            raise HTTPException(status_code=400, detail="Image too large. Maximum size is 10MB.")

        analysis = await SiteAnalysisService().analyze(content)
        return {"success": True, **analysis}

    except HTTPException:
        raise
    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error("Image analysis failed", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error analyzing image: {str(e)}")
