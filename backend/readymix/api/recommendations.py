"""
Recommendations API Endpoints
Personalised suggestions from the signed-in user's purchase history
"""
from fastapi import APIRouter, HTTPException, Depends

from readymix.core.auth import TokenUser, get_current_user
from readymix.services.recommendation_service import RecommendationService

router = APIRouter()


@router.get("/history")
async def get_history_recommendations(user: TokenUser = Depends(get_current_user)):
    try:
        recommendations = RecommendationService().from_history(user.id)
        return {
            "status": "success",
            "count": len(recommendations),
            "data": recommendations
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching recommendations: {str(e)}")
