"""
Checkout API Endpoints
Stripe PaymentIntent creation, verification and confirmation

Author: ReadyMix
Date: 2025-06-06
"""
from fastapi import APIRouter, HTTPException, Header, Depends
from pydantic import BaseModel, Field
from typing import List, Optional
import logging

from readymix.core.auth import TokenUser, get_current_user
from readymix.core.exceptions import ReadyMixError
from readymix.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# REQUEST MODELS
# ============================================================================

class PaymentIntentRequest(BaseModel):
    address_id: Optional[str] = None
    service_codes: List[str] = Field(default_factory=list, description="Selected additional services")
    notes: Optional[str] = None


class PaymentIntentReference(BaseModel):
    payment_intent_id: str = Field(..., min_length=1)


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/payment-intent")
async def create_payment_intent(
    body: PaymentIntentRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    user: TokenUser = Depends(get_current_user)
):
    """
    Create the pending order for the selected cart lines and its PaymentIntent

    Retrying with the same Idempotency-Key returns the first intent again.
    """
    try:
        if not idempotency_key:
            raise HTTPException(status_code=400, detail="Idempotency-Key header is required")

        return OrderService().create_payment_intent(
            user_id=user.id,
            idempotency_key=idempotency_key,
            address_id=body.address_id,
            service_codes=body.service_codes,
            notes=body.notes
        )

    except HTTPException:
        raise
    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Payment intent creation failed for user {user.id}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating payment intent: {str(e)}")


@router.post("/verify-payment")
async def verify_payment(body: PaymentIntentReference, user: TokenUser = Depends(get_current_user)):
    try:
        return OrderService().verify_payment(body.payment_intent_id)

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error verifying payment: {str(e)}")


@router.post("/confirm")
async def confirm_payment(body: PaymentIntentReference, user: TokenUser = Depends(get_current_user)):
    try:
        return OrderService().confirm_payment(user, body.payment_intent_id)

    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error confirming payment: {str(e)}")
