"""
Stripe webhook receiver

The raw body is verified against the Stripe-Signature header before any
event is applied.
"""
from fastapi import APIRouter, HTTPException, Header, Request
from typing import Optional
import logging

from readymix.core.exceptions import ReadyMixError
from readymix.services.payment_service import get_payment_gateway
from readymix.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature")
):
    if not stripe_signature:
        raise HTTPException(status_code=400, detail="Missing Stripe-Signature header")

    payload = await request.body()

    try:
        event = get_payment_gateway().construct_event(payload, stripe_signature)
    except ReadyMixError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    try:
        logger.info(f"Stripe event {event.get('id')}: {event.get('type')}")
        WebhookService().handle_event(event)
        return {"received": True}

    except Exception as e:
        logger.error(f"Webhook processing failed for {event.get('type')}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error processing webhook: {str(e)}")
