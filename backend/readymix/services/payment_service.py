"""
Payment Service
Thin wrapper around the Stripe SDK (PaymentIntents and webhook signatures)

Author: ReadyMix
Date: 2025-06-05
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe

from readymix.core.config import settings
from readymix.core.exceptions import ConfigurationError, NotFoundError, PaymentError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class PaymentIntentResult:
    """Subset of a Stripe PaymentIntent the API hands back"""
    id: str
    status: str
    amount: int
    currency: str
    client_secret: Optional[str] = None
    amount_received: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_stripe(cls, intent) -> "PaymentIntentResult":
        # StripeObject is not a mapping; to_dict() also converts nested metadata
        data = intent.to_dict()
        return cls(
            id=data["id"],
            status=data.get("status"),
            amount=data.get("amount") or 0,
            currency=data.get("currency"),
            client_secret=data.get("client_secret"),
            amount_received=data.get("amount_received") or 0,
            metadata=dict(data.get("metadata") or {}),
        )

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


class StripeGateway:
    """
    Stripe payment gateway

    Features:
    - PaymentIntent creation (automatic payment methods, MYR)
    - PaymentIntent retrieval for verification
    - Webhook signature verification
    """

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET

    def _require_key(self) -> None:
        if not self.api_key:
            raise ConfigurationError("Payment provider not configured")
        stripe.api_key = self.api_key

    def create_payment_intent(
        self,
        amount: int,
        currency: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        idempotency_key: Optional[str] = None
    ) -> PaymentIntentResult:
        """
        Create a PaymentIntent

        Args:
            amount: Amount in the smallest currency unit
            currency: ISO code, defaults to settings.CURRENCY
            metadata: order_id, user_id, idempotency_key
            idempotency_key: Forwarded to Stripe so retries do not double charge

        Returns:
            PaymentIntentResult with client_secret for the frontend
        """
        self._require_key()
        currency = (currency or settings.CURRENCY).lower()

        try:
            params = {
                'amount': amount,
                'currency': currency,
                'automatic_payment_methods': {'enabled': True},
                'metadata': metadata or {},
            }
            if idempotency_key:
                params['idempotency_key'] = idempotency_key

            intent = stripe.PaymentIntent.create(**params)

            logger.info(f"Created PaymentIntent {intent.id} ({amount} {currency})")
            return PaymentIntentResult.from_stripe(intent)

        except stripe.StripeError as e:
            logger.error(f"PaymentIntent creation failed: {e}")
            raise PaymentError(f"Payment provider error: {e.user_message or str(e)}")

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        """
        Raises:
            NotFoundError: Stripe does not know the intent
            PaymentError: any other Stripe failure
        """
        self._require_key()

        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
            logger.info(f"PaymentIntent {payment_intent_id} status: {intent.status}")
            return PaymentIntentResult.from_stripe(intent)

        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == "resource_missing":
                raise NotFoundError(f"Payment intent {payment_intent_id} not found")
            raise PaymentError(f"Payment provider error: {str(e)}", status_code=400)

        except stripe.StripeError as e:
            logger.error(f"PaymentIntent retrieval failed: {e}")
            raise PaymentError(f"Payment provider error: {str(e)}")

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify a webhook payload

        Returns:
            The event as a plain dict (type, data.object, ...)

        Raises:
            ConfigurationError: no webhook secret
            ValidationError: bad payload or signature
        """
        if not self.webhook_secret:
            raise ConfigurationError("Webhook secret not configured")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
            return event.to_dict()

        except ValueError as e:
            logger.warning(f"Invalid webhook payload: {e}")
            raise ValidationError("Invalid payload")

        except stripe.SignatureVerificationError as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise ValidationError("Invalid signature")


_gateway: Optional[StripeGateway] = None


def get_payment_gateway() -> StripeGateway:
    """Process-wide gateway instance"""
    global _gateway
    if _gateway is None:
        _gateway = StripeGateway()
    return _gateway
