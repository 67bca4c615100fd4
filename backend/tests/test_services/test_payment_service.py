"""
Unit tests for the Stripe gateway wrapper

Author: ReadyMix
Date: 2025-06-11
"""
import pytest
from unittest.mock import patch

import stripe

from readymix.core.exceptions import ConfigurationError, NotFoundError, PaymentError, ValidationError
from readymix.services.payment_service import PaymentIntentResult, StripeGateway

# Bound at import so helpers still build real intents while stripe.PaymentIntent is patched
RealPaymentIntent = stripe.PaymentIntent

def stripe_intent(**overrides):
    data = dict(
        id="pi_1", object="payment_intent", status="requires_payment_method", amount=53000, currency="myr",
        client_secret="pi_1_secret", amount_received=0, metadata={'order_id': "o-1"}
    )
    data.update(overrides)
    return RealPaymentIntent.construct_from(data, "sk_test_123")


class TestPaymentIntentResult:

    def test_from_stripe(self):
        result = PaymentIntentResult.from_stripe(stripe_intent(status="succeeded", amount_received=53000))

        assert result.succeeded
        assert result.amount_received == 53000
        assert result.metadata == {'order_id': "o-1"}
        assert type(result.metadata) is dict

    def test_missing_optional_fields(self):
        bare = stripe.PaymentIntent.construct_from(
            {'id': "pi_2", 'object': "payment_intent", 'status': "canceled", 'amount': 100, 'currency': "myr"},
            "sk_test_123"
        )

        result = PaymentIntentResult.from_stripe(bare)

        assert result.client_secret is None
        assert result.amount_received == 0
        assert result.metadata == {}
        assert not result.succeeded


class TestStripeGateway:

    def test_requires_secret_key(self):
        with pytest.raises(ConfigurationError):
            StripeGateway(api_key="").create_payment_intent(amount=100)

    @patch('readymix.services.payment_service.stripe.PaymentIntent')
    def test_create_payment_intent(self, mock_intent):
        mock_intent.create.return_value = stripe_intent()

        result = StripeGateway(api_key="sk_test_123").create_payment_intent(
            amount=53000, metadata={'order_id': "o-1"}, idempotency_key="key-1"
        )

        assert result.client_secret == "pi_1_secret"
        kwargs = mock_intent.create.call_args.kwargs
        assert kwargs['currency'] == "myr"
        assert kwargs['automatic_payment_methods'] == {'enabled': True}
        assert kwargs['idempotency_key'] == "key-1"

    @patch('readymix.services.payment_service.stripe.PaymentIntent')
    def test_create_without_idempotency_key(self, mock_intent):
        mock_intent.create.return_value = stripe_intent()

        StripeGateway(api_key="sk_test_123").create_payment_intent(amount=100, currency="USD")

        kwargs = mock_intent.create.call_args.kwargs
        assert 'idempotency_key' not in kwargs
        assert kwargs['currency'] == "usd"

    @patch('readymix.services.payment_service.stripe.PaymentIntent')
    def test_stripe_error_becomes_payment_error(self, mock_intent):
        mock_intent.create.side_effect = stripe.StripeError("card declined")

        with pytest.raises(PaymentError) as exc_info:
            StripeGateway(api_key="sk_test_123").create_payment_intent(amount=100)

        assert exc_info.value.status_code == 402

    @patch('readymix.services.payment_service.stripe.PaymentIntent')
    def test_retrieve_missing_intent(self, mock_intent):
        mock_intent.retrieve.side_effect = stripe.InvalidRequestError(
            "No such payment_intent", param="intent", code="resource_missing"
        )

        with pytest.raises(NotFoundError):
            StripeGateway(api_key="sk_test_123").retrieve_payment_intent("pi_missing")

    @patch('readymix.services.payment_service.stripe.PaymentIntent')
    def test_retrieve_bad_request(self, mock_intent):
        mock_intent.retrieve.side_effect = stripe.InvalidRequestError("Invalid id", param="intent")

        with pytest.raises(PaymentError) as exc_info:
            StripeGateway(api_key="sk_test_123").retrieve_payment_intent("bogus")

        assert exc_info.value.status_code == 400


class TestWebhookSignature:

    def test_requires_webhook_secret(self):
        with pytest.raises(ConfigurationError):
            StripeGateway(api_key="sk", webhook_secret="").construct_event(b"{}", "sig")

    @patch('readymix.services.payment_service.stripe.Webhook')
    def test_valid_event(self, mock_webhook):
        mock_webhook.construct_event.return_value = stripe.Event.construct_from({
            'id': "evt_1", 'object': "event", 'type': "payment_intent.succeeded",
            'data': {'object': stripe_intent(metadata={'order_id': "o-7"}).to_dict()},
        }, "sk")

        event = StripeGateway(api_key="sk", webhook_secret="whsec_1").construct_event(b"{}", "sig")

        assert event['type'] == "payment_intent.succeeded"
        assert event['data']['object']['metadata'].get('order_id') == "o-7"
        mock_webhook.construct_event.assert_called_once_with(b"{}", "sig", "whsec_1")

    @patch('readymix.services.payment_service.stripe.Webhook')
    def test_invalid_payload(self, mock_webhook):
        mock_webhook.construct_event.side_effect = ValueError("bad json")

        with pytest.raises(ValidationError, match="Invalid payload"):
            StripeGateway(api_key="sk", webhook_secret="whsec_1").construct_event(b"nope", "sig")

    @patch('readymix.services.payment_service.stripe.Webhook')
    def test_invalid_signature(self, mock_webhook):
        mock_webhook.construct_event.side_effect = stripe.SignatureVerificationError("mismatch", "sig")

        with pytest.raises(ValidationError, match="Invalid signature"):
            StripeGateway(api_key="sk", webhook_secret="whsec_1").construct_event(b"{}", "sig")
