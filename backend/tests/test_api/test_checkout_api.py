"""
API tests for cart, checkout and the Stripe webhook

Author: ReadyMix
Date: 2025-06-13
"""
import hashlib
import hmac
import json
import time
from unittest.mock import patch

from readymix.core.exceptions import InsufficientStockError, ValidationError
from readymix.services.payment_service import StripeGateway


def signed_payload(event, secret):
    """Body and Stripe-Signature header the way Stripe signs deliveries"""
    payload = json.dumps(event)
    timestamp = int(time.time())
    digest = hmac.new(secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
    return payload, f"t={timestamp},v1={digest}"


class TestCartApi:

    def test_requires_login(self, client):
        response = client.get("/api/v1/cart/")

        assert response.status_code == 401
        assert response.json() == {"detail": "Authentication required"}

    @patch('readymix.api.cart.CartService')
    def test_add_item(self, mock_service_cls, client, login, customer):
        login(customer)
        mock_service_cls.return_value.add_to_cart.return_value = "ci-1"

        response = client.post("/api/v1/cart/items", json={"product_id": "p-1", "quantity": 3, "variant_type": "pump"})

        assert response.status_code == 200
        assert response.json() == {"status": "success", "data": {"id": "ci-1"}}
        mock_service_cls.return_value.add_to_cart.assert_called_once_with("user-1", "p-1", 3, "pump")

    @patch('readymix.api.cart.CartService')
    def test_add_item_over_stock(self, mock_service_cls, client, login, customer):
        login(customer)
        mock_service_cls.return_value.add_to_cart.side_effect = InsufficientStockError("Only 10 available")

        response = client.post("/api/v1/cart/items", json={"product_id": "p-1", "quantity": 30})

        assert response.status_code == 400
        assert response.json()["detail"] == "Only 10 available"

    def test_unknown_delivery_method_rejected(self, client, login, customer):
        login(customer)

        response = client.post("/api/v1/cart/items", json={"product_id": "p-1", "quantity": 1, "variant_type": "crane"})

        assert response.status_code == 422


class TestCheckoutApi:

    def test_idempotency_key_required(self, client, login, customer):
        login(customer)

        response = client.post("/api/v1/checkout/payment-intent", json={})

        assert response.status_code == 400
        assert "Idempotency-Key" in response.json()["detail"]

    @patch('readymix.api.checkout.OrderService')
    def test_create_payment_intent(self, mock_service_cls, client, login, customer):
        login(customer)
        mock_service_cls.return_value.create_payment_intent.return_value = {
            'client_secret': "pi_1_secret", 'payment_intent_id': "pi_1", 'order_id': "o-1", 'amount': 530.0,
        }

        response = client.post(
            "/api/v1/checkout/payment-intent",
            json={"address_id": "a-1", "service_codes": ["WEEKEND"]},
            headers={"Idempotency-Key": "key-1"}
        )

        assert response.status_code == 200
        assert response.json()["client_secret"] == "pi_1_secret"
        mock_service_cls.return_value.create_payment_intent.assert_called_once_with(
            user_id="user-1", idempotency_key="key-1", address_id="a-1",
            service_codes=["WEEKEND"], notes=None
        )

    @patch('readymix.api.checkout.OrderService')
    def test_empty_selection(self, mock_service_cls, client, login, customer):
        login(customer)
        mock_service_cls.return_value.create_payment_intent.side_effect = ValidationError("No items selected for checkout")

        response = client.post("/api/v1/checkout/payment-intent", json={}, headers={"Idempotency-Key": "k"})

        assert response.status_code == 400


class TestStripeWebhook:

    def test_missing_signature(self, client):
        response = client.post("/api/v1/webhooks/stripe", content=b"{}")

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing Stripe-Signature header"

    @patch('readymix.api.webhooks.get_payment_gateway')
    def test_bad_signature(self, mock_gateway, client):
        mock_gateway.return_value.construct_event.side_effect = ValidationError("Invalid signature")

        response = client.post("/api/v1/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid signature"

    @patch('readymix.api.webhooks.WebhookService')
    @patch('readymix.api.webhooks.get_payment_gateway')
    def test_event_applied(self, mock_gateway, mock_service_cls, client):
        event = {'id': "evt_1", 'type': "payment_intent.succeeded", 'data': {'object': {}}}
        mock_gateway.return_value.construct_event.return_value = event

        response = client.post("/api/v1/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"})

        assert response.json() == {"received": True}
        mock_service_cls.return_value.handle_event.assert_called_once_with(event)

    @patch('readymix.services.webhook_service.NotificationService')
    @patch('readymix.services.webhook_service.CartRepository')
    @patch('readymix.services.webhook_service.ProductRepository')
    @patch('readymix.services.webhook_service.OrderRepository')
    @patch('readymix.api.webhooks.get_payment_gateway')
    def test_signed_delivery_marks_order_paid(
        self, mock_gateway, mock_order_repo_cls, mock_product_repo_cls, mock_cart_repo_cls, mock_notifications_cls, client
    ):
        # Arrange
        mock_gateway.return_value = StripeGateway(api_key="sk_test_123", webhook_secret="whsec_test")
        order_repo = mock_order_repo_cls.return_value
        order_repo.update_payment.return_value = {'id': "o-1", 'user_id': "user-1", 'total': 530.0}
        order_repo.find_by_id.return_value = None
        payload, signature = signed_payload({
            'id': "evt_1",
            'object': "event",
            'type': "payment_intent.succeeded",
            'data': {'object': {
                'id': "pi_1", 'object': "payment_intent", 'status': "succeeded",
                'amount': 53000, 'currency': "myr", 'metadata': {'order_id': "o-1"},
            }},
        }, "whsec_test")

        # Act
        response = client.post(
            "/api/v1/webhooks/stripe",
            content=payload.encode("utf-8"),
            headers={"Stripe-Signature": signature, "Content-Type": "application/json"}
        )

        # Assert
        assert response.status_code == 200
        assert response.json() == {"received": True}
        order_repo.update_payment.assert_called_once_with("o-1", payment_status='paid', status='processing')
        mock_cart_repo_cls.return_value.clear.assert_called_once_with("user-1", selected_only=True)
        mock_notifications_cls.return_value.notify_payment_received.assert_called_once_with("user-1", "o-1", 530.0)

    @patch('readymix.api.webhooks.get_payment_gateway')
    def test_tampered_delivery_rejected(self, mock_gateway, client):
        mock_gateway.return_value = StripeGateway(api_key="sk_test_123", webhook_secret="whsec_test")
        payload, signature = signed_payload({'id': "evt_1", 'object': "event", 'type': "charge.refunded"}, "whsec_other")

        response = client.post("/api/v1/webhooks/stripe", content=payload.encode("utf-8"), headers={"Stripe-Signature": signature})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid signature"
