"""
Unit tests for WebhookService
"""
import pytest
from unittest.mock import MagicMock
from decimal import Decimal

from readymix.domain.order import Order, OrderItem
from readymix.services.webhook_service import WebhookService


def event(event_type, **metadata):
    return {
        'type': event_type,
        'data': {'object': {'id': "pi_1", 'metadata': metadata}},
    }


@pytest.fixture
def deps():
    return {
        'order_repo': MagicMock(),
        'product_repo': MagicMock(),
        'cart_repo': MagicMock(),
        'notifications': MagicMock(),
    }


class TestWebhookService:

    def test_payment_succeeded(self, deps):
        # Arrange
        deps['order_repo'].update_payment.return_value = {'id': "o-1", 'user_id': "user-1", 'total': Decimal('530')}
        deps['order_repo'].find_by_id.return_value = Order(
            id="o-1", user_id="user-1", total=Decimal('530'),
            items=[
                OrderItem(product_id="p-1", name="N25 Concrete", price=Decimal('250'), quantity=2),
                OrderItem(product_id="p-1", name="N25 Concrete", price=Decimal('280'), quantity=1),
                OrderItem(product_id=None, name="Removed product", price=Decimal('10'), quantity=4),
            ]
        )

        # Act
        handled = WebhookService(**deps).handle_event(event("payment_intent.succeeded", order_id="o-1"))

        # Assert
        assert handled is True
        deps['order_repo'].update_payment.assert_called_once_with("o-1", payment_status='paid', status='processing')
        deps['product_repo'].decrease_stock.assert_called_once_with({"p-1": 3})
        deps['cart_repo'].clear.assert_called_once_with("user-1", selected_only=True)
        deps['notifications'].notify_payment_received.assert_called_once_with("user-1", "o-1", Decimal('530'))

    def test_payment_failed(self, deps):
        deps['order_repo'].update_payment.return_value = {'id': "o-1", 'user_id': "user-1", 'total': Decimal('530')}

        handled = WebhookService(**deps).handle_event(event("payment_intent.payment_failed", order_id="o-1"))

        assert handled is True
        deps['order_repo'].update_payment.assert_called_once_with("o-1", payment_status='failed', status='cancelled')
        deps['notifications'].notify_payment_failed.assert_called_once_with("user-1", "o-1")
        deps['product_repo'].decrease_stock.assert_not_called()

    def test_missing_order_id(self, deps):
        assert WebhookService(**deps).handle_event(event("payment_intent.succeeded")) is False
        deps['order_repo'].update_payment.assert_not_called()

    def test_unknown_order(self, deps):
        deps['order_repo'].update_payment.return_value = None

        assert WebhookService(**deps).handle_event(event("payment_intent.succeeded", order_id="ghost")) is False
        deps['notifications'].notify_payment_received.assert_not_called()

    def test_unhandled_event_type(self, deps):
        assert WebhookService(**deps).handle_event(event("charge.refunded", order_id="o-1")) is False
        deps['order_repo'].update_payment.assert_not_called()
