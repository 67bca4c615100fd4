"""
Webhook Service
Applies Stripe payment events to orders
"""
import logging
from typing import Any, Dict, Optional

from readymix.repositories.cart_repository import CartRepository
from readymix.repositories.order_repository import OrderRepository
from readymix.repositories.product_repository import ProductRepository
from readymix.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class WebhookService:
    """
    Handles verified Stripe events

    payment_intent.succeeded      -> order paid/processing, stock, cart, notification
    payment_intent.payment_failed -> order failed/cancelled, notification
    """

    def __init__(
        self,
        order_repo: Optional[OrderRepository] = None,
        product_repo: Optional[ProductRepository] = None,
        cart_repo: Optional[CartRepository] = None,
        notifications: Optional[NotificationService] = None
    ):
        self.order_repo = order_repo or OrderRepository()
        self.product_repo = product_repo or ProductRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.notifications = notifications or NotificationService()

    def handle_event(self, event: Dict[str, Any]) -> bool:
        """
        Dispatch an event by type

        Returns:
            True when the event changed an order
        """
        event_type = event.get('type')
        intent = (event.get('data') or {}).get('object') or {}

        if event_type == 'payment_intent.succeeded':
            return self._payment_succeeded(intent)

        if event_type == 'payment_intent.payment_failed':
            return self._payment_failed(intent)

        logger.info(f"Unhandled webhook event type: {event_type}")
        return False

    @staticmethod
    def _order_id(intent: Dict[str, Any]) -> Optional[str]:
        order_id = (intent.get('metadata') or {}).get('order_id')
        if not order_id:
            logger.warning(f"PaymentIntent {intent.get('id')} has no order_id in metadata, skipping")
        return order_id

    def _payment_succeeded(self, intent: Dict[str, Any]) -> bool:
        order_id = self._order_id(intent)
        if not order_id:
            return False

        order = self.order_repo.update_payment(order_id, payment_status='paid', status='processing')
        if not order:
            logger.warning(f"Order {order_id} from PaymentIntent {intent.get('id')} not found")
            return False

        full_order = self.order_repo.find_by_id(order_id)
        quantities: Dict[str, int] = {}
        for item in (full_order.items if full_order else []):
            if item.product_id:
                quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
        self.product_repo.decrease_stock(quantities)

        self.cart_repo.clear(order['user_id'], selected_only=True)
        self.notifications.notify_payment_received(order['user_id'], order_id, order['total'])

        logger.info(f"Order {order_id} paid via {intent.get('id')}")
        return True

    def _payment_failed(self, intent: Dict[str, Any]) -> bool:
        order_id = self._order_id(intent)
        if not order_id:
            return False

        order = self.order_repo.update_payment(order_id, payment_status='failed', status='cancelled')
        if not order:
            logger.warning(f"Order {order_id} from PaymentIntent {intent.get('id')} not found")
            return False

        self.notifications.notify_payment_failed(order['user_id'], order_id)

        logger.info(f"Order {order_id} payment failed ({intent.get('id')})")
        return True
