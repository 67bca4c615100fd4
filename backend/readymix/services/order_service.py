"""
Order Service
Checkout (payment intents), order creation and staff order management

Author: ReadyMix
Date: 2025-06-05
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from readymix.core.auth import TokenUser
from readymix.core.exceptions import NotFoundError, ReadyMixError, ValidationError
from readymix.domain.order import (
    Order, OrderItem, OrderAdditionalService, OrderCreate, ORDER_STATUSES,
)
from readymix.repositories.cart_repository import CartRepository
from readymix.repositories.order_repository import OrderRepository
from readymix.repositories.product_repository import ProductRepository
from readymix.services import pricing_service
from readymix.services.notification_service import NotificationService
from readymix.services.payment_service import StripeGateway, get_payment_gateway

logger = logging.getLogger(__name__)


class OrderService:
    """
    Service for checkout and orders

    Handles:
    - Idempotent PaymentIntent creation for the selected cart lines
    - Order creation with product snapshots
    - Post-order side effects (notification, stock, cart cleanup)
    - Staff status changes and bulk deletion
    """

    def __init__(
        self,
        order_repo: Optional[OrderRepository] = None,
        cart_repo: Optional[CartRepository] = None,
        product_repo: Optional[ProductRepository] = None,
        notifications: Optional[NotificationService] = None,
        gateway: Optional[StripeGateway] = None
    ):
        self.order_repo = order_repo or OrderRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.product_repo = product_repo or ProductRepository()
        self.notifications = notifications or NotificationService()
        self._gateway = gateway

    @property
    def gateway(self) -> StripeGateway:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    # ========================================================================
    # Checkout
    # ========================================================================

    def create_payment_intent(
        self,
        user_id: str,
        idempotency_key: str,
        address_id: Optional[str] = None,
        service_codes: Optional[List[str]] = None,
        notes: Optional[str] = None
    ) -> Dict:
        """
        Create (or reuse) the pending order and its PaymentIntent

        A retry carrying the same idempotency key gets the client secret of
        the intent created the first time, and no second order is written.

        Returns:
            Dict with client_secret, payment_intent_id, order_id, amount
        """
        if not idempotency_key:
            raise ValidationError("Idempotency-Key header is required")

        latest = self.order_repo.find_latest_pending(user_id)
        existing = None
        if latest and latest.payment_intent_id:
            try:
                existing = self.gateway.retrieve_payment_intent(latest.payment_intent_id)
            except ReadyMixError as e:
                logger.warning(f"Could not retrieve PaymentIntent {latest.payment_intent_id}, creating a new one: {e.message}")

            if existing and existing.metadata.get('idempotency_key') == idempotency_key:
                logger.info(f"Reusing PaymentIntent {existing.id} for order {latest.id}")
                return {
                    'client_secret': existing.client_secret,
                    'payment_intent_id': existing.id,
                    'order_id': latest.id,
                    'amount': float(latest.total),
                }

        items = self.cart_repo.get_items(user_id, selected_only=True)
        if not items:
            raise ValidationError("No items selected for checkout")

        totals = pricing_service.calculate_order_totals_with_services(
            items,
            service_codes or [],
            self.cart_repo.get_active_services(),
            self.cart_repo.get_active_freight_charges()
        )

        order_id = self.order_repo.create(
            user_id=user_id,
            total=totals['total'],
            subtotal=totals['subtotal'],
            shipping_cost=totals['freight_charge'],
            tax=totals['tax'],
            address_id=address_id,
            notes=notes
        )

        order_items = [
            OrderItem(
                product_id=item.product_id,
                name=item.product.name,
                grade=item.product.grade,
                price=Decimal(str(pricing_service.get_product_price(item.product, item.variant_type))),
                quantity=item.quantity,
                variant_type=item.variant_type,
                image_url=item.product.primary_image_url
            )
            for item in items
        ]
        self._insert_items_or_rollback(order_id, order_items)

        self.order_repo.insert_additional_services(order_id, [
            OrderAdditionalService(
                additional_service_id=line['additional_service_id'],
                service_name=line['service_name'],
                rate_per_m3=Decimal(str(line['rate_per_m3'])),
                quantity=Decimal(str(line['quantity'])),
                total_price=Decimal(str(line['total_price']))
            )
            for line in totals['services']
        ])

        intent = self.gateway.create_payment_intent(
            amount=pricing_service.to_stripe_amount(totals['total']),
            metadata={
                'order_id': order_id,
                'user_id': user_id,
                'idempotency_key': idempotency_key,
            },
            idempotency_key=idempotency_key
        )
        self.order_repo.set_payment_intent(order_id, intent.id)

        logger.info(f"Order {order_id} awaiting payment via {intent.id} (RM{totals['total']:.2f})")

        return {
            'client_secret': intent.client_secret,
            'payment_intent_id': intent.id,
            'order_id': order_id,
            'amount': totals['total'],
        }

    def _insert_items_or_rollback(self, order_id: str, items: List[OrderItem]) -> None:
        try:
            self.order_repo.insert_items(order_id, items)
        except Exception:
            logger.error(f"Failed to insert items for order {order_id}, removing order", exc_info=True)
            self.order_repo.delete(order_id)
            raise

    def verify_payment(self, payment_intent_id: str) -> Dict:
        intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        return {
            'id': intent.id,
            'status': intent.status,
            'amount': intent.amount,
            'currency': intent.currency,
        }

    def confirm_payment(self, user: TokenUser, payment_intent_id: str) -> Dict:
        """Intent status plus the order it paid for"""
        intent = self.gateway.retrieve_payment_intent(payment_intent_id)

        order = self.order_repo.find_by_payment_intent(payment_intent_id)
        if not order or (order.user_id != user.id and not user.is_staff):
            raise NotFoundError("Order not found for this payment")

        return {
            'status': intent.status,
            'order': order.to_dict(),
            'amount_received': intent.amount_received,
        }

    # ========================================================================
    # Orders
    # ========================================================================

    def create_order(self, user_id: str, data: OrderCreate) -> Dict:
        """
        Create an order from explicit items (confirmed payment or pay later)

        Returns:
            Dict with order_id, amount, payment_completed
        """
        if not data.items:
            raise ValidationError("Order must contain at least one item")
        if data.total is None or data.subtotal is None:
            raise ValidationError("Order totals are required")

        payment_completed = False
        if data.payment_intent_id:
            intent = self.gateway.retrieve_payment_intent(data.payment_intent_id)
            if not intent.succeeded:
                raise ValidationError(f"Payment not completed (status: {intent.status})")
            payment_completed = True

        products = self.product_repo.find_by_ids(item.product_id for item in data.items)
        missing = [item.product_id for item in data.items if item.product_id not in products]
        if missing:
            raise ValidationError(f"Product not found: {missing[0]}")

        order_id = self.order_repo.create(
            user_id=user_id,
            total=data.total,
            subtotal=data.subtotal,
            shipping_cost=data.shipping_cost or 0,
            tax=data.tax or 0,
            address_id=data.address_id,
            payment_intent_id=data.payment_intent_id,
            payment_status="paid" if payment_completed else "pending",
            notes=data.notes
        )

        order_items = []
        for item in data.items:
            product = products[item.product_id]
            order_items.append(OrderItem(
                product_id=product.id,
                name=product.name,
                grade=product.grade,
                price=Decimal(str(pricing_service.get_product_price(product, item.variant_type))),
                quantity=item.quantity,
                variant_type=item.variant_type,
                image_url=product.primary_image_url
            ))
        self._insert_items_or_rollback(order_id, order_items)

        logger.info(f"Order {order_id} created for user {user_id} (paid={payment_completed})")

        self._after_order_created(user_id, order_id, data, order_items, payment_completed)

        return {
            'order_id': order_id,
            'amount': float(data.total),
            'payment_completed': payment_completed,
        }

    def _after_order_created(
        self,
        user_id: str,
        order_id: str,
        data: OrderCreate,
        order_items: List[OrderItem],
        payment_completed: bool
    ) -> None:
        """Side effects that must not undo an order already written"""
        try:
            self.notifications.notify_order_created(user_id, order_id, float(data.total), payment_completed)
        except Exception as e:
            logger.error(f"Order {order_id}: notification failed: {e}", exc_info=True)

        quantities: Dict[str, int] = {}
        for item in order_items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
        try:
            self.product_repo.decrease_stock(quantities)
        except Exception as e:
            logger.error(f"Order {order_id}: stock update failed: {e}", exc_info=True)

        try:
            self.cart_repo.clear(user_id, selected_only=True)
        except Exception as e:
            logger.error(f"Order {order_id}: cart cleanup failed: {e}", exc_info=True)

        if data.service_codes:
            volume = sum(item.quantity for item in order_items)
            codes = set(data.service_codes)
            try:
                services = [
                    OrderAdditionalService(
                        additional_service_id=svc.id,
                        service_name=svc.service_name,
                        rate_per_m3=svc.rate_per_m3,
                        quantity=Decimal(volume),
                        total_price=(svc.rate_per_m3 * volume).quantize(Decimal("0.01"))
                    )
                    for svc in self.cart_repo.get_active_services()
                    if svc.service_code in codes
                ]
                self.order_repo.insert_additional_services(order_id, services)
            except Exception as e:
                logger.error(f"Order {order_id}: additional services insert failed: {e}", exc_info=True)

    def list_user_orders(self, user_id: str) -> List[Order]:
        return self.order_repo.find_by_user(user_id)

    def get_order(self, order_id: str, user: TokenUser) -> Order:
        """Owner or staff only; anyone else gets a 404"""
        order = self.order_repo.find_by_id(order_id)
        if not order or (order.user_id != user.id and not user.is_staff):
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def update_status(self, order_id: str, status: str) -> None:
        if status not in ORDER_STATUSES:
            raise ValidationError(
                f"Invalid status '{status}'. Must be one of: {', '.join(ORDER_STATUSES)}"
            )
        if not self.order_repo.update_status(order_id, status):
            raise NotFoundError(f"Order {order_id} not found")
        logger.info(f"Order {order_id} status -> {status}")

    def bulk_delete(self, order_ids: List[str]) -> Dict[str, int]:
        if not order_ids:
            raise ValidationError("No order ids provided")
        result = self.order_repo.bulk_delete(order_ids)
        logger.info(f"Deleted {result['orders']} orders and {result['addresses']} orphaned addresses")
        return result
