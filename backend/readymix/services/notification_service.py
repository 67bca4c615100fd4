"""
Notification Service
Creates in-app notifications for order, payment and enquiry events
"""
import logging
from typing import List, Optional

from readymix.core.exceptions import ValidationError
from readymix.domain.notification import Notification, NOTIFICATION_TYPES
from readymix.repositories.notification_repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(self, repo: Optional[NotificationRepository] = None):
        self.repo = repo or NotificationRepository()

    def create(
        self,
        user_id: str,
        title: str,
        message: str,
        type: str,
        order_id: Optional[str] = None
    ) -> Notification:
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(f"Invalid notification type: {type}")
        if not title or not message:
            raise ValidationError("Title and message are required")

        notification = self.repo.create(user_id, title, message, type, order_id)
        logger.info(f"Notification '{title}' created for user {user_id}")
        return notification

    def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        return self.repo.find_by_user(user_id, unread_only=unread_only, limit=limit)

    def unread_count(self, user_id: str) -> int:
        return self.repo.count_unread(user_id)

    def mark_read(self, user_id: str, notification_id: str) -> int:
        return self.repo.mark_read(user_id, notification_id)

    def mark_all_read(self, user_id: str) -> int:
        return self.repo.mark_read(user_id)

    def delete(self, user_id: str, notification_id: str) -> int:
        return self.repo.delete(user_id, notification_id)

    def clear_all(self, user_id: str) -> int:
        return self.repo.delete(user_id)

    # ========================================================================
    # Event notifications
    # ========================================================================

    def notify_order_created(self, user_id: str, order_id: str, total: float, paid: bool) -> Notification:
        title = "Order Placed Successfully!" if paid else "Order Created"
        action = "placed successfully" if paid else "created"
        return self.create(
            user_id,
            title,
            f"Your order {order_id} has been {action}. Total: RM{float(total):.2f}",
            "order",
            order_id=order_id
        )

    def notify_payment_received(self, user_id: str, order_id: str, total: float) -> Notification:
        return self.create(
            user_id,
            "Payment Received",
            f"We received your payment of RM{float(total):.2f} for order {order_id}. Your order is now being processed.",
            "payment",
            order_id=order_id
        )

    def notify_payment_failed(self, user_id: str, order_id: str) -> Notification:
        return self.create(
            user_id,
            "Payment Failed",
            f"Payment for order {order_id} failed and the order was cancelled. Please try again.",
            "payment",
            order_id=order_id
        )

    def notify_enquiry_answered(self, user_id: str, subject: str) -> Notification:
        return self.create(
            user_id,
            "Your Enquiry Has Been Answered",
            f"Our team has replied to your enquiry \"{subject}\".",
            "system"
        )
