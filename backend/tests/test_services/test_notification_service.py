"""
Unit tests for NotificationService
"""
import pytest
from unittest.mock import MagicMock

from readymix.core.exceptions import ValidationError
from readymix.services.notification_service import NotificationService


@pytest.fixture
def repo():
    return MagicMock()


class TestNotificationService:

    def test_create_validates_type(self, repo):
        with pytest.raises(ValidationError, match="Invalid notification type"):
            NotificationService(repo).create("user-1", "Hi", "There", "marketing")
        repo.create.assert_not_called()

    def test_create_requires_text(self, repo):
        with pytest.raises(ValidationError):
            NotificationService(repo).create("user-1", "", "There", "system")

    def test_create(self, repo):
        NotificationService(repo).create("user-1", "Hi", "There", "system", order_id="o-1")

        repo.create.assert_called_once_with("user-1", "Hi", "There", "system", "o-1")

    @pytest.mark.parametrize("paid,title", [
        (True, "Order Placed Successfully!"),
        (False, "Order Created"),
    ])
    def test_order_created_title(self, repo, paid, title):
        NotificationService(repo).notify_order_created("user-1", "o-1", 530, paid)

        args = repo.create.call_args.args
        assert args[1] == title
        assert "RM530.00" in args[2]
        assert args[3] == "order"

    def test_payment_notifications(self, repo):
        service = NotificationService(repo)

        service.notify_payment_received("user-1", "o-1", 593.6)
        assert repo.create.call_args.args[1] == "Payment Received"
        assert "RM593.60" in repo.create.call_args.args[2]

        service.notify_payment_failed("user-1", "o-1")
        assert repo.create.call_args.args[1] == "Payment Failed"
        assert repo.create.call_args.args[3] == "payment"

    def test_mark_all_and_clear_all(self, repo):
        service = NotificationService(repo)

        service.mark_all_read("user-1")
        service.clear_all("user-1")

        repo.mark_read.assert_called_once_with("user-1")
        repo.delete.assert_called_once_with("user-1")
