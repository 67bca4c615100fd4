"""
Unit tests for ContentService
"""
import pytest
from unittest.mock import MagicMock

from readymix.core.exceptions import NotFoundError
from readymix.domain.content import Enquiry, EnquiryUpdate, Faq
from readymix.services.content_service import ContentService, group_faqs_by_section


def enquiry(**overrides):
    data = dict(
        id="e-1", user_id="user-1", name="Ahmad", email="ahmad@example.com",
        subject="Pump availability", message="Do you pump on Sundays?", status="resolved"
    )
    data.update(overrides)
    return Enquiry(**data)


class TestFaqGrouping:

    def test_groups_in_repository_order(self):
        faqs = [
            Faq(id="1", question="Q1", answer="A1", section_name="Delivery", status="published"),
            Faq(id="2", question="Q2", answer="A2", section_name="Payment", status="published"),
            Faq(id="3", question="Q3", answer="A3", section_name="Delivery", status="published"),
            Faq(id="4", question="Q4", answer="A4", status="published"),
        ]

        groups = group_faqs_by_section(faqs)

        assert [g['section'] for g in groups] == ["Delivery", "Payment", "General"]
        assert [f['id'] for f in groups[0]['faqs']] == ["1", "3"]

    def test_published_only(self):
        repo = MagicMock()
        repo.list_faqs.return_value = []

        assert ContentService(repo, MagicMock()).published_faqs() == []
        repo.list_faqs.assert_called_once_with(status="published")


class TestEnquiryReply:

    def test_reply_notifies_signed_in_customer(self):
        repo = MagicMock()
        repo.update_enquiry.return_value = enquiry(staff_reply="Yes, from 8am.")
        notifications = MagicMock()

        result = ContentService(repo, notifications).reply_to_enquiry(
            "e-1", EnquiryUpdate(staff_reply="Yes, from 8am.", status="resolved")
        )

        assert result.is_answered
        repo.update_enquiry.assert_called_once_with("e-1", "Yes, from 8am.", "resolved")
        notifications.notify_enquiry_answered.assert_called_once_with("user-1", "Pump availability")

    @pytest.mark.parametrize("overrides", [
        {'staff_reply': "   "},
        {'staff_reply': "Yes", 'user_id': None},
    ])
    def test_no_notification(self, overrides):
        repo = MagicMock()
        repo.update_enquiry.return_value = enquiry(**overrides)
        notifications = MagicMock()

        ContentService(repo, notifications).reply_to_enquiry("e-1", EnquiryUpdate(status="in_progress"))

        notifications.notify_enquiry_answered.assert_not_called()

    def test_notification_failure_still_returns_enquiry(self):
        repo = MagicMock()
        repo.update_enquiry.return_value = enquiry(staff_reply="Yes")
        notifications = MagicMock()
        notifications.notify_enquiry_answered.side_effect = Exception("db down")

        assert ContentService(repo, notifications).reply_to_enquiry(
            "e-1", EnquiryUpdate(staff_reply="Yes", status="resolved")
        ).id == "e-1"

    def test_missing_enquiry(self):
        repo = MagicMock()
        repo.update_enquiry.return_value = None

        with pytest.raises(NotFoundError):
            ContentService(repo, MagicMock()).reply_to_enquiry("e-404", EnquiryUpdate(status="closed"))
