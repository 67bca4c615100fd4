"""
Content Service
Back-office rules around FAQs and enquiries that go beyond plain CRUD.

Author: ReadyMix
Date: 2025-06-09
"""
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from readymix.core.exceptions import NotFoundError
from readymix.domain.content import Enquiry, EnquiryUpdate, Faq
from readymix.repositories.content_repository import ContentRepository
from readymix.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

UNSECTIONED = "General"


def group_faqs_by_section(faqs: List[Faq]) -> List[Dict[str, Any]]:
    """[{section, faqs}] keeping the repository order"""
    groups: "OrderedDict[str, List[Faq]]" = OrderedDict()
    for faq in faqs:
        groups.setdefault(faq.section_name or UNSECTIONED, []).append(faq)
    return [
        {'section': section, 'faqs': [faq.model_dump() for faq in items]}
        for section, items in groups.items()
    ]


class ContentService:

    def __init__(
        self,
        content_repo: Optional[ContentRepository] = None,
        notification_service: Optional[NotificationService] = None
    ):
        self.content_repo = content_repo or ContentRepository()
        self.notification_service = notification_service or NotificationService()

    def published_faqs(self) -> List[Dict[str, Any]]:
        return group_faqs_by_section(self.content_repo.list_faqs(status="published"))

    def reply_to_enquiry(self, enquiry_id: str, data: EnquiryUpdate) -> Enquiry:
        """
        Save the staff reply and status

        Customers who sent the enquiry while signed in get a system
        notification once a non-empty reply is stored.
        """
        enquiry = self.content_repo.update_enquiry(enquiry_id, data.staff_reply, data.status)
        if enquiry is None:
            raise NotFoundError(f"Enquiry not found: {enquiry_id}")

        if enquiry.is_answered and enquiry.user_id:
            try:
                self.notification_service.notify_enquiry_answered(enquiry.user_id, enquiry.subject)
            except Exception as e:
                logger.error(f"Failed to notify user {enquiry.user_id} about enquiry {enquiry_id}: {e}")

        return enquiry
