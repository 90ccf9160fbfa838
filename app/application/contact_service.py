import logging

from app.domain.models import Contact
from app.domain.schemas import ContactRequest
from app.infrastructure.notification_service import NotificationService
from app.infrastructure.repositories.contact_repository import SqlAlchemyContactRepository

logger = logging.getLogger(__name__)


class ContactService:

    def __init__(self, contact_repo: SqlAlchemyContactRepository, notifier: NotificationService):
        self.contact_repo = contact_repo
        self.notifier = notifier

    def submit(self, request: ContactRequest) -> Contact:
        contact = self.contact_repo.save_contact(
            name=request.name,
            email=str(request.email),
            phone=request.phone,
            subject=request.subject,
            message=request.message,
        )
        logger.info("📨 Contact message %s saved from %s", contact.id, contact.email)
        # Saved is what counts; a failed email is only logged
        self.notifier.notify_contact(contact)
        return contact
