import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.domain.exceptions import PersistenceError
from app.domain.models import Contact, ContactStatus
from app.infrastructure.database import get_session_factory

logger = logging.getLogger(__name__)


class SqlAlchemyContactRepository:

    def __init__(self, session_factory: sessionmaker | None = None):
        self._session_factory = session_factory or get_session_factory()

    def save_contact(self, name: str, email: str, phone: str | None, subject: str, message: str) -> Contact:
        session = self._session_factory()
        try:
            contact = Contact(
                name=name,
                email=email,
                phone=phone or None,
                subject=subject,
                message=message,
                status=ContactStatus.NEW,
            )
            session.add(contact)
            session.commit()
            return contact
        except SQLAlchemyError as e:
            logger.error("❌ DB Error saving contact message: %s", e)
            session.rollback()
            raise PersistenceError(f"save contact: {e}") from e
        finally:
            session.close()
