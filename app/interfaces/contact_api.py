from fastapi import APIRouter, Depends

from app.application.contact_service import ContactService
from app.domain.schemas import ContactRequest, ContactResponse
from app.interfaces.dependencies import get_contact_service

router = APIRouter(tags=["contact"])


@router.post("/contact", status_code=201, response_model=ContactResponse)
def submit_contact(payload: ContactRequest, service: ContactService = Depends(get_contact_service)):
    contact = service.submit(payload)
    return ContactResponse(message_id=contact.id, status=contact.status)
