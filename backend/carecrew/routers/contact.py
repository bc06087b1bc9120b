import logging
import sqlite3

from fastapi import APIRouter, HTTPException

from carecrew.models import ContactRequest, MessageResponse
from carecrew.services.contact_store import contact_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contact"])


@router.post("/contact", status_code=201, response_model=MessageResponse)
def submit_contact(request: ContactRequest):
    try:
        contact_store.create(request)
    except sqlite3.Error:
        logger.exception("Error saving contact message")
        raise HTTPException(status_code=500, detail="Server error. Unable to send message.")
    return MessageResponse(message="Message sent successfully")
