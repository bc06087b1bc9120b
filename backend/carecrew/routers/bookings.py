import logging
import sqlite3

from fastapi import APIRouter, HTTPException

from carecrew.models import (
    Booking,
    BookingCreatedResponse,
    BookingRequest,
    BookingStatusUpdateRequest,
    ProviderBooking,
)
from carecrew.routers.errors import raise_store_http_error
from carecrew.services.booking_store import booking_store
from carecrew.services.errors import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"])


@router.post("/book", response_model=BookingCreatedResponse)
def create_booking(request: BookingRequest):
    try:
        booking = booking_store.create_booking(request)
    except StoreError as exc:
        raise_store_http_error(exc)
    except sqlite3.Error:
        logger.exception("Error processing booking")
        raise HTTPException(status_code=500, detail="Error processing booking")
    return BookingCreatedResponse(message="Booking successful", booking=booking)


@router.get("/provider/{provider_id}/bookings", response_model=list[ProviderBooking])
def list_provider_bookings(provider_id: str):
    try:
        return booking_store.list_for_provider(provider_id)
    except sqlite3.Error:
        logger.exception("Error fetching bookings for provider %s", provider_id)
        raise HTTPException(status_code=500, detail="Error fetching bookings")


@router.get("/customer/{customer_id}/bookings", response_model=list[Booking])
def list_customer_bookings(customer_id: str):
    try:
        return booking_store.list_for_customer(customer_id)
    except StoreError as exc:
        raise_store_http_error(exc)
    except sqlite3.Error:
        logger.exception("Error fetching bookings for customer %s", customer_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch("/booking/{booking_id}", response_model=Booking)
def update_booking_status(booking_id: str, request: BookingStatusUpdateRequest):
    try:
        return booking_store.update_status(booking_id, request.status)
    except StoreError as exc:
        raise_store_http_error(exc)
    except sqlite3.Error:
        logger.exception("Error updating booking %s", booking_id)
        raise HTTPException(status_code=500, detail="Error updating booking status")
