import logging
import sqlite3
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from carecrew.auth import SessionContext, get_session_context, require_session
from carecrew.models import (
    PET_CARE_PROVIDER,
    PET_OWNER,
    AccountRecord,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SignupRequest,
)
from carecrew.routers.errors import raise_store_http_error
from carecrew.services.account_store import account_kind, account_store
from carecrew.services.errors import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["accounts"])


def public_record(record: AccountRecord) -> Dict[str, Any]:
    """Wire form of an account: camelCase keys, unset fields and password left out."""
    return record.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"password"})


@router.post("/signup", status_code=201, response_model=MessageResponse)
def signup(payload: SignupRequest):
    try:
        kind = account_kind(payload.user_type)
        account_store.create_account(kind.user_type, payload.profile_fields())
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False))
    except StoreError as exc:
        raise_store_http_error(exc)
    except sqlite3.Error:
        logger.exception("Signup failed for user type %s", payload.user_type)
        raise HTTPException(status_code=500, detail="Error creating user")
    return MessageResponse(message=f"{kind.label} created successfully")


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, session: SessionContext = Depends(get_session_context)):
    try:
        kind = account_kind(payload.user_type)
        user = account_store.authenticate(kind.user_type, payload.email, payload.password)
        session.establish(user_id=user.id, user_type=kind.user_type)
    except StoreError as exc:
        logger.warning("Login failed for user type %s: %s", payload.user_type, exc)
        raise_store_http_error(exc)
    except sqlite3.Error:
        logger.exception("Login lookup failed")
        raise HTTPException(status_code=500, detail="Server error")
    logger.info("%s %s logged in", kind.label, user.id)
    return LoginResponse(message="Login successful", user=public_record(user))


@router.post("/logout", response_model=MessageResponse)
def logout(session: SessionContext = Depends(get_session_context)):
    session.clear()
    return MessageResponse(message="Logged out")


@router.get("/profile", response_model=Dict[str, Any])
def profile(session: SessionContext = Depends(require_session)):
    try:
        user = account_store.get_account(session.user_type, session.user_id or "")
    except StoreError as exc:
        raise_store_http_error(exc)
    except sqlite3.Error:
        logger.exception("Profile lookup failed for %s", session.user_id)
        raise HTTPException(status_code=500, detail="Server error")
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return public_record(user)


@router.get("/providers", response_model=list[Dict[str, Any]])
def list_providers():
    try:
        return [public_record(record) for record in account_store.list_accounts(PET_CARE_PROVIDER)]
    except sqlite3.Error:
        logger.exception("Error fetching providers")
        raise HTTPException(status_code=500, detail="Error fetching providers")


@router.get("/customers", response_model=list[Dict[str, Any]])
def list_customers():
    try:
        return [public_record(record) for record in account_store.list_accounts(PET_OWNER)]
    except sqlite3.Error:
        logger.exception("Error fetching customers")
        raise HTTPException(status_code=500, detail="Error fetching customers")
