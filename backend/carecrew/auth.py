import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status

from carecrew import config
from carecrew.models import SessionRecord
from carecrew.services.session_store import SessionStore, session_store

SESSION_TTL_HOURS = config.SESSION_TTL_HOURS
SESSION_COOKIE_NAME = config.SESSION_COOKIE_NAME
_SESSION_SECRET = config.SESSION_SECRET


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _b64urldecode(value: str) -> bytes:
    padding = "=" * ((4 - len(value) % 4) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("utf-8"))


def _signature(session_id: str) -> bytes:
    return hmac.new(_SESSION_SECRET.encode("utf-8"), session_id.encode("utf-8"), hashlib.sha256).digest()


def new_session_id() -> str:
    return secrets.token_urlsafe(24)


def sign_session_id(session_id: str) -> str:
    return f"{session_id}.{_b64url(_signature(session_id))}"


def unsign_session_cookie(value: Optional[str]) -> Optional[str]:
    """Return the session id carried by a cookie value, or None if it was tampered with."""
    if not value or "." not in value:
        return None
    session_id, sig_part = value.rsplit(".", 1)
    if not session_id:
        return None
    try:
        sent_sig = _b64urldecode(sig_part)
    except ValueError:
        return None
    if not hmac.compare_digest(sent_sig, _signature(session_id)):
        return None
    return session_id


class SessionContext:
    """The caller's server-side session, handed to route handlers via ``Depends``.

    Writes go straight to the store; cookie changes are applied to the
    response FastAPI builds for the request.
    """

    def __init__(
        self,
        store: SessionStore,
        response: Response,
        session_id: Optional[str] = None,
        record: Optional[SessionRecord] = None,
    ) -> None:
        self._store = store
        self._response = response
        self.session_id = session_id
        self.record = record

    @property
    def user_id(self) -> Optional[str]:
        return self.record.user_id if self.record else None

    @property
    def user_type(self) -> Optional[str]:
        return self.record.user_type if self.record else None

    @property
    def is_authenticated(self) -> bool:
        return self.record is not None

    def establish(self, user_id: str, user_type: str) -> SessionRecord:
        # A fresh id on every login; the previous session (if any) is dropped.
        if self.session_id:
            self._store.delete(self.session_id)
        self.session_id = new_session_id()
        self.record = SessionRecord(
            user_id=user_id,
            user_type=user_type,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=SESSION_TTL_HOURS),
        )
        self._store.save(self.session_id, self.record)
        self._response.set_cookie(
            key=SESSION_COOKIE_NAME,
            value=sign_session_id(self.session_id),
            max_age=SESSION_TTL_HOURS * 3600,
            httponly=True,
            secure=config.SESSION_COOKIE_SECURE,
            samesite=config.SESSION_COOKIE_SAMESITE,
            path="/",
        )
        return self.record

    def clear(self) -> None:
        if self.session_id:
            self._store.delete(self.session_id)
        self.session_id = None
        self.record = None
        self._response.delete_cookie(
            key=SESSION_COOKIE_NAME,
            path="/",
            secure=config.SESSION_COOKIE_SECURE,
            httponly=True,
            samesite=config.SESSION_COOKIE_SAMESITE,
        )


def get_session_store() -> SessionStore:
    return session_store


def get_session_context(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
) -> SessionContext:
    session_id = unsign_session_cookie(request.cookies.get(SESSION_COOKIE_NAME))
    record = store.get(session_id) if session_id else None
    if record is None:
        session_id = None
    return SessionContext(store=store, response=response, session_id=session_id, record=record)


def require_session(session: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not session.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    return session
