import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import pytest

from carecrew import auth, config
from carecrew.logging_config import LOG_FORMAT, setup_logging
from carecrew.models import BookingRequest, SessionRecord
from carecrew.services.account_store import AccountStore
from carecrew.services.booking_store import BookingStore
from carecrew.services.errors import (
    StoreAuthenticationError,
    StoreConflictError,
    StoreNotFoundError,
    StoreValidationError,
)
from carecrew.services.session_store import (
    InMemorySessionStore,
    SqliteSessionStore,
    build_session_store,
)


@pytest.fixture
def accounts(tmp_path):
    return AccountStore(db_path=str(tmp_path / "carecrew.sqlite3"))


@pytest.fixture
def bookings(tmp_path, accounts):
    return BookingStore(db_path=str(tmp_path / "carecrew.sqlite3"), accounts=accounts)


def _session(user_id: str = "cus_1", hours: int = 1) -> SessionRecord:
    return SessionRecord(
        user_id=user_id,
        user_type="petOwner",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=hours),
    )


def test_listing_returns_every_stored_provider(accounts):
    for index in range(3):
        accounts.create_account("petCareProvider", {"name": f"Provider {index}", "email": f"p{index}@x.com"})

    providers = accounts.list_accounts("petCareProvider")
    assert len(providers) == 3
    assert [p.name for p in providers] == ["Provider 0", "Provider 1", "Provider 2"]
    assert accounts.list_accounts("petOwner") == []


def test_invalid_user_type_is_a_validation_error(accounts):
    with pytest.raises(StoreValidationError):
        accounts.create_account("groomer", {"email": "x@x.com"})
    with pytest.raises(StoreValidationError):
        accounts.list_accounts(None)


def test_authenticate_scans_all_accounts_sharing_an_email(accounts):
    accounts.create_account("petOwner", {"email": "same@x.com", "password": "first"})
    second = accounts.create_account("petOwner", {"email": "same@x.com", "password": "second"})

    assert accounts.authenticate("petOwner", "same@x.com", "second").id == second.id
    with pytest.raises(StoreAuthenticationError):
        accounts.authenticate("petOwner", "same@x.com", "third")
    with pytest.raises(StoreNotFoundError):
        accounts.authenticate("petOwner", "other@x.com", "first")
    with pytest.raises(StoreNotFoundError):
        accounts.authenticate("petOwner", None, "first")


def test_account_without_password_cannot_authenticate(accounts):
    accounts.create_account("petOwner", {"email": "nopw@x.com", "name": "No Password"})

    with pytest.raises(StoreAuthenticationError):
        accounts.authenticate("petOwner", "nopw@x.com", "")
    with pytest.raises(StoreAuthenticationError):
        accounts.authenticate("petOwner", "nopw@x.com", None)


def test_missing_password_never_matches_stored_one(accounts):
    accounts.create_account("petOwner", {"email": "pw@x.com", "password": ""})

    with pytest.raises(StoreAuthenticationError):
        accounts.authenticate("petOwner", "pw@x.com", None)
    assert accounts.authenticate("petOwner", "pw@x.com", "").email == "pw@x.com"


def test_account_store_handles_invalid_json_document(accounts):
    with sqlite3.connect(accounts.db_path) as conn:
        conn.execute(
            "INSERT INTO customers (id, email, document_json, created_at) VALUES (?, ?, ?, ?)",
            ("cus_broken", "b@x.com", "{bad", "2024-01-01T00:00:00+00:00"),
        )
        conn.commit()

    record = accounts.get_customer("cus_broken")
    assert record is not None
    assert record.id == "cus_broken"
    assert record.email is None


def test_booking_defaults_and_references(accounts, bookings):
    provider = accounts.create_account("petCareProvider", {"name": "Paws"})
    customer = accounts.create_account("petOwner", {"name": "Asha"})
    started = datetime.now(timezone.utc)

    booking = bookings.create_booking(
        BookingRequest(provider_id=provider.id, customer_id=customer.id, service="Grooming", days=["mon"])
    )
    assert booking.status == "Pending"
    assert booking.created_at >= started
    assert bookings.get_booking(booking.id) == booking

    with pytest.raises(StoreNotFoundError):
        bookings.create_booking(BookingRequest(provider_id="prv_x", customer_id=customer.id, service="Walk"))
    with pytest.raises(StoreNotFoundError):
        bookings.create_booking(BookingRequest(provider_id=provider.id, customer_id="cus_x", service="Walk"))
    assert len(bookings.list_for_customer(customer.id)) == 1


def test_provider_listing_tolerates_missing_customer(accounts, bookings):
    provider = accounts.create_account("petCareProvider", {"name": "Paws"})
    with sqlite3.connect(bookings.db_path) as conn:
        conn.execute(
            """
            INSERT INTO bookings (id, provider_id, customer_id, service, days_json, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            ("bkg_orphan", provider.id, "cus_gone", "Walking", "not-json", "Pending", "2024-01-01T00:00:00+00:00"),
        )
        conn.commit()

    [item] = bookings.list_for_provider(provider.id)
    assert item.customer_id is None
    assert item.days == []


def test_status_transitions(accounts, bookings):
    provider = accounts.create_account("petCareProvider", {"name": "Paws"})
    customer = accounts.create_account("petOwner", {"name": "Asha"})
    booking = bookings.create_booking(
        BookingRequest(provider_id=provider.id, customer_id=customer.id, service="Grooming")
    )

    with pytest.raises(StoreValidationError):
        bookings.update_status(booking.id, "Pending")
    assert bookings.update_status(booking.id, "Accepted").status == "Accepted"
    with pytest.raises(StoreConflictError):
        bookings.update_status(booking.id, "Rejected")
    with pytest.raises(StoreNotFoundError):
        bookings.update_status("bkg_missing", "Accepted")


def test_blank_customer_id_is_rejected(bookings):
    with pytest.raises(StoreValidationError):
        bookings.list_for_customer("  ")


@pytest.mark.parametrize("backend", ["memory", "sqlite"])
def test_session_store_round_trip_and_expiry(tmp_path, backend):
    store = build_session_store(backend, str(tmp_path / "sessions.sqlite3"))
    live = _session("cus_live")
    store.save("live", live)
    store.save("stale", _session("cus_stale", hours=-1))

    assert store.get("live") == live
    assert store.get("stale") is None
    assert store.get("unknown") is None

    store.delete("live")
    assert store.get("live") is None


def test_sqlite_sessions_survive_new_store_instance(tmp_path):
    db_path = str(tmp_path / "sessions.sqlite3")
    SqliteSessionStore(db_path=db_path).save("sid", _session())
    assert SqliteSessionStore(db_path=db_path).get("sid").user_id == "cus_1"


def test_unknown_session_backend_falls_back_to_memory(tmp_path):
    store = build_session_store("redis", str(tmp_path / "sessions.sqlite3"))
    assert isinstance(store, InMemorySessionStore)


def test_session_cookie_signing():
    signed = auth.sign_session_id("abc123")
    assert auth.unsign_session_cookie(signed) == "abc123"
    assert auth.unsign_session_cookie("abc123") is None
    assert auth.unsign_session_cookie("abc124." + signed.rsplit(".", 1)[1]) is None
    assert auth.unsign_session_cookie(".sig") is None
    assert auth.unsign_session_cookie(None) is None


def test_session_ttl_invalid_env_falls_back(monkeypatch):
    monkeypatch.setenv("SESSION_TTL_HOURS", "not-a-number")
    assert config.env_int("SESSION_TTL_HOURS", 24) == 24


def test_session_ttl_non_positive_env_falls_back(monkeypatch):
    monkeypatch.setenv("SESSION_TTL_HOURS", "0")
    assert config.env_int("SESSION_TTL_HOURS", 24) == 24
    monkeypatch.setenv("SESSION_TTL_HOURS", "6")
    assert config.env_int("SESSION_TTL_HOURS", 24) == 6


def test_cookie_flags_from_env(monkeypatch):
    monkeypatch.setenv("SESSION_COOKIE_SAMESITE", "Sideways")
    assert config.env_samesite("SESSION_COOKIE_SAMESITE") == "lax"
    monkeypatch.setenv("SESSION_COOKIE_SAMESITE", "None")
    assert config.env_samesite("SESSION_COOKIE_SAMESITE") == "none"
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "yes")
    assert config.env_bool("SESSION_COOKIE_SECURE") is True
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    assert config.env_csv("CORS_ORIGINS", "*") == ["https://a.example", "https://b.example"]


@contextmanager
def _bare_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers.clear()
    try:
        yield root
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_setup_logging_configures_bare_root_once():
    with _bare_root_logger() as root:
        setup_logging("debug")
        assert root.level == logging.DEBUG
        [handler] = root.handlers
        assert handler.formatter._fmt == LOG_FORMAT

        setup_logging("warning")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1


def test_setup_logging_unknown_level_means_info():
    with _bare_root_logger() as root:
        setup_logging("chatty")
        assert root.level == logging.INFO
