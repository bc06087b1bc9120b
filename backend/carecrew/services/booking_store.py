import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from carecrew import config
from carecrew.models import Booking, BookingRequest, CustomerRef, ProviderBooking
from carecrew.services.account_store import AccountStore, account_store
from carecrew.services.errors import (
    StoreConflictError,
    StoreNotFoundError,
    StoreValidationError,
)

logger = logging.getLogger(__name__)

INITIAL_STATUS = "Pending"

BOOKING_TERMINAL_STATUSES = {"Accepted", "Rejected"}

ALLOWED_TRANSITIONS: Dict[str, set[str]] = {
    "Pending": {"Accepted", "Rejected"},
}


@dataclass
class BookingStore:
    db_path: str
    accounts: AccountStore

    def __post_init__(self) -> None:
        self._lock = Lock()
        path = Path(self.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = str(path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS bookings (
                        id TEXT PRIMARY KEY,
                        provider_id TEXT NOT NULL,
                        customer_id TEXT NOT NULL,
                        service TEXT NOT NULL,
                        days_json TEXT NOT NULL DEFAULT '[]',
                        status TEXT NOT NULL DEFAULT 'Pending',
                        created_at TEXT NOT NULL
                    )
                    """
                )
                conn.commit()

    def create_booking(self, request: BookingRequest) -> Booking:
        if self.accounts.get_provider(request.provider_id) is None:
            raise StoreNotFoundError("Provider not found")
        if self.accounts.get_customer(request.customer_id) is None:
            raise StoreNotFoundError("Customer not found")

        booking = Booking(
            id=f"bkg_{uuid4().hex[:12]}",
            provider_id=request.provider_id,
            customer_id=request.customer_id,
            service=request.service,
            days=list(request.days),
            status=INITIAL_STATUS,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO bookings (id, provider_id, customer_id, service, days_json, status, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        booking.id,
                        booking.provider_id,
                        booking.customer_id,
                        booking.service,
                        json.dumps(booking.days),
                        booking.status,
                        booking.created_at.isoformat(),
                    ),
                )
                conn.commit()

        logger.info("Booking %s created: provider=%s customer=%s", booking.id, booking.provider_id, booking.customer_id)
        return booking

    def get_booking(self, booking_id: str) -> Booking:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        if not row:
            raise StoreNotFoundError("Booking not found")
        return self._row_to_booking(row)

    def list_for_customer(self, customer_id: str) -> List[Booking]:
        if not customer_id or not customer_id.strip():
            raise StoreValidationError("Customer ID is required")
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM bookings WHERE customer_id = ? ORDER BY rowid",
                    (customer_id,),
                ).fetchall()
        return [self._row_to_booking(row) for row in rows]

    def list_for_provider(self, provider_id: str) -> List[ProviderBooking]:
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM bookings WHERE provider_id = ? ORDER BY rowid",
                    (provider_id,),
                ).fetchall()

        customers: Dict[str, Optional[CustomerRef]] = {}
        results: List[ProviderBooking] = []
        for row in rows:
            booking = self._row_to_booking(row)
            if booking.customer_id not in customers:
                customer = self.accounts.get_customer(booking.customer_id)
                customers[booking.customer_id] = (
                    CustomerRef(id=customer.id, name=customer.name) if customer is not None else None
                )
            results.append(
                ProviderBooking(
                    id=booking.id,
                    provider_id=booking.provider_id,
                    customer_id=customers[booking.customer_id],
                    service=booking.service,
                    days=booking.days,
                    status=booking.status,
                    created_at=booking.created_at,
                )
            )
        return results

    def update_status(self, booking_id: str, next_status: str) -> Booking:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
                if not row:
                    raise StoreNotFoundError("Booking not found")

                current_status = str(row["status"])
                if current_status in BOOKING_TERMINAL_STATUSES:
                    raise StoreConflictError(f"Booking is already {current_status}")
                if next_status not in ALLOWED_TRANSITIONS.get(current_status, set()):
                    raise StoreValidationError(f"Invalid status transition: {current_status} -> {next_status}")

                conn.execute("UPDATE bookings SET status = ? WHERE id = ?", (next_status, booking_id))
                conn.commit()
                updated = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()

        logger.info("Booking %s: %s -> %s", booking_id, current_status, next_status)
        return self._row_to_booking(updated)

    def _row_to_booking(self, row: sqlite3.Row) -> Booking:
        return Booking(
            id=row["id"],
            provider_id=row["provider_id"],
            customer_id=row["customer_id"],
            service=row["service"],
            days=self._safe_json_list(row["days_json"]),
            status=row["status"],
            created_at=row["created_at"],
        )

    def _safe_json_list(self, raw_value: Any) -> List[str]:
        try:
            parsed = json.loads(raw_value) if isinstance(raw_value, str) else []
        except json.JSONDecodeError:
            return []
        if not isinstance(parsed, list):
            return []
        return [str(item) for item in parsed]


booking_store = BookingStore(db_path=config.DB_PATH, accounts=account_store)
