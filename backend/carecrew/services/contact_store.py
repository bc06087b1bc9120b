import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from uuid import uuid4

from carecrew import config
from carecrew.models import ContactMessage, ContactRequest


class ContactStore:
    """Write-only inbox for the public contact form."""

    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS contacts (
                        id TEXT PRIMARY KEY,
                        name TEXT,
                        email TEXT,
                        message TEXT,
                        created_at TEXT NOT NULL
                    )
                    """
                )
                conn.commit()

    def create(self, request: ContactRequest) -> ContactMessage:
        record = ContactMessage(
            id=f"msg_{uuid4().hex[:12]}",
            name=request.name,
            email=request.email,
            message=request.message,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO contacts (id, name, email, message, created_at) VALUES (?, ?, ?, ?, ?)",
                    (record.id, record.name, record.email, record.message, record.created_at.isoformat()),
                )
                conn.commit()
        return record


contact_store = ContactStore(db_path=config.DB_PATH)
