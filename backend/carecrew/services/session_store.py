import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from carecrew import config
from carecrew.models import SessionRecord

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Maps a session id to the logged-in account. Expired sessions read as missing."""

    def get(self, session_id: str) -> Optional[SessionRecord]:
        raise NotImplementedError

    def save(self, session_id: str, record: SessionRecord) -> None:
        raise NotImplementedError

    def delete(self, session_id: str) -> None:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: Dict[str, SessionRecord] = {}

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return None
            if record.expires_at <= _utcnow():
                del self._sessions[session_id]
                return None
            return record

    def save(self, session_id: str, record: SessionRecord) -> None:
        with self._lock:
            self._sessions[session_id] = record

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)


class SqliteSessionStore(SessionStore):
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
                    CREATE TABLE IF NOT EXISTS sessions (
                        id TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        user_type TEXT NOT NULL,
                        expires_at TEXT NOT NULL
                    )
                    """
                )
                conn.commit()

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT user_id, user_type, expires_at FROM sessions WHERE id = ?",
                    (session_id,),
                ).fetchone()
                if not row:
                    return None
                record = SessionRecord(
                    user_id=row["user_id"],
                    user_type=row["user_type"],
                    expires_at=row["expires_at"],
                )
                if record.expires_at <= _utcnow():
                    conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
                    conn.commit()
                    return None
                return record

    def save(self, session_id: str, record: SessionRecord) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute("DELETE FROM sessions WHERE expires_at <= ?", (_utcnow().isoformat(),))
                conn.execute(
                    """
                    INSERT INTO sessions (id, user_id, user_type, expires_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        user_id = excluded.user_id,
                        user_type = excluded.user_type,
                        expires_at = excluded.expires_at
                    """,
                    (session_id, record.user_id, record.user_type, record.expires_at.isoformat()),
                )
                conn.commit()

    def delete(self, session_id: str) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
                conn.commit()


def build_session_store(backend: str, db_path: str) -> SessionStore:
    if backend == "sqlite":
        return SqliteSessionStore(db_path=db_path)
    if backend != "memory":
        logger.warning("Unknown SESSION_BACKEND %r, using in-memory sessions", backend)
    return InMemorySessionStore()


session_store = build_session_store(config.SESSION_BACKEND, config.SESSION_DB_PATH)
