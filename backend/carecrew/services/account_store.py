import hmac
import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Type
from uuid import uuid4

from carecrew import config
from carecrew.models import (
    PET_CARE_PROVIDER,
    PET_OWNER,
    AccountRecord,
    CustomerProfile,
    CustomerRecord,
    ProfileModel,
    ProviderProfile,
    ProviderRecord,
)
from carecrew.services.errors import (
    StoreAuthenticationError,
    StoreNotFoundError,
    StoreValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountKind:
    user_type: str
    label: str
    table: str
    id_prefix: str
    profile_model: Type[ProfileModel]
    record_model: Type[ProfileModel]


ACCOUNT_KINDS: Dict[str, AccountKind] = {
    PET_OWNER: AccountKind(
        user_type=PET_OWNER,
        label="Customer",
        table="customers",
        id_prefix="cus",
        profile_model=CustomerProfile,
        record_model=CustomerRecord,
    ),
    PET_CARE_PROVIDER: AccountKind(
        user_type=PET_CARE_PROVIDER,
        label="Provider",
        table="providers",
        id_prefix="prv",
        profile_model=ProviderProfile,
        record_model=ProviderRecord,
    ),
}


def account_kind(user_type: Optional[str]) -> AccountKind:
    kind = ACCOUNT_KINDS.get(user_type or "")
    if kind is None:
        raise StoreValidationError("Invalid user type")
    return kind


@dataclass
class AccountStore:
    """Customer and provider accounts.

    Each account is kept as the JSON document the client submitted (only the
    fields that were actually sent), with the email copied into its own column
    for login lookups. Emails are not unique.
    """

    db_path: str

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
                for kind in ACCOUNT_KINDS.values():
                    conn.execute(
                        f"""
                        CREATE TABLE IF NOT EXISTS {kind.table} (
                            id TEXT PRIMARY KEY,
                            email TEXT,
                            document_json TEXT NOT NULL,
                            created_at TEXT NOT NULL
                        )
                        """
                    )
                conn.commit()

    def create_account(self, user_type: Optional[str], fields: Mapping[str, Any]) -> AccountRecord:
        kind = account_kind(user_type)
        profile = kind.profile_model.model_validate(dict(fields))
        document = profile.model_dump(mode="json", by_alias=True, exclude_unset=True)
        record_id = f"{kind.id_prefix}_{uuid4().hex[:12]}"

        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    f"INSERT INTO {kind.table} (id, email, document_json, created_at) VALUES (?, ?, ?, ?)",
                    (
                        record_id,
                        document.get("email"),
                        json.dumps(document),
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
                conn.commit()

        logger.info("Created %s account %s", kind.label.lower(), record_id)
        return self._to_record(kind, record_id, document)

    def find_by_email(self, user_type: Optional[str], email: Optional[str]) -> List[AccountRecord]:
        kind = account_kind(user_type)
        if email is None:
            return []
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(
                    f"SELECT id, document_json FROM {kind.table} WHERE email = ? ORDER BY rowid",
                    (email,),
                ).fetchall()
        return [self._row_to_record(kind, row) for row in rows]

    def authenticate(self, user_type: Optional[str], email: Optional[str], password: Optional[str]) -> AccountRecord:
        candidates = self.find_by_email(user_type, email)
        if not candidates:
            raise StoreNotFoundError("User not found")

        if password is None:
            raise StoreAuthenticationError("Invalid password")
        supplied = password.encode("utf-8")
        for candidate in candidates:
            # Accounts created without a password cannot be logged into.
            if candidate.password is None:
                continue
            if hmac.compare_digest(candidate.password.encode("utf-8"), supplied):
                return candidate
        raise StoreAuthenticationError("Invalid password")

    def get_account(self, user_type: Optional[str], account_id: str) -> Optional[AccountRecord]:
        kind = account_kind(user_type)
        with self._lock:
            with self._connect() as conn:
                row = conn.execute(
                    f"SELECT id, document_json FROM {kind.table} WHERE id = ?",
                    (account_id,),
                ).fetchone()
        if not row:
            return None
        return self._row_to_record(kind, row)

    def get_customer(self, customer_id: str) -> Optional[AccountRecord]:
        return self.get_account(PET_OWNER, customer_id)

    def get_provider(self, provider_id: str) -> Optional[AccountRecord]:
        return self.get_account(PET_CARE_PROVIDER, provider_id)

    def list_accounts(self, user_type: Optional[str]) -> List[AccountRecord]:
        kind = account_kind(user_type)
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(f"SELECT id, document_json FROM {kind.table} ORDER BY rowid").fetchall()
        return [self._row_to_record(kind, row) for row in rows]

    def _row_to_record(self, kind: AccountKind, row: sqlite3.Row) -> AccountRecord:
        return self._to_record(kind, row["id"], self._safe_json_object(row["document_json"]))

    def _to_record(self, kind: AccountKind, record_id: str, document: Dict[str, Any]) -> AccountRecord:
        return kind.record_model.model_validate({**document, "_id": record_id})  # type: ignore[return-value]

    def _safe_json_object(self, raw_value: Any) -> Dict[str, Any]:
        if not isinstance(raw_value, str) or not raw_value:
            return {}
        try:
            parsed = json.loads(raw_value)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}


account_store = AccountStore(db_path=config.DB_PATH)
