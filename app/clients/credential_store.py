"""
Credential storage backends keyed by user key.

``InMemoryCredentialStore`` is the default and lives for the process lifetime.
``SQLiteCredentialStore`` keeps encrypted tokens on disk behind the same
``get``/``put`` contract.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Protocol

from app.models.oauth import CredentialRecord

if TYPE_CHECKING:
    from app.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Storage contract used by the token lifecycle service."""

    def get(self, user_key: str) -> Optional[CredentialRecord]:
        ...

    def put(self, record: CredentialRecord) -> None:
        ...


class InMemoryCredentialStore:
    """Process-local dictionary of credential records."""

    def __init__(self) -> None:
        self._records: Dict[str, CredentialRecord] = {}

    def get(self, user_key: str) -> Optional[CredentialRecord]:
        return self._records.get(user_key)

    def put(self, record: CredentialRecord) -> None:
        self._records[record.user_key] = record

    def __len__(self) -> int:
        return len(self._records)


class SQLiteCredentialStore:
    """Durable credential store with tokens encrypted at rest."""

    def __init__(self, db_path: str, token_cipher: TokenCipherService) -> None:
        self._db_path = Path(db_path)
        self._cipher = token_cipher
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_credentials (
                    user_key TEXT PRIMARY KEY,
                    data TEXT NOT NULL
                )
                """
            )

    def put(self, record: CredentialRecord) -> None:
        data = record.model_dump(mode="json")
        data["access_token"] = self._cipher.encrypt(record.access_token)
        data["refresh_token"] = self._cipher.encrypt(record.refresh_token)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO oauth_credentials (user_key, data)
                VALUES (?, ?)
                ON CONFLICT(user_key) DO UPDATE SET data = excluded.data
                """,
                (record.user_key, json.dumps(data)),
            )

    def get(self, user_key: str) -> Optional[CredentialRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM oauth_credentials WHERE user_key = ?",
                (user_key,),
            ).fetchone()
        if not row:
            return None
        data = json.loads(row["data"])
        try:
            data["access_token"] = self._cipher.decrypt(data["access_token"])
            data["refresh_token"] = self._cipher.decrypt(data["refresh_token"])
        except ValueError:
            # Encrypted under a different secret; the user has to authorize again.
            logger.warning("Stored credentials for user %s cannot be decrypted", user_key)
            return None
        return CredentialRecord.model_validate(data)


__all__ = ["CredentialStore", "InMemoryCredentialStore", "SQLiteCredentialStore"]
