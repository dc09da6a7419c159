"""
Credential store: email -> UserRecord, persisted as one JSON object under a
single namespace key.

Unreadable or non-object data is treated as an empty store. Individual
records that fail validation are skipped on read but written back untouched,
so a single bad entry never erases the others.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Optional

from pydantic import ValidationError

from ..auth.models import UserRecord
from ..utils.logger import get_logger
from .kv import KeyValueStore

logger = get_logger(__name__)

DEFAULT_NAMESPACE = "weatherly_auth"


class CredentialStore:
    def __init__(self, kv: KeyValueStore, namespace: str = DEFAULT_NAMESPACE):
        self.kv = kv
        self.namespace = namespace

    def _load_raw(self) -> Dict[str, Any]:
        data = self.kv.get(self.namespace)
        if not data:
            return {}
        try:
            raw = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt credential data, treating store as empty", namespace=self.namespace, error=str(e))
            return {}
        if not isinstance(raw, dict):
            logger.warning("Credential data is not an object, treating store as empty", namespace=self.namespace)
            return {}
        return raw

    def _save_raw(self, raw: Dict[str, Any]) -> None:
        self.kv.set(self.namespace, json.dumps(raw, ensure_ascii=False))

    @staticmethod
    def _parse(email: str, item: Any) -> Optional[UserRecord]:
        if not isinstance(item, dict):
            return None
        try:
            return UserRecord(**item)
        except (ValidationError, TypeError) as e:
            logger.warning("Skipping malformed user record", email=email, error=str(e))
            return None

    def get(self, email: str) -> Optional[UserRecord]:
        raw = self._load_raw()
        if email not in raw:
            return None
        return self._parse(email, raw[email])

    def exists(self, email: str) -> bool:
        # Presence of the key is what blocks re-registration, even for a malformed entry
        return email in self._load_raw()

    def put(self, record: UserRecord) -> None:
        """Insert or replace the whole record for record.email."""
        raw = self._load_raw()
        raw[record.email] = record.to_storage()
        self._save_raw(raw)

    def records(self) -> Iterator[UserRecord]:
        """Valid records in storage order."""
        for email, item in self._load_raw().items():
            record = self._parse(email, item)
            if record is not None:
                yield record

    def lock(self):
        return self.kv.lock(self.namespace)
