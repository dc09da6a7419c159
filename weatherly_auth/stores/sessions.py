"""Single-slot session store, kept in its own namespace."""

from __future__ import annotations

import json
from typing import Optional

from pydantic import ValidationError

from ..auth.models import Session
from ..utils.logger import get_logger
from .kv import KeyValueStore

logger = get_logger(__name__)

DEFAULT_NAMESPACE = "weatherly_session"


class SessionStore:
    def __init__(self, kv: KeyValueStore, namespace: str = DEFAULT_NAMESPACE):
        self.kv = kv
        self.namespace = namespace

    def load(self) -> Optional[Session]:
        """Stored session, or None when empty or unreadable. No expiry check."""
        data = self.kv.get(self.namespace)
        if not data:
            return None
        try:
            return Session(**json.loads(data))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error("Error reading session", namespace=self.namespace, error=str(e))
            return None

    def save(self, session: Session) -> None:
        self.kv.set(self.namespace, json.dumps(session.model_dump(mode="json")))

    def clear(self) -> None:
        self.kv.delete(self.namespace)
