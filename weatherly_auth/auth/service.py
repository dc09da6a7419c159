"""
Credential & session engine.

This module implements registration, login, password reset and the single
session slot on top of injected stores:
- Users keyed by email, passwords stored as salted SHA-256 digests
- Opaque hex session tokens, 24h expiry, one slot (last login wins)
- Reset tokens with 15 minute expiry, redeemed by linear scan

Expiry is lazy: nothing sweeps stale sessions or tokens, they are rejected
(and for sessions, deleted) when next read.

Public operations never raise for expected failures. They return an
AuthResult whose message is safe to show to the end user.
"""

from __future__ import annotations

import hmac
from datetime import timedelta
from typing import Optional

from ..core.clock import Clock, utc_now
from ..core.config import AuthSettings
from ..stores.credentials import CredentialStore
from ..stores.kv import FileStore, KeyValueStore, MemoryStore
from ..stores.sessions import SessionStore
from ..utils.exceptions import (
    DuplicateUser,
    InvalidCredentials,
    InvalidOrExpiredToken,
    StorageUnavailable,
    WeakPassword,
)
from ..utils.logger import get_logger
from .hashing import Hasher
from .models import AuthResult, Session, UserRecord

logger = get_logger(__name__)

RESET_REQUESTED_MESSAGE = "If the email exists, a reset link has been sent"

SESSION_EXPIRY_HOURS = 24
RESET_TOKEN_EXPIRY_MINUTES = 15
MIN_PASSWORD_LENGTH = 8


class AuthEngine:
    """Owns the credential map and the session slot; callers only see copies."""

    def __init__(
        self,
        users_kv: Optional[KeyValueStore] = None,
        session_kv: Optional[KeyValueStore] = None,
        *,
        clock: Clock = utc_now,
        hasher: Optional[Hasher] = None,
        users_namespace: str = "weatherly_auth",
        session_namespace: str = "weatherly_session",
        session_ttl: timedelta = timedelta(hours=SESSION_EXPIRY_HOURS),
        reset_ttl: timedelta = timedelta(minutes=RESET_TOKEN_EXPIRY_MINUTES),
        min_password_length: int = MIN_PASSWORD_LENGTH,
    ):
        self.users = CredentialStore(users_kv if users_kv is not None else MemoryStore(), users_namespace)
        self.sessions = SessionStore(session_kv if session_kv is not None else MemoryStore(), session_namespace)
        self.clock = clock
        self.hasher = hasher or Hasher()
        self.session_ttl = session_ttl
        self.reset_ttl = reset_ttl
        self.min_password_length = min_password_length

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, name: str, email: str, password: str) -> AuthResult:
        """
        Create a new account.

        - Email is used as given: no normalisation, no format check.
        - Duplicate emails are rejected before the password is looked at.
        - No session is created.
        """
        try:
            # Duplicate check and insert must not interleave with another register
            with self.users.lock():
                if self.users.exists(email):
                    raise DuplicateUser()
                self._check_password(password)

                salt = self.hasher.new_salt()
                record = UserRecord(
                    name=name,
                    email=email,
                    password_hash=self.hasher.hash(password, salt),
                    salt=salt,
                    created_at=self.clock(),
                )
                self.users.put(record)
        except (DuplicateUser, WeakPassword) as e:
            logger.info("Registration rejected", email=email, reason=e.kind)
            return AuthResult.fail(e)
        except StorageUnavailable as e:
            logger.error("Registration failed", email=email, error=str(e))
            return AuthResult.fail(StorageUnavailable())

        logger.info("User registered", email=email)
        return AuthResult.ok("User registered successfully")

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def _verify(self, email: str, password: str) -> UserRecord:
        user = self.users.get(email)
        if user is None:
            raise InvalidCredentials()
        computed = self.hasher.hash(password, user.salt).encode("ascii")
        if not hmac.compare_digest(computed, user.password_hash.encode("utf-8", "surrogatepass")):
            raise InvalidCredentials()
        return user

    def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and fill the session slot, replacing any prior session."""
        try:
            user = self._verify(email, password)
            session = Session(
                token=self.hasher.new_token(),
                email=user.email,
                name=user.name,
                expiry=self.clock() + self.session_ttl,
            )
            self.sessions.save(session)
        except InvalidCredentials as e:
            logger.info("Login rejected", email=email)
            return AuthResult.fail(e)
        except StorageUnavailable as e:
            logger.error("Login failed", email=email, error=str(e))
            return AuthResult.fail(StorageUnavailable())

        logger.info("User logged in", email=user.email, expiry=session.expiry.isoformat())
        return AuthResult.ok("Login successful", {"name": user.name, "email": user.email})

    # ------------------------------------------------------------------ #
    # Password reset
    # ------------------------------------------------------------------ #

    def request_reset(self, email: str) -> AuthResult:
        """
        Issue a reset token for email.

        The result is identical whether or not the account exists, except that
        an existing account also gets {"token": ...} in data. Delivering the
        token out-of-band is the caller's job.
        """
        try:
            with self.users.lock():
                user = self.users.get(email)
                if user is None:
                    logger.info("Reset requested for unknown email")
                    return AuthResult.ok(RESET_REQUESTED_MESSAGE)

                token = self.hasher.new_token()
                self.users.put(
                    user.model_copy(
                        update={
                            "reset_token": token,
                            "reset_token_expiry": self.clock() + self.reset_ttl,
                        }
                    )
                )
        except StorageUnavailable as e:
            logger.error("Reset request failed", error=str(e))
            return AuthResult.fail(StorageUnavailable())

        logger.info("Reset token issued", email=email)
        return AuthResult.ok(RESET_REQUESTED_MESSAGE, {"token": token})

    def _find_by_reset_token(self, token: str) -> UserRecord:
        now = self.clock()
        for user in self.users.records():
            if (
                user.reset_token is not None
                and user.reset_token == token
                and user.reset_token_expiry is not None
                and user.reset_token_expiry > now
            ):
                return user
        raise InvalidOrExpiredToken()

    def redeem_reset(self, token: str, new_password: str) -> AuthResult:
        """
        Replace the password of the account holding token.

        Wrong and expired tokens fail the same way. The token is single-use:
        it is cleared together with the new hash and salt in one record write.
        """
        try:
            # Scan and update must not interleave with another redemption
            with self.users.lock():
                user = self._find_by_reset_token(token)
                self._check_password(new_password)

                salt = self.hasher.new_salt()
                self.users.put(
                    user.model_copy(
                        update={
                            "password_hash": self.hasher.hash(new_password, salt),
                            "salt": salt,
                            "reset_token": None,
                            "reset_token_expiry": None,
                        }
                    )
                )
        except (InvalidOrExpiredToken, WeakPassword) as e:
            logger.info("Password reset rejected", reason=e.kind)
            return AuthResult.fail(e)
        except StorageUnavailable as e:
            logger.error("Password reset failed", error=str(e))
            return AuthResult.fail(StorageUnavailable())

        logger.info("Password reset", email=user.email)
        return AuthResult.ok("Password reset successfully")

    # ------------------------------------------------------------------ #
    # Session slot
    # ------------------------------------------------------------------ #

    def current_session(self) -> Optional[Session]:
        """Return the active session, deleting it if it has expired."""
        try:
            session = self.sessions.load()
            if session is None:
                return None
            if session.is_expired(self.clock()):
                self.sessions.clear()
                logger.info("Session expired", email=session.email)
                return None
        except StorageUnavailable as e:
            logger.error("Error reading session", error=str(e))
            return None
        return session

    def logout(self) -> None:
        """Drop the session slot (idempotent)."""
        try:
            self.sessions.clear()
        except StorageUnavailable as e:
            logger.error("Error clearing session", error=str(e))
            return
        logger.info("Session destroyed")

    destroy = logout

    def is_authenticated(self) -> bool:
        return self.current_session() is not None

    def _check_password(self, password: str) -> None:
        if len(password) < self.min_password_length:
            raise WeakPassword(self.min_password_length)


def build_engine(settings: Optional[AuthSettings] = None, clock: Clock = utc_now) -> AuthEngine:
    """Engine over file-backed stores under settings.data_dir."""
    settings = settings or AuthSettings()
    data_dir = settings.data_dir
    return AuthEngine(
        FileStore(data_dir, lock_timeout_seconds=settings.lock_timeout_seconds),
        FileStore(data_dir / "sessions", lock_timeout_seconds=settings.lock_timeout_seconds),
        clock=clock,
        users_namespace=settings.users_namespace,
        session_namespace=settings.session_namespace,
        session_ttl=timedelta(hours=settings.session_ttl_hours),
        reset_ttl=timedelta(minutes=settings.reset_ttl_minutes),
        min_password_length=settings.min_password_length,
    )
