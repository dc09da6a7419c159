"""
Auth models.

UserRecord and Session are persisted as JSON with the camelCase keys of the
original browser storage format, so existing data keeps loading. AuthResult
is the structured value every public engine operation returns.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.clock import ensure_utc


class UserRecord(BaseModel):
    """One registered account, keyed by email (case-sensitive)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    email: str
    password_hash: str = Field(alias="passwordHash")
    salt: str
    created_at: datetime = Field(alias="createdAt")
    reset_token: Optional[str] = Field(default=None, alias="resetToken")
    reset_token_expiry: Optional[datetime] = Field(default=None, alias="resetTokenExpiry")

    @field_validator("created_at", "reset_token_expiry")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _reset_fields_paired(self) -> "UserRecord":
        if (self.reset_token is None) != (self.reset_token_expiry is None):
            raise ValueError("resetToken and resetTokenExpiry must both be set or both be null")
        return self

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Session(BaseModel):
    """The single active login held in the session slot."""

    model_config = ConfigDict(frozen=True)

    token: str
    email: str
    name: str
    expiry: datetime

    @field_validator("expiry")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def is_expired(self, now: datetime) -> bool:
        return self.expiry <= now


class AuthResult(BaseModel):
    """
    Outcome of an engine operation.

    ``data`` is {"name", "email"} after a login and {"token"} after a reset
    request for an existing account. ``error`` names the failure kind
    (e.g. "DuplicateUser") and is None on success.
    """

    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        if self.data and "email" in self.data:
            return self.data
        return None

    @property
    def token(self) -> Optional[str]:
        return (self.data or {}).get("token")

    @classmethod
    def ok(cls, message: str, data: Optional[Dict[str, Any]] = None) -> "AuthResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: Exception) -> "AuthResult":
        return cls(success=False, message=str(error), error=type(error).__name__)
