"""weatherly-auth: credential and session engine."""

from .auth.models import AuthResult, Session, UserRecord
from .auth.service import AuthEngine, build_engine

__all__ = ["AuthEngine", "AuthResult", "Session", "UserRecord", "build_engine"]

__version__ = "1.0.0"
