"""Custom exceptions for the weatherly credential engine"""

from typing import Optional


class WeatherlyAuthError(Exception):
    """Base exception for weatherly-auth"""

    message = "Authentication error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class DuplicateUser(WeatherlyAuthError):
    """An account already exists for the email"""

    message = "User already exists with this email"


class WeakPassword(WeatherlyAuthError):
    """Password does not meet the minimum length"""

    message = "Password must be at least 8 characters long"

    def __init__(self, min_length: int = 8):
        self.min_length = min_length
        super().__init__(f"Password must be at least {min_length} characters long")


class InvalidCredentials(WeatherlyAuthError):
    """Unknown email or wrong password (deliberately indistinguishable)"""

    message = "Invalid email or password"


class InvalidOrExpiredToken(WeatherlyAuthError):
    """Reset token unknown, already used or expired (deliberately indistinguishable)"""

    message = "Invalid or expired reset token"


class StorageUnavailable(WeatherlyAuthError):
    """Backing store could not be read or written"""

    message = "Storage unavailable"


class ConfigError(WeatherlyAuthError):
    """Configuration error"""

    message = "Invalid configuration"
