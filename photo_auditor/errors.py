"""Exceptions for photo backup auditing."""

from typing import Any, Dict


class PhotoAuditorError(Exception):
    """Base exception for all photo auditor errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class ConfigurationError(PhotoAuditorError):
    """Configuration file missing or invalid."""
    pass


class PhotoDirectoryError(PhotoAuditorError):
    """Local photo directory cannot be read."""
    pass


class AuthenticationError(PhotoAuditorError):
    """OAuth client secrets missing or the consent flow failed."""
    pass
