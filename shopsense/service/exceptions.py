"""Custom exceptions for ShopSense.

Ranking itself degrades instead of raising (unknown products give empty
results, bad limits fall back to defaults). These exceptions cover
configuration and data loading, where there is no sensible fallback.
Repository and behavior-log errors are not wrapped; they reach the caller
unchanged.
"""

from typing import Any, Dict, Optional


class ShopSenseException(Exception):
    """Base exception for ShopSense errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ShopSenseException):
    """Raised when an engine setting is invalid."""

    def __init__(self, setting: str, value: Any, reason: str):
        message = f"Invalid value {value!r} for {setting}: {reason}"
        super().__init__(
            message=message,
            details={"setting": setting, "value": value, "reason": reason},
        )


class DataFileNotFoundError(ShopSenseException):
    """Raised when a catalog or behavior file cannot be found."""

    def __init__(self, path: str):
        message = f"Data file not found at '{path}'"
        super().__init__(message=message, details={"path": path})


class InvalidDataError(ShopSenseException):
    """Raised when a catalog or behavior file has missing columns or bad rows."""
