"""Exceptions raised by the hash catalog."""


class CatalogError(Exception):
    """Base class for hash catalog errors."""


class InvalidHexStringError(CatalogError, ValueError):
    """Raised when a hex string is malformed or has an odd number of digits."""

    def __init__(self, message: str, value: str | None = None):
        super().__init__(message)
        self.value = value


class HashLookupError(CatalogError, ValueError):
    """Raised when a lookup does not name exactly one fingerprint field."""


class InvalidFingerprintError(CatalogError, ValueError):
    """Raised when a fingerprint value does not fit its unsigned width."""


class EmptyFingerprintError(InvalidFingerprintError):
    """Raised when a placeholder would carry no fingerprint at all."""
