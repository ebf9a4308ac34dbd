"""Exception hierarchy for the purchase tracker.

Defines all custom exceptions used throughout the implementation.
"""

from __future__ import annotations


class PurchaseTrackerError(Exception):
    """Base exception for all purchase tracker errors."""
    pass


class ConfigError(PurchaseTrackerError):
    """Raised when configuration values or files are invalid."""
    pass


class ParseError(PurchaseTrackerError):
    """Raised when an inbound event cannot be turned into a record."""

    def __init__(self, message: str, payload: bytes | None = None):
        super().__init__(message)
        self.payload = payload


class FieldCountError(ParseError):
    """Raised when an event does not have exactly three fields."""
    pass


class InvalidQuantityError(ParseError):
    """Raised when the quantity field is not a non-negative integer."""
    pass


class InvalidProductIdError(ParseError):
    """Raised when a numeric product id cannot be parsed."""
    pass


class PayloadDecodeError(ParseError):
    """Raised when an event payload is not valid UTF-8."""
    pass


class StorageError(PurchaseTrackerError):
    """Raised when the underlying store fails to persist or load data."""
    pass


class JournalCorruptionError(StorageError):
    """Raised when journal data is corrupted or invalid."""
    pass


class RecordCodecError(StorageError):
    """Raised when a stored record cannot be encoded or decoded."""
    pass


class ScannerStateError(PurchaseTrackerError):
    """Raised when a scanner is advanced before being initialized."""
    pass
