"""Error types raised by ScanSave services."""

from datetime import datetime


class ScanSaveError(Exception):
    """Base class for ScanSave errors."""


class ProductNotFoundError(ScanSaveError):
    """The product lookup returned no record for a barcode."""

    def __init__(self, barcode: str) -> None:
        super().__init__(f"Product not found: {barcode}")
        self.barcode = barcode


class ValidationError(ScanSaveError):
    """Caller-supplied scan input is out of range."""


class PersistenceError(ScanSaveError):
    """The record store failed to read or write."""


class InsufficientProductInfoError(ScanSaveError):
    """The product lacks the data needed for an AI insight."""


class InsightGenerationError(ScanSaveError):
    """The insight model produced no usable text."""


class CooldownCheckError(ScanSaveError):
    """The latest insight timestamp could not be read."""


class InsightCooldownError(ScanSaveError):
    """A new overview insight was requested before the cooldown elapsed."""

    def __init__(self, next_available_time: datetime | None) -> None:
        super().__init__("Overview insights are cooling down")
        self.next_available_time = next_available_time


class NoScanHistoryError(ScanSaveError):
    """The user has no scans in the window an insight summarizes."""
