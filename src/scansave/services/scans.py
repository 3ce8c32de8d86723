"""Scan recording and per-user scan statistics."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from scansave.domain.products import NormalizedProduct
from scansave.domain.scans import ScanRecord, UserStats
from scansave.errors import PersistenceError, ValidationError

_logger = logging.getLogger(__name__)

NUTRISCORE_POINTS = {"a": 5, "b": 4, "c": 3, "d": 2, "e": 1}
HEALTH_SCORE_THRESHOLDS = (
    (4.5, "A+"),
    (4.0, "A"),
    (3.5, "B+"),
    (3.0, "B"),
    (2.5, "C+"),
    (2.0, "C"),
    (1.5, "D"),
)


class ScanRepository(Protocol):
    """Persistence interface for product scans."""

    def create_scan(self, record: ScanRecord) -> ScanRecord:
        """Insert a scan row and return it as stored."""

    def list_scans(
        self,
        user_id: UUID | None,
        since: datetime | None = None,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> list[ScanRecord]:
        """Return scans, optionally for one user and after a point in time."""


@dataclass
class ScanService:
    """Records completed scans and reads scan history."""

    repository: ScanRepository

    def record_scan(
        self,
        user_id: UUID,
        product: NormalizedProduct,
        price: float,
        portion_percentage: float,
    ) -> ScanRecord:
        """Persist one scan for a completed scan-and-price flow."""
        validate_scan_input(price, portion_percentage)
        record = ScanRecord(
            user_id=user_id,
            barcode=product.barcode,
            product_name=product.product_name,
            brand=product.brands,
            price=price,
            nutriscore=product.health_info.nutriscore or None,
            nova_group=product.health_info.nova_group,
            image_url=product.image or None,
            portion_percentage=portion_percentage,
            nutrients=dict(product.nutrients),
            scanned_at=datetime.now(tz=UTC),
        )
        _logger.info(
            "Saving product scan: user_id=%s product=%s price=%s portion=%s",
            user_id,
            product.product_name,
            price,
            portion_percentage,
        )
        try:
            return self.repository.create_scan(record)
        except Exception as exc:
            _logger.exception("Failed to save product scan", extra={"user_id": user_id})
            raise PersistenceError("Failed to save product scan") from exc

    def list_recent(self, user_id: UUID, limit: int = 10) -> list[ScanRecord]:
        """Return a user's most recent scans."""
        return self._read(
            lambda: self.repository.list_scans(user_id, limit=limit, newest_first=True)
        )

    def list_history(
        self, user_id: UUID | None, since: datetime | None = None
    ) -> list[ScanRecord]:
        """Return the full scan history, or everyone's when no user is given."""
        return self._read(lambda: self.repository.list_scans(user_id, since=since))

    def get_user_stats(self, user_id: UUID) -> UserStats:
        """Return the scan count and a letter grade from average nutriscore."""
        scans = self.list_history(user_id)
        return UserStats(total_scans=len(scans), health_score=health_score(scans))

    def _read(self, query: Callable[[], list[ScanRecord]]) -> list[ScanRecord]:
        try:
            return query()
        except Exception as exc:
            _logger.exception("Failed to read product history")
            raise PersistenceError("Failed to read product history") from exc


def validate_scan_input(price: float, portion_percentage: float) -> None:
    """Reject non-positive prices and portions outside 0-100."""
    if not price > 0:
        raise ValidationError("Price must be greater than zero")
    if not 0 <= portion_percentage <= 100:  # noqa: PLR2004
        raise ValidationError("Portion must be between 0 and 100 percent")


def portion_label(percentage: float) -> str:
    """Describe a consumed portion in words."""
    if percentage <= 25:  # noqa: PLR2004
        return "Just a bite"
    if percentage <= 50:  # noqa: PLR2004
        return "Half"
    if percentage <= 75:  # noqa: PLR2004
        return "Most of it"
    return "All of it"


def health_score(scans: list[ScanRecord]) -> str:
    """Map the average nutriscore of graded scans to a letter grade."""
    graded = [scan.nutriscore for scan in scans if scan.nutriscore]
    points = sum(NUTRISCORE_POINTS.get(grade.lower(), 0) for grade in graded)
    average = points / (len(graded) or 1)
    for threshold, label in HEALTH_SCORE_THRESHOLDS:
        if average >= threshold:
            return label
    return "E"
