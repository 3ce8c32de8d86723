"""Expenditure aggregation over scan history."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from scansave.domain.expenditure import (
    BucketAmount,
    BucketProduct,
    BudgetStatus,
    ExpenditureStats,
    ExpenditureSummary,
    Granularity,
    TimeBucket,
)
from scansave.domain.scans import ScanRecord
from scansave.services.goals import GoalsService
from scansave.services.scans import ScanService

DECEMBER = 12

_logger = logging.getLogger(__name__)


@dataclass
class ExpenditureService:
    """Builds spend summaries from the full scan history on every call."""

    scan_service: ScanService
    goals_service: GoalsService

    def get_summary(
        self,
        user_id: UUID | None,
        granularity: Granularity = Granularity.MINUTE,
        fill_gaps: bool = False,
    ) -> ExpenditureSummary:
        """Return bucketed spend and statistics for a user or everyone."""
        records = self.scan_service.list_history(user_id)
        buckets = aggregate_buckets(records, granularity, fill_gaps=fill_gaps)
        return ExpenditureSummary(
            granularity=granularity,
            buckets=buckets,
            stats=compute_stats(buckets),
        )

    def get_budget_status(
        self, user_id: UUID, now: datetime | None = None
    ) -> BudgetStatus:
        """Return month-to-date spend against the user's monthly budget."""
        current = _as_utc(now or datetime.now(tz=UTC))
        month_start = truncate(current, Granularity.MONTH)
        records = self.scan_service.list_history(user_id, since=month_start)
        spent = round(
            sum(
                record.price or 0
                for record in records
                if record.scanned_at is not None
                and _as_utc(record.scanned_at) >= month_start
            ),
            2,
        )
        goals = self.goals_service.get_goals(user_id)
        budget = goals.monthly_budget if goals else None
        remaining = None
        percentage_used = None
        if budget is not None and budget > 0:
            remaining = round(budget - spent, 2)
            percentage_used = round(spent / budget * 100, 1)
        return BudgetStatus(
            month=f"{month_start.year}-{month_start.month:02d}",
            spent=spent,
            monthly_budget=budget,
            remaining=remaining,
            percentage_used=percentage_used,
        )


def truncate(timestamp: datetime, granularity: Granularity) -> datetime:
    """Round a timestamp down to the start of its bucket."""
    value = timestamp.replace(second=0, microsecond=0)
    if granularity == Granularity.MINUTE:
        return value
    value = value.replace(minute=0)
    if granularity == Granularity.HOUR:
        return value
    value = value.replace(hour=0)
    if granularity == Granularity.DAY:
        return value
    return value.replace(day=1)


def next_bucket(timestamp: datetime, granularity: Granularity) -> datetime:
    """Return the start of the bucket following a truncated timestamp."""
    if granularity == Granularity.MINUTE:
        return timestamp + timedelta(minutes=1)
    if granularity == Granularity.HOUR:
        return timestamp + timedelta(hours=1)
    if granularity == Granularity.DAY:
        return timestamp + timedelta(days=1)
    if timestamp.month == DECEMBER:
        return timestamp.replace(year=timestamp.year + 1, month=1)
    return timestamp.replace(month=timestamp.month + 1)


def aggregate_buckets(
    records: Iterable[ScanRecord],
    granularity: Granularity,
    fill_gaps: bool = False,
) -> list[TimeBucket]:
    """Group scans into ascending buckets of one granularity.

    Scans without a usable timestamp are skipped. With ``fill_gaps`` every
    bucket between the first and the last one is emitted, empty ones with a
    zero total.
    """
    dated: list[tuple[datetime, ScanRecord]] = []
    for record in records:
        if record.scanned_at is None:
            _logger.warning(
                "Skipping scan with invalid timestamp: id=%s barcode=%s",
                record.id,
                record.barcode,
            )
            continue
        dated.append((_as_utc(record.scanned_at), record))
    dated.sort(key=lambda item: item[0])

    grouped: dict[datetime, TimeBucket] = {}
    for scanned_at, record in dated:
        key = truncate(scanned_at, granularity)
        bucket = grouped.get(key)
        if bucket is None:
            bucket = grouped[key] = TimeBucket(timestamp=key)
        bucket.total += record.price or 0
        bucket.products.append(
            BucketProduct(
                name=record.product_name,
                price=record.price,
                timestamp=scanned_at,
                category=record.category,
            )
        )

    buckets = sorted(grouped.values(), key=lambda bucket: bucket.timestamp)
    if not fill_gaps or not buckets:
        return buckets

    filled = []
    cursor = buckets[0].timestamp
    last = buckets[-1].timestamp
    while cursor <= last:
        filled.append(grouped.get(cursor) or TimeBucket(timestamp=cursor))
        cursor = next_bucket(cursor, granularity)
    return filled


def compute_stats(buckets: list[TimeBucket]) -> ExpenditureStats:
    """Sum, per-bucket mean, and first highest and lowest bucket."""
    if not buckets:
        empty = BucketAmount(timestamp=None, amount=0.0)
        return ExpenditureStats(
            total_spent=0.0,
            average_bucket=0.0,
            highest_bucket=empty,
            lowest_bucket=empty,
        )

    total = 0.0
    highest = lowest = buckets[0]
    for bucket in buckets:
        total += bucket.total
        if bucket.total > highest.total:
            highest = bucket
        if bucket.total < lowest.total:
            lowest = bucket
    return ExpenditureStats(
        total_spent=total,
        average_bucket=total / len(buckets),
        highest_bucket=BucketAmount(timestamp=highest.timestamp, amount=highest.total),
        lowest_bucket=BucketAmount(timestamp=lowest.timestamp, amount=lowest.total),
    )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
