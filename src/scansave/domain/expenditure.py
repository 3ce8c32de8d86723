"""Domain models for expenditure aggregation."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class Granularity(StrEnum):
    """Bucket width used when grouping scans."""

    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    MONTH = "month"


@dataclass(frozen=True)
class BucketProduct:
    """A scan as listed inside a bucket."""

    name: str
    price: float
    timestamp: datetime
    category: str | None = None


@dataclass
class TimeBucket:
    """Scans grouped under a truncated timestamp."""

    timestamp: datetime
    total: float = 0.0
    products: list[BucketProduct] = field(default_factory=list)


@dataclass(frozen=True)
class BucketAmount:
    """A bucket reference used by the summary statistics."""

    timestamp: datetime | None
    amount: float


@dataclass(frozen=True)
class ExpenditureStats:
    """Summary statistics over a bucket sequence."""

    total_spent: float
    average_bucket: float
    highest_bucket: BucketAmount
    lowest_bucket: BucketAmount


@dataclass(frozen=True)
class ExpenditureSummary:
    """Buckets plus statistics for one aggregation pass."""

    granularity: Granularity
    buckets: list[TimeBucket]
    stats: ExpenditureStats


@dataclass(frozen=True)
class TrendEntry:
    """Total spend for one rollup key."""

    key: str
    total: float


@dataclass(frozen=True)
class TrendBreakdown:
    """Weekly, monthly and category rollups of bucketed spend."""

    weekly: list[TrendEntry]
    monthly: list[TrendEntry]
    by_category: list[TrendEntry]


@dataclass(frozen=True)
class BudgetStatus:
    """Month-to-date spend against the user's monthly budget."""

    month: str
    spent: float
    monthly_budget: float | None
    remaining: float | None
    percentage_used: float | None
