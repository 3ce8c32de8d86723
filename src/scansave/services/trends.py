"""Weekly, monthly and category rollups of bucketed spend."""

from collections import defaultdict

from scansave.domain.expenditure import TimeBucket, TrendBreakdown, TrendEntry

UNCATEGORIZED = "uncategorized"


def analyze_trends(buckets: list[TimeBucket]) -> TrendBreakdown:
    """Roll bucket totals up by ISO week, calendar month and category.

    Weeks follow ISO 8601 numbering, so a bucket in early January can land in
    the previous year's last week while its month rollup stays in January.
    """
    weekly: dict[str, float] = defaultdict(float)
    monthly: dict[str, float] = defaultdict(float)
    by_category: dict[str, float] = defaultdict(float)

    for bucket in buckets:
        stamp = bucket.timestamp
        iso_year, iso_week, _ = stamp.isocalendar()
        weekly[f"{iso_year}-W{iso_week:02d}"] += bucket.total
        monthly[f"{stamp.year}-{stamp.month:02d}"] += bucket.total
        for product in bucket.products:
            by_category[product.category or UNCATEGORIZED] += product.price or 0

    return TrendBreakdown(
        weekly=_entries(sorted(weekly.items())),
        monthly=_entries(sorted(monthly.items())),
        by_category=_entries(
            sorted(by_category.items(), key=lambda item: (-item[1], item[0]))
        ),
    )


def _entries(items: list[tuple[str, float]]) -> list[TrendEntry]:
    return [TrendEntry(key=key, total=round(total, 2)) for key, total in items]
