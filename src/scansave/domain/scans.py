"""Domain models for recorded scans."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class ScanRecord:
    """One persisted purchase event."""

    user_id: UUID
    barcode: str
    product_name: str
    brand: str
    price: float
    nutriscore: str | None
    nova_group: int | None
    image_url: str | None
    portion_percentage: float
    nutrients: dict[str, float] = field(default_factory=dict)
    scanned_at: datetime | None = None
    id: int | None = None
    category: str | None = None


@dataclass(frozen=True)
class UserStats:
    """Scan count and letter health score for a user."""

    total_scans: int
    health_score: str
