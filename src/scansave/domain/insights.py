"""Models for AI insight records and generation results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel


class InsightType(StrEnum):
    """Categories of per-product insight text."""

    HEALTH = "health"
    PRICE = "price"
    ALTERNATIVES = "alternatives"
    USAGE = "usage"
    ENVIRONMENTAL = "environmental"
    RECYCLING = "recycling"


class ParseStatus(StrEnum):
    """Outcome of parsing model output."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


@dataclass(frozen=True)
class ParsedInsight:
    """Tagged result of parsing insight text into fields."""

    status: ParseStatus
    fields: dict[str, str] = field(default_factory=dict)


class ProductSuggestions(BaseModel):
    """Per-product suggestions returned to the client."""

    recycling: str = ""
    health: str = ""
    alternatives: str = ""
    usage: str = ""
    environmental: str = ""
    price: str | None = None


class OverviewInsights(BaseModel):
    """Weekly overview insights."""

    environmental_insight: str = ""
    nutritional_insight: str = ""
    spending_insight: str = ""


@dataclass(frozen=True)
class OverviewInsightRecord:
    """Stored overview insight row."""

    user_id: UUID
    environmental_insight: str
    nutritional_insight: str
    spending_insight: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class ProductInsightRecord:
    """Stored per-product insight row."""

    user_id: UUID
    barcode: str
    insight_type: str
    insight_text: str
    product_name: str | None = None
    product_image: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class CooldownStatus:
    """Whether a new overview insight may be requested."""

    can_request: bool
    next_available_time: datetime | None


@dataclass(frozen=True)
class PriceVariation:
    """Price spread for a product bought more than once."""

    min: float
    max: float
    avg: float


@dataclass(frozen=True)
class WeeklySummary:
    """Shopping statistics fed into the overview prompt."""

    item_count: int
    total_spent: float
    average_spent: float
    recent_spending: float
    nutriscore_counts: dict[str, int]
    nutrient_averages: dict[str, float]
    product_names: list[str]
    price_variations: dict[str, PriceVariation]
