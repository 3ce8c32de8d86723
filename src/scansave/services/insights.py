"""AI insight generation and the overview cooldown gate."""

import json
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from scansave.domain.insights import (
    CooldownStatus,
    InsightType,
    OverviewInsightRecord,
    OverviewInsights,
    ParseStatus,
    PriceVariation,
    ProductInsightRecord,
    ProductSuggestions,
    WeeklySummary,
)
from scansave.domain.products import NormalizedProduct
from scansave.domain.scans import ScanRecord
from scansave.errors import (
    CooldownCheckError,
    InsightCooldownError,
    InsightGenerationError,
    InsufficientProductInfoError,
    NoScanHistoryError,
    PersistenceError,
    ValidationError,
)
from scansave.services.insight_parser import (
    OVERVIEW_HEADINGS,
    SUGGESTION_HEADINGS,
    insight_schema,
    parse_insight_text,
)
from scansave.services.products import has_enough_info_for_ai
from scansave.services.scans import ScanService

INSIGHT_COOLDOWN = timedelta(hours=12)
OVERVIEW_WINDOW = timedelta(days=7)
RECENT_ITEM_COUNT = 5

_logger = logging.getLogger(__name__)


class InsightRepository(Protocol):
    """Persistence interface for stored insights."""

    def get_latest_overview(self, user_id: UUID) -> OverviewInsightRecord | None:
        """Return the user's most recent overview insight."""

    def create_overview(self, record: OverviewInsightRecord) -> None:
        """Insert an overview insight row."""

    def create_product_insight(self, record: ProductInsightRecord) -> None:
        """Insert a per-product insight row."""

    def list_product_insights(
        self,
        user_id: UUID,
        insight_type: str | None,
        limit: int,
        offset: int,
    ) -> list[ProductInsightRecord]:
        """Return per-product insights, newest first."""


class InsightClient(Protocol):
    """Interface for the text-generation backend."""

    async def generate(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        schema_name: str,
        schema: dict[str, object],
    ) -> str:
        """Return the raw generated text for a prompt and output schema."""


@dataclass
class InsightService:
    """Generates, stores and rate-limits AI insights."""

    client: InsightClient
    repository: InsightRepository
    scan_service: ScanService
    model: str
    reasoning_effort: str | None
    store: bool

    def check_cooldown(
        self, user_id: UUID, now: datetime | None = None
    ) -> CooldownStatus:
        """Return whether the user may request a new overview insight."""
        try:
            latest = self.repository.get_latest_overview(user_id)
        except Exception as exc:
            _logger.exception("Insight cooldown check failed", extra={"user_id": user_id})
            raise CooldownCheckError("Failed to check overview availability") from exc
        if latest is not None and latest.created_at is None:
            _logger.error("Latest overview has no usable timestamp: user_id=%s", user_id)
            raise CooldownCheckError("Failed to check overview availability")
        last = latest.created_at if latest else None
        return cooldown_status(last, now or datetime.now(tz=UTC))

    async def suggest_for_product(
        self, product: NormalizedProduct, price: float | None = None
    ) -> ProductSuggestions:
        """Generate recycling, health, usage and other tips for a product."""
        if not has_enough_info_for_ai(product):
            raise InsufficientProductInfoError(
                "Not enough product information for AI suggestions"
            )
        headings = dict(SUGGESTION_HEADINGS)
        if not price:
            headings.pop("price")
        text = await self._generate(
            _suggestion_prompt(product, price),
            "product_suggestions",
            insight_schema(ProductSuggestions, headings),
        )
        parsed = parse_insight_text(text, ProductSuggestions, headings)
        if parsed.status == ParseStatus.FAILURE:
            raise InsightGenerationError("Failed to generate meaningful suggestions")
        return ProductSuggestions(**parsed.fields)

    async def generate_overview(
        self, user_id: UUID, now: datetime | None = None
    ) -> OverviewInsights:
        """Summarize the last week of scans into three stored insights."""
        current = now or datetime.now(tz=UTC)
        status = self.check_cooldown(user_id, current)
        if not status.can_request:
            raise InsightCooldownError(status.next_available_time)

        records = self.scan_service.list_history(
            user_id, since=current - OVERVIEW_WINDOW
        )
        if not records:
            raise NoScanHistoryError(
                "No product history found for user in the last week"
            )
        summary = summarize_week(records)
        text = await self._generate(
            _overview_prompt(summary),
            "overview_insights",
            insight_schema(OverviewInsights, OVERVIEW_HEADINGS),
        )
        parsed = parse_insight_text(text, OverviewInsights, OVERVIEW_HEADINGS)
        if parsed.status == ParseStatus.FAILURE:
            raise InsightGenerationError("Failed to generate overview")
        insights = OverviewInsights(**parsed.fields)

        try:
            self.repository.create_overview(
                OverviewInsightRecord(
                    user_id=user_id,
                    environmental_insight=insights.environmental_insight,
                    nutritional_insight=insights.nutritional_insight,
                    spending_insight=insights.spending_insight,
                    created_at=current,
                )
            )
        except Exception as exc:
            _logger.exception("Failed to save overview", extra={"user_id": user_id})
            raise PersistenceError("Failed to save overview") from exc
        return insights

    def save_product_insight(self, record: ProductInsightRecord) -> None:
        """Store one per-product insight."""
        if record.insight_type not in {kind.value for kind in InsightType}:
            raise ValidationError(f"Unknown insight type: {record.insight_type}")
        _logger.info(
            "Saving AI insight: user_id=%s product=%s type=%s",
            record.user_id,
            record.product_name,
            record.insight_type,
        )
        try:
            self.repository.create_product_insight(record)
        except Exception as exc:
            _logger.exception("Failed to save AI insight")
            raise PersistenceError("Failed to save AI insight") from exc

    def list_product_insights(
        self,
        user_id: UUID,
        insight_type: str | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[ProductInsightRecord]:
        """Page through a user's stored product insights."""
        try:
            return self.repository.list_product_insights(
                user_id, insight_type, limit, offset
            )
        except Exception as exc:
            _logger.exception("Failed to fetch AI insights")
            raise PersistenceError("Failed to fetch AI insights") from exc

    async def _generate(
        self, prompt: str, schema_name: str, schema: dict[str, object]
    ) -> str:
        try:
            return await self.client.generate(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=prompt,
                schema_name=schema_name,
                schema=schema,
            )
        except Exception as exc:
            _logger.exception("Insight generation request failed")
            raise InsightGenerationError("Insight generation failed") from exc


def cooldown_status(last_insight_at: datetime | None, now: datetime) -> CooldownStatus:
    """Apply the 12-hour cooldown to the time of the last overview insight."""
    if last_insight_at is None:
        return CooldownStatus(can_request=True, next_available_time=None)
    return CooldownStatus(
        can_request=now - last_insight_at > INSIGHT_COOLDOWN,
        next_available_time=last_insight_at + INSIGHT_COOLDOWN,
    )


def summarize_week(records: list[ScanRecord]) -> WeeklySummary:
    """Compute the shopping statistics used by the overview prompt."""
    ordered = sorted(
        records,
        key=lambda record: record.scanned_at or datetime.min.replace(tzinfo=UTC),
        reverse=True,
    )
    prices_by_name: dict[str, list[float]] = defaultdict(list)
    nutrient_values: dict[str, list[float]] = defaultdict(list)
    nutriscore_counts: dict[str, int] = defaultdict(int)
    for record in ordered:
        prices_by_name[record.product_name].append(record.price or 0)
        for nutrient, value in (record.nutrients or {}).items():
            nutrient_values[nutrient].append(float(value or 0))
        if record.nutriscore:
            nutriscore_counts[record.nutriscore.lower()] += 1

    total_spent = sum(record.price or 0 for record in ordered)
    return WeeklySummary(
        item_count=len(ordered),
        total_spent=total_spent,
        average_spent=total_spent / len(ordered) if ordered else 0.0,
        recent_spending=sum(
            record.price or 0 for record in ordered[:RECENT_ITEM_COUNT]
        ),
        nutriscore_counts=dict(nutriscore_counts),
        nutrient_averages={
            nutrient: round(sum(values) / len(values), 2)
            for nutrient, values in nutrient_values.items()
        },
        product_names=[record.product_name for record in ordered],
        price_variations={
            name: PriceVariation(
                min=min(prices), max=max(prices), avg=sum(prices) / len(prices)
            )
            for name, prices in prices_by_name.items()
            if len(prices) > 1
        },
    )


def _suggestion_prompt(product: NormalizedProduct, price: float | None) -> str:
    keys = {
        "recycling": "Clear instructions for recycling the packaging",
        "health": "Analysis of nutritional value and health implications",
        "alternatives": "2-3 healthier alternative products",
        "usage": "Best ways to use or consume this product",
        "environmental": "Environmental impact analysis",
    }
    lines = [
        f"- Name: {product.product_name}",
        f"- Brand: {product.brands}",
        f"- Nutrition Score: {product.health_info.nutriscore or 'N/A'}",
        f"- NOVA Group: {product.health_info.nova_group or 'N/A'}",
        f"- Ingredients: {product.health_info.ingredients or 'N/A'}",
        f"- Packaging: {product.packaging.materials or 'N/A'}",
    ]
    if price:
        keys["price"] = (
            f"Analysis of the price paid (£{price}) compared to typical market "
            "prices for similar products, including whether it is good value"
        )
        lines.append(f"- Price Paid: £{price}")
    return (
        "Analyze this product and provide helpful suggestions in plain text "
        "(no markdown formatting). Respond with a JSON object with these keys:\n"
        f"{json.dumps(keys, indent=2)}\n\n"
        "Product Information:\n" + "\n".join(lines) + "\n\n"
        "Keep each suggestion concise but informative."
    )


def _overview_prompt(summary: WeeklySummary) -> str:
    variations = {name: asdict(value) for name, value in summary.price_variations.items()}
    return (
        "Analyze this user's shopping history from the last week and provide "
        "three friendly, actionable observations. Respond with a JSON object with "
        'the keys "environmental_insight", "nutritional_insight" and '
        '"spending_insight", each one or two plain sentences.\n\n'
        "User's Last Week Shopping Analysis:\n"
        f"- Total items scanned: {summary.item_count}\n"
        f"- Total spent this week: £{summary.total_spent:.2f}\n"
        f"- Average spent per item: £{summary.average_spent:.2f}\n"
        f"- Recent spending (last {RECENT_ITEM_COUNT} items): "
        f"£{summary.recent_spending:.2f}\n"
        f"- Nutri-score distribution: {json.dumps(summary.nutriscore_counts)}\n"
        f"- Average nutrients per product: {json.dumps(summary.nutrient_averages)}\n"
        f"- Product list: {', '.join(summary.product_names)}\n"
        f"- Price variations for repeated purchases: {json.dumps(variations)}\n\n"
        "If the same products are bought repeatedly, suggest price comparison. "
        "If there is a lot of bottled water, suggest environmental alternatives."
    )
