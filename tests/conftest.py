"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID

import pytest

from scansave.adapters.openfoodfacts_client import OpenFoodFactsClient
from scansave.config import Settings
from scansave.containers import AppContainer
from scansave.domain.goals import UserGoals
from scansave.domain.insights import OverviewInsightRecord, ProductInsightRecord
from scansave.domain.scans import ScanRecord
from scansave.services.cache import InMemoryCache
from scansave.services.expenditure import ExpenditureService
from scansave.services.goals import GoalsRepository, GoalsService
from scansave.services.insights import (
    InsightClient,
    InsightRepository,
    InsightService,
)
from scansave.services.products import ProductService
from scansave.services.scans import ScanRepository, ScanService

BARCODE = "5000112548167"

RAW_PRODUCT: dict[str, object] = {
    "code": BARCODE,
    "product_name": "Sparkling Water",
    "brands": "Clearwell",
    "image_front_url": "https://images.example/front.jpg",
    "categories_tags": ["en:beverages", "en:waters"],
    "nutriments": {
        "energy-kcal_100g": 200,
        "proteins_100g": 10,
        "sugars_100g": None,
        "salt_100g": "0.4",
    },
    "nutriscore_grade": "b",
    "nova_group": 1,
    "ingredients_text": "Carbonated water",
    "allergens_tags": [],
    "ingredients_analysis_tags": ["en:palm-oil-free", "en:vegan"],
    "additives_tags": ["en:e290"],
    "ecoscore_grade": "c",
    "packaging_tags": ["en:plastic", "en:bottle"],
}


@dataclass
class FakeOpenFoodFactsClient(OpenFoodFactsClient):
    """Fake Open Food Facts client with in-memory responses."""

    products: dict[str, dict[str, object]] = field(
        default_factory=lambda: {BARCODE: dict(RAW_PRODUCT)}
    )
    search_payload: dict[str, object] = field(
        default_factory=lambda: {
            "products": [
                {
                    "code": "1111111111111",
                    "product_name": "Still Water",
                    "brands": "Springs",
                    "nutriscore_grade": "a",
                    "image_front_url": None,
                    "categories_tags": ["en:waters"],
                }
            ]
        }
    )
    product_calls: int = 0
    search_calls: list[tuple[str | None, list[str] | None]] = field(
        default_factory=list
    )

    async def get_product(self, barcode: str) -> dict[str, object]:
        self.product_calls += 1
        product = self.products.get(barcode)
        if product is None:
            return {}
        return {"code": barcode, "product": product}

    async def search_products(
        self,
        category: str | None,
        nutriscore_grades: list[str] | None,
        page_size: int = 6,
    ) -> dict[str, object]:
        self.search_calls.append((category, nutriscore_grades))
        return self.search_payload


@dataclass
class FakeInsightClient(InsightClient):
    """Fake insight client returning a fixed text."""

    text: str = (
        '{"recycling": "Rinse and recycle the bottle.", '
        '"health": "Water is a healthy choice.", '
        '"alternatives": "Tap water.", '
        '"usage": "Serve chilled.", '
        '"environmental": "Plastic has a footprint."}'
    )
    prompts: list[str] = field(default_factory=list)
    schemas: list[tuple[str, dict[str, object]]] = field(default_factory=list)

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
        self.prompts.append(prompt)
        self.schemas.append((schema_name, schema))
        return self.text


@dataclass
class InMemoryScanRepository(ScanRepository):
    """In-memory scan repository for tests."""

    scans: list[ScanRecord] = field(default_factory=list)
    fail: bool = False

    def create_scan(self, record: ScanRecord) -> ScanRecord:
        if self.fail:
            raise RuntimeError("store unavailable")
        stored = replace(record, id=len(self.scans) + 1)
        self.scans.append(stored)
        return stored

    def list_scans(
        self,
        user_id: UUID | None,
        since: datetime | None = None,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> list[ScanRecord]:
        if self.fail:
            raise RuntimeError("store unavailable")
        results = [
            scan
            for scan in self.scans
            if (user_id is None or scan.user_id == user_id)
            and (
                since is None
                or (scan.scanned_at is not None and scan.scanned_at >= since)
            )
        ]
        results.sort(
            key=lambda scan: scan.scanned_at or datetime.min.replace(tzinfo=UTC),
            reverse=newest_first,
        )
        return results[:limit] if limit is not None else results


@dataclass
class InMemoryInsightRepository(InsightRepository):
    """In-memory insight repository for tests."""

    overviews: list[OverviewInsightRecord] = field(default_factory=list)
    product_insights: list[ProductInsightRecord] = field(default_factory=list)
    fail: bool = False

    def get_latest_overview(self, user_id: UUID) -> OverviewInsightRecord | None:
        if self.fail:
            raise RuntimeError("store unavailable")
        mine = [item for item in self.overviews if item.user_id == user_id]
        if not mine:
            return None
        return max(mine, key=lambda item: item.created_at)

    def create_overview(self, record: OverviewInsightRecord) -> None:
        self.overviews.append(record)

    def create_product_insight(self, record: ProductInsightRecord) -> None:
        self.product_insights.append(record)

    def list_product_insights(
        self,
        user_id: UUID,
        insight_type: str | None,
        limit: int,
        offset: int,
    ) -> list[ProductInsightRecord]:
        mine = [
            item
            for item in reversed(self.product_insights)
            if item.user_id == user_id
            and (insight_type is None or item.insight_type == insight_type)
        ]
        return mine[offset : offset + limit]


@dataclass
class InMemoryGoalsRepository(GoalsRepository):
    """In-memory goals repository for tests."""

    goals: dict[UUID, UserGoals] = field(default_factory=dict)

    def get_goals(self, user_id: UUID) -> UserGoals | None:
        return self.goals.get(user_id)

    def upsert_goals(self, goals: UserGoals) -> UserGoals:
        self.goals[goals.user_id] = goals
        return goals


def make_scan(  # noqa: PLR0913
    user_id: UUID,
    scanned_at: datetime | None,
    price: float,
    name: str = "Sparkling Water",
    nutriscore: str | None = "b",
    category: str | None = None,
    nutrients: dict[str, float] | None = None,
) -> ScanRecord:
    return ScanRecord(
        user_id=user_id,
        barcode=BARCODE,
        product_name=name,
        brand="Clearwell",
        price=price,
        nutriscore=nutriscore,
        nova_group=1,
        image_url=None,
        portion_percentage=100,
        nutrients=nutrients or {},
        scanned_at=scanned_at,
        category=category,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
    )


@pytest.fixture
def off_client() -> FakeOpenFoodFactsClient:
    return FakeOpenFoodFactsClient()


@pytest.fixture
def insight_client() -> FakeInsightClient:
    return FakeInsightClient()


@pytest.fixture
def scan_repository() -> InMemoryScanRepository:
    return InMemoryScanRepository()


@pytest.fixture
def insight_repository() -> InMemoryInsightRepository:
    return InMemoryInsightRepository()


@pytest.fixture
def container(
    settings: Settings,
    off_client: FakeOpenFoodFactsClient,
    insight_client: FakeInsightClient,
    scan_repository: InMemoryScanRepository,
    insight_repository: InMemoryInsightRepository,
) -> AppContainer:
    product_service = ProductService(
        client=off_client, cache=InMemoryCache(), retry_delay_seconds=0
    )
    scan_service = ScanService(scan_repository)
    goals_service = GoalsService(InMemoryGoalsRepository())
    expenditure_service = ExpenditureService(
        scan_service=scan_service,
        goals_service=goals_service,
    )
    insight_service = InsightService(
        client=insight_client,
        repository=insight_repository,
        scan_service=scan_service,
        model=settings.openai_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        product_service=product_service,
        scan_service=scan_service,
        expenditure_service=expenditure_service,
        goals_service=goals_service,
        insight_service=insight_service,
        close_resources=close_resources,
    )
