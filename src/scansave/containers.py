"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from scansave.adapters.openai_insight_client import OpenAIInsightClient
from scansave.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
from scansave.adapters.supabase_goals_repository import SupabaseGoalsRepository
from scansave.adapters.supabase_insight_repository import SupabaseInsightRepository
from scansave.adapters.supabase_scan_repository import SupabaseScanRepository
from scansave.config import Settings
from scansave.services.cache import InMemoryCache
from scansave.services.expenditure import ExpenditureService
from scansave.services.goals import GoalsService
from scansave.services.insights import InsightService
from scansave.services.products import ProductService
from scansave.services.scans import ScanService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    product_service: ProductService
    scan_service: ScanService
    expenditure_service: ExpenditureService
    goals_service: GoalsService
    insight_service: InsightService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    off_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.openfoodfacts_base_url,
        search_url=resolved_settings.openfoodfacts_search_url,
    )
    openai_client = OpenAIInsightClient.create(resolved_settings.openai_api_key)

    product_service = ProductService(client=off_client, cache=InMemoryCache())
    scan_service = ScanService(SupabaseScanRepository(supabase_client))
    goals_service = GoalsService(SupabaseGoalsRepository(supabase_client))
    expenditure_service = ExpenditureService(
        scan_service=scan_service,
        goals_service=goals_service,
    )
    insight_service = InsightService(
        client=openai_client,
        repository=SupabaseInsightRepository(supabase_client),
        scan_service=scan_service,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )

    async def close_resources() -> None:
        await off_client.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        product_service=product_service,
        scan_service=scan_service,
        expenditure_service=expenditure_service,
        goals_service=goals_service,
        insight_service=insight_service,
        close_resources=close_resources,
    )
