"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from uuid import UUID

from fastapi import FastAPI, Query, Request, status
from fastapi.responses import JSONResponse

from scansave.api.models import (
    DecodedScanRequest,
    GoalsRequest,
    OverviewRequest,
    ProductInsightRequest,
    ScanRequest,
    SuggestRequest,
)
from scansave.app_logging import configure_logging
from scansave.containers import AppContainer
from scansave.domain.expenditure import (
    BucketAmount,
    BudgetStatus,
    ExpenditureSummary,
    Granularity,
    TrendEntry,
)
from scansave.domain.goals import UserGoals
from scansave.domain.insights import ProductInsightRecord
from scansave.domain.products import AlternativeProduct, NormalizedProduct
from scansave.domain.scans import ScanRecord
from scansave.errors import (
    CooldownCheckError,
    InsightCooldownError,
    InsufficientProductInfoError,
    NoScanHistoryError,
    ProductNotFoundError,
    ScanSaveError,
    ValidationError,
)
from scansave.services.barcodes import is_valid_barcode, valid_barcodes
from scansave.services.products import has_enough_info_for_ai
from scansave.services.scans import portion_label
from scansave.services.trends import analyze_trends

UNPROCESSABLE = 422

_ERROR_STATUS: dict[type[ScanSaveError], int] = {
    ProductNotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: UNPROCESSABLE,
    InsufficientProductInfoError: UNPROCESSABLE,
    NoScanHistoryError: status.HTTP_400_BAD_REQUEST,
    InsightCooldownError: status.HTTP_429_TOO_MANY_REQUESTS,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ScanSaveError)
    async def scansave_error_handler(
        request: Request, exc: ScanSaveError
    ) -> JSONResponse:
        status_code = _ERROR_STATUS.get(
            type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request failed: %s %s: %s", request.method, request.url, exc)
        content: dict[str, object] = {"status": "error", "error": str(exc)}
        if isinstance(exc, InsightCooldownError):
            content["nextAvailableTime"] = _iso(exc.next_available_time)
        return JSONResponse(status_code=status_code, content=content)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/products/{barcode}")
    async def get_product(
        barcode: str, request: Request, portion: float = 100
    ) -> dict[str, object]:
        """Look up a product and scale its nutrients to the portion."""
        _require_barcode(barcode)
        _require_portion(portion)
        state_container: AppContainer = request.app.state.container
        product = await state_container.product_service.lookup(barcode, portion)
        return {
            "status": "success",
            "product": _product_payload(product),
            "hasEnoughInfoForAI": has_enough_info_for_ai(product),
            "portionLabel": portion_label(portion),
        }

    @app.post("/products/scan")
    async def scan_product(
        body: DecodedScanRequest, request: Request
    ) -> dict[str, object]:
        """Look up the first valid barcode among the scanner's decoded reads."""
        barcode = next(valid_barcodes(body.decoded), None)
        if barcode is None:
            raise ValidationError("Please enter a valid 8-13 digit barcode")
        state_container: AppContainer = request.app.state.container
        product = await state_container.product_service.lookup(
            barcode, body.portion_percentage
        )
        return {
            "status": "success",
            "barcode": barcode,
            "product": _product_payload(product),
            "hasEnoughInfoForAI": has_enough_info_for_ai(product),
            "portionLabel": portion_label(body.portion_percentage),
        }

    @app.get("/alternatives")
    async def get_alternatives(
        request: Request, category: str | None = None, nutriscore: str | None = None
    ) -> dict[str, object]:
        """Return up to six similar products with an equal or better grade."""
        state_container: AppContainer = request.app.state.container
        alternatives = await state_container.product_service.find_alternatives(
            category, nutriscore
        )
        return {
            "status": "success",
            "count": len(alternatives),
            "alternatives": [_alternative_payload(item) for item in alternatives],
        }

    @app.post("/scans")
    async def create_scan(body: ScanRequest, request: Request) -> dict[str, object]:
        """Record a completed scan with its price and portion."""
        state_container: AppContainer = request.app.state.container
        product = await state_container.product_service.lookup(
            body.barcode, body.portion_percentage
        )
        scan = state_container.scan_service.record_scan(
            user_id=body.user_id,
            product=product,
            price=body.price,
            portion_percentage=body.portion_percentage,
        )
        return {"status": "success", "scan": _scan_payload(scan)}

    @app.get("/users/{user_id}/scans")
    async def list_scans(
        user_id: UUID, request: Request, limit: int = 10
    ) -> dict[str, object]:
        """Return a user's most recent scans."""
        state_container: AppContainer = request.app.state.container
        scans = state_container.scan_service.list_recent(user_id, limit=limit)
        return {"scans": [_scan_payload(scan) for scan in scans]}

    @app.get("/users/{user_id}/stats")
    async def user_stats(user_id: UUID, request: Request) -> dict[str, object]:
        """Return scan count and health score."""
        state_container: AppContainer = request.app.state.container
        stats = state_container.scan_service.get_user_stats(user_id)
        return {"totalScans": stats.total_scans, "healthScore": stats.health_score}

    @app.get("/expenditure")
    async def expenditure(
        request: Request,
        user_id: UUID | None = None,
        granularity: Granularity = Granularity.MINUTE,
        fill_gaps: bool = False,
    ) -> dict[str, object]:
        """Return bucketed spend and summary statistics."""
        state_container: AppContainer = request.app.state.container
        summary = state_container.expenditure_service.get_summary(
            user_id, granularity, fill_gaps=fill_gaps
        )
        return _expenditure_payload(summary)

    @app.get("/expenditure/trends")
    async def expenditure_trends(
        request: Request,
        user_id: UUID | None = None,
        granularity: Granularity = Granularity.DAY,
    ) -> dict[str, object]:
        """Return weekly, monthly and category rollups."""
        state_container: AppContainer = request.app.state.container
        summary = state_container.expenditure_service.get_summary(user_id, granularity)
        trends = analyze_trends(summary.buckets)
        return {
            "weekly": _trend_payload(trends.weekly),
            "monthly": _trend_payload(trends.monthly),
            "byCategory": _trend_payload(trends.by_category),
        }

    @app.get("/users/{user_id}/budget")
    async def budget(user_id: UUID, request: Request) -> dict[str, object]:
        """Return month-to-date spend against the monthly budget."""
        state_container: AppContainer = request.app.state.container
        return _budget_payload(
            state_container.expenditure_service.get_budget_status(user_id)
        )

    @app.get("/users/{user_id}/goals")
    async def get_goals(user_id: UUID, request: Request) -> dict[str, object]:
        """Return the user's goals."""
        state_container: AppContainer = request.app.state.container
        goals = state_container.goals_service.get_goals(user_id)
        return {"goals": _goals_payload(goals) if goals else None}

    @app.put("/users/{user_id}/goals")
    async def put_goals(
        user_id: UUID, body: GoalsRequest, request: Request
    ) -> dict[str, object]:
        """Create or replace the user's goals."""
        state_container: AppContainer = request.app.state.container
        goals = state_container.goals_service.set_goals(
            user_id, body.monthly_budget, body.savings_target
        )
        return {"goals": _goals_payload(goals)}

    @app.post("/insights/suggest")
    async def suggest(body: SuggestRequest, request: Request) -> dict[str, object]:
        """Generate AI suggestions for a scanned product."""
        state_container: AppContainer = request.app.state.container
        product = await state_container.product_service.lookup(
            body.barcode, body.portion_percentage
        )
        suggestions = await state_container.insight_service.suggest_for_product(
            product, body.price
        )
        return {
            "status": "success",
            "suggestions": suggestions.model_dump(exclude_none=True),
        }

    @app.post("/insights/product")
    async def save_product_insight(
        body: ProductInsightRequest, request: Request
    ) -> dict[str, str]:
        """Store one per-product insight."""
        state_container: AppContainer = request.app.state.container
        state_container.insight_service.save_product_insight(
            ProductInsightRecord(**body.model_dump())
        )
        return {"status": "success"}

    @app.get("/users/{user_id}/insights")
    async def list_product_insights(
        user_id: UUID,
        request: Request,
        insight_type: str | None = Query(default=None, alias="type"),
        limit: int = 10,
        offset: int = 0,
    ) -> dict[str, object]:
        """Page through stored product insights."""
        state_container: AppContainer = request.app.state.container
        insights = state_container.insight_service.list_product_insights(
            user_id, insight_type, limit, offset
        )
        return {
            "insights": [_product_insight_payload(item) for item in insights],
            "count": len(insights),
        }

    @app.post("/insights/overview/availability")
    async def overview_availability(
        body: OverviewRequest, request: Request
    ) -> JSONResponse:
        """Report whether a new overview may be generated."""
        state_container: AppContainer = request.app.state.container
        try:
            cooldown = state_container.insight_service.check_cooldown(body.user_id)
        except CooldownCheckError:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Failed to check overview availability"},
            )
        return JSONResponse(
            content={
                "canRequest": cooldown.can_request,
                "nextAvailableTime": _iso(cooldown.next_available_time),
            }
        )

    @app.post("/insights/overview")
    async def overview(body: OverviewRequest, request: Request) -> dict[str, object]:
        """Generate and store weekly overview insights."""
        state_container: AppContainer = request.app.state.container
        insights = await state_container.insight_service.generate_overview(
            body.user_id
        )
        return {"status": "success", "insights": insights.model_dump()}

    return app


def _require_barcode(barcode: str) -> None:
    if not is_valid_barcode(barcode):
        raise ValidationError("Please enter a valid 8-13 digit barcode")


def _require_portion(portion: float) -> None:
    if not 0 <= portion <= 100:  # noqa: PLR2004
        raise ValidationError("Portion must be between 0 and 100 percent")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _product_payload(product: NormalizedProduct) -> dict[str, object]:
    """Serialize a product in the client's camelCase shape."""
    health = product.health_info
    return {
        "barcode": product.barcode,
        "productName": product.product_name,
        "brands": product.brands,
        "image": product.image,
        "category": list(product.category),
        "nutrients": product.nutrients,
        "healthInfo": {
            "nutriscore": health.nutriscore,
            "novaGroup": health.nova_group,
            "ingredients": health.ingredients,
            "allergens": list(health.allergens),
            "isVegetarian": health.is_vegetarian,
            "additives": list(health.additives),
        },
        "environmentalImpact": {
            "score": product.environmental_impact.score,
            "co2Emissions": product.environmental_impact.co2_emissions,
        },
        "packaging": {"materials": product.packaging.materials},
    }


def _alternative_payload(item: AlternativeProduct) -> dict[str, object]:
    return {
        "barcode": item.barcode,
        "name": item.name,
        "brand": item.brand,
        "nutriscore": item.nutriscore,
        "image": item.image,
        "categories": item.categories,
    }


def _scan_payload(scan: ScanRecord) -> dict[str, object]:
    return {
        "id": scan.id,
        "userId": str(scan.user_id),
        "barcode": scan.barcode,
        "productName": scan.product_name,
        "brand": scan.brand,
        "price": scan.price,
        "nutriscore": scan.nutriscore,
        "novaGroup": scan.nova_group,
        "imageUrl": scan.image_url,
        "scannedAt": _iso(scan.scanned_at),
        "portionPercentage": scan.portion_percentage,
        "nutrients": scan.nutrients,
    }


def _amount_payload(amount: BucketAmount) -> dict[str, object]:
    return {"timestamp": _iso(amount.timestamp), "amount": round(amount.amount, 2)}


def _expenditure_payload(summary: ExpenditureSummary) -> dict[str, object]:
    stats = summary.stats
    return {
        "granularity": summary.granularity.value,
        "buckets": [
            {
                "timestamp": _iso(bucket.timestamp),
                "total": round(bucket.total, 2),
                "products": [
                    {
                        "name": product.name,
                        "price": product.price,
                        "timestamp": _iso(product.timestamp),
                    }
                    for product in bucket.products
                ],
            }
            for bucket in summary.buckets
        ],
        "stats": {
            "totalSpent": round(stats.total_spent, 2),
            "averageBucket": round(stats.average_bucket, 2),
            "highestBucket": _amount_payload(stats.highest_bucket),
            "lowestBucket": _amount_payload(stats.lowest_bucket),
        },
    }


def _trend_payload(entries: list[TrendEntry]) -> list[dict[str, object]]:
    return [{"key": entry.key, "total": entry.total} for entry in entries]


def _budget_payload(budget: BudgetStatus) -> dict[str, object]:
    return {
        "month": budget.month,
        "spent": budget.spent,
        "monthlyBudget": budget.monthly_budget,
        "remaining": budget.remaining,
        "percentageUsed": budget.percentage_used,
    }


def _goals_payload(goals: UserGoals) -> dict[str, object]:
    return {
        "userId": str(goals.user_id),
        "monthlyBudget": goals.monthly_budget,
        "savingsTarget": goals.savings_target,
        "updatedAt": _iso(goals.updated_at),
    }


def _product_insight_payload(item: ProductInsightRecord) -> dict[str, object]:
    return {
        "barcode": item.barcode,
        "insightType": item.insight_type,
        "insightText": item.insight_text,
        "productName": item.product_name,
        "productImage": item.product_image,
        "createdAt": _iso(item.created_at),
    }
