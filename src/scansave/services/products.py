"""Product lookup, normalization and AI-readiness checks."""

import asyncio
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from scansave.adapters.openfoodfacts_client import OpenFoodFactsClient
from scansave.domain.products import (
    ECOSCORE_NOT_APPLICABLE,
    NUTRIENT_FIELDS,
    UNKNOWN_NUTRISCORE,
    UNKNOWN_PRODUCT_NAME,
    AlternativeProduct,
    EnvironmentalImpact,
    HealthInfo,
    NormalizedProduct,
    Packaging,
)
from scansave.errors import ProductNotFoundError
from scansave.services.cache import Cache

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

REFERENCE_WEIGHT_G = 100.0
NUTRISCORE_GRADES = ("a", "b", "c", "d", "e")
VEGAN_TAG = "en:vegan"

_logger = logging.getLogger(__name__)


@dataclass
class ProductService:
    """Looks up products by barcode and normalizes them for a portion."""

    client: OpenFoodFactsClient
    cache: Cache
    product_ttl_seconds: int = 3600
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def fetch_raw(self, barcode: str) -> Mapping[str, object]:
        """Return the raw product record for a barcode."""
        cache_key = f"off:product:{barcode}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, dict):
            return cached

        payload = await self._call_with_retry(
            lambda: self.client.get_product(barcode), action=f"product:{barcode}"
        )
        product = payload.get("product") if isinstance(payload, dict) else None
        if not isinstance(product, dict) or not product:
            _logger.info("Product not found: barcode=%s", barcode)
            raise ProductNotFoundError(barcode)
        self.cache.set(cache_key, product, ttl_seconds=self.product_ttl_seconds)
        return product

    async def lookup(
        self, barcode: str, portion_percentage: float = 100
    ) -> NormalizedProduct:
        """Fetch and normalize a product for the consumed portion."""
        raw = await self.fetch_raw(barcode)
        return normalize_product(raw, portion_percentage, barcode=barcode)

    async def find_alternatives(
        self, category: str | None, nutriscore: str | None, limit: int = 6
    ) -> list[AlternativeProduct]:
        """Return popular products in a category with an equal or better grade."""
        grades = grades_at_least(nutriscore)
        payload = await self._call_with_retry(
            lambda: self.client.search_products(category, grades, page_size=limit),
            action=f"alternatives:{category}",
        )
        alternatives = []
        for product in payload.get("products") or []:
            grade = product.get("nutriscore_grade")
            if grades and str(grade).lower() not in grades:
                continue
            alternatives.append(
                AlternativeProduct(
                    barcode=str(product.get("code", "")),
                    name=product.get("product_name"),
                    brand=product.get("brands"),
                    nutriscore=grade,
                    image=product.get("image_front_url"),
                    categories=list(product.get("categories_tags") or []),
                )
            )
        return alternatives[:limit]

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "Open Food Facts %s failed (attempt %s/%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)


def normalize_product(
    raw: Mapping[str, object] | None,
    portion_percentage: float,
    barcode: str = "",
) -> NormalizedProduct:
    """Convert a raw Open Food Facts record into a NormalizedProduct.

    Nutrient values are given per 100 g upstream and scaled by the grams
    consumed, where the portion percentage applies to a fixed 100 g reference
    weight. Missing optional fields fall back to defaults; only a missing
    record raises.
    """
    if raw is None:
        raise ProductNotFoundError(barcode)

    consumed_grams = REFERENCE_WEIGHT_G * portion_percentage / 100
    scale = consumed_grams / 100
    nutriments = raw.get("nutriments")
    if not isinstance(nutriments, Mapping):
        nutriments = {}
    nutrients = {
        name: _to_number(nutriments.get(source)) * scale
        for name, source in NUTRIENT_FIELDS.items()
    }

    analysis_tags = _tags(raw.get("ingredients_analysis_tags"))
    materials = ", ".join(_tags(raw.get("packaging_tags")))

    return NormalizedProduct(
        product_name=str(
            raw.get("product_name") or raw.get("generic_name") or UNKNOWN_PRODUCT_NAME
        ),
        brands=str(raw.get("brands") or ""),
        image=str(raw.get("image_front_url") or raw.get("image_url") or ""),
        category=_tags(raw.get("categories_tags")),
        nutrients=nutrients,
        health_info=HealthInfo(
            nutriscore=str(raw.get("nutriscore_grade") or UNKNOWN_NUTRISCORE),
            nova_group=_to_int(raw.get("nova_group")),
            ingredients=str(raw.get("ingredients_text") or ""),
            allergens=_tags(raw.get("allergens_tags")),
            is_vegetarian=VEGAN_TAG in analysis_tags,
            additives=_tags(raw.get("additives_tags")),
        ),
        environmental_impact=EnvironmentalImpact(
            score=str(raw.get("ecoscore_grade") or ECOSCORE_NOT_APPLICABLE),
            co2_emissions=_to_number(raw.get("carbon_footprint_100g")) or None,
        ),
        packaging=Packaging(materials=materials),
        barcode=barcode or str(raw.get("code") or ""),
    )


def has_enough_info_for_ai(product: NormalizedProduct) -> bool:
    """Return True when any field useful to an insight prompt is present."""
    return bool(
        product.health_info.ingredients
        or product.health_info.nutriscore != UNKNOWN_NUTRISCORE
        or product.health_info.nova_group is not None
        or product.category
        or product.packaging.materials
    )


def grades_at_least(nutriscore: str | None) -> list[str] | None:
    """Return the nutriscore grades equal to or better than the given one."""
    if not nutriscore:
        return None
    grade = nutriscore.lower()
    if grade not in NUTRISCORE_GRADES:
        return None
    return list(NUTRISCORE_GRADES[: NUTRISCORE_GRADES.index(grade) + 1])


def _to_number(value: object) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _to_int(value: object) -> int | None:
    number = _to_number(value)
    if not number:
        return None
    return int(number)


def _tags(value: object) -> tuple[str, ...]:
    if not isinstance(value, list | tuple):
        return ()
    return tuple(str(tag) for tag in value if tag)
