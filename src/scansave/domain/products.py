"""Domain models for normalized products."""

from dataclasses import dataclass, field

UNKNOWN_PRODUCT_NAME = "Unknown Product"
UNKNOWN_NUTRISCORE = "unknown"
ECOSCORE_NOT_APPLICABLE = "not-applicable"

# Display key -> Open Food Facts per-100g field.
NUTRIENT_FIELDS: dict[str, str] = {
    "Energy (kcal)": "energy-kcal_100g",
    "Proteins (g)": "proteins_100g",
    "Carbohydrates (g)": "carbohydrates_100g",
    "Sugars (g)": "sugars_100g",
    "Fat (g)": "fat_100g",
    "Saturated Fat (g)": "saturated-fat_100g",
    "Salt (g)": "salt_100g",
    "Fiber (g)": "fiber_100g",
}


@dataclass(frozen=True)
class HealthInfo:
    """Health-related attributes of a product."""

    nutriscore: str = UNKNOWN_NUTRISCORE
    nova_group: int | None = None
    ingredients: str = ""
    allergens: tuple[str, ...] = ()
    is_vegetarian: bool = False
    additives: tuple[str, ...] = ()


@dataclass(frozen=True)
class EnvironmentalImpact:
    """Eco grade and carbon footprint of a product."""

    score: str = ECOSCORE_NOT_APPLICABLE
    co2_emissions: float | None = None


@dataclass(frozen=True)
class Packaging:
    """Packaging materials joined with ", "."""

    materials: str = ""


@dataclass(frozen=True)
class NormalizedProduct:
    """Canonical product representation with portion-scaled nutrients."""

    product_name: str
    brands: str
    image: str
    category: tuple[str, ...]
    nutrients: dict[str, float]
    health_info: HealthInfo
    environmental_impact: EnvironmentalImpact
    packaging: Packaging
    barcode: str = ""


@dataclass(frozen=True)
class AlternativeProduct:
    """A similar product with an equal or better nutriscore."""

    barcode: str
    name: str | None
    brand: str | None
    nutriscore: str | None
    image: str | None
    categories: list[str] = field(default_factory=list)
