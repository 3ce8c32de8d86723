"""Pydantic models for API request bodies."""

from uuid import UUID

from pydantic import BaseModel, Field


class ScanRequest(BaseModel):
    """A completed scan-and-price flow."""

    user_id: UUID
    barcode: str = Field(pattern=r"^[0-9]{8,13}$")
    price: float = Field(gt=0)
    portion_percentage: float = Field(default=100, ge=0, le=100)


class DecodedScanRequest(BaseModel):
    """Raw strings read by the camera scanner, oldest first."""

    decoded: list[str] = Field(min_length=1)
    portion_percentage: float = Field(default=100, ge=0, le=100)


class SuggestRequest(BaseModel):
    """Request for product suggestions by barcode."""

    barcode: str = Field(pattern=r"^[0-9]{8,13}$")
    portion_percentage: float = Field(default=100, ge=0, le=100)
    price: float | None = Field(default=None, gt=0)


class ProductInsightRequest(BaseModel):
    """A per-product insight to store."""

    user_id: UUID
    barcode: str
    insight_type: str
    insight_text: str
    product_name: str | None = None
    product_image: str | None = None


class OverviewRequest(BaseModel):
    """Overview requests identify the user only."""

    user_id: UUID


class GoalsRequest(BaseModel):
    """Budget and savings goals."""

    monthly_budget: float | None = Field(default=None, ge=0)
    savings_target: float | None = Field(default=None, ge=0)
