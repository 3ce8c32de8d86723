"""Supabase repository for AI insights."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from scansave.adapters.supabase_scan_repository import parse_timestamp
from scansave.domain.insights import OverviewInsightRecord, ProductInsightRecord
from scansave.services.insights import InsightRepository


@dataclass
class SupabaseInsightRepository(InsightRepository):
    """Supabase implementation for user_insights and ai_insights."""

    client: Client

    def get_latest_overview(self, user_id: UUID) -> OverviewInsightRecord | None:
        """Return the most recent overview insight for a user."""
        response = (
            self.client.table("user_insights")
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return OverviewInsightRecord(
            user_id=UUID(str(row["user_id"])),
            environmental_insight=str(row.get("environmental_insight") or ""),
            nutritional_insight=str(row.get("nutritional_insight") or ""),
            spending_insight=str(row.get("spending_insight") or ""),
            created_at=parse_timestamp(row.get("created_at")),
        )

    def create_overview(self, record: OverviewInsightRecord) -> None:
        """Insert an overview insight row."""
        payload: dict[str, object] = {
            "user_id": str(record.user_id),
            "environmental_insight": record.environmental_insight,
            "nutritional_insight": record.nutritional_insight,
            "spending_insight": record.spending_insight,
        }
        if record.created_at is not None:
            payload["created_at"] = record.created_at.isoformat()
        self.client.table("user_insights").insert(payload).execute()

    def create_product_insight(self, record: ProductInsightRecord) -> None:
        """Insert a per-product insight row."""
        self.client.table("ai_insights").insert(
            {
                "user_id": str(record.user_id),
                "barcode": record.barcode,
                "insight_type": record.insight_type,
                "insight_text": record.insight_text,
                "product_name": record.product_name,
                "product_image": record.product_image,
            }
        ).execute()

    def list_product_insights(
        self,
        user_id: UUID,
        insight_type: str | None,
        limit: int,
        offset: int,
    ) -> list[ProductInsightRecord]:
        """Return a page of per-product insights, newest first."""
        query = (
            self.client.table("ai_insights")
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
        )
        if insight_type:
            query = query.eq("insight_type", insight_type)
        response = query.execute()
        return [
            ProductInsightRecord(
                user_id=UUID(str(row["user_id"])),
                barcode=str(row.get("barcode") or ""),
                insight_type=str(row.get("insight_type") or ""),
                insight_text=str(row.get("insight_text") or ""),
                product_name=row.get("product_name"),
                product_image=row.get("product_image"),
                created_at=parse_timestamp(row.get("created_at")),
            )
            for row in response.data or []
        ]
