"""Supabase repository for product scan history."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from scansave.domain.scans import ScanRecord
from scansave.services.scans import ScanRepository

_TABLE = "product_history"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseScanRepository(ScanRepository):
    """Supabase implementation for the product_history table."""

    client: Client

    def create_scan(self, record: ScanRecord) -> ScanRecord:
        """Insert a scan row and return it as stored."""
        scanned_at = record.scanned_at or datetime.now(tz=UTC)
        response = (
            self.client.table(_TABLE)
            .insert(
                {
                    "user_id": str(record.user_id),
                    "barcode": record.barcode,
                    "product_name": record.product_name,
                    "brand": record.brand,
                    "price": record.price,
                    "nutriscore": record.nutriscore,
                    "nova_group": record.nova_group,
                    "image_url": record.image_url,
                    "scanned_at": scanned_at.isoformat(),
                    "portion_percentage": record.portion_percentage,
                    "nutrients": record.nutrients or None,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create product scan")
        return _parse_row(response.data[0])

    def list_scans(
        self,
        user_id: UUID | None,
        since: datetime | None = None,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> list[ScanRecord]:
        """Return scans filtered by user and start time."""
        query = self.client.table(_TABLE).select("*")
        if user_id is not None:
            query = query.eq("user_id", str(user_id))
        if since is not None:
            query = query.gte("scanned_at", since.isoformat())
        query = query.order("scanned_at", desc=newest_first)
        if limit is not None:
            query = query.limit(limit)
        response = query.execute()
        records = []
        for row in response.data or []:
            try:
                records.append(_parse_row(row))
            except (KeyError, TypeError, ValueError) as exc:
                _logger.warning(
                    "Skipping malformed scan row: id=%s error=%s", row.get("id"), exc
                )
        return records


def parse_timestamp(raw: object) -> datetime | None:
    """Parse a stored ISO timestamp, returning None when unusable."""
    if not isinstance(raw, str) or not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def _parse_row(row: dict[str, object]) -> ScanRecord:
    nova_group = row.get("nova_group")
    nutrients = row.get("nutrients")
    return ScanRecord(
        id=row.get("id"),
        user_id=UUID(str(row["user_id"])),
        barcode=str(row.get("barcode") or ""),
        product_name=str(row.get("product_name") or ""),
        brand=str(row.get("brand") or ""),
        price=float(row.get("price") or 0.0),
        nutriscore=row.get("nutriscore"),
        nova_group=int(nova_group) if nova_group is not None else None,
        image_url=row.get("image_url"),
        portion_percentage=float(row.get("portion_percentage") or 0.0),
        nutrients=nutrients if isinstance(nutrients, dict) else {},
        scanned_at=parse_timestamp(row.get("scanned_at")),
        category=row.get("category"),
    )
