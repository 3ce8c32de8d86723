"""Supabase repository for user goals."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from scansave.adapters.supabase_scan_repository import parse_timestamp
from scansave.domain.goals import UserGoals
from scansave.services.goals import GoalsRepository


@dataclass
class SupabaseGoalsRepository(GoalsRepository):
    """Supabase implementation for the user_goals table."""

    client: Client

    def get_goals(self, user_id: UUID) -> UserGoals | None:
        """Return the stored goals for a user."""
        response = (
            self.client.table("user_goals")
            .select("user_id, monthly_budget, savings_target, updated_at")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def upsert_goals(self, goals: UserGoals) -> UserGoals:
        """Create or replace the goals row keyed on user_id."""
        response = (
            self.client.table("user_goals")
            .upsert(
                {
                    "user_id": str(goals.user_id),
                    "monthly_budget": goals.monthly_budget,
                    "savings_target": goals.savings_target,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="user_id",
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save user goals")
        return _parse_row(response.data[0])


def _parse_row(row: dict[str, object]) -> UserGoals:
    budget = row.get("monthly_budget")
    target = row.get("savings_target")
    return UserGoals(
        user_id=UUID(str(row["user_id"])),
        monthly_budget=float(budget) if budget is not None else None,
        savings_target=float(target) if target is not None else None,
        updated_at=parse_timestamp(row.get("updated_at")),
    )
