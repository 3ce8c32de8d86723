"""User goals service."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from scansave.domain.goals import UserGoals
from scansave.errors import ValidationError


class GoalsRepository(Protocol):
    """Persistence interface for user goals."""

    def get_goals(self, user_id: UUID) -> UserGoals | None:
        """Return the user's goals if set."""

    def upsert_goals(self, goals: UserGoals) -> UserGoals:
        """Create or replace the user's goals."""


@dataclass
class GoalsService:
    """Service for budget and savings goals."""

    repository: GoalsRepository

    def get_goals(self, user_id: UUID) -> UserGoals | None:
        """Return the user's goals if set."""
        return self.repository.get_goals(user_id)

    def set_goals(
        self,
        user_id: UUID,
        monthly_budget: float | None,
        savings_target: float | None,
    ) -> UserGoals:
        """Persist a user's goals, replacing any previous ones."""
        for value in (monthly_budget, savings_target):
            if value is not None and value < 0:
                raise ValidationError("Goals cannot be negative")
        return self.repository.upsert_goals(
            UserGoals(
                user_id=user_id,
                monthly_budget=monthly_budget,
                savings_target=savings_target,
            )
        )
