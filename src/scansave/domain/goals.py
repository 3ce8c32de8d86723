"""Domain models for user goals."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class UserGoals:
    """Budget and savings targets for a user."""

    user_id: UUID
    monthly_budget: float | None
    savings_target: float | None
    updated_at: datetime | None = None
