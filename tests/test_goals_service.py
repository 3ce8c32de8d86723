"""Tests for user goals."""

from uuid import uuid4

import pytest

from scansave.errors import ValidationError
from scansave.services.goals import GoalsService
from tests.conftest import InMemoryGoalsRepository


def test_set_and_get_goals() -> None:
    user_id = uuid4()
    service = GoalsService(InMemoryGoalsRepository())

    service.set_goals(user_id, monthly_budget=300.0, savings_target=50.0)
    goals = service.get_goals(user_id)

    assert goals is not None
    assert goals.monthly_budget == 300.0
    assert goals.savings_target == 50.0


def test_set_goals_replaces_previous() -> None:
    user_id = uuid4()
    service = GoalsService(InMemoryGoalsRepository())

    service.set_goals(user_id, monthly_budget=300.0, savings_target=50.0)
    service.set_goals(user_id, monthly_budget=None, savings_target=20.0)
    goals = service.get_goals(user_id)

    assert goals is not None
    assert goals.monthly_budget is None
    assert goals.savings_target == 20.0


def test_negative_goals_are_rejected() -> None:
    service = GoalsService(InMemoryGoalsRepository())

    with pytest.raises(ValidationError):
        service.set_goals(uuid4(), monthly_budget=-1.0, savings_target=None)


def test_missing_goals() -> None:
    assert GoalsService(InMemoryGoalsRepository()).get_goals(uuid4()) is None
