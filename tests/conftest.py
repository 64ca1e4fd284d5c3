"""Global test fixtures and utilities for habitquest tests"""
import random
from datetime import datetime, timezone

import pytest

from habitquest.models.habit import Completion, Difficulty, Habit
from habitquest.services.container import ServiceContainer
from habitquest.storage.memory_store import InMemoryStore
from habitquest.utils.datetime_helpers import FixedClock


class FirstChoice(random.Random):
    """Deterministic random source: always picks the first option"""

    def choice(self, seq):
        return seq[0]


class FailingStore(InMemoryStore):
    """In-memory store whose set() fails for the keys in fail_on"""

    def __init__(self):
        super().__init__()
        self.fail_on = set()

    async def set(self, key, value):
        if key in self.fail_on:
            raise OSError(f"disk full writing {key}")
        await super().set(key, value)


# ============================================================================
# Clock & Randomness
# ============================================================================

@pytest.fixture
def fixed_clock():
    """Clock frozen at Monday 2026-10-19 09:00 UTC"""
    return FixedClock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc), "UTC")


@pytest.fixture
def first_choice_rng():
    return FirstChoice()


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-1"


# ============================================================================
# Record Factories
# ============================================================================

@pytest.fixture
def make_habit(test_user_id):
    """Factory for Habit records"""
    def _create(habit_id="h1", difficulty=Difficulty.MEDIUM, archived=False, user_id=None, name=None):
        return Habit(
            id=habit_id,
            user_id=user_id or test_user_id,
            name=name or f"Habit {habit_id}",
            difficulty=difficulty,
            created_at=datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc),
            archived=archived,
        )
    return _create


@pytest.fixture
def make_completion():
    """Factory for Completion records"""
    def _create(habit_id, date_key, hour=9, xp=15):
        year, month, day = (int(part) for part in date_key.split("-"))
        return Completion(
            habit_id=habit_id,
            date=date_key,
            completed_at=datetime(year, month, day, hour, 0, tzinfo=timezone.utc),
            xp_awarded=xp,
        )
    return _create


# ============================================================================
# Services
# ============================================================================

@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def container(memory_store, fixed_clock, first_choice_rng):
    """Service container over an in-memory store and the fixed clock"""
    return ServiceContainer(store=memory_store, clock=fixed_clock, rng=first_choice_rng)


@pytest.fixture
def progression_service(container):
    return container.progression_service


@pytest.fixture
def habit_service(container):
    return container.habit_service


@pytest.fixture
def start_user(container, test_user_id):
    """
    Load a session and add habits of the given difficulties

    Usage:
        session, habit_ids = await start_user("medium", "hard")
    """
    async def _start(*difficulties, user_id=None):
        session = await container.progression_service.load_session(user_id or test_user_id)
        habit_ids = []
        for index, difficulty in enumerate(difficulties, start=1):
            result = await container.habit_service.add_habit(session, f"Habit {index}", difficulty=difficulty)
            habit_ids.append(result.habit.id)
        return session, habit_ids
    return _start
