"""Habit and completion models"""
from enum import Enum
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Difficulty(str, Enum):
    """Habit difficulty, determines the XP a completion is worth"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Habit(BaseModel):
    """A habit owned by a user"""
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    difficulty: Difficulty = Difficulty.MEDIUM
    created_at: datetime
    archived: bool = False


class Completion(BaseModel):
    """
    Fact that a habit was marked done on a calendar day

    At most one completion exists per (habit_id, date). The XP awarded is
    snapshotted when the completion is created and is the only amount ever
    deducted when it is undone.
    """
    habit_id: str
    date: str  # YYYY-MM-DD
    completed_at: datetime  # timezone-aware, in the user's timezone
    xp_awarded: int = Field(default=0, ge=0)

    @property
    def key(self) -> tuple[str, str]:
        return (self.habit_id, self.date)
