"""Quest models for gamification"""
from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field


class QuestScope(str, Enum):
    """Period a quest is scoped to"""
    DAILY = "daily"    # period_key is a YYYY-MM-DD date key
    WEEKLY = "weekly"  # period_key is a YYYY-WW ISO week key


class Quest(BaseModel):
    """
    Quest instance generated from a template for one period

    progress is recomputed from habits and completions on every evaluation;
    completed always equals progress >= target.
    """
    id: str
    template_id: str
    scope: QuestScope
    period_key: str
    title: str
    description: str
    target: int = Field(ge=1)
    progress: int = Field(default=0, ge=0)
    completed: bool = False
    reward_xp: int = Field(ge=0)
    created_at: datetime
