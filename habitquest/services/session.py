"""Caller-owned view of one user's progression"""
import logging
from typing import Dict, List, Optional

from habitquest.gamification.achievement_system import AchievementContext, get_next_badge_hint
from habitquest.gamification.quests import get_active_quests
from habitquest.gamification.streak_system import get_streaks_by_habit
from habitquest.gamification.xp_system import (
    level_progress,
    xp_into_level,
    xp_to_next_level,
)
from habitquest.models.achievement import Badge
from habitquest.models.habit import Completion, Habit
from habitquest.models.player import Player
from habitquest.models.quest import Quest
from habitquest.storage.repository import UserRecords
from habitquest.utils.datetime_helpers import Clock, week_key_for

logger = logging.getLogger(__name__)


class UserSession:
    """
    Read-only snapshot of a user's progression

    Created by ProgressionService.load_session() and handed back to every
    action. The snapshot only changes when an action commits successfully,
    so readers always observe a consistent post-action state.
    """

    def __init__(self, user_id: str, records: UserRecords, clock: Clock):
        self.user_id = user_id
        self._records = records
        self._clock = clock

    def publish(self, records: UserRecords) -> None:
        """Replace the snapshot after a successful commit"""
        if records.user_id != self.user_id:
            raise ValueError(f"Records for {records.user_id} can't be published to session {self.user_id}")
        self._records = records

    @property
    def records(self) -> UserRecords:
        return self._records

    # ==========================================
    # Player
    # ==========================================

    @property
    def player(self) -> Player:
        return self._records.player

    @property
    def xp_total(self) -> int:
        return self.player.xp_total

    @property
    def level(self) -> int:
        return self.player.level

    @property
    def xp_into_level(self) -> int:
        return xp_into_level(self.xp_total, self.level)

    @property
    def xp_to_next_level(self) -> int:
        return xp_to_next_level(self.xp_total, self.level)

    @property
    def level_progress(self) -> float:
        return level_progress(self.xp_total, self.level)

    # ==========================================
    # Habits
    # ==========================================

    @property
    def habits(self) -> List[Habit]:
        """Active (non-archived) habits"""
        return self._records.active_habits

    @property
    def all_habits(self) -> List[Habit]:
        return list(self._records.habits)

    @property
    def completions(self) -> List[Completion]:
        return list(self._records.completions)

    def is_completed(self, habit_id: str, date_key: Optional[str] = None) -> bool:
        date_key = date_key or self._clock.today_key()
        return self._records.find_completion(habit_id, date_key) is not None

    @property
    def streaks(self) -> Dict[str, int]:
        """Current streak per habit id"""
        return get_streaks_by_habit(self._records.habits, self._records.completions, self._clock.today_key())

    # ==========================================
    # Badges & Quests
    # ==========================================

    @property
    def badges(self) -> List[Badge]:
        return list(self._records.badges)

    @property
    def perfect_days(self) -> List[str]:
        return list(self._records.perfect_days)

    @property
    def quests(self) -> List[Quest]:
        return list(self._records.quests)

    @property
    def active_quests(self) -> List[Quest]:
        today = self._clock.today_key()
        return get_active_quests(self._records.quests, today, week_key_for(today))

    @property
    def next_badge_hint(self) -> Optional[str]:
        return get_next_badge_hint(AchievementContext(
            habits=self._records.habits,
            completions=self._records.completions,
            current_badges=self._records.badges,
            perfect_day_dates=self._records.perfect_days,
            today_key=self._clock.today_key(),
        ))
