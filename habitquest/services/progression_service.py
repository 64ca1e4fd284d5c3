"""
ProgressionService - Reward Reconciliation

Runs every user action against the progression engine:
- Completion toggles (habit XP, Daily Perfect bonus, and their reversal)
- Badge evaluation and one-time badge XP
- Quest generation, progress recomputation, quest XP and its reversal

Each action is one transaction: it works on a staged copy of the user's
records, evaluates achievements and quests right after the completion/XP
change, commits every collection through a unit of work, and only then
publishes the new snapshot to the caller's session.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from habitquest.config import QUEST_RETENTION_DAYS
from habitquest.exceptions import RecordNotFoundError
from habitquest.gamification.achievement_system import (
    AchievementContext,
    apply_unlocks,
    evaluate_achievements,
    initialize_badges,
    merge_badge_catalog,
)
from habitquest.gamification.quests import (
    check_quest_completion,
    check_quest_reversal,
    cleanup_old_quests,
    generate_daily_quests,
    generate_weekly_quests,
    needs_daily_quests,
    needs_weekly_quests,
    update_quest_progress,
)
from habitquest.gamification.rewards import apply_badge_reward, apply_quest_reward
from habitquest.gamification.xp_system import (
    DAILY_PERFECT_BONUS,
    XPChange,
    apply_xp_delta,
    calculate_habit_xp,
)
from habitquest.models.achievement import Badge
from habitquest.models.habit import Completion, Habit
from habitquest.models.player import Player
from habitquest.models.quest import Quest
from habitquest.services.action_queue import UserActionQueue
from habitquest.services.session import UserSession
from habitquest.storage.base import KeyValueStore
from habitquest.storage.repository import ProgressionRepository, UserRecords
from habitquest.utils.datetime_helpers import Clock, format_date_key, week_key_for
from habitquest.validators import validate_date_key

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """
    Outcome of one user action

    XP fields are signed: negative values are reversals.
    """
    old_xp_total: int = 0
    old_level: int = 1
    player: Optional[Player] = None
    completed: Optional[bool] = None
    habit: Optional[Habit] = None
    habit_xp: int = 0
    daily_perfect_xp: int = 0
    daily_perfect_awarded: bool = False
    daily_perfect_revoked: bool = False
    badge_xp: int = 0
    badges_unlocked: List[Badge] = field(default_factory=list)
    quest_xp: int = 0
    quests_completed: List[Quest] = field(default_factory=list)
    quests_reverted: List[Quest] = field(default_factory=list)
    xp_changes: List[XPChange] = field(default_factory=list)

    @property
    def xp_delta(self) -> int:
        """Net change of the player's XP total"""
        return (self.player.xp_total if self.player else self.old_xp_total) - self.old_xp_total

    @property
    def leveled_up(self) -> bool:
        return self.player is not None and self.player.level > self.old_level

    @property
    def new_level(self) -> int:
        return self.player.level if self.player else self.old_level


ToggleResult = ActionResult

Mutation = Callable[[UserRecords, datetime, ActionResult], Awaitable[None]]


class ProgressionService:
    """
    Service for progression actions.

    Responsibilities:
    - Creating player, badge and quest records on first load
    - Completion toggling with XP, Daily Perfect and reversal
    - Achievement and quest reconciliation after every action
    - Serializing actions per user and committing them atomically
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        retention_days: int = QUEST_RETENTION_DAYS
    ):
        """
        Initialize ProgressionService.

        Args:
            store: Key-value store holding all records
            clock: Source of "now" (defaults to the configured timezone)
            rng: Random source for quest selection
            retention_days: Grace window before old quests are pruned
        """
        self.repository = ProgressionRepository(store)
        self.clock = clock or Clock()
        self.rng = rng or random.Random()
        self.retention_days = retention_days
        self.queue = UserActionQueue()
        logger.debug("ProgressionService initialized")

    # ==========================================
    # Entry points
    # ==========================================

    async def load_session(self, user_id: str) -> UserSession:
        """
        Load (or create) a user's progression and open a session

        First load creates the player (0 XP, level 1) and seeds the badge
        catalog. Every load generates missing quests for today and this week,
        prunes old quests and reconciles progress.
        """
        async with self.queue.for_user(user_id):
            now = self.clock.now()
            records = await self.repository.load_user_records(user_id)

            if records is None:
                logger.info(f"No player found for user {user_id}, creating new")
                habits = await self.repository.load_habits(user_id)
                habit_ids = {h.id for h in habits}
                records = UserRecords(
                    user_id=user_id,
                    habits=habits,
                    completions=await self.repository.load_completions(habit_ids),
                    player=Player(user_id=user_id),
                    badges=initialize_badges(),
                    quests=[],
                    perfect_days=[],
                    loaded_habit_ids=habit_ids,
                )

            staged = records.copy()
            staged.badges = merge_badge_catalog(staged.badges)
            result = ActionResult(old_xp_total=staged.player.xp_total, old_level=staged.player.level)
            self._reconcile(staged, now, result)
            result.player = staged.player

            await self.repository.commit_user_records(staged, operation="load_session")

            logger.info(
                f"✅ Session loaded for user {user_id} - Level: {staged.player.level}, "
                f"XP: {staged.player.xp_total}, Habits: {len(staged.habits)}"
            )
            return UserSession(user_id, staged, self.clock)

    async def toggle_completion(self, session: UserSession, habit_id: str, date_key: str) -> ToggleResult:
        """
        Toggle a habit's completion for a date

        NotCompleted → Completed:
            habit XP (snapshotted on the completion), plus the Daily Perfect
            bonus once per date if every active habit is now done.
        Completed → NotCompleted:
            the completion's snapshotted XP is removed, and the Daily Perfect
            bonus of that date is revoked if the day is no longer perfect.
        Then badges and quests are reconciled in the same transaction.

        Raises:
            ValidationError: Malformed date key
            RecordNotFoundError: Unknown habit (nothing is changed)
            StorageWriteError: Commit failed (nothing is changed)
        """
        validate_date_key(date_key, user_id=session.user_id)

        async def mutate(staged: UserRecords, now: datetime, result: ActionResult) -> None:
            habit = staged.get_habit(habit_id)
            if habit is None:
                raise RecordNotFoundError(
                    message=f"Habit {habit_id} not found for user {staged.user_id}",
                    record_type="Habit",
                    record_id=habit_id,
                    user_id=staged.user_id,
                    operation="toggle_completion"
                )

            result.habit = habit
            existing = staged.find_completion(habit_id, date_key)
            if existing is None:
                self._complete(staged, habit, date_key, now, result)
            else:
                self._uncomplete(staged, habit, existing, result)

        return await self.run_action(session, "toggle_completion", mutate)

    async def refresh(self, session: UserSession) -> ActionResult:
        """Re-run quest generation and reconciliation (e.g. after midnight)"""
        async def mutate(staged: UserRecords, now: datetime, result: ActionResult) -> None:
            pass

        return await self.run_action(session, "refresh", mutate)

    async def run_action(self, session: UserSession, operation: str, mutate: Mutation) -> ActionResult:
        """
        Run one action as a transaction

        Loads the user's records, applies `mutate` to a staged copy, reconciles
        badges and quests, commits, and publishes to the session. Any failure
        before the commit completes leaves both storage and session untouched.
        """
        user_id = session.user_id
        async with self.queue.for_user(user_id):
            now = self.clock.now()
            records = await self.repository.load_user_records(user_id)
            if records is None:
                raise RecordNotFoundError(
                    message=f"No player for user {user_id}; load a session first",
                    record_type="Player",
                    record_id=user_id,
                    user_id=user_id,
                    operation=operation
                )

            staged = records.copy()
            result = ActionResult(old_xp_total=staged.player.xp_total, old_level=staged.player.level)

            await mutate(staged, now, result)
            self._reconcile(staged, now, result)
            result.player = staged.player

            await self.repository.commit_user_records(staged, operation=operation)
            session.publish(staged)

            logger.info(
                f"{operation} processed for user {user_id}: xp_delta={result.xp_delta:+d}, "
                f"total={staged.player.xp_total}, level={staged.player.level}, "
                f"badges={len(result.badges_unlocked)}, quests_completed={len(result.quests_completed)}, "
                f"quests_reverted={len(result.quests_reverted)}"
            )
            return result

    # ==========================================
    # Completion state machine
    # ==========================================

    def _complete(
        self,
        staged: UserRecords,
        habit: Habit,
        date_key: str,
        now: datetime,
        result: ActionResult
    ) -> None:
        xp = calculate_habit_xp(habit.difficulty)
        staged.completions.append(Completion(
            habit_id=habit.id,
            date=date_key,
            completed_at=now,
            xp_awarded=xp,
        ))
        result.completed = True
        result.habit_xp += self._add_xp(staged, xp, f"Completed '{habit.name}' on {date_key}", result)

        if self._is_perfect_day(staged, date_key) and date_key not in staged.perfect_days:
            staged.perfect_days.append(date_key)
            staged.player = staged.player.model_copy(update={"last_daily_perfect_date": date_key})
            result.daily_perfect_awarded = True
            result.daily_perfect_xp += self._add_xp(
                staged, DAILY_PERFECT_BONUS, f"Daily Perfect on {date_key}", result
            )
            logger.info(f"🎉 Daily Perfect bonus awarded to user {staged.user_id} for {date_key}")

    def _uncomplete(
        self,
        staged: UserRecords,
        habit: Habit,
        completion: Completion,
        result: ActionResult
    ) -> None:
        date_key = completion.date
        staged.completions = [c for c in staged.completions if c.key != completion.key]
        result.completed = False
        # Reverse exactly what was snapshotted, never the current table value
        result.habit_xp += self._add_xp(
            staged, -completion.xp_awarded, f"Undid '{habit.name}' on {date_key}", result
        )

        if date_key in staged.perfect_days and not self._is_perfect_day(staged, date_key):
            staged.perfect_days = [d for d in staged.perfect_days if d != date_key]
            if staged.player.last_daily_perfect_date == date_key:
                staged.player = staged.player.model_copy(update={"last_daily_perfect_date": None})
            result.daily_perfect_revoked = True
            result.daily_perfect_xp += self._add_xp(
                staged, -DAILY_PERFECT_BONUS, f"Daily Perfect revoked for {date_key}", result
            )
            logger.info(f"Daily Perfect bonus revoked for user {staged.user_id} on {date_key}")

    @staticmethod
    def _is_perfect_day(staged: UserRecords, date_key: str) -> bool:
        habits = staged.active_habits
        if not habits:
            return False
        done = {c.habit_id for c in staged.completions if c.date == date_key}
        return all(h.id in done for h in habits)

    @staticmethod
    def _add_xp(staged: UserRecords, amount: int, reason: str, result: ActionResult) -> int:
        """Apply an XP delta to the staged player; returns the delta actually applied"""
        if amount == 0:
            return 0
        staged.player, change = apply_xp_delta(staged.player, amount, reason)
        result.xp_changes.append(change)
        return change.applied

    # ==========================================
    # Reconciliation
    # ==========================================

    def _reconcile(self, staged: UserRecords, now: datetime, result: ActionResult) -> None:
        """Evaluate badges and quests against the staged records"""
        today = format_date_key(now)
        week = week_key_for(today)

        self._reconcile_achievements(staged, today, now, result)
        self._ensure_quests(staged, today, week, now)
        self._reconcile_quests(staged, result)

    def _reconcile_achievements(self, staged: UserRecords, today: str, now: datetime, result: ActionResult) -> None:
        context = AchievementContext(
            habits=staged.habits,
            completions=staged.completions,
            current_badges=staged.badges,
            perfect_day_dates=staged.perfect_days,
            today_key=today,
        )
        newly_unlocked = evaluate_achievements(context, now)

        for badge in newly_unlocked:
            # Checked against the stored state, never credits an id twice
            xp = apply_badge_reward(badge, staged.badges)
            if xp:
                result.badge_xp += self._add_xp(staged, xp, f"Badge '{badge.name}' unlocked", result)

        staged.badges = apply_unlocks(staged.badges, newly_unlocked)
        result.badges_unlocked.extend(newly_unlocked)

    def _ensure_quests(self, staged: UserRecords, today: str, week: str, now: datetime) -> None:
        habits = staged.active_habits
        quests = cleanup_old_quests(staged.quests, today, week, self.retention_days)

        if needs_daily_quests(quests, today):
            quests = quests + generate_daily_quests(today, habits, self.rng, now)
        if needs_weekly_quests(quests, week):
            quests = quests + generate_weekly_quests(week, habits, self.rng, now)

        staged.quests = quests

    def _reconcile_quests(self, staged: UserRecords, result: ActionResult) -> None:
        old_quests = staged.quests
        new_quests = update_quest_progress(old_quests, staged.active_habits, staged.completions)
        by_id = {q.id: q for q in new_quests}
        old_by_id = {q.id: q for q in old_quests}

        for quest_id in check_quest_completion(old_quests, new_quests):
            quest = by_id[quest_id]
            result.quest_xp += self._add_xp(
                staged, apply_quest_reward(quest), f"Quest '{quest.title}' completed", result
            )
            result.quests_completed.append(quest)

        for quest_id in check_quest_reversal(old_quests, new_quests):
            quest = by_id[quest_id]
            # The reward granted earlier is what gets deducted
            granted = old_by_id[quest_id].reward_xp
            result.quest_xp += self._add_xp(
                staged, -granted, f"Quest '{quest.title}' no longer complete", result
            )
            result.quests_reverted.append(quest)
            logger.info(f"Quest '{quest.title}' reverted for user {staged.user_id}, -{granted} XP")

        staged.quests = new_quests
