"""Typed progression records on top of the key-value store"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set

from habitquest.config import STORAGE_KEY_PREFIX
from habitquest.models.achievement import Badge
from habitquest.models.habit import Completion, Habit
from habitquest.models.player import Player
from habitquest.models.quest import Quest
from habitquest.storage.base import KeyValueStore
from habitquest.storage.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class UserRecords:
    """
    Everything the progression engine knows about one user

    Habits and completions are the user's share of the global collections.
    Actions mutate a copy of this and commit it as a whole.
    """
    user_id: str
    habits: List[Habit]
    completions: List[Completion]
    player: Player
    badges: List[Badge]
    quests: List[Quest]
    perfect_days: List[str]
    loaded_habit_ids: Set[str] = field(default_factory=set)

    @property
    def active_habits(self) -> List[Habit]:
        """Habits that are not archived"""
        return [h for h in self.habits if not h.archived]

    def get_habit(self, habit_id: str) -> Optional[Habit]:
        return next((h for h in self.habits if h.id == habit_id), None)

    def find_completion(self, habit_id: str, date_key: str) -> Optional[Completion]:
        return next((c for c in self.completions if c.habit_id == habit_id and c.date == date_key), None)

    def copy(self) -> "UserRecords":
        """Staging copy; models are immutable in practice so lists are copied shallowly"""
        return UserRecords(
            user_id=self.user_id,
            habits=list(self.habits),
            completions=list(self.completions),
            player=self.player.model_copy(),
            badges=list(self.badges),
            quests=list(self.quests),
            perfect_days=list(self.perfect_days),
            loaded_habit_ids=set(self.loaded_habit_ids),
        )


class ProgressionRepository:
    """
    Load and save progression records

    Keys (under the configured prefix):
    - habits, completions: global lists, filtered by user at read time
    - player:<user_id>, badges:<user_id>, quests:<user_id>, perfect_days:<user_id>
    """

    def __init__(self, store: KeyValueStore, prefix: str = STORAGE_KEY_PREFIX):
        self.store = store
        self.prefix = prefix
        # Global collections are shared by all users; merges happen under this lock
        self._commit_lock = asyncio.Lock()

    def key(self, kind: str, user_id: Optional[str] = None) -> str:
        parts = [self.prefix, kind] if self.prefix else [kind]
        if user_id is not None:
            parts.append(user_id)
        return ":".join(parts)

    # ==========================================
    # Global collections
    # ==========================================

    async def load_all_habits(self) -> List[Habit]:
        data = await self.store.get(self.key("habits")) or []
        return [Habit.model_validate(item) for item in data]

    async def load_all_completions(self) -> List[Completion]:
        data = await self.store.get(self.key("completions")) or []
        return [Completion.model_validate(item) for item in data]

    async def load_habits(self, user_id: str) -> List[Habit]:
        """User's habits (archived included)"""
        return [h for h in await self.load_all_habits() if h.user_id == user_id]

    async def load_completions(self, habit_ids: Set[str]) -> List[Completion]:
        return [c for c in await self.load_all_completions() if c.habit_id in habit_ids]

    # ==========================================
    # Per-user records
    # ==========================================

    async def load_player(self, user_id: str) -> Optional[Player]:
        data = await self.store.get(self.key("player", user_id))
        return Player.model_validate(data) if data else None

    async def load_badges(self, user_id: str) -> Optional[List[Badge]]:
        """Stored badges, or None if the user's catalog was never seeded"""
        data = await self.store.get(self.key("badges", user_id))
        return [Badge.model_validate(item) for item in data] if data is not None else None

    async def load_quests(self, user_id: str) -> List[Quest]:
        data = await self.store.get(self.key("quests", user_id)) or []
        return [Quest.model_validate(item) for item in data]

    async def load_perfect_days(self, user_id: str) -> List[str]:
        return list(await self.store.get(self.key("perfect_days", user_id)) or [])

    async def load_user_records(self, user_id: str) -> Optional[UserRecords]:
        """
        Load one user's records

        Returns:
            UserRecords, or None for a user without a player record
        """
        player = await self.load_player(user_id)
        if player is None:
            return None

        habits = await self.load_habits(user_id)
        habit_ids = {h.id for h in habits}

        return UserRecords(
            user_id=user_id,
            habits=habits,
            completions=await self.load_completions(habit_ids),
            player=player,
            badges=await self.load_badges(user_id) or [],
            quests=await self.load_quests(user_id),
            perfect_days=await self.load_perfect_days(user_id),
            loaded_habit_ids=habit_ids,
        )

    # ==========================================
    # Commit
    # ==========================================

    async def commit_user_records(self, records: UserRecords, operation: str = "commit") -> None:
        """
        Persist a user's records as one unit of work

        The global habit/completion lists are re-read inside the commit lock and
        only this user's share is replaced, so other users' entries survive.

        Raises:
            StorageWriteError: Nothing was changed durably
        """
        async with self._commit_lock:
            all_habits = await self.load_all_habits()
            all_completions = await self.load_all_completions()

            owned_ids = records.loaded_habit_ids | {h.id for h in records.habits}
            merged_habits = [h for h in all_habits if h.user_id != records.user_id] + records.habits
            merged_completions = [c for c in all_completions if c.habit_id not in owned_ids] + records.completions

            uow = UnitOfWork(self.store, user_id=records.user_id, operation=operation)
            uow.stage(self.key("habits"), [h.model_dump(mode="json") for h in merged_habits])
            uow.stage(self.key("completions"), [c.model_dump(mode="json") for c in merged_completions])
            uow.stage(self.key("player", records.user_id), records.player.model_dump(mode="json"))
            uow.stage(self.key("badges", records.user_id), [b.model_dump(mode="json") for b in records.badges])
            uow.stage(self.key("quests", records.user_id), [q.model_dump(mode="json") for q in records.quests])
            uow.stage(self.key("perfect_days", records.user_id), list(records.perfect_days))

            await uow.commit()

        logger.debug(
            f"Saved records for user {records.user_id}: {len(records.habits)} habits, "
            f"{len(records.completions)} completions, {records.player.xp_total} XP"
        )
