"""
HabitService - Habit management

Add, edit, archive and delete habits. Every change runs as a progression
action, so badges and quests are re-evaluated in the same transaction
(e.g. adding a second habit can turn today's Daily Perfect quest back off).
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4

from habitquest.exceptions import RecordNotFoundError
from habitquest.models.habit import Habit
from habitquest.services.progression_service import ActionResult, ProgressionService
from habitquest.services.session import UserSession
from habitquest.storage.repository import UserRecords
from habitquest.validators import validate_habit_input

logger = logging.getLogger(__name__)


class HabitService:
    """
    Service for habit CRUD.

    Responsibilities:
    - Input validation (name, description, difficulty)
    - Habit creation with generated ids
    - Edits and archiving
    - Deletion, cascading to the habit's completions
    """

    def __init__(self, progression: ProgressionService):
        """
        Initialize HabitService.

        Args:
            progression: Orchestrator the actions run through
        """
        self.progression = progression
        logger.debug("HabitService initialized")

    async def add_habit(
        self,
        session: UserSession,
        name: str,
        description: Optional[str] = None,
        difficulty: str = "medium"
    ) -> ActionResult:
        """
        Create a habit for the session's user

        Returns:
            ActionResult with `habit` set to the new habit

        Raises:
            ValidationError: Invalid name, description or difficulty
        """
        data = validate_habit_input(name, description, difficulty, user_id=session.user_id)

        async def mutate(staged: UserRecords, now: datetime, result: ActionResult) -> None:
            habit = Habit(
                id=str(uuid4()),
                user_id=staged.user_id,
                name=data.name,
                description=data.description,
                difficulty=data.difficulty,
                created_at=now,
            )
            staged.habits.append(habit)
            result.habit = habit
            logger.info(f"Habit '{habit.name}' ({habit.difficulty.value}) added for user {staged.user_id}")

        return await self.progression.run_action(session, "add_habit", mutate)

    async def update_habit(
        self,
        session: UserSession,
        habit_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        difficulty: Optional[str] = None,
        archived: Optional[bool] = None
    ) -> ActionResult:
        """
        Edit a habit; fields left as None keep their value

        Changing the difficulty affects future completions only. Archived
        habits stop counting for Daily Perfect and quests.

        Raises:
            ValidationError: Invalid new values
            RecordNotFoundError: Unknown habit id
        """
        async def mutate(staged: UserRecords, now: datetime, result: ActionResult) -> None:
            habit = self._require_habit(staged, habit_id, "update_habit")
            data = validate_habit_input(
                name if name is not None else habit.name,
                description if description is not None else habit.description,
                difficulty if difficulty is not None else habit.difficulty.value,
                user_id=staged.user_id
            )
            updates = {
                "name": data.name,
                "description": data.description,
                "difficulty": data.difficulty,
            }
            if archived is not None:
                updates["archived"] = archived

            updated = habit.model_copy(update=updates)
            staged.habits = [updated if h.id == habit_id else h for h in staged.habits]
            result.habit = updated
            logger.info(f"Habit {habit_id} updated for user {staged.user_id}")

        return await self.progression.run_action(session, "update_habit", mutate)

    async def delete_habit(self, session: UserSession, habit_id: str) -> ActionResult:
        """
        Delete a habit and all of its completions

        XP already earned from those completions is kept.

        Raises:
            RecordNotFoundError: Unknown habit id
        """
        async def mutate(staged: UserRecords, now: datetime, result: ActionResult) -> None:
            habit = self._require_habit(staged, habit_id, "delete_habit")
            removed = sum(1 for c in staged.completions if c.habit_id == habit_id)

            staged.habits = [h for h in staged.habits if h.id != habit_id]
            staged.completions = [c for c in staged.completions if c.habit_id != habit_id]
            result.habit = habit

            logger.info(
                f"Habit '{habit.name}' deleted for user {staged.user_id} "
                f"({removed} completions removed)"
            )

        return await self.progression.run_action(session, "delete_habit", mutate)

    @staticmethod
    def _require_habit(records: UserRecords, habit_id: str, operation: str) -> Habit:
        habit = records.get_habit(habit_id)
        if habit is None:
            raise RecordNotFoundError(
                message=f"Habit {habit_id} not found for user {records.user_id}",
                record_type="Habit",
                record_id=habit_id,
                user_id=records.user_id,
                operation=operation
            )
        return habit
