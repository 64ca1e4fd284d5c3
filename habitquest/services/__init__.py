"""
Service Layer Package

Entry points the UI layer (or a test harness) calls:
- ProgressionService: session loading, completion toggles, reconciliation
- HabitService: habit add / edit / archive / delete
- UserSession: read-only view handed back to every action
"""

from habitquest.services.action_queue import UserActionQueue
from habitquest.services.container import ServiceContainer, get_container, init_container
from habitquest.services.habit_service import HabitService
from habitquest.services.progression_service import ActionResult, ProgressionService, ToggleResult
from habitquest.services.session import UserSession

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
    "ProgressionService",
    "HabitService",
    "ActionResult",
    "ToggleResult",
    "UserSession",
    "UserActionQueue",
]
