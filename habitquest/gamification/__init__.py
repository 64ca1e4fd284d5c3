"""
Progression engine for HabitQuest

Turns habit completions into progression:
- XP and leveling
- Per-habit streaks
- Badges (one-time achievements)
- Daily and weekly quests
- Reward table for badge and quest XP

All functions here are pure: they take habits, completions and progression
records and return new values. Persistence and sequencing live in
habitquest.services.
"""

from habitquest.gamification.xp_system import (
    apply_xp_delta,
    calculate_habit_xp,
    calculate_level_from_xp,
    level_from_xp,
)
from habitquest.gamification.streak_system import get_current_streak, get_max_current_streak
from habitquest.gamification.achievement_system import (
    AchievementContext,
    evaluate_achievements,
    get_next_badge_hint,
    initialize_badges,
)
from habitquest.gamification.quests import (
    generate_daily_quests,
    generate_weekly_quests,
    update_quest_progress,
)

__all__ = [
    "apply_xp_delta",
    "calculate_habit_xp",
    "calculate_level_from_xp",
    "level_from_xp",
    "get_current_streak",
    "get_max_current_streak",
    "AchievementContext",
    "evaluate_achievements",
    "get_next_badge_hint",
    "initialize_badges",
    "generate_daily_quests",
    "generate_weekly_quests",
    "update_quest_progress",
]
