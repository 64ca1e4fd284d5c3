"""
Achievement System

Evaluates badge conditions against a user's habits and completion history:
- First step (any completion)
- Streaks (3 / 7 / 14 / 30 days, best current streak across habits)
- Perfect days (Daily Perfect earned on 1 / 3 distinct days)
- Weekly consistency (5+ active days in the last 7 days)
- Comeback (a habit completed again after missing 3+ days)

Features:
- Stateless evaluation: returns only badges that should newly unlock
- Monotonic unlocks: an unlocked badge never re-locks
- "Next badge" hints for the closest unmet condition
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
import logging

from habitquest.gamification.rewards import get_badge_reward
from habitquest.gamification.streak_system import get_max_current_streak
from habitquest.models.achievement import Badge, BadgeDefinition
from habitquest.models.habit import Completion, Habit
from habitquest.utils.datetime_helpers import add_days, days_between

logger = logging.getLogger(__name__)


BADGE_DEFINITIONS: List[BadgeDefinition] = [
    BadgeDefinition(
        id="first_step",
        name="First Step",
        description="Complete any habit once",
        icon="👣",
    ),
    BadgeDefinition(
        id="streak_3",
        name="3-Day Streak",
        description="Maintain a 3-day streak",
        icon="🔥",
    ),
    BadgeDefinition(
        id="streak_7",
        name="Week Warrior",
        description="Maintain a 7-day streak",
        icon="⚡",
    ),
    BadgeDefinition(
        id="streak_14",
        name="Two Weeks Strong",
        description="Maintain a 14-day streak",
        icon="💪",
    ),
    BadgeDefinition(
        id="streak_30",
        name="Monthly Master",
        description="Maintain a 30-day streak",
        icon="🏆",
    ),
    BadgeDefinition(
        id="perfect_day",
        name="Perfect Day",
        description="Earn Daily Perfect once",
        icon="⭐",
    ),
    BadgeDefinition(
        id="perfect_3",
        name="3 Perfect Days",
        description="Earn Daily Perfect on 3 different days",
        icon="🌟",
    ),
    BadgeDefinition(
        id="weekly_consistency",
        name="Weekly Consistency",
        description="Complete habits on 5+ days in a week",
        icon="📅",
    ),
    BadgeDefinition(
        id="comeback",
        name="Comeback",
        description="Complete a habit after missing 3+ days",
        icon="🎯",
    ),
]

BADGES_BY_ID: Dict[str, BadgeDefinition] = {b.id: b for b in BADGE_DEFINITIONS}

# (badge id, streak days), ascending
STREAK_THRESHOLDS = [
    ("streak_3", 3),
    ("streak_7", 7),
    ("streak_14", 14),
    ("streak_30", 30),
]

WEEKLY_CONSISTENCY_DAYS = 5
WEEKLY_WINDOW_DAYS = 7
COMEBACK_GAP_DAYS = 4  # 3+ missed days between two completions


@dataclass
class AchievementContext:
    """Inputs of one achievement evaluation pass"""
    habits: List[Habit]
    completions: List[Completion]
    current_badges: List[Badge]
    perfect_day_dates: List[str]
    today_key: str
    unlocked_ids: set = field(init=False)

    def __post_init__(self):
        self.unlocked_ids = {b.id for b in self.current_badges if b.unlocked}

    def is_unlocked(self, badge_id: str) -> bool:
        return badge_id in self.unlocked_ids


# ============================================
# Catalog Seeding
# ============================================

def initialize_badges() -> List[Badge]:
    """All catalog badges in locked state"""
    return [Badge(**definition.model_dump()) for definition in BADGE_DEFINITIONS]


def merge_badge_catalog(badges: List[Badge]) -> List[Badge]:
    """
    Add catalog badges missing from a stored list

    Existing entries keep their unlock state untouched.
    """
    known = {b.id for b in badges}
    missing = [Badge(**d.model_dump()) for d in BADGE_DEFINITIONS if d.id not in known]
    if missing:
        logger.info(f"Seeding {len(missing)} new badges: {', '.join(b.id for b in missing)}")
    return list(badges) + missing


# ============================================
# Criteria Helpers
# ============================================

def count_perfect_days(perfect_day_dates: List[str]) -> int:
    """Number of distinct Daily Perfect dates"""
    return len(set(perfect_day_dates))


def count_active_days_in_window(completions: List[Completion], today_key: str) -> int:
    """Distinct days with at least one completion in the 7 days ending today"""
    window_start = add_days(today_key, -(WEEKLY_WINDOW_DAYS - 1))
    return len({c.date for c in completions if window_start <= c.date <= today_key})


def has_comeback(habit_id: str, completions: List[Completion]) -> bool:
    """Check if a habit was completed again after a gap of 3+ missed days"""
    dates = sorted({c.date for c in completions if c.habit_id == habit_id})
    return any(
        days_between(prev, curr) >= COMEBACK_GAP_DAYS
        for prev, curr in zip(dates, dates[1:])
    )


def _unlock(badge_id: str, now: datetime) -> Badge:
    definition = BADGES_BY_ID[badge_id]
    return Badge(**definition.model_dump(), unlocked=True, unlocked_at=now)


# ============================================
# Evaluation
# ============================================

def evaluate_achievements(context: AchievementContext, now: datetime) -> List[Badge]:
    """
    Evaluate all badge conditions and return newly unlocked badges

    Already-unlocked badges are never returned, so running this twice with
    unchanged inputs (after applying the first result) returns [].

    Args:
        context: Habits, completions, current badge states, perfect-day dates
        now: Unlock timestamp stamped on every returned badge

    Returns:
        Newly unlocked badges, in catalog order
    """
    earned: List[str] = []

    # First Step - any completion
    if context.completions:
        earned.append("first_step")

    # Streak badges (best current streak across habits)
    best_streak = get_max_current_streak(context.habits, context.completions, context.today_key)
    earned.extend(badge_id for badge_id, threshold in STREAK_THRESHOLDS if best_streak >= threshold)

    # Perfect Day badges
    perfect_days = count_perfect_days(context.perfect_day_dates)
    if perfect_days >= 1:
        earned.append("perfect_day")
    if perfect_days >= 3:
        earned.append("perfect_3")

    # Weekly Consistency
    if count_active_days_in_window(context.completions, context.today_key) >= WEEKLY_CONSISTENCY_DAYS:
        earned.append("weekly_consistency")

    # Comeback
    if any(has_comeback(h.id, context.completions) for h in context.habits):
        earned.append("comeback")

    newly_unlocked = [_unlock(badge_id, now) for badge_id in earned if not context.is_unlocked(badge_id)]

    for badge in newly_unlocked:
        logger.info(f"Badge unlocked: {badge.id} ({badge.name}) +{get_badge_reward(badge.id)} XP")

    return newly_unlocked


def apply_unlocks(badges: List[Badge], newly_unlocked: List[Badge]) -> List[Badge]:
    """
    Merge newly unlocked badges into a badge list

    Badges that are already unlocked keep their original unlock time.
    """
    unlocked_by_id = {b.id: b for b in newly_unlocked}
    merged = []
    for badge in badges:
        if badge.id in unlocked_by_id and not badge.unlocked:
            merged.append(unlocked_by_id.pop(badge.id))
        else:
            merged.append(badge)
            unlocked_by_id.pop(badge.id, None)

    # Unlocks for badges the stored list didn't have yet
    merged.extend(unlocked_by_id.values())
    return merged


def get_next_badge_hint(context: AchievementContext) -> Optional[str]:
    """
    Describe the closest unmet badge condition

    Priority: streak badges (ascending), perfect-day badges, weekly consistency.

    Returns:
        Hint text, or None if every hinted badge is unlocked or satisfied
    """
    best_streak = get_max_current_streak(context.habits, context.completions, context.today_key)

    for badge_id, threshold in STREAK_THRESHOLDS:
        if not context.is_unlocked(badge_id) and best_streak < threshold:
            return f"{threshold - best_streak} more days for {BADGES_BY_ID[badge_id].name}"

    perfect_days = count_perfect_days(context.perfect_day_dates)
    if not context.is_unlocked("perfect_day") and perfect_days < 1:
        return "Complete all habits in a day for Perfect Day"
    if not context.is_unlocked("perfect_3") and perfect_days < 3:
        return f"{3 - perfect_days} more perfect days for 3 Perfect Days"

    active_days = count_active_days_in_window(context.completions, context.today_key)
    if not context.is_unlocked("weekly_consistency") and active_days < WEEKLY_CONSISTENCY_DAYS:
        return f"{WEEKLY_CONSISTENCY_DAYS - active_days} more days this week for Weekly Consistency"

    return None


# ============================================
# Display
# ============================================

def format_achievement_display(badges: List[Badge]) -> str:
    """
    Format badges for display

    Returns:
        Unlocked badges first, then locked ones
    """
    unlocked = [b for b in badges if b.unlocked]
    locked = [b for b in badges if not b.unlocked]

    if not unlocked:
        return "🏆 No badges unlocked yet. Complete a habit to earn your first! 💪"

    total_xp = sum(get_badge_reward(b.id) for b in unlocked)
    lines = [
        f"🏆 YOUR BADGES ({len(unlocked)}/{len(badges)})",
        f"⭐ Total XP from badges: {total_xp}\n"
    ]

    for badge in sorted(unlocked, key=lambda b: b.unlocked_at.timestamp() if b.unlocked_at else 0, reverse=True):
        lines.append(f"{badge.icon} {badge.name} (+{get_badge_reward(badge.id)} XP)")

    if locked:
        lines.append("")
        lines.append("🔒 LOCKED")
        for badge in locked:
            lines.append(f"{badge.icon} {badge.name}: {badge.description}")

    return "\n".join(lines)


def format_achievement_unlock_message(badge: Badge) -> str:
    """Celebration message for a newly unlocked badge"""
    return f"""🎉 BADGE UNLOCKED! 🎉

{badge.icon} {badge.name}

{badge.description}

⭐ +{get_badge_reward(badge.id)} XP Bonus!"""
