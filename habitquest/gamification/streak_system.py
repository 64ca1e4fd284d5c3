"""
Habit Streak Calculation

A streak is the number of consecutive calendar days a habit was completed,
ending today or yesterday. A habit that simply hasn't been checked off yet
today keeps yesterday's streak; a habit last completed before yesterday has
a streak of 0.

Streaks are always derived from the completion history, never stored.
"""

from typing import Dict, Iterable, List, Optional
import logging

from habitquest.models.habit import Completion, Habit
from habitquest.utils.datetime_helpers import (
    Clock,
    days_between,
    previous_date_key,
    resolve_today,
)

logger = logging.getLogger(__name__)


def get_completion_dates(habit_id: str, completions: Iterable[Completion]) -> List[str]:
    """All completion date keys for a habit, sorted ascending"""
    return sorted({c.date for c in completions if c.habit_id == habit_id})


def is_completed_on_date(habit_id: str, date_key: str, completions: Iterable[Completion]) -> bool:
    """Check if a habit was completed on a specific date"""
    return any(c.habit_id == habit_id and c.date == date_key for c in completions)


def get_current_streak(
    habit_id: str,
    completions: Iterable[Completion],
    today_key: Optional[str] = None,
    clock: Optional[Clock] = None
) -> int:
    """
    Calculate the current streak for a habit

    Args:
        habit_id: Habit to compute the streak for
        completions: Completion history (any habit, any date)
        today_key: Today's date key (defaults to the clock's today)
        clock: Clock used when today_key is not given

    Returns:
        Streak length in days (0 if broken or never completed)
    """
    dates = get_completion_dates(habit_id, completions)
    if not dates:
        return 0

    today = resolve_today(today_key, clock)
    yesterday = previous_date_key(today)

    # Streak is broken if the last completion is older than yesterday
    last_completed = dates[-1]
    if last_completed < yesterday:
        return 0

    # Count backwards from the most recent completion, stop at the first gap
    date_set = set(dates)
    streak = 0
    current = last_completed
    while current in date_set:
        streak += 1
        current = previous_date_key(current)

    return streak


def get_best_streak(habit_id: str, completions: Iterable[Completion]) -> int:
    """Longest run of consecutive completion days in the habit's history"""
    dates = get_completion_dates(habit_id, completions)
    if not dates:
        return 0

    best = 1
    run = 1
    for prev, curr in zip(dates, dates[1:]):
        if days_between(prev, curr) == 1:
            run += 1
            best = max(best, run)
        else:
            run = 1

    return best


def get_streaks_by_habit(
    habits: Iterable[Habit],
    completions: Iterable[Completion],
    today_key: Optional[str] = None,
    clock: Optional[Clock] = None
) -> Dict[str, int]:
    """Current streak for every habit, keyed by habit id"""
    completions = list(completions)
    today = resolve_today(today_key, clock)
    return {h.id: get_current_streak(h.id, completions, today) for h in habits}


def get_max_current_streak(
    habits: Iterable[Habit],
    completions: Iterable[Completion],
    today_key: Optional[str] = None,
    clock: Optional[Clock] = None
) -> int:
    """Best current streak across all habits (0 without habits)"""
    streaks = get_streaks_by_habit(habits, completions, today_key, clock)
    return max(streaks.values(), default=0)


def format_streak_display(
    habits: Iterable[Habit],
    completions: Iterable[Completion],
    today_key: Optional[str] = None,
    clock: Optional[Clock] = None
) -> str:
    """
    Format current streaks for display

    Returns:
        Multi-line summary, longest streak first
    """
    habits = list(habits)
    completions = list(completions)
    if not habits:
        return "No habits yet. Add one to start building streaks! 💪"

    streaks = get_streaks_by_habit(habits, completions, today_key, clock)
    lines = ["🔥 YOUR STREAKS\n"]

    for habit in sorted(habits, key=lambda h: streaks[h.id], reverse=True):
        current = streaks[habit.id]
        best = get_best_streak(habit.id, completions)

        line = f"🔥 {habit.name}: {current} days"
        if best > current:
            line += f" (best: {best})"
        lines.append(line)

    return "\n".join(lines)
