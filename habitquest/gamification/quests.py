"""
Quest System

Time-boxed objectives generated from templates:
- Daily quests, scoped to one date key (YYYY-MM-DD)
- Weekly quests, scoped to one ISO week key (YYYY-WW)

Quest progress is never incremented. Every evaluation recomputes it from the
current habits and completions through the template's evaluator, so running
an evaluation twice with unchanged data yields the same result.

Each quest instance stores the id of the template it was generated from;
that id is the only link used to find its evaluator.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from habitquest.models.habit import Completion, Difficulty, Habit
from habitquest.models.quest import Quest, QuestScope
from habitquest.utils.datetime_helpers import add_days, week_date_keys, week_end

logger = logging.getLogger(__name__)

Evaluator = Callable[[List[Habit], List[Completion], str], int]

EARLY_BIRD_HOUR = 12
STREAK_QUEST_MIN_COMPLETIONS = 3


@dataclass(frozen=True)
class QuestTemplate:
    """Quest definition"""
    id: str
    scope: QuestScope
    title: str
    description: str
    target: int
    reward_xp: int
    evaluator: Evaluator  # (habits, completions, period_key) -> progress


# ============================================
# Evaluators
# ============================================

def _completions_on(completions: List[Completion], date_key: str) -> List[Completion]:
    return [c for c in completions if c.date == date_key]


def _completions_in_week(completions: List[Completion], week_key: str) -> List[Completion]:
    days = set(week_date_keys(week_key))
    return [c for c in completions if c.date in days]


def _all_habits_done(habits: List[Habit], completions: List[Completion], date_key: str) -> bool:
    if not habits:
        return False
    done = {c.habit_id for c in completions if c.date == date_key}
    return all(h.id in done for h in habits)


def count_completions_today(habits, completions, date_key) -> int:
    return len(_completions_on(completions, date_key))


def daily_perfect_progress(habits, completions, date_key) -> int:
    return 1 if _all_habits_done(habits, completions, date_key) else 0


def maintain_streak_progress(habits, completions, date_key) -> int:
    # Any habit completed that day with 3+ completions up to and including it
    for completion in _completions_on(completions, date_key):
        total = sum(1 for c in completions if c.habit_id == completion.habit_id and c.date <= date_key)
        if total >= STREAK_QUEST_MIN_COMPLETIONS:
            return 1
    return 0


def early_bird_progress(habits, completions, date_key) -> int:
    for completion in _completions_on(completions, date_key):
        if completion.completed_at.hour < EARLY_BIRD_HOUR:
            return 1
    return 0


def hard_mode_progress(habits, completions, date_key) -> int:
    hard_ids = {h.id for h in habits if h.difficulty == Difficulty.HARD}
    return 1 if any(c.habit_id in hard_ids for c in _completions_on(completions, date_key)) else 0


def active_days_in_week(habits, completions, week_key) -> int:
    return len({c.date for c in _completions_in_week(completions, week_key)})


def completions_in_week(habits, completions, week_key) -> int:
    return len(_completions_in_week(completions, week_key))


def perfect_days_in_week(habits, completions, week_key) -> int:
    return sum(1 for day in week_date_keys(week_key) if _all_habits_done(habits, completions, day))


# ============================================
# Template Library
# ============================================

DAILY_QUEST_TEMPLATES: List[QuestTemplate] = [
    QuestTemplate(
        id="complete_2_habits",
        scope=QuestScope.DAILY,
        title="Complete 2 habits today",
        description="Finish any 2 habits",
        target=2,
        reward_xp=10,
        evaluator=count_completions_today,
    ),
    QuestTemplate(
        id="complete_3_habits",
        scope=QuestScope.DAILY,
        title="Complete 3 habits today",
        description="Finish any 3 habits",
        target=3,
        reward_xp=15,
        evaluator=count_completions_today,
    ),
    QuestTemplate(
        id="complete_5_habits",
        scope=QuestScope.DAILY,
        title="Complete 5 habits today",
        description="Finish any 5 habits",
        target=5,
        reward_xp=25,
        evaluator=count_completions_today,
    ),
    QuestTemplate(
        id="daily_perfect",
        scope=QuestScope.DAILY,
        title="Get a Daily Perfect",
        description="Complete all your habits today",
        target=1,
        reward_xp=25,
        evaluator=daily_perfect_progress,
    ),
    QuestTemplate(
        id="maintain_streak",
        scope=QuestScope.DAILY,
        title="Maintain a 3-day streak",
        description="Keep any habit streak at 3+ days",
        target=1,
        reward_xp=20,
        evaluator=maintain_streak_progress,
    ),
    QuestTemplate(
        id="early_bird",
        scope=QuestScope.DAILY,
        title="Early Bird",
        description="Complete a habit before noon",
        target=1,
        reward_xp=15,
        evaluator=early_bird_progress,
    ),
    QuestTemplate(
        id="hard_mode",
        scope=QuestScope.DAILY,
        title="Hard Mode",
        description="Complete a hard difficulty habit",
        target=1,
        reward_xp=20,
        evaluator=hard_mode_progress,
    ),
]

WEEKLY_QUEST_TEMPLATES: List[QuestTemplate] = [
    QuestTemplate(
        id="weekly_warrior",
        scope=QuestScope.WEEKLY,
        title="Weekly Warrior",
        description="Complete habits on 5 different days this week",
        target=5,
        reward_xp=50,
        evaluator=active_days_in_week,
    ),
    QuestTemplate(
        id="consistency_champion",
        scope=QuestScope.WEEKLY,
        title="Consistency Champion",
        description="Complete at least one habit every day this week",
        target=7,
        reward_xp=75,
        evaluator=active_days_in_week,
    ),
    QuestTemplate(
        id="habit_master",
        scope=QuestScope.WEEKLY,
        title="Habit Master",
        description="Complete 20 habits this week",
        target=20,
        reward_xp=60,
        evaluator=completions_in_week,
    ),
    QuestTemplate(
        id="perfect_week",
        scope=QuestScope.WEEKLY,
        title="Perfect Week",
        description="Achieve Daily Perfect 3 times this week",
        target=3,
        reward_xp=100,
        evaluator=perfect_days_in_week,
    ),
]

QUEST_TEMPLATES: Dict[str, QuestTemplate] = {
    t.id: t for t in DAILY_QUEST_TEMPLATES + WEEKLY_QUEST_TEMPLATES
}

DAILY_BONUS_TEMPLATE_IDS = ["maintain_streak", "early_bird", "hard_mode"]
WEEKLY_CHALLENGE_TEMPLATE_IDS = ["consistency_champion", "perfect_week"]


def get_template(template_id: str) -> Optional[QuestTemplate]:
    """
    Get a quest template by ID

    Returns:
        QuestTemplate if found, None otherwise
    """
    return QUEST_TEMPLATES.get(template_id)


def _instantiate(template: QuestTemplate, period_key: str, now: datetime) -> Quest:
    return Quest(
        id=str(uuid4()),
        template_id=template.id,
        scope=template.scope,
        period_key=period_key,
        title=template.title,
        description=template.description,
        target=template.target,
        progress=0,
        completed=False,
        reward_xp=template.reward_xp,
        created_at=now,
    )


# ============================================
# Generation
# ============================================

def generate_daily_quests(
    date_key: str,
    habits: List[Habit],
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None
) -> List[Quest]:
    """
    Generate the daily quests for a date

    Policy:
    - A "complete N habits" quest tiered by habit count (5+ → 5, 3+ → 3, 2+ → 2)
    - "Get a Daily Perfect" when the user has habits
    - One random bonus quest (streak / early bird / hard mode) when the user has habits

    Returns:
        New quests (empty without habits)
    """
    rng = rng or random.Random()
    now = now or datetime.now()
    quests: List[Quest] = []

    if not habits:
        return quests

    if len(habits) >= 5:
        tier_id = "complete_5_habits"
    elif len(habits) >= 3:
        tier_id = "complete_3_habits"
    elif len(habits) >= 2:
        tier_id = "complete_2_habits"
    else:
        tier_id = None

    if tier_id:
        quests.append(_instantiate(QUEST_TEMPLATES[tier_id], date_key, now))

    quests.append(_instantiate(QUEST_TEMPLATES["daily_perfect"], date_key, now))

    bonus_id = rng.choice(DAILY_BONUS_TEMPLATE_IDS)
    quests.append(_instantiate(QUEST_TEMPLATES[bonus_id], date_key, now))

    logger.info(
        f"Generated {len(quests)} daily quests for {date_key}: "
        f"{', '.join(q.template_id for q in quests)}"
    )
    return quests


def generate_weekly_quests(
    week_key: str,
    habits: List[Habit],
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None
) -> List[Quest]:
    """
    Generate the weekly quests for an ISO week

    Policy:
    - "Weekly Warrior" always
    - "Habit Master" with 2+ habits
    - One random challenge: "Consistency Champion" or "Perfect Week"

    Returns:
        New quests (empty without habits)
    """
    rng = rng or random.Random()
    now = now or datetime.now()
    quests: List[Quest] = []

    if not habits:
        return quests

    quests.append(_instantiate(QUEST_TEMPLATES["weekly_warrior"], week_key, now))

    if len(habits) >= 2:
        quests.append(_instantiate(QUEST_TEMPLATES["habit_master"], week_key, now))

    challenge_id = rng.choice(WEEKLY_CHALLENGE_TEMPLATE_IDS)
    quests.append(_instantiate(QUEST_TEMPLATES[challenge_id], week_key, now))

    logger.info(
        f"Generated {len(quests)} weekly quests for week {week_key}: "
        f"{', '.join(q.template_id for q in quests)}"
    )
    return quests


def needs_daily_quests(quests: List[Quest], date_key: str) -> bool:
    """True if no daily quest exists for the date"""
    return not any(q.scope == QuestScope.DAILY and q.period_key == date_key for q in quests)


def needs_weekly_quests(quests: List[Quest], week_key: str) -> bool:
    """True if no weekly quest exists for the week"""
    return not any(q.scope == QuestScope.WEEKLY and q.period_key == week_key for q in quests)


# ============================================
# Progress Tracking
# ============================================

def evaluate_quest(quest: Quest, habits: List[Habit], completions: List[Completion]) -> Quest:
    """Recompute one quest's progress from scratch"""
    template = get_template(quest.template_id)
    if template is None:
        logger.warning(f"Quest {quest.id} has unknown template '{quest.template_id}', leaving as is")
        return quest

    progress = template.evaluator(habits, completions, quest.period_key)
    return quest.model_copy(update={
        "progress": progress,
        "completed": progress >= quest.target,
    })


def update_quest_progress(
    quests: List[Quest],
    habits: List[Habit],
    completions: List[Completion]
) -> List[Quest]:
    """
    Recompute progress for every quest

    Returns:
        New quest objects; the inputs are not modified
    """
    return [evaluate_quest(q, habits, completions) for q in quests]


def check_quest_completion(old_quests: List[Quest], new_quests: List[Quest]) -> List[str]:
    """IDs of quests whose completed flag went from False to True"""
    old_by_id = {q.id: q for q in old_quests}
    return [
        q.id for q in new_quests
        if q.id in old_by_id and not old_by_id[q.id].completed and q.completed
    ]


def check_quest_reversal(old_quests: List[Quest], new_quests: List[Quest]) -> List[str]:
    """IDs of quests whose completed flag went from True to False"""
    old_by_id = {q.id: q for q in old_quests}
    return [
        q.id for q in new_quests
        if q.id in old_by_id and old_by_id[q.id].completed and not q.completed
    ]


# ============================================
# Retention
# ============================================

def get_active_quests(quests: List[Quest], today_key: str, week_key: str) -> List[Quest]:
    """Today's daily quests and this week's weekly quests"""
    return [
        q for q in quests
        if (q.scope == QuestScope.DAILY and q.period_key == today_key)
        or (q.scope == QuestScope.WEEKLY and q.period_key == week_key)
    ]


def quest_period_end(quest: Quest) -> str:
    """Last date key covered by the quest's period"""
    if quest.scope == QuestScope.WEEKLY:
        return week_end(quest.period_key)
    return quest.period_key


def cleanup_old_quests(
    quests: List[Quest],
    today_key: str,
    week_key: str,
    retention_days: int = 7
) -> List[Quest]:
    """
    Drop quests whose period ended more than retention_days ago

    The current week's weekly quests are always kept.
    """
    cutoff = add_days(today_key, -retention_days)
    kept = [
        q for q in quests
        if (q.scope == QuestScope.WEEKLY and q.period_key == week_key)
        or quest_period_end(q) >= cutoff
    ]

    if len(kept) != len(quests):
        logger.info(f"Pruned {len(quests) - len(kept)} quests older than {cutoff}")

    return kept


def format_quest_display(quests: List[Quest]) -> str:
    """Format quests for display, daily first"""
    if not quests:
        return "No active quests. Add a habit to unlock quests! 🗺️"

    lines = ["🗺️ YOUR QUESTS\n"]
    for scope in (QuestScope.DAILY, QuestScope.WEEKLY):
        scoped = [q for q in quests if q.scope == scope]
        if not scoped:
            continue
        lines.append(scope.value.upper())
        for quest in scoped:
            mark = "✅" if quest.completed else "⬜"
            lines.append(
                f"{mark} {quest.title} ({min(quest.progress, quest.target)}/{quest.target}) +{quest.reward_xp} XP"
            )
        lines.append("")

    return "\n".join(lines).rstrip()
