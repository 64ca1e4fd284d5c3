"""Unit tests for the Quest System (habitquest/gamification/quests.py)"""
import random
from datetime import datetime, timezone

import pytest

from habitquest.gamification.quests import (
    QUEST_TEMPLATES,
    check_quest_completion,
    check_quest_reversal,
    cleanup_old_quests,
    evaluate_quest,
    format_quest_display,
    generate_daily_quests,
    generate_weekly_quests,
    get_active_quests,
    get_template,
    needs_daily_quests,
    needs_weekly_quests,
    quest_period_end,
    update_quest_progress,
)
from habitquest.models.habit import Difficulty
from habitquest.models.quest import Quest, QuestScope

TODAY = "2026-10-19"
WEEK = "2026-43"
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _quest(template_id, period_key, quest_id=None, completed=False, progress=0):
    template = QUEST_TEMPLATES[template_id]
    return Quest(
        id=quest_id or f"{template_id}:{period_key}",
        template_id=template_id,
        scope=template.scope,
        period_key=period_key,
        title=template.title,
        description=template.description,
        target=template.target,
        progress=progress,
        completed=completed,
        reward_xp=template.reward_xp,
        created_at=NOW,
    )


def _template_ids(quests):
    return [q.template_id for q in quests]


# ============================================================================
# Templates
# ============================================================================

def test_template_library():
    assert get_template("complete_3_habits").target == 3
    assert get_template("perfect_week").reward_xp == 100
    assert get_template("weekly_warrior").scope == QuestScope.WEEKLY
    assert get_template("nope") is None


# ============================================================================
# Generation
# ============================================================================

def test_no_habits_no_quests():
    assert generate_daily_quests(TODAY, [], random.Random(1), NOW) == []
    assert generate_weekly_quests(WEEK, [], random.Random(1), NOW) == []


def test_daily_generation_single_habit(make_habit, first_choice_rng):
    quests = generate_daily_quests(TODAY, [make_habit("h1")], first_choice_rng, NOW)

    assert _template_ids(quests) == ["daily_perfect", "maintain_streak"]
    assert all(q.period_key == TODAY and q.progress == 0 and not q.completed for q in quests)


@pytest.mark.parametrize("habit_count,tier", [
    (2, "complete_2_habits"),
    (3, "complete_3_habits"),
    (4, "complete_3_habits"),
    (5, "complete_5_habits"),
    (8, "complete_5_habits"),
])
def test_daily_generation_tier(make_habit, first_choice_rng, habit_count, tier):
    habits = [make_habit(f"h{i}") for i in range(habit_count)]

    quests = generate_daily_quests(TODAY, habits, first_choice_rng, NOW)

    assert _template_ids(quests)[0] == tier
    assert len(quests) == 3


def test_daily_bonus_is_one_of_three(make_habit):
    quests = generate_daily_quests(TODAY, [make_habit("h1")], random.Random(42), NOW)

    assert quests[-1].template_id in {"maintain_streak", "early_bird", "hard_mode"}


def test_weekly_generation(make_habit, first_choice_rng):
    single = generate_weekly_quests(WEEK, [make_habit("h1")], first_choice_rng, NOW)
    double = generate_weekly_quests(WEEK, [make_habit("h1"), make_habit("h2")], first_choice_rng, NOW)

    assert _template_ids(single) == ["weekly_warrior", "consistency_champion"]
    assert _template_ids(double) == ["weekly_warrior", "habit_master", "consistency_champion"]


def test_needs_quests_checks_scope_and_period():
    quests = [_quest("daily_perfect", TODAY), _quest("weekly_warrior", WEEK)]

    assert not needs_daily_quests(quests, TODAY)
    assert needs_daily_quests(quests, "2026-10-20")
    assert not needs_weekly_quests(quests, WEEK)
    assert needs_weekly_quests(quests, "2026-44")


# ============================================================================
# Evaluators
# ============================================================================

def test_complete_n_counts_todays_completions(make_habit, make_completion):
    habits = [make_habit("h1"), make_habit("h2")]
    completions = [make_completion("h1", TODAY), make_completion("h2", "2026-10-18")]

    quest = evaluate_quest(_quest("complete_2_habits", TODAY), habits, completions)

    assert quest.progress == 1
    assert not quest.completed


def test_daily_perfect_requires_all_habits(make_habit, make_completion):
    habits = [make_habit("h1"), make_habit("h2")]
    done_one = [make_completion("h1", TODAY)]
    done_all = done_one + [make_completion("h2", TODAY)]

    assert not evaluate_quest(_quest("daily_perfect", TODAY), habits, done_one).completed
    assert evaluate_quest(_quest("daily_perfect", TODAY), habits, done_all).completed


def test_maintain_streak_counts_history_up_to_the_day(make_habit, make_completion):
    habits = [make_habit("h1")]
    completions = [make_completion("h1", d) for d in ("2026-10-17", "2026-10-18", "2026-10-19")]

    assert evaluate_quest(_quest("maintain_streak", TODAY), habits, completions).completed
    # Two completions up to the 18th: later ones don't count retroactively
    assert not evaluate_quest(_quest("maintain_streak", "2026-10-18"), habits, completions).completed


def test_early_bird_before_noon(make_habit, make_completion):
    habits = [make_habit("h1")]

    assert evaluate_quest(_quest("early_bird", TODAY), habits, [make_completion("h1", TODAY, hour=11)]).completed
    assert not evaluate_quest(_quest("early_bird", TODAY), habits, [make_completion("h1", TODAY, hour=12)]).completed


def test_hard_mode(make_habit, make_completion):
    habits = [make_habit("easy", Difficulty.EASY), make_habit("hard", Difficulty.HARD)]

    assert not evaluate_quest(_quest("hard_mode", TODAY), habits, [make_completion("easy", TODAY)]).completed
    assert evaluate_quest(_quest("hard_mode", TODAY), habits, [make_completion("hard", TODAY)]).completed


def test_weekly_evaluators(make_habit, make_completion):
    habits = [make_habit("h1"), make_habit("h2")]
    completions = [
        make_completion("h1", "2026-10-19"), make_completion("h2", "2026-10-19"),
        make_completion("h1", "2026-10-20"),
        make_completion("h1", "2026-10-21"), make_completion("h2", "2026-10-21"),
        make_completion("h1", "2026-10-18"),  # previous week
    ]

    warrior = evaluate_quest(_quest("weekly_warrior", WEEK), habits, completions)
    master = evaluate_quest(_quest("habit_master", WEEK), habits, completions)
    perfect = evaluate_quest(_quest("perfect_week", WEEK), habits, completions)

    assert warrior.progress == 3
    assert master.progress == 5
    assert perfect.progress == 2


def test_unknown_template_left_untouched(make_habit):
    quest = _quest("daily_perfect", TODAY).model_copy(update={"template_id": "retired"})

    assert evaluate_quest(quest, [make_habit("h1")], []) == quest


# ============================================================================
# Progress Tracking
# ============================================================================

def test_update_quest_progress_is_idempotent(make_habit, make_completion):
    habits = [make_habit("h1")]
    completions = [make_completion("h1", TODAY)]
    quests = [_quest("daily_perfect", TODAY), _quest("weekly_warrior", WEEK)]

    once = update_quest_progress(quests, habits, completions)
    twice = update_quest_progress(once, habits, completions)

    assert once == twice
    assert quests[0].progress == 0


def test_completion_and_reversal_flips():
    old = [_quest("daily_perfect", TODAY, "a"), _quest("early_bird", TODAY, "b", completed=True, progress=1)]
    new = [_quest("daily_perfect", TODAY, "a", completed=True, progress=1), _quest("early_bird", TODAY, "b")]

    assert check_quest_completion(old, new) == ["a"]
    assert check_quest_reversal(old, new) == ["b"]
    assert check_quest_completion(new, new) == []


# ============================================================================
# Retention
# ============================================================================

def test_get_active_quests():
    quests = [
        _quest("daily_perfect", TODAY),
        _quest("daily_perfect", "2026-10-18"),
        _quest("weekly_warrior", WEEK),
        _quest("weekly_warrior", "2026-42"),
    ]

    active = get_active_quests(quests, TODAY, WEEK)

    assert [q.period_key for q in active] == [TODAY, WEEK]


def test_quest_period_end():
    assert quest_period_end(_quest("daily_perfect", TODAY)) == TODAY
    assert quest_period_end(_quest("weekly_warrior", "2026-42")) == "2026-10-18"


def test_cleanup_old_quests():
    quests = [
        _quest("daily_perfect", "2026-10-11"),   # ended before the cutoff
        _quest("daily_perfect", "2026-10-12"),   # exactly at the cutoff
        _quest("weekly_warrior", "2026-41"),     # ended 2026-10-11
        _quest("weekly_warrior", "2026-42"),     # ended 2026-10-18
        _quest("weekly_warrior", WEEK),
    ]

    kept = cleanup_old_quests(quests, TODAY, WEEK, retention_days=7)

    assert [q.period_key for q in kept] == ["2026-10-12", "2026-42", WEEK]


def test_cleanup_always_keeps_current_week():
    kept = cleanup_old_quests([_quest("weekly_warrior", WEEK)], "2026-10-25", WEEK, retention_days=0)

    assert len(kept) == 1


def test_format_quest_display():
    assert "No active quests" in format_quest_display([])

    display = format_quest_display([_quest("daily_perfect", TODAY, completed=True, progress=1)])

    assert "DAILY" in display
    assert "✅ Get a Daily Perfect (1/1) +25 XP" in display
