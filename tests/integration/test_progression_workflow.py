"""Integration tests for completion toggles and reward reconciliation on the in-memory store"""
import pytest

from habitquest.exceptions import RecordNotFoundError, ValidationError

DAY1 = "2026-10-19"
DAY2 = "2026-10-20"
DAY3 = "2026-10-21"


def _template_ids(quests):
    return [q.template_id for q in quests]


# ============================================================================
# Session Loading
# ============================================================================

@pytest.mark.asyncio
async def test_first_load_creates_player_and_badges(progression_service, memory_store):
    session = await progression_service.load_session("user-1")

    assert session.xp_total == 0
    assert session.level == 1
    assert len(session.badges) == 9
    assert not any(b.unlocked for b in session.badges)
    assert session.quests == []
    assert "habitquest:player:user-1" in memory_store.keys()


@pytest.mark.asyncio
async def test_reload_keeps_state(progression_service, start_user):
    session, (habit_id,) = await start_user("medium")
    await progression_service.toggle_completion(session, habit_id, DAY1)

    reloaded = await progression_service.load_session("user-1")

    assert reloaded.xp_total == session.xp_total
    assert reloaded.is_completed(habit_id, DAY1)
    assert [b.id for b in reloaded.badges if b.unlocked] == [b.id for b in session.badges if b.unlocked]
    assert len(reloaded.quests) == len(session.quests)


@pytest.mark.asyncio
async def test_adding_first_habit_generates_quests(start_user):
    session, _ = await start_user("medium")

    assert _template_ids(session.active_quests) == [
        "daily_perfect", "maintain_streak", "weekly_warrior", "consistency_champion"
    ]


# ============================================================================
# Toggling
# ============================================================================

@pytest.mark.asyncio
async def test_toggle_round_trip(progression_service, start_user):
    session, (habit_a, _) = await start_user("medium", "medium")

    done = await progression_service.toggle_completion(session, habit_a, DAY1)

    assert done.completed is True
    assert done.habit_xp == 15
    assert [b.id for b in done.badges_unlocked] == ["first_step"]
    assert done.badge_xp == 25
    assert done.xp_delta == 40
    assert session.xp_total == 40
    assert session.is_completed(habit_a, DAY1)
    assert session.records.find_completion(habit_a, DAY1).xp_awarded == 15

    undone = await progression_service.toggle_completion(session, habit_a, DAY1)

    assert undone.completed is False
    assert undone.habit_xp == -15
    assert undone.badges_unlocked == []
    # Badge XP is never taken back
    assert session.xp_total == 25
    assert not session.is_completed(habit_a)


@pytest.mark.asyncio
async def test_toggle_on_and_off_today_restores_state(progression_service, start_user):
    session, (habit_a, habit_b) = await start_user("medium", "medium")
    await progression_service.toggle_completion(session, habit_a, DAY1)
    await progression_service.toggle_completion(session, habit_a, DAY1)
    before = (session.xp_total, session.level)
    assert before == (25, 1)

    await progression_service.toggle_completion(session, habit_b, DAY1)
    undone = await progression_service.toggle_completion(session, habit_b, DAY1)

    assert undone.badges_unlocked == []
    assert (session.xp_total, session.level) == before
    assert session.records.find_completion(habit_b, DAY1) is None


@pytest.mark.asyncio
async def test_toggle_on_and_off_past_date_restores_state(progression_service, start_user):
    session, (habit_a, habit_b) = await start_user("medium", "medium")
    await progression_service.toggle_completion(session, habit_a, DAY1)
    before = (session.xp_total, session.level, len(session.completions))
    assert before == (40, 1, 1)

    done = await progression_service.toggle_completion(session, habit_b, "2026-10-12")
    assert done.completed is True
    assert session.xp_total == 55
    undone = await progression_service.toggle_completion(session, habit_b, "2026-10-12")

    assert undone.completed is False
    assert (session.xp_total, session.level, len(session.completions)) == before
    assert session.records.find_completion(habit_b, "2026-10-12") is None


@pytest.mark.asyncio
async def test_daily_perfect_award_and_revoke(progression_service, start_user):
    session, (habit_a, habit_b) = await start_user("medium", "medium")
    await progression_service.toggle_completion(session, habit_a, DAY1)
    assert session.xp_total == 40

    perfect = await progression_service.toggle_completion(session, habit_b, DAY1)

    assert perfect.daily_perfect_awarded is True
    assert perfect.habit_xp == 15
    assert perfect.daily_perfect_xp == 25
    assert [b.id for b in perfect.badges_unlocked] == ["perfect_day"]
    assert _template_ids(perfect.quests_completed) == ["daily_perfect"]
    assert perfect.quest_xp == 25
    assert session.xp_total == 130
    assert session.perfect_days == [DAY1]
    assert session.player.last_daily_perfect_date == DAY1

    broken = await progression_service.toggle_completion(session, habit_b, DAY1)

    assert broken.daily_perfect_revoked is True
    assert broken.daily_perfect_xp == -25
    assert _template_ids(broken.quests_reverted) == ["daily_perfect"]
    assert broken.quest_xp == -25
    assert broken.xp_delta == -65
    assert session.xp_total == 65
    assert session.perfect_days == []
    assert session.player.last_daily_perfect_date is None
    assert next(b for b in session.badges if b.id == "perfect_day").unlocked


@pytest.mark.asyncio
async def test_daily_perfect_can_be_earned_again_after_revoke(progression_service, start_user):
    session, (habit_id,) = await start_user("easy")

    await progression_service.toggle_completion(session, habit_id, DAY1)
    await progression_service.toggle_completion(session, habit_id, DAY1)
    again = await progression_service.toggle_completion(session, habit_id, DAY1)

    assert again.daily_perfect_awarded is True
    assert session.perfect_days == [DAY1]


@pytest.mark.asyncio
async def test_single_hard_habit_over_three_days(progression_service, start_user, fixed_clock):
    session, (habit_id,) = await start_user("hard")

    # Day 1: habit 20 + Daily Perfect 25 + First Step 25 + Perfect Day 25 + daily_perfect quest 25
    day1 = await progression_service.toggle_completion(session, habit_id, DAY1)
    assert day1.habit_xp == 20
    assert day1.daily_perfect_xp == 25
    assert day1.badge_xp == 50
    assert day1.quest_xp == 25
    assert session.xp_total == 120
    assert session.level == 2
    assert day1.leveled_up is True

    undo = await progression_service.toggle_completion(session, habit_id, DAY1)
    assert undo.xp_delta == -70
    assert session.xp_total == 50
    assert session.level == 1

    redo = await progression_service.toggle_completion(session, habit_id, DAY1)
    assert redo.badges_unlocked == []
    assert session.xp_total == 120

    # Day 2: no badge yet (streak 2, two perfect days)
    fixed_clock.advance(days=1)
    day2 = await progression_service.toggle_completion(session, habit_id, DAY2)
    assert day2.badges_unlocked == []
    assert day2.xp_delta == 70
    assert session.xp_total == 190
    assert session.streaks[habit_id] == 2

    # Day 3: streak_3 + perfect_3 badges, daily_perfect and maintain_streak quests
    fixed_clock.advance(days=1)
    day3 = await progression_service.toggle_completion(session, habit_id, DAY3)
    assert day3.habit_xp == 20
    assert day3.daily_perfect_xp == 25
    assert sorted(b.id for b in day3.badges_unlocked) == ["perfect_3", "streak_3"]
    assert day3.badge_xp == 80
    assert sorted(_template_ids(day3.quests_completed)) == ["daily_perfect", "maintain_streak"]
    assert day3.quest_xp == 45
    assert day3.xp_delta == 170
    assert session.xp_total == 360
    assert session.level == 3
    assert session.xp_into_level == 135
    assert session.xp_to_next_level == 15


@pytest.mark.asyncio
async def test_snapshot_xp_is_what_gets_removed(progression_service, habit_service, start_user):
    session, (habit_id, _) = await start_user("medium", "medium")
    await progression_service.toggle_completion(session, habit_id, DAY1)

    await habit_service.update_habit(session, habit_id, difficulty="hard")
    undone = await progression_service.toggle_completion(session, habit_id, DAY1)

    assert undone.habit_xp == -15
    assert session.xp_total == 25


@pytest.mark.asyncio
async def test_reconcile_is_idempotent(progression_service, start_user):
    session, (habit_id,) = await start_user("medium")
    await progression_service.toggle_completion(session, habit_id, DAY1)
    quests_before = session.quests

    result = await progression_service.refresh(session)

    assert result.xp_delta == 0
    assert result.badges_unlocked == []
    assert result.quests_completed == []
    assert result.quests_reverted == []
    assert session.quests == quests_before


@pytest.mark.asyncio
async def test_adding_habit_reverts_daily_perfect_quest(progression_service, habit_service, start_user):
    session, (habit_id,) = await start_user("hard")
    await progression_service.toggle_completion(session, habit_id, DAY1)
    assert session.xp_total == 120

    result = await habit_service.add_habit(session, "Stretch", difficulty="easy")

    assert _template_ids(result.quests_reverted) == ["daily_perfect"]
    assert session.xp_total == 95
    # The Daily Perfect bonus itself belongs to the toggle that earned it
    assert session.perfect_days == [DAY1]


@pytest.mark.asyncio
async def test_archived_habits_do_not_block_daily_perfect(progression_service, habit_service, start_user):
    session, (habit_a, habit_b) = await start_user("medium", "medium")
    await habit_service.update_habit(session, habit_b, archived=True)

    result = await progression_service.toggle_completion(session, habit_a, DAY1)

    assert result.daily_perfect_awarded is True
    assert [h.id for h in session.habits] == [habit_a]


@pytest.mark.asyncio
async def test_completing_a_past_date(progression_service, start_user):
    session, (habit_id,) = await start_user("medium")

    result = await progression_service.toggle_completion(session, habit_id, "2026-10-18")

    assert result.completed is True
    assert session.is_completed(habit_id, "2026-10-18")
    assert session.perfect_days == ["2026-10-18"]
    assert session.streaks[habit_id] == 1


# ============================================================================
# Quest Lifecycle
# ============================================================================

@pytest.mark.asyncio
async def test_new_day_generates_new_daily_quests(progression_service, start_user, fixed_clock):
    session, _ = await start_user("medium", "medium")

    fixed_clock.advance(days=1)
    await progression_service.refresh(session)

    assert _template_ids(q for q in session.active_quests if q.period_key == DAY2) == [
        "complete_2_habits", "daily_perfect", "maintain_streak"
    ]
    assert any(q.period_key == DAY1 for q in session.quests)
    assert not any(q.period_key == DAY1 for q in session.active_quests)


@pytest.mark.asyncio
async def test_old_quests_are_pruned(progression_service, start_user, fixed_clock):
    session, _ = await start_user("medium")

    fixed_clock.advance(days=9)
    await progression_service.refresh(session)
    periods = {q.period_key for q in session.quests}

    assert DAY1 not in periods
    # Week 43 ended 2026-10-25, inside the grace window
    assert "2026-43" in periods
    assert "2026-44" in periods
    assert "2026-10-28" in periods


# ============================================================================
# Session Views
# ============================================================================

@pytest.mark.asyncio
async def test_session_views(progression_service, start_user):
    session, (habit_id,) = await start_user("medium")
    await progression_service.toggle_completion(session, habit_id, DAY1)

    assert session.streaks == {habit_id: 1}
    assert session.next_badge_hint == "2 more days for 3-Day Streak"
    assert 0 < session.level_progress < 1
    assert session.level == 2
    assert session.xp_into_level + session.xp_to_next_level == 125


# ============================================================================
# Errors
# ============================================================================

@pytest.mark.asyncio
async def test_unknown_habit_changes_nothing(progression_service, start_user, memory_store):
    session, _ = await start_user("medium")
    player_before = await memory_store.get("habitquest:player:user-1")

    with pytest.raises(RecordNotFoundError) as exc_info:
        await progression_service.toggle_completion(session, "missing-habit", DAY1)

    assert exc_info.value.record_id == "missing-habit"
    assert await memory_store.get("habitquest:player:user-1") == player_before
    assert session.xp_total == 0


@pytest.mark.asyncio
async def test_malformed_date_rejected(progression_service, start_user):
    session, (habit_id,) = await start_user("medium")

    with pytest.raises(ValidationError):
        await progression_service.toggle_completion(session, habit_id, "2026-10-32")

    assert session.completions == []


@pytest.mark.asyncio
async def test_action_requires_loaded_player(progression_service, start_user, memory_store):
    session, (habit_id,) = await start_user("medium")
    await memory_store.delete("habitquest:player:user-1")

    with pytest.raises(RecordNotFoundError):
        await progression_service.toggle_completion(session, habit_id, DAY1)
