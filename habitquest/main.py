"""Command-line entry point for manual runs against the configured store"""
import argparse
import asyncio
import logging
from typing import List, Optional

from habitquest.config import validate_config, LOG_LEVEL, QUEST_RETENTION_DAYS
from habitquest.exceptions import HabitQuestError
from habitquest.gamification.achievement_system import (
    format_achievement_display,
    format_achievement_unlock_message,
)
from habitquest.gamification.quests import format_quest_display
from habitquest.gamification.streak_system import format_streak_display
from habitquest.gamification.xp_system import get_difficulty_label
from habitquest.services.container import init_container
from habitquest.services.progression_service import ActionResult
from habitquest.services.session import UserSession
from habitquest.storage import create_store
from habitquest.utils.datetime_helpers import format_display_date

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="habitquest", description="Habit tracking with progression")
    parser.add_argument("--user", required=True, help="User id")
    parser.add_argument("--retention-days", type=int, default=QUEST_RETENTION_DAYS,
                        help="Days finished quests are kept (default: QUEST_RETENTION_DAYS)")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add-habit", help="Create a habit")
    add.add_argument("name")
    add.add_argument("--description")
    add.add_argument("--difficulty", default="medium", choices=["easy", "medium", "hard"])

    toggle = commands.add_parser("toggle", help="Toggle a habit's completion")
    toggle.add_argument("habit_id")
    toggle.add_argument("--date", help="Date key YYYY-MM-DD (default: today)")

    commands.add_parser("status", help="Show level, habits, badges and quests")
    return parser


def print_result(result: ActionResult) -> None:
    if result.completed is not None and result.habit:
        state = "completed" if result.completed else "not completed"
        print(f"'{result.habit.name}' is now {state} ({result.xp_delta:+d} XP)")
    if result.daily_perfect_awarded:
        print("🎉 Daily Perfect!")
    for badge in result.badges_unlocked:
        print(format_achievement_unlock_message(badge))
    for quest in result.quests_completed:
        print(f"🗺️ Quest complete: {quest.title} (+{quest.reward_xp} XP)")
    for quest in result.quests_reverted:
        print(f"Quest no longer complete: {quest.title} (-{quest.reward_xp} XP)")
    if result.leveled_up:
        print(f"⬆️ Level up! You are now level {result.new_level}")


def print_status(session: UserSession, today_key: str) -> None:
    print(f"Level {session.level} - {session.xp_total} XP "
          f"({session.xp_into_level} into level, {session.xp_to_next_level} to next)")

    print("\nHABITS")
    for habit in session.habits:
        mark = "✅" if session.is_completed(habit.id, today_key) else "⬜"
        print(f"{mark} {habit.name} [{get_difficulty_label(habit.difficulty)}] id={habit.id}")

    print()
    print(format_streak_display(session.all_habits, session.completions, today_key))
    print()
    print(format_quest_display(session.active_quests))
    print()
    print(format_achievement_display(session.badges))

    hint = session.next_badge_hint
    if hint:
        print(f"\nNext: {hint}")


async def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point"""
    args = build_parser().parse_args(argv)
    container = None
    try:
        validate_config()
        container = init_container(create_store(), retention_days=args.retention_days)
        session = await container.progression_service.load_session(args.user)

        if args.command == "add-habit":
            result = await container.habit_service.add_habit(
                session, args.name, args.description, args.difficulty
            )
            print(f"Added '{result.habit.name}' (id={result.habit.id})")
            print_result(result)
        elif args.command == "toggle":
            date_key = args.date or container.clock.today_key()
            result = await container.progression_service.toggle_completion(session, args.habit_id, date_key)
            print(f"{format_display_date(date_key)}")
            print_result(result)
        else:
            print_status(session, container.clock.today_key())
        return 0

    except HabitQuestError as e:
        print(e.user_message)
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    finally:
        if container:
            await container.close()


def run() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
