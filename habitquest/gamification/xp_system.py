"""
XP and Leveling System

Maps total XP to levels and awards/removes XP on a player record.

Leveling Curve:
- Level L costs 100 + (L - 1) * 25 XP to complete
- Level 1: 100 XP, Level 2: 125 XP, Level 5: 200 XP, ...
- Reaching level L requires the sum of the costs of levels 1 .. L-1

XP Award Rules:
- Habit completion: 10 / 15 / 20 XP for easy / medium / hard (snapshotted)
- Daily Perfect (all habits done on one day): 25 XP, once per day
- Badge unlocks: 25-100 XP, once per badge
- Quest completion: the quest's declared reward
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple
import logging

from habitquest.models.habit import Difficulty
from habitquest.models.player import Player

logger = logging.getLogger(__name__)

BASE_LEVEL_XP = 100
LEVEL_XP_INCREMENT = 25

DIFFICULTY_XP: Dict[Difficulty, int] = {
    Difficulty.EASY: 10,
    Difficulty.MEDIUM: 15,
    Difficulty.HARD: 20,
}

DAILY_PERFECT_BONUS = 25


# ============================================
# Level Curve
# ============================================

def required_xp(level: int) -> int:
    """XP needed to go from `level` to `level + 1`"""
    if level < 1:
        raise ValueError(f"Level must be >= 1, got {level}")
    return BASE_LEVEL_XP + (level - 1) * LEVEL_XP_INCREMENT


def cumulative_xp(level: int) -> int:
    """Total XP needed to reach `level` from level 1 (0 for level 1)"""
    return sum(required_xp(lvl) for lvl in range(1, level))


def level_from_xp(xp_total: int) -> int:
    """Highest level whose cumulative XP does not exceed xp_total"""
    xp_total = max(0, xp_total)
    level = 1
    running = 0

    while running + required_xp(level) <= xp_total:
        running += required_xp(level)
        level += 1

    return level


def xp_into_level(xp_total: int, level: int) -> int:
    """XP earned inside the current level"""
    return xp_total - cumulative_xp(level)


def xp_to_next_level(xp_total: int, level: int) -> int:
    """XP still missing to reach the next level"""
    return required_xp(level) - xp_into_level(xp_total, level)


def level_progress(xp_total: int, level: int) -> float:
    """Fraction of the current level completed, in [0, 1)"""
    return xp_into_level(xp_total, level) / required_xp(level)


def calculate_level_from_xp(total_xp: int) -> Dict[str, Any]:
    """
    Calculate level and progress from total XP

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int,
            'total_xp_for_next_level': int,
            'level_progress': float (0-1)
        }
    """
    total_xp = max(0, total_xp)
    level = level_from_xp(total_xp)

    return {
        "current_level": level,
        "xp_in_current_level": xp_into_level(total_xp, level),
        "xp_to_next_level": xp_to_next_level(total_xp, level),
        "total_xp_for_next_level": cumulative_xp(level + 1),
        "level_progress": level_progress(total_xp, level),
    }


# ============================================
# XP Table
# ============================================

def calculate_habit_xp(difficulty: Difficulty) -> int:
    """XP for completing a habit of the given difficulty"""
    return DIFFICULTY_XP[Difficulty(difficulty)]


def get_difficulty_label(difficulty: Difficulty) -> str:
    """Display name for a difficulty ("Easy", "Medium", "Hard")"""
    return Difficulty(difficulty).value.capitalize()


# ============================================
# Awarding / Removing XP
# ============================================

@dataclass
class XPChange:
    """Outcome of one XP mutation"""
    amount: int
    reason: str
    old_total_xp: int
    new_total_xp: int
    old_level: int
    new_level: int

    @property
    def applied(self) -> int:
        """Delta actually applied after clamping at zero"""
        return self.new_total_xp - self.old_total_xp

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level

    @property
    def leveled_down(self) -> bool:
        return self.new_level < self.old_level


def apply_xp_delta(player: Player, amount: int, reason: str = "XP change") -> Tuple[Player, XPChange]:
    """
    Add (or with a negative amount, remove) XP

    The total never drops below zero and the level is recomputed from the
    new total. The given player is left untouched.

    Args:
        player: Current player record
        amount: XP to add; negative to remove
        reason: Human-readable description, logged

    Returns:
        (updated player, XPChange)
    """
    old_total = player.xp_total
    new_total = max(0, old_total + amount)
    new_level = level_from_xp(new_total)

    updated = player.model_copy(update={"xp_total": new_total, "level": new_level})
    change = XPChange(
        amount=amount,
        reason=reason,
        old_total_xp=old_total,
        new_total_xp=new_total,
        old_level=player.level,
        new_level=new_level,
    )

    logger.info(
        f"{'Awarded' if amount >= 0 else 'Removed'} {abs(amount)} XP for user {player.user_id} "
        f"({reason}). Total: {old_total} → {new_total} XP, Level: {new_level}"
    )

    if change.leveled_up:
        logger.info(f"User {player.user_id} leveled up from {player.level} to {new_level}!")
    elif change.leveled_down:
        logger.info(f"User {player.user_id} dropped from level {player.level} to {new_level}")

    return updated, change
