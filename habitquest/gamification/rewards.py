"""
Reward Table

One-time XP bonuses for badges, and the quest reward policy.

Policies:
- A badge gives its XP exactly once, when it first unlocks
- A quest gives its declared reward_xp when it is completed
"""

from typing import Dict, Iterable
import logging

from habitquest.models.achievement import Badge
from habitquest.models.quest import Quest

logger = logging.getLogger(__name__)

BADGE_XP_REWARDS: Dict[str, int] = {
    "first_step": 25,
    "streak_3": 30,
    "streak_7": 50,
    "streak_14": 75,
    "streak_30": 100,
    "perfect_day": 25,
    "perfect_3": 50,
    "weekly_consistency": 40,
    "comeback": 35,
}


def get_badge_reward(badge_id: str) -> int:
    """XP reward for unlocking a badge (0 for unknown badges)"""
    return BADGE_XP_REWARDS.get(badge_id, 0)


def apply_badge_reward(badge: Badge, already_unlocked: Iterable[Badge]) -> int:
    """
    XP to award for a badge unlock

    Returns 0 when a badge with the same id is already unlocked, so repeated
    or duplicate evaluation never credits a badge twice.
    """
    if any(b.id == badge.id and b.unlocked for b in already_unlocked):
        logger.warning(f"Badge {badge.id} already unlocked, no XP")
        return 0

    xp_reward = get_badge_reward(badge.id)
    logger.info(f"Badge '{badge.name}' unlocked! +{xp_reward} XP")
    return xp_reward


def apply_quest_reward(quest: Quest) -> int:
    """XP to award for a quest (its reward only if completed)"""
    if not quest.completed:
        logger.debug(f"Quest {quest.id} not completed, no XP")
        return 0

    logger.info(f"Quest '{quest.title}' completed! +{quest.reward_xp} XP")
    return quest.reward_xp


def calculate_badge_xp(badges: Iterable[Badge]) -> int:
    """Total XP of several badge unlocks"""
    return sum(get_badge_reward(b.id) for b in badges)


def calculate_quest_xp(quests: Iterable[Quest]) -> int:
    """Total XP of the completed quests among `quests`"""
    return sum(q.reward_xp for q in quests if q.completed)
