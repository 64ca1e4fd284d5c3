"""Pydantic models for persisted progression records"""
from habitquest.models.habit import Difficulty, Habit, Completion
from habitquest.models.player import Player
from habitquest.models.achievement import BadgeDefinition, Badge
from habitquest.models.quest import QuestScope, Quest

__all__ = [
    "Difficulty",
    "Habit",
    "Completion",
    "Player",
    "BadgeDefinition",
    "Badge",
    "QuestScope",
    "Quest",
]
