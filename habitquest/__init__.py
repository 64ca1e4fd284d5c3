"""HabitQuest - habit tracking with XP, levels, streaks, badges and quests"""

__version__ = "0.1.0"
