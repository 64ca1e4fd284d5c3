"""Badge models for gamification"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class BadgeDefinition(BaseModel):
    """Static catalog entry"""
    id: str
    name: str
    description: str
    icon: str


class Badge(BadgeDefinition):
    """Catalog entry plus a player's unlock state"""
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None
