"""Player progression model"""
from typing import Any, Optional
from pydantic import BaseModel, Field


class Player(BaseModel):
    """
    One progression record per user

    Only xp_total is authoritative; level is derived from it and kept in sync
    by every mutation.
    """
    user_id: str
    xp_total: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    last_daily_perfect_date: Optional[str] = None

    def level_info(self) -> dict[str, Any]:
        """Derived level fields for display"""
        from habitquest.gamification.xp_system import calculate_level_from_xp
        return calculate_level_from_xp(self.xp_total)
