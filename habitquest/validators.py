"""
Pydantic Input Validation Layer

Validates user input before any record is touched:
1. Habit input - name length, description length, difficulty
2. Date keys - strict YYYY-MM-DD calendar dates
"""

import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from habitquest.exceptions import ValidationError
from habitquest.models.habit import Difficulty

logger = logging.getLogger(__name__)

MAX_HABIT_NAME_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 200


# ============================================================================
# HABIT INPUT VALIDATION
# ============================================================================

class HabitInput(BaseModel):
    """
    Validate habit creation/edit input

    Constraints:
    - Name: 1-50 characters after trimming
    - Description: optional, at most 200 characters, blank becomes None
    - Difficulty: easy, medium or hard
    """
    name: str = Field(..., description="Habit name")
    description: Optional[str] = Field(None, description="Optional description")
    difficulty: Difficulty = Difficulty.MEDIUM

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Trim whitespace and check length"""
        trimmed = v.strip()
        if not trimmed:
            raise ValueError("Habit name cannot be empty")
        if len(trimmed) > MAX_HABIT_NAME_LENGTH:
            raise ValueError(f"Habit name must be at most {MAX_HABIT_NAME_LENGTH} characters")
        return trimmed

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        trimmed = v.strip()
        if len(trimmed) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters")
        return trimmed or None


# ============================================================================
# DATE VALIDATION
# ============================================================================

class DateKeyInput(BaseModel):
    """Validate a YYYY-MM-DD date key"""
    date_key: str = Field(..., min_length=10, max_length=10)

    @field_validator('date_key')
    @classmethod
    def validate_date_key(cls, v: str) -> str:
        try:
            parsed = datetime.strptime(v, "%Y-%m-%d")
        except ValueError:
            raise ValueError("Date must be in YYYY-MM-DD format")
        if parsed.strftime("%Y-%m-%d") != v:
            raise ValueError("Date must be in YYYY-MM-DD format")
        return v


# ============================================================================
# HELPERS
# ============================================================================

def _raise_validation_error(error: PydanticValidationError, user_id: Optional[str]) -> None:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = first.get("msg", "Invalid input").removeprefix("Value error, ")
    raise ValidationError(
        message=message,
        field=field,
        value=first.get("input"),
        user_id=user_id,
        cause=error
    )


def validate_habit_input(
    name: str,
    description: Optional[str] = None,
    difficulty: str = Difficulty.MEDIUM.value,
    user_id: Optional[str] = None
) -> HabitInput:
    """
    Validate habit input

    Raises:
        ValidationError: With the first failing field
    """
    try:
        return HabitInput(name=name, description=description, difficulty=difficulty)
    except PydanticValidationError as e:
        _raise_validation_error(e, user_id)


def validate_date_key(date_key: str, user_id: Optional[str] = None) -> str:
    """
    Validate a date key

    Raises:
        ValidationError: If not a YYYY-MM-DD calendar date
    """
    try:
        return DateKeyInput(date_key=date_key).date_key
    except PydanticValidationError as e:
        _raise_validation_error(e, user_id)
