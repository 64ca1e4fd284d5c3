"""Tests for Pydantic input validation (habitquest/validators.py)"""
import pytest

from habitquest.exceptions import ValidationError
from habitquest.models.habit import Difficulty
from habitquest.validators import HabitInput, validate_date_key, validate_habit_input


class TestHabitInput:
    """Test habit name / description / difficulty validation"""

    def test_valid_habit(self):
        data = validate_habit_input("  Read 10 pages  ", "Before bed", "hard")

        assert data.name == "Read 10 pages"
        assert data.description == "Before bed"
        assert data.difficulty == Difficulty.HARD

    def test_defaults(self):
        data = HabitInput(name="Walk")

        assert data.difficulty == Difficulty.MEDIUM
        assert data.description is None

    def test_blank_description_becomes_none(self):
        assert validate_habit_input("Walk", "   ").description is None

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_habit_input("   ", user_id="user-1")

        assert exc_info.value.field == "name"
        assert exc_info.value.user_id == "user-1"
        assert "empty" in exc_info.value.message

    def test_name_length_limit(self):
        assert validate_habit_input("x" * 50).name == "x" * 50

        with pytest.raises(ValidationError) as exc_info:
            validate_habit_input("x" * 51)

        assert exc_info.value.field == "name"

    def test_description_length_limit(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_habit_input("Walk", "d" * 201)

        assert exc_info.value.field == "description"

    def test_unknown_difficulty_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_habit_input("Walk", difficulty="extreme")

        assert exc_info.value.field == "difficulty"


class TestDateKey:
    """Test YYYY-MM-DD date key validation"""

    def test_valid_date_key(self):
        assert validate_date_key("2026-10-19") == "2026-10-19"

    @pytest.mark.parametrize("bad_key", ["2026-02-30", "2026-1-05", "19-10-2026", "2026-10-19T00:00", "today"])
    def test_invalid_date_keys(self, bad_key):
        with pytest.raises(ValidationError) as exc_info:
            validate_date_key(bad_key)

        assert exc_info.value.field == "date_key"
