"""
Tests for CharacterStore and GoalStore with moto (DynamoDB mocking)
"""
from datetime import date

import pytest

from goal_tracker.exceptions import ConflictError, NotFoundError, ValidationError
from goal_tracker.schemas import ChannelType, Frequency, GoalCreate, TargetType


# ============================================================================
# Characters
# ============================================================================

class TestCharacterStore:

    def test_create_and_get_character(self, characters, user, dynamodb_table):
        created = characters.create_character(user.user_id, "PlayerOne")
        fetched = characters.get_character(user.user_id, "PlayerOne")

        assert fetched.character_name == "PlayerOne"
        assert fetched.user_id == user.user_id
        assert fetched.created_at == created.created_at

        item = dynamodb_table.get_item(
            Key={"PK": f"USER#{user.user_id}", "SK": "CHARACTER#METADATA#PlayerOne"}
        )["Item"]
        assert item["characterName"] == "PlayerOne"

    def test_unknown_user(self, characters):
        with pytest.raises(NotFoundError):
            characters.create_character("ghost", "PlayerOne")

    def test_duplicate_character(self, characters, user):
        characters.create_character(user.user_id, "PlayerOne")
        with pytest.raises(ConflictError):
            characters.create_character(user.user_id, "PlayerOne")

    def test_same_name_under_different_users(self, characters, users):
        first = users.create_user("first@example.com")
        second = users.create_user("second@example.com")

        characters.create_character(first.user_id, "PlayerOne")
        characters.create_character(second.user_id, "PlayerOne")

        assert characters.get_character(second.user_id, "PlayerOne").user_id == second.user_id

    @pytest.mark.parametrize("name", ["", "  ", "Player#One", "METADATA"])
    def test_invalid_names(self, characters, user, name):
        with pytest.raises(ValidationError):
            characters.create_character(user.user_id, name)

    def test_get_missing_character(self, characters, user):
        with pytest.raises(NotFoundError):
            characters.get_character(user.user_id, "Nobody")

    def test_list_characters(self, characters, user):
        for name in ["Zezima", "PlayerOne", "Lynx Titan"]:
            characters.create_character(user.user_id, name)

        names = [c.character_name for c in characters.list_characters(user.user_id)]
        assert names == ["Lynx Titan", "PlayerOne", "Zezima"]

    def test_list_characters_ignores_goal_rows(self, characters, goals, user, character):
        goals.create_goal(user.user_id, "PlayerOne", {"goalId": "G1", "skill": "Attack", "targetValue": 99})
        assert len(characters.list_characters(user.user_id)) == 1


# ============================================================================
# Goals
# ============================================================================

class TestCreateGoal:

    def test_create_goal_from_camel_case_dict(self, goals, user, character):
        goal = goals.create_goal(
            user.user_id,
            "PlayerOne",
            {
                "goalId": "G1",
                "skill": "Woodcutting",
                "targetValue": 13034431,
                "targetDate": "2025-12-31",
                "notificationChannels": ["sms", "DISCORD"],
                "frequency": "weekly",
            },
        )

        assert goal.goal_id == "G1"
        assert goal.skill == "Woodcutting"
        assert goal.activity is None
        assert goal.target_type == TargetType.EXPERIENCE
        assert goal.target_value == 13034431
        assert goal.target_date == date(2025, 12, 31)
        assert goal.notification_channels == [ChannelType.SMS, ChannelType.DISCORD]
        assert goal.frequency == Frequency.WEEKLY

    def test_create_goal_from_model_generates_id(self, goals, user, character):
        spec = GoalCreate(activity="Zulrah", target_type=TargetType.KILL_COUNT, target_value=500)
        goal = goals.create_goal(user.user_id, "PlayerOne", spec)

        assert goal.goal_id
        assert goals.get_goal(user.user_id, "PlayerOne", goal.goal_id).activity == "Zulrah"

    def test_goal_round_trips_through_table(self, goals, user, character, dynamodb_table):
        created = goals.create_goal(
            user.user_id, "PlayerOne", {"goalId": "G1", "skill": "Woodcutting", "targetValue": 13034431}
        )
        fetched = goals.get_goal(user.user_id, "PlayerOne", "G1")
        assert fetched == created

        item = dynamodb_table.get_item(
            Key={"PK": f"USER#{user.user_id}", "SK": "CHARACTER#PlayerOne#GOAL#METADATA#G1"}
        )["Item"]
        assert "targetDate" not in item
        assert "activity" not in item

    @pytest.mark.parametrize("target_value", [0, -5])
    def test_target_value_must_be_positive(self, goals, user, character, target_value):
        with pytest.raises(ValidationError) as exc_info:
            goals.create_goal(user.user_id, "PlayerOne", {"skill": "Attack", "targetValue": target_value})
        assert "greater than 0" in str(exc_info.value).lower()

    def test_invalid_target_date(self, goals, user, character):
        with pytest.raises(ValidationError):
            goals.create_goal(
                user.user_id, "PlayerOne", {"skill": "Attack", "targetValue": 99, "targetDate": "2025-13-45"}
            )

    @pytest.mark.parametrize("spec", [
        {"targetValue": 99},
        {"skill": "Attack", "activity": "Zulrah", "targetValue": 99},
        {"skill": "   ", "targetValue": 99},
    ])
    def test_exactly_one_of_skill_or_activity(self, goals, user, character, spec):
        with pytest.raises(ValidationError) as exc_info:
            goals.create_goal(user.user_id, "PlayerOne", spec)
        assert "Exactly one of skill or activity" in str(exc_info.value)

    def test_unknown_channel_type(self, goals, user, character):
        with pytest.raises(ValidationError):
            goals.create_goal(
                user.user_id, "PlayerOne", {"skill": "Attack", "targetValue": 99, "notificationChannels": ["PIGEON"]}
            )

    @pytest.mark.parametrize("goal_id", ["", "   "])
    def test_blank_goal_id_rejected(self, goals, user, character, goal_id):
        with pytest.raises(ValidationError):
            goals.create_goal(user.user_id, "PlayerOne", {"goalId": goal_id, "skill": "Attack", "targetValue": 99})
        assert goals.list_goals(user.user_id, "PlayerOne") == []

    def test_reserved_goal_id(self, goals, user, character):
        with pytest.raises(ValidationError):
            goals.create_goal(user.user_id, "PlayerOne", {"goalId": "LATEST", "skill": "Attack", "targetValue": 99})

    def test_missing_character(self, goals, user):
        with pytest.raises(NotFoundError):
            goals.create_goal(user.user_id, "Nobody", {"skill": "Attack", "targetValue": 99})

    def test_duplicate_goal_id(self, goals, user, character):
        spec = {"goalId": "G1", "skill": "Attack", "targetValue": 99}
        goals.create_goal(user.user_id, "PlayerOne", spec)
        with pytest.raises(ConflictError):
            goals.create_goal(user.user_id, "PlayerOne", spec)


class TestReadGoals:

    def test_get_missing_goal(self, goals, user, character):
        with pytest.raises(NotFoundError):
            goals.get_goal(user.user_id, "PlayerOne", "G404")

    def test_list_goals_is_scoped_to_character(self, goals, characters, progress, user, character):
        characters.create_character(user.user_id, "AltAccount")
        for goal_id in ["G1", "G2", "G10"]:
            goals.create_goal(user.user_id, "PlayerOne", {"goalId": goal_id, "skill": "Attack", "targetValue": 99})
        goals.create_goal(user.user_id, "AltAccount", {"goalId": "G3", "skill": "Magic", "targetValue": 99})
        progress.record_progress(user.user_id, "PlayerOne", "G1", 50, "2025-01-01T00:00:00Z")

        listed = goals.list_goals(user.user_id, "PlayerOne")

        assert [g.goal_id for g in listed] == ["G1", "G10", "G2"]
        assert goals.list_goals(user.user_id, "Nobody") == []
