"""
Pytest configuration: moto-backed goal tracker table and store fixtures
"""
import boto3
import pytest
from moto import mock_aws

from goal_tracker.config import Settings, get_settings
from goal_tracker.dynamo import GoalTrackerTable
from goal_tracker.stores import (
    CharacterStore,
    GoalStore,
    NotificationChannelStore,
    ProgressStore,
    UserStore,
)
from goal_tracker.table_schema import table_definition

TEST_TABLE = "goal-tracker-test"


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto"""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.delenv("DYNAMODB_ENDPOINT", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(aws_credentials):
    return Settings(GOAL_TRACKER_TABLE_NAME=TEST_TABLE, PROGRESS_TTL_DAYS=None)


@pytest.fixture
def dynamodb_table(settings):
    """Create the mock goal tracker table"""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        dynamodb.create_table(**table_definition(settings))
        yield dynamodb.Table(TEST_TABLE)


@pytest.fixture
def table(dynamodb_table, settings):
    return GoalTrackerTable(settings)


@pytest.fixture
def users(table):
    return UserStore(table)


@pytest.fixture
def characters(table, users):
    return CharacterStore(table, users=users)


@pytest.fixture
def goals(table, characters):
    return GoalStore(table, characters=characters)


@pytest.fixture
def progress(table, goals):
    return ProgressStore(table, goals=goals)


@pytest.fixture
def channels(table, users):
    return NotificationChannelStore(table, users=users)


@pytest.fixture
def user(users):
    return users.create_user("alice@example.com")


@pytest.fixture
def character(characters, user):
    return characters.create_character(user.user_id, "PlayerOne")


@pytest.fixture
def goal(goals, user, character):
    return goals.create_goal(
        user.user_id,
        character.character_name,
        {"goalId": "G1", "skill": "Woodcutting", "targetValue": 13034431},
    )
