"""
Pydantic schemas for goal tracker entities

IMPORTANT:
- Field names are snake_case in Python, camelCase in DynamoDB and on input
  (alias_generator), so {"targetValue": 13034431} and target_value=13034431
  are both accepted
- Input models (GoalCreate, NotificationChannelCreate) carry the validation,
  record models mirror what is stored
"""
import enum
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator
from pydantic.alias_generators import to_camel


class ChannelType(str, enum.Enum):
    """Supported notification transports"""
    SMS = "SMS"
    DISCORD = "DISCORD"


class TargetType(str, enum.Enum):
    """What a goal's targetValue measures"""
    EXPERIENCE = "EXPERIENCE"
    LEVEL = "LEVEL"
    KILL_COUNT = "KILL_COUNT"


class Frequency(str, enum.Enum):
    """How often progress toward a goal is sampled and reported"""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class GoalTrackerModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _upper(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


# ============= USERS =============

class User(GoalTrackerModel):
    user_id: str = Field(..., description="Opaque user identifier (uuid4)")
    email: str
    created_at: datetime
    updated_at: datetime


# ============= CHARACTERS =============

class Character(GoalTrackerModel):
    """A RuneScape character (RSN) owned by a user"""
    user_id: str
    character_name: str
    created_at: datetime
    updated_at: datetime


# ============= GOALS =============

class GoalCreate(GoalTrackerModel):
    """
    Goal definition supplied by the caller.

    Exactly one of skill/activity must be set. goal_id is generated when omitted.
    """
    goal_id: Optional[str] = None
    skill: Optional[str] = None
    activity: Optional[str] = None
    target_type: TargetType = TargetType.EXPERIENCE
    target_value: StrictInt = Field(..., gt=0, description="Value to reach, must be positive")
    target_date: Optional[date] = None
    notification_channels: List[ChannelType] = Field(default_factory=list)
    frequency: Frequency = Frequency.DAILY

    @field_validator('target_type', 'frequency', mode='before')
    @classmethod
    def normalize_enum(cls, v):
        return _upper(v)

    @field_validator('notification_channels', mode='before')
    @classmethod
    def normalize_channels(cls, v):
        if v is None:
            return []
        return [_upper(c) for c in v]

    @field_validator('skill', 'activity')
    @classmethod
    def strip_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode='after')
    def check_skill_or_activity(self):
        if (self.skill is None) == (self.activity is None):
            raise ValueError("Exactly one of skill or activity must be provided")
        return self


class Goal(GoalCreate):
    """Stored goal metadata"""
    goal_id: str
    user_id: str
    character_name: str
    created_at: datetime
    updated_at: datetime


# ============= PROGRESS =============

class ProgressSample(GoalTrackerModel):
    """One timestamped measurement of a goal's current value"""
    user_id: str
    character_name: str
    goal_id: str
    progress_value: StrictInt = Field(..., ge=0)
    timestamp: datetime


class LatestProgress(ProgressSample):
    """Denormalized copy of the newest sample"""
    updated_at: Optional[datetime] = None


class EarliestProgress(ProgressSample):
    """Denormalized copy of the oldest sample"""
    updated_at: Optional[datetime] = None


class ProgressPage(GoalTrackerModel):
    """One page of a progress range query"""
    samples: List[ProgressSample] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(
        None, description="Opaque token for the next page, None when exhausted"
    )


# ============= NOTIFICATION CHANNELS =============

class NotificationChannelCreate(GoalTrackerModel):
    channel_type: ChannelType
    identifier: str = Field(..., description="Phone number, Discord webhook/user id, ...")
    is_active: bool = True

    @field_validator('channel_type', mode='before')
    @classmethod
    def normalize_channel_type(cls, v):
        return _upper(v)

    @field_validator('identifier')
    @classmethod
    def identifier_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Identifier cannot be null or empty")
        return v.strip()


class NotificationChannel(NotificationChannelCreate):
    user_id: str
    created_at: datetime
    updated_at: datetime
