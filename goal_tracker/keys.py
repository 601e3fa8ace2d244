"""
Key builders for the goal tracker single-table design

ANTI-ERROR: Centralize PK/SK construction, never build keys by hand elsewhere.

# ============================================================================
# PK: USER#{userId}
#
# SK:
# - METADATA                                            user metadata
# - NOTIFICATION#{channelType}                          notification channel
# - CHARACTER#METADATA#{characterName}                  character metadata
# - CHARACTER#{characterName}#GOAL#METADATA#{goalId}    goal metadata
# - CHARACTER#{characterName}#GOAL#{goalId}#{timestamp} progress sample
# - CHARACTER#{characterName}#GOAL#{goalId}#LATEST      latest progress
# - CHARACTER#{characterName}#GOAL#{goalId}#EARLIEST    earliest progress
# ============================================================================

Identifiers placed in a key segment must not contain the '#' delimiter and
must not be one of the reserved tags, otherwise two different entities could
share a key (e.g. a character named METADATA would collide with the character
listing prefix).
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from goal_tracker.exceptions import ValidationError

DELIMITER = "#"

USER = "USER"
METADATA = "METADATA"
NOTIFICATION = "NOTIFICATION"
CHARACTER = "CHARACTER"
GOAL = "GOAL"
LATEST = "LATEST"
EARLIEST = "EARLIEST"

RESERVED_SEGMENTS = frozenset({METADATA, NOTIFICATION, CHARACTER, GOAL, LATEST, EARLIEST})

# Fixed width so lexicographic order == chronological order
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
MIN_TIMESTAMP = "0000-01-01T00:00:00Z"
MAX_TIMESTAMP = "9999-12-31T23:59:59Z"


class EntityKind(str, enum.Enum):
    """Kind of row stored under a user partition"""
    USER_METADATA = "UserMetadata"
    NOTIFICATION_CHANNEL = "NotificationChannel"
    CHARACTER_METADATA = "CharacterMetadata"
    GOAL_METADATA = "GoalMetadata"
    LATEST_PROGRESS = "LatestProgress"
    EARLIEST_PROGRESS = "EarliestProgress"
    PROGRESS_SAMPLE = "ProgressSample"


@dataclass(frozen=True)
class ParsedSortKey:
    """Result of parse_sort_key: the kind plus whichever identifiers the key embeds"""
    kind: EntityKind
    character_name: Optional[str] = None
    goal_id: Optional[str] = None
    channel_type: Optional[str] = None
    timestamp: Optional[str] = None


def _join(*segments: str) -> str:
    return DELIMITER.join(segments)


def validate_key_segment(value: Optional[str], field: str) -> str:
    """
    Validate an identifier that will become part of a key.

    Returns the stripped value.

    Raises:
        ValidationError: blank, contains '#', or equals a reserved tag
    """
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} cannot be null or empty")
    value = value.strip()
    if DELIMITER in value:
        raise ValidationError(f"{field} cannot contain '{DELIMITER}': {value!r}")
    if value.upper() in RESERVED_SEGMENTS:
        raise ValidationError(f"{field} cannot be the reserved word {value!r}")
    return value


# ============= TIMESTAMPS =============

def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime (second precision)"""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError as e:
            raise ValidationError(f"Invalid timestamp format. Expected ISO 8601: {str(e)}")
    else:
        raise ValidationError("timestamp cannot be null or empty")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).replace(microsecond=0)


def format_timestamp(value: Union[str, datetime]) -> str:
    """Normalise a timestamp to the fixed-width string used inside sort keys"""
    # strftime does not zero-pad years below 1000 on every platform
    return parse_timestamp(value).strftime(TIMESTAMP_FORMAT).rjust(len(MIN_TIMESTAMP), "0")


# ============= PARTITION KEY =============

def user_pk(user_id: str) -> str:
    """PK for every row owned by a user: USER#{user_id}"""
    return _join(USER, validate_key_segment(user_id, "userId"))


# ============= SORT KEYS =============

def user_metadata_sk() -> str:
    return METADATA


def notification_channel_sk(channel_type: str) -> str:
    return _join(NOTIFICATION, validate_key_segment(channel_type, "channelType"))


def character_metadata_sk(character_name: str) -> str:
    return _join(CHARACTER, METADATA, validate_key_segment(character_name, "characterName"))


def goal_metadata_sk(character_name: str, goal_id: str) -> str:
    return _join(
        CHARACTER,
        validate_key_segment(character_name, "characterName"),
        GOAL,
        METADATA,
        validate_key_segment(goal_id, "goalId"),
    )


def progress_sk(character_name: str, goal_id: str, timestamp: Union[str, datetime]) -> str:
    return progress_prefix(character_name, goal_id) + format_timestamp(timestamp)


def latest_progress_sk(character_name: str, goal_id: str) -> str:
    return progress_prefix(character_name, goal_id) + LATEST


def earliest_progress_sk(character_name: str, goal_id: str) -> str:
    return progress_prefix(character_name, goal_id) + EARLIEST


# ============= PREFIXES (begins_with queries) =============

def notification_channel_prefix() -> str:
    return NOTIFICATION + DELIMITER


def character_metadata_prefix() -> str:
    return _join(CHARACTER, METADATA) + DELIMITER


def goal_metadata_prefix(character_name: str) -> str:
    return _join(CHARACTER, validate_key_segment(character_name, "characterName"), GOAL, METADATA) + DELIMITER


def progress_prefix(character_name: str, goal_id: str) -> str:
    """
    Prefix shared by a goal's samples and its LATEST/EARLIEST rows.

    The trailing '#' keeps goal G1 from matching the rows of goal G10.
    """
    return _join(
        CHARACTER,
        validate_key_segment(character_name, "characterName"),
        GOAL,
        validate_key_segment(goal_id, "goalId"),
    ) + DELIMITER


# ============= PARSING =============

def parse_sort_key(sk: str) -> ParsedSortKey:
    """
    Dispatch a sort key to its entity kind.

    Prefixes are matched in a fixed priority order:
    METADATA -> NOTIFICATION# -> CHARACTER#METADATA# -> goal metadata
    -> LATEST/EARLIEST -> progress sample.

    Raises:
        ValidationError: the key does not match any known pattern
    """
    if not sk:
        raise ValidationError("sort key cannot be null or empty")

    if sk == METADATA:
        return ParsedSortKey(EntityKind.USER_METADATA)

    parts = sk.split(DELIMITER)

    if parts[0] == NOTIFICATION and len(parts) == 2 and parts[1]:
        return ParsedSortKey(EntityKind.NOTIFICATION_CHANNEL, channel_type=parts[1])

    if parts[0] == CHARACTER:
        if len(parts) == 3 and parts[1] == METADATA and parts[2]:
            return ParsedSortKey(EntityKind.CHARACTER_METADATA, character_name=parts[2])

        if len(parts) == 5 and parts[2] == GOAL and parts[1]:
            character_name = parts[1]
            if parts[3] == METADATA and parts[4]:
                return ParsedSortKey(
                    EntityKind.GOAL_METADATA, character_name=character_name, goal_id=parts[4]
                )
            goal_id, tail = parts[3], parts[4]
            if goal_id and tail == LATEST:
                return ParsedSortKey(EntityKind.LATEST_PROGRESS, character_name=character_name, goal_id=goal_id)
            if goal_id and tail == EARLIEST:
                return ParsedSortKey(EntityKind.EARLIEST_PROGRESS, character_name=character_name, goal_id=goal_id)
            if goal_id and tail:
                return ParsedSortKey(
                    EntityKind.PROGRESS_SAMPLE,
                    character_name=character_name,
                    goal_id=goal_id,
                    timestamp=tail,
                )

    raise ValidationError(f"Unrecognized sort key: {sk!r}")
