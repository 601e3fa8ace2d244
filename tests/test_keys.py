"""
Unit tests for key construction and sort-key parsing

Tests cover:
- PK/SK builders for every entity kind
- Key segment validation (blank, '#', reserved words)
- parse_sort_key dispatch and round trips
- Timestamp normalisation and ordering
"""
from datetime import datetime, timedelta, timezone

import pytest

from goal_tracker import keys
from goal_tracker.exceptions import ValidationError
from goal_tracker.keys import EntityKind


# ============================================================================
# Builders
# ============================================================================

class TestKeyBuilders:
    """Exact key strings for each entity kind"""

    def test_user_pk(self):
        assert keys.user_pk("U1") == "USER#U1"

    def test_user_metadata_sk(self):
        assert keys.user_metadata_sk() == "METADATA"

    def test_notification_channel_sk(self):
        assert keys.notification_channel_sk("SMS") == "NOTIFICATION#SMS"

    def test_character_metadata_sk(self):
        assert keys.character_metadata_sk("PlayerOne") == "CHARACTER#METADATA#PlayerOne"

    def test_goal_metadata_sk(self):
        assert keys.goal_metadata_sk("PlayerOne", "G1") == "CHARACTER#PlayerOne#GOAL#METADATA#G1"

    def test_progress_sk(self):
        sk = keys.progress_sk("PlayerOne", "G1", "2025-01-01T00:00:00Z")
        assert sk == "CHARACTER#PlayerOne#GOAL#G1#2025-01-01T00:00:00Z"

    def test_latest_and_earliest_sk(self):
        assert keys.latest_progress_sk("PlayerOne", "G1") == "CHARACTER#PlayerOne#GOAL#G1#LATEST"
        assert keys.earliest_progress_sk("PlayerOne", "G1") == "CHARACTER#PlayerOne#GOAL#G1#EARLIEST"

    def test_prefixes(self):
        assert keys.notification_channel_prefix() == "NOTIFICATION#"
        assert keys.character_metadata_prefix() == "CHARACTER#METADATA#"
        assert keys.goal_metadata_prefix("PlayerOne") == "CHARACTER#PlayerOne#GOAL#METADATA#"
        assert keys.progress_prefix("PlayerOne", "G1") == "CHARACTER#PlayerOne#GOAL#G1#"

    def test_progress_prefix_does_not_match_longer_goal_id(self):
        """G1's prefix must not select rows of G10"""
        other = keys.latest_progress_sk("PlayerOne", "G10")
        assert not other.startswith(keys.progress_prefix("PlayerOne", "G1"))

    def test_segments_are_stripped(self):
        assert keys.character_metadata_sk("  PlayerOne ") == "CHARACTER#METADATA#PlayerOne"


# ============================================================================
# Segment validation
# ============================================================================

class TestValidateKeySegment:
    """Identifiers that would corrupt the key space are rejected"""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_rejected(self, value):
        with pytest.raises(ValidationError) as exc_info:
            keys.validate_key_segment(value, "characterName")
        assert "cannot be null or empty" in str(exc_info.value)

    def test_delimiter_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            keys.character_metadata_sk("Player#One")
        assert "cannot contain '#'" in str(exc_info.value)

    @pytest.mark.parametrize("value", ["METADATA", "latest", "Earliest", "GOAL", "CHARACTER", "NOTIFICATION"])
    def test_reserved_words_rejected(self, value):
        with pytest.raises(ValidationError):
            keys.validate_key_segment(value, "goalId")

    def test_blank_user_id_rejected(self):
        with pytest.raises(ValidationError):
            keys.user_pk("")

    def test_non_string_rejected(self):
        with pytest.raises(ValidationError):
            keys.validate_key_segment(123, "goalId")


# ============================================================================
# Parsing
# ============================================================================

class TestParseSortKey:
    """Prefix dispatch to entity kinds"""

    def test_user_metadata(self):
        assert keys.parse_sort_key("METADATA").kind == EntityKind.USER_METADATA

    def test_notification_channel(self):
        parsed = keys.parse_sort_key(keys.notification_channel_sk("DISCORD"))
        assert parsed.kind == EntityKind.NOTIFICATION_CHANNEL
        assert parsed.channel_type == "DISCORD"

    def test_character_metadata(self):
        parsed = keys.parse_sort_key(keys.character_metadata_sk("PlayerOne"))
        assert parsed.kind == EntityKind.CHARACTER_METADATA
        assert parsed.character_name == "PlayerOne"

    @pytest.mark.parametrize("character_name,goal_id", [
        ("PlayerOne", "G1"),
        ("Zezima", "3f2b8c1e-0d4a-4c55-9a57-0e2a1f6b7c90"),
        ("iron man btw", "woodcutting-99"),
    ])
    def test_goal_metadata_round_trip(self, character_name, goal_id):
        """Parsing a built goal key recovers the kind and both identifiers"""
        parsed = keys.parse_sort_key(keys.goal_metadata_sk(character_name, goal_id))
        assert parsed.kind == EntityKind.GOAL_METADATA
        assert parsed.character_name == character_name
        assert parsed.goal_id == goal_id

    def test_latest_progress(self):
        parsed = keys.parse_sort_key(keys.latest_progress_sk("PlayerOne", "G1"))
        assert parsed.kind == EntityKind.LATEST_PROGRESS
        assert (parsed.character_name, parsed.goal_id) == ("PlayerOne", "G1")

    def test_earliest_progress(self):
        parsed = keys.parse_sort_key(keys.earliest_progress_sk("PlayerOne", "G1"))
        assert parsed.kind == EntityKind.EARLIEST_PROGRESS

    def test_progress_sample(self):
        parsed = keys.parse_sort_key(keys.progress_sk("PlayerOne", "G1", "2025-01-02T00:00:00Z"))
        assert parsed.kind == EntityKind.PROGRESS_SAMPLE
        assert parsed.goal_id == "G1"
        assert parsed.timestamp == "2025-01-02T00:00:00Z"

    @pytest.mark.parametrize("sk", [
        "",
        "SOMETHING",
        "NOTIFICATION#",
        "CHARACTER#METADATA#",
        "CHARACTER#PlayerOne#GOAL",
        "CHARACTER#PlayerOne#QUEST#G1#LATEST",
        "CHARACTER#PlayerOne#GOAL#METADATA#G1#extra",
    ])
    def test_unrecognized_keys_rejected(self, sk):
        with pytest.raises(ValidationError):
            keys.parse_sort_key(sk)


# ============================================================================
# Timestamps
# ============================================================================

class TestTimestamps:
    """Fixed-width UTC timestamps inside sort keys"""

    def test_iso_z_string_unchanged(self):
        assert keys.format_timestamp("2025-01-01T00:00:00Z") == "2025-01-01T00:00:00Z"

    def test_offset_converted_to_utc(self):
        assert keys.format_timestamp("2025-01-01T02:00:00+02:00") == "2025-01-01T00:00:00Z"

    def test_naive_datetime_treated_as_utc(self):
        assert keys.format_timestamp(datetime(2025, 1, 1, 12, 30)) == "2025-01-01T12:30:00Z"

    def test_microseconds_truncated(self):
        value = datetime(2025, 1, 1, 0, 0, 0, 999999, tzinfo=timezone.utc)
        assert keys.format_timestamp(value) == "2025-01-01T00:00:00Z"

    def test_invalid_timestamp_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            keys.format_timestamp("yesterday")
        assert "ISO 8601" in str(exc_info.value)

    def test_empty_timestamp_rejected(self):
        with pytest.raises(ValidationError):
            keys.format_timestamp("")

    def test_lexicographic_order_matches_chronological(self):
        start = datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
        moments = [start + timedelta(seconds=s) for s in (0, 1, 59, 3600, 86400 * 40)]
        formatted = [keys.format_timestamp(m) for m in moments]
        assert formatted == sorted(formatted)

    def test_pointer_tags_sort_after_any_timestamp(self):
        prefix = keys.progress_prefix("PlayerOne", "G1")
        assert prefix + keys.MAX_TIMESTAMP < keys.earliest_progress_sk("PlayerOne", "G1")
        assert prefix + keys.MAX_TIMESTAMP < keys.latest_progress_sk("PlayerOne", "G1")
