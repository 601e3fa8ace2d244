"""
Progress store: append-only progress samples plus LATEST/EARLIEST pointers

# ============================================================================
# PK: USER#{userId}
# SK: CHARACTER#{characterName}#GOAL#{goalId}#{timestamp}   sample (immutable)
#     CHARACTER#{characterName}#GOAL#{goalId}#LATEST        newest sample copy
#     CHARACTER#{characterName}#GOAL#{goalId}#EARLIEST      oldest sample copy
#
# LATEST/EARLIEST let readers get the current and first-ever value with one
# point read instead of scanning every daily sample. They are maintained with
# conditional puts after the sample insert (not in the same transaction):
#   LATEST   written when absent or stored timestamp <= new timestamp
#   EARLIEST written when absent or stored timestamp >  new timestamp
# A failed condition just means the pointer is already newer/older.
# Re-recording an existing sample replays both pointer writes from the stored
# row before raising ConflictError, so retrying after a failed pointer write
# repairs the pointers.
#
# Timestamps in keys are fixed-width UTC (2025-01-01T00:00:00Z) so ordering by
# SK is chronological, and 'E'/'L' sort after every digit, keeping the
# pointer rows outside any timestamp range.
# ============================================================================
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, Optional, Union

from goal_tracker import keys
from goal_tracker.dynamo import GoalTrackerTable
from goal_tracker.exceptions import ConditionFailedError, ConflictError, NotFoundError, ValidationError
from goal_tracker.schemas import EarliestProgress, LatestProgress, ProgressPage, ProgressSample
from goal_tracker.stores.base import NEW_ITEM_CONDITION, NEW_ITEM_NAMES, BaseStore, build_model, utc_now
from goal_tracker.stores.goal_store import GoalStore

logger = logging.getLogger(__name__)

Timestamp = Union[str, datetime]

POINTER_NAMES = {'#pk': 'PK', '#ts': 'timestamp'}
LATEST_CONDITION = 'attribute_not_exists(#pk) OR #ts <= :ts'
EARLIEST_CONDITION = 'attribute_not_exists(#pk) OR #ts > :ts'


class ProgressStore(BaseStore):

    def __init__(self, table: Optional[GoalTrackerTable] = None, goals: Optional[GoalStore] = None):
        super().__init__(table)
        self.goals = goals or GoalStore(self.table)

    # ============= WRITES =============

    def record_progress(
        self,
        user_id: str,
        character_name: str,
        goal_id: str,
        value: int,
        timestamp: Timestamp,
    ) -> ProgressSample:
        """
        Append a progress sample and refresh the LATEST/EARLIEST pointers

        Raises:
            ValidationError: invalid identifiers, negative value, bad timestamp
            NotFoundError: the goal does not exist
            ConflictError: a sample already exists at this exact timestamp
        """
        pk = keys.user_pk(user_id)
        sk = keys.progress_sk(character_name, goal_id, timestamp)
        ts = keys.format_timestamp(timestamp)
        sample = build_model(ProgressSample, {
            'user_id': user_id,
            'character_name': keys.validate_key_segment(character_name, "characterName"),
            'goal_id': keys.validate_key_segment(goal_id, "goalId"),
            'progress_value': value,
            'timestamp': ts,
        })

        self.goals.get_goal(user_id, sample.character_name, sample.goal_id)

        item = self._progress_item(pk, sk, sample, ts, keys.EntityKind.PROGRESS_SAMPLE)
        item['createdAt'] = utc_now().isoformat()
        ttl = self._ttl(sample.timestamp)
        if ttl is not None:
            item['ttl'] = ttl

        try:
            self.table.conditional_put(item, NEW_ITEM_CONDITION, names=NEW_ITEM_NAMES)
        except ConditionFailedError:
            logger.warning(f"Progress sample already exists at {ts} for goal {goal_id}")
            self._repair_pointers(pk, sk, user_id)
            raise ConflictError(f"Progress already recorded at {ts} for goal {sample.goal_id}")

        self._update_pointers(pk, sample, ts)

        logger.info(f"Recorded progress {sample.progress_value} at {ts} for {user_id}/{sample.character_name}/{sample.goal_id}")
        return sample

    def _update_pointers(self, pk: str, sample: ProgressSample, ts: str) -> None:
        self._update_pointer(
            pk, sample, ts,
            keys.latest_progress_sk(sample.character_name, sample.goal_id),
            keys.EntityKind.LATEST_PROGRESS,
            LATEST_CONDITION,
        )
        self._update_pointer(
            pk, sample, ts,
            keys.earliest_progress_sk(sample.character_name, sample.goal_id),
            keys.EntityKind.EARLIEST_PROGRESS,
            EARLIEST_CONDITION,
        )

    def _repair_pointers(self, pk: str, sk: str, user_id: str) -> None:
        """
        Re-apply the pointer writes for a sample that is already stored

        A retry after a failed pointer write lands here. Both conditional puts
        are idempotent, so replaying them with the stored value is safe.
        """
        existing = self.table.get(pk, sk)
        if existing is None:
            return
        stored = ProgressSample(**self._sample_fields(user_id, existing))
        self._update_pointers(pk, stored, existing['timestamp'])

    def _update_pointer(
        self,
        pk: str,
        sample: ProgressSample,
        ts: str,
        sk: str,
        kind: keys.EntityKind,
        condition: str,
    ) -> None:
        item = self._progress_item(pk, sk, sample, ts, kind)
        item['updatedAt'] = utc_now().isoformat()
        try:
            self.table.conditional_put(item, condition, names=POINTER_NAMES, values={':ts': ts})
            logger.debug(f"{kind.value} for goal {sample.goal_id} moved to {ts}")
        except ConditionFailedError:
            logger.debug(f"{kind.value} for goal {sample.goal_id} kept, {ts} is not past it")

    # ============= READS =============

    def get_latest_progress(self, user_id: str, character_name: str, goal_id: str) -> LatestProgress:
        """Raises NotFoundError if no progress was ever recorded for the goal"""
        item = self.table.get(keys.user_pk(user_id), keys.latest_progress_sk(character_name, goal_id))
        if item is None:
            logger.warning(f"No progress recorded for {user_id}/{character_name}/{goal_id}")
            raise NotFoundError(f"No progress recorded for goal {goal_id}")
        return LatestProgress(**self._sample_fields(user_id, item), updated_at=item.get('updatedAt'))

    def get_earliest_progress(self, user_id: str, character_name: str, goal_id: str) -> EarliestProgress:
        """Raises NotFoundError if no progress was ever recorded for the goal"""
        item = self.table.get(keys.user_pk(user_id), keys.earliest_progress_sk(character_name, goal_id))
        if item is None:
            logger.warning(f"No progress recorded for {user_id}/{character_name}/{goal_id}")
            raise NotFoundError(f"No progress recorded for goal {goal_id}")
        return EarliestProgress(**self._sample_fields(user_id, item), updated_at=item.get('updatedAt'))

    def list_progress(
        self,
        user_id: str,
        character_name: str,
        goal_id: str,
        from_timestamp: Optional[Timestamp] = None,
        to_timestamp: Optional[Timestamp] = None,
        page_token: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ProgressPage:
        """
        One page of samples with from_timestamp <= timestamp <= to_timestamp, oldest first

        Pass the returned next_page_token back (with the same range) to continue.

        Raises:
            ValidationError: bad identifiers/timestamps, from > to, bad token
        """
        pk = keys.user_pk(user_id)
        prefix = keys.progress_prefix(character_name, goal_id)
        low = keys.format_timestamp(from_timestamp) if from_timestamp is not None else keys.MIN_TIMESTAMP
        high = keys.format_timestamp(to_timestamp) if to_timestamp is not None else keys.MAX_TIMESTAMP
        if low > high:
            raise ValidationError(f"from_timestamp {low} is after to_timestamp {high}")
        if limit is not None and limit <= 0:
            raise ValidationError("limit must be positive")

        items, next_token = self.table.query_range(
            pk, prefix + low, prefix + high, page_token=page_token, limit=limit
        )
        samples = [
            ProgressSample(**self._sample_fields(user_id, item))
            for item in items
            if keys.parse_sort_key(item['SK']).kind == keys.EntityKind.PROGRESS_SAMPLE
        ]
        return ProgressPage(samples=samples, next_page_token=next_token)

    def iter_progress(
        self,
        user_id: str,
        character_name: str,
        goal_id: str,
        from_timestamp: Optional[Timestamp] = None,
        to_timestamp: Optional[Timestamp] = None,
        page_token: Optional[str] = None,
    ) -> Iterator[ProgressSample]:
        """Lazily yield every sample in the range, fetching pages on demand"""
        token = page_token
        while True:
            page = self.list_progress(
                user_id, character_name, goal_id,
                from_timestamp=from_timestamp,
                to_timestamp=to_timestamp,
                page_token=token,
            )
            yield from page.samples
            token = page.next_page_token
            if token is None:
                return

    # ============= HELPERS =============

    @staticmethod
    def _progress_item(
        pk: str,
        sk: str,
        sample: ProgressSample,
        ts: str,
        kind: keys.EntityKind,
    ) -> Dict[str, Any]:
        return {
            'PK': pk,
            'SK': sk,
            'entityType': kind.value,
            'characterName': sample.character_name,
            'goalId': sample.goal_id,
            'progressValue': sample.progress_value,
            'timestamp': ts,
        }

    @staticmethod
    def _sample_fields(user_id: str, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'user_id': user_id,
            'character_name': item['characterName'],
            'goal_id': item['goalId'],
            'progress_value': item['progressValue'],
            'timestamp': item['timestamp'],
        }

    def _ttl(self, sample_time: datetime) -> Optional[int]:
        """Expiry (epoch seconds) for a sample, None when retention is disabled"""
        days = self.table.settings.PROGRESS_TTL_DAYS
        if not days:
            return None
        return int((sample_time + timedelta(days=days)).timestamp())
