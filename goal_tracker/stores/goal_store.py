"""
Goal store: goal definitions scoped to a user + character

PK: USER#{userId}   SK: CHARACTER#{characterName}#GOAL#METADATA#{goalId}
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from goal_tracker import keys
from goal_tracker.dynamo import GoalTrackerTable
from goal_tracker.exceptions import ConditionFailedError, ConflictError, NotFoundError
from goal_tracker.schemas import Goal, GoalCreate
from goal_tracker.stores.base import (
    NEW_ITEM_CONDITION,
    NEW_ITEM_NAMES,
    BaseStore,
    build_model,
    timestamps,
    utc_now,
)
from goal_tracker.stores.character_store import CharacterStore

logger = logging.getLogger(__name__)


class GoalStore(BaseStore):

    def __init__(self, table: Optional[GoalTrackerTable] = None, characters: Optional[CharacterStore] = None):
        super().__init__(table)
        self.characters = characters or CharacterStore(self.table)

    def create_goal(
        self,
        user_id: str,
        character_name: str,
        goal_spec: Union[GoalCreate, Dict[str, Any]],
    ) -> Goal:
        """
        Create a goal for a character

        goal_spec accepts snake_case or camelCase keys, e.g.
        {"skill": "Woodcutting", "targetValue": 13034431, "goalId": "G1"}

        Raises:
            ValidationError: malformed goal definition (targetValue <= 0, bad targetDate, ...)
            NotFoundError: the character (or user) does not exist
            ConflictError: a goal with this id already exists
        """
        spec = build_model(GoalCreate, goal_spec)
        goal_id = spec.goal_id if spec.goal_id is not None else str(uuid.uuid4())

        pk = keys.user_pk(user_id)
        sk = keys.goal_metadata_sk(character_name, goal_id)
        character_name = keys.validate_key_segment(character_name, "characterName")
        goal_id = keys.validate_key_segment(goal_id, "goalId")

        self.characters.get_character(user_id, character_name)

        now = utc_now().isoformat()
        item = {
            'PK': pk,
            'SK': sk,
            'entityType': keys.EntityKind.GOAL_METADATA.value,
            'goalId': goal_id,
            'characterName': character_name,
            'targetType': spec.target_type.value,
            'targetValue': spec.target_value,
            'notificationChannels': [c.value for c in spec.notification_channels],
            'frequency': spec.frequency.value,
            'createdAt': now,
            'updatedAt': now,
        }
        # DynamoDB items should not carry nulls
        if spec.skill is not None:
            item['skill'] = spec.skill
        if spec.activity is not None:
            item['activity'] = spec.activity
        if spec.target_date is not None:
            item['targetDate'] = spec.target_date.isoformat()

        try:
            self.table.conditional_put(item, NEW_ITEM_CONDITION, names=NEW_ITEM_NAMES)
        except ConditionFailedError:
            logger.warning(f"Goal {goal_id} already exists for {user_id}/{character_name}")
            raise ConflictError(f"Goal {goal_id} already exists for character {character_name}")

        logger.info(f"Created goal {goal_id} for user {user_id}, character {character_name}")
        return self._to_goal(user_id, item)

    def get_goal(self, user_id: str, character_name: str, goal_id: str) -> Goal:
        item = self.table.get(keys.user_pk(user_id), keys.goal_metadata_sk(character_name, goal_id))
        if item is None:
            logger.warning(f"Goal {goal_id} not found for {user_id}/{character_name}")
            raise NotFoundError(f"Goal {goal_id} not found for character {character_name}")
        return self._to_goal(user_id, item)

    def list_goals(self, user_id: str, character_name: str) -> List[Goal]:
        """All goals of a character, ordered by goal id"""
        items = self.table.query_all_by_prefix(
            keys.user_pk(user_id), keys.goal_metadata_prefix(character_name)
        )
        goals = [self._to_goal(user_id, item) for item in items]
        logger.debug(f"Retrieved {len(goals)} goals for {user_id}/{character_name}")
        return goals

    @staticmethod
    def _to_goal(user_id: str, item: Dict[str, Any]) -> Goal:
        return Goal(
            user_id=user_id,
            goal_id=item['goalId'],
            character_name=item['characterName'],
            skill=item.get('skill'),
            activity=item.get('activity'),
            target_type=item['targetType'],
            target_value=item['targetValue'],
            target_date=item.get('targetDate'),
            notification_channels=item.get('notificationChannels', []),
            frequency=item['frequency'],
            **timestamps(item),
        )
