"""
Character store: RuneScape characters (RSNs) tracked by a user

PK: USER#{userId}   SK: CHARACTER#METADATA#{characterName}
"""
import logging
from typing import Any, Dict, List, Optional

from goal_tracker import keys
from goal_tracker.dynamo import GoalTrackerTable
from goal_tracker.exceptions import ConditionFailedError, ConflictError, NotFoundError
from goal_tracker.schemas import Character
from goal_tracker.stores.base import NEW_ITEM_CONDITION, NEW_ITEM_NAMES, BaseStore, timestamps, utc_now
from goal_tracker.stores.user_store import UserStore

logger = logging.getLogger(__name__)


class CharacterStore(BaseStore):

    def __init__(self, table: Optional[GoalTrackerTable] = None, users: Optional[UserStore] = None):
        super().__init__(table)
        self.users = users or UserStore(self.table)

    def create_character(self, user_id: str, character_name: str) -> Character:
        """
        Raises:
            ValidationError: blank/invalid user id or character name
            NotFoundError: user does not exist
            ConflictError: the user already tracks this character
        """
        pk = keys.user_pk(user_id)
        sk = keys.character_metadata_sk(character_name)
        character_name = keys.validate_key_segment(character_name, "characterName")

        self.users.get_user(user_id)

        now = utc_now().isoformat()
        item = {
            'PK': pk,
            'SK': sk,
            'entityType': keys.EntityKind.CHARACTER_METADATA.value,
            'characterName': character_name,
            'createdAt': now,
            'updatedAt': now,
        }
        try:
            self.table.conditional_put(item, NEW_ITEM_CONDITION, names=NEW_ITEM_NAMES)
        except ConditionFailedError:
            logger.warning(f"Character {character_name} already exists for user {user_id}")
            raise ConflictError(f"Character {character_name} already exists for user {user_id}")

        logger.info(f"Created character {character_name} for user {user_id}")
        return self._to_character(user_id, item)

    def get_character(self, user_id: str, character_name: str) -> Character:
        item = self.table.get(keys.user_pk(user_id), keys.character_metadata_sk(character_name))
        if item is None:
            logger.warning(f"Character {character_name} not found for user {user_id}")
            raise NotFoundError(f"Character {character_name} not found for user {user_id}")
        return self._to_character(user_id, item)

    def list_characters(self, user_id: str) -> List[Character]:
        """All characters of a user, ordered by name"""
        items = self.table.query_all_by_prefix(keys.user_pk(user_id), keys.character_metadata_prefix())
        characters = [self._to_character(user_id, item) for item in items]
        logger.debug(f"Retrieved {len(characters)} characters for user {user_id}")
        return characters

    @staticmethod
    def _to_character(user_id: str, item: Dict[str, Any]) -> Character:
        return Character(user_id=user_id, character_name=item['characterName'], **timestamps(item))
