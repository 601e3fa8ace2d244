"""
User store: user metadata rows and the global email-uniqueness rule

# ============================================================================
# PK: USER#{userId}   SK: METADATA
# Attributes: id, email, createdAt, updatedAt
#
# Email uniqueness is checked through the EmailIndex GSI before the write and
# re-checked after it. The conditional put only protects the generated key,
# so two signups racing on one email can both pass the first check; the
# re-check keeps the oldest row (createdAt, then id) and rolls back the other.
# If the re-check itself fails the row is rolled back too before the error
# propagates. If that delete also fails, the row stays and a retry sees it as
# a duplicate.
# The GSI is eventually consistent, so this stays a best-effort guarantee.
# ============================================================================
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from goal_tracker import keys
from goal_tracker.exceptions import (
    ConditionFailedError,
    DuplicateResourceError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from goal_tracker.schemas import User
from goal_tracker.stores.base import (
    NEW_ITEM_CONDITION,
    NEW_ITEM_NAMES,
    BaseStore,
    require_text,
    timestamps,
    utc_now,
)

logger = logging.getLogger(__name__)


class UserStore(BaseStore):
    """Create and read users"""

    def create_user(self, email: str) -> User:
        """
        Create a new user with a generated id

        Raises:
            ValidationError: email is None or blank
            DuplicateResourceError: a user with this email already exists
        """
        logger.debug(f"Attempting to create user with email: {email}")
        try:
            email = require_text(email, "Email")
        except ValidationError:
            logger.warning("Attempted to create user with null or empty email")
            raise

        if self.find_user_by_email(email) is not None:
            logger.warning(f"Attempted to create user with existing email: {email}")
            raise DuplicateResourceError(f"User already exists with email: {email}")

        user_id = str(uuid.uuid4())
        now = utc_now().isoformat()
        item = {
            'PK': keys.user_pk(user_id),
            'SK': keys.user_metadata_sk(),
            'entityType': keys.EntityKind.USER_METADATA.value,
            'id': user_id,
            'email': email,
            'createdAt': now,
            'updatedAt': now,
        }

        try:
            self.table.conditional_put(item, NEW_ITEM_CONDITION, names=NEW_ITEM_NAMES)
        except ConditionFailedError:
            logger.warning(f"Concurrent attempt to create user with email: {email}")
            raise DuplicateResourceError(f"User already exists with email: {email}")

        try:
            self._resolve_email_race(user_id, email)
        except StoreUnavailableError:
            # Undo the write so a retry is not refused as its own duplicate
            self._delete_user_row(user_id)
            raise

        logger.info(f"Successfully created new user with ID: {user_id} and email: {email}")
        return self._to_user(item)

    def get_user(self, user_id: str) -> User:
        """
        Raises:
            ValidationError: user_id is None or blank
            NotFoundError: no METADATA row for this user
        """
        logger.debug(f"Getting user with ID: {user_id}")
        pk = keys.user_pk(user_id)

        item = self.table.get(pk, keys.user_metadata_sk())
        if item is None:
            logger.warning(f"User not found with ID: {user_id}")
            raise NotFoundError(f"User not found with ID: {user_id}")

        return self._to_user(item)

    def find_user_by_email(self, email: str) -> Optional[User]:
        """Oldest user registered with this email, or None"""
        rows = self._metadata_rows_for_email(require_text(email, "Email"))
        if not rows:
            return None
        return self._to_user(rows[0])

    def _metadata_rows_for_email(self, email: str) -> List[Dict[str, Any]]:
        rows = self.table.query_by_index(
            self.table.settings.EMAIL_INDEX_NAME,
            {'email': email, 'SK': keys.user_metadata_sk()},
        )
        return sorted(rows, key=lambda row: (row['createdAt'], row['id']))

    def _resolve_email_race(self, user_id: str, email: str) -> None:
        """Roll back our row if an older user with the same email shows up after the write"""
        rows = self._metadata_rows_for_email(email)
        if not rows or rows[0]['id'] == user_id:
            return

        logger.warning(
            f"Email {email} claimed concurrently by user {rows[0]['id']}, rolling back user {user_id}"
        )
        self._delete_user_row(user_id)
        raise DuplicateResourceError(f"User already exists with email: {email}")

    def _delete_user_row(self, user_id: str) -> None:
        """Remove a just-written METADATA row, only if it is still ours"""
        try:
            self.table.delete(
                keys.user_pk(user_id),
                keys.user_metadata_sk(),
                condition='#id = :id',
                names={'#id': 'id'},
                values={':id': user_id},
            )
        except ConditionFailedError:
            # Row already gone, nothing to roll back
            logger.info(f"User {user_id} was already removed")

    @staticmethod
    def _to_user(item: Dict[str, Any]) -> User:
        return User(user_id=item['id'], email=item['email'], **timestamps(item))
