"""
Notification channel store

PK: USER#{userId}   SK: NOTIFICATION#{channelType}

One row per channel type per user by construction: writing the same type
again replaces the previous configuration, so no duplicate check is needed.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from goal_tracker import keys
from goal_tracker.dynamo import GoalTrackerTable
from goal_tracker.exceptions import NotFoundError, ValidationError
from goal_tracker.schemas import ChannelType, NotificationChannel, NotificationChannelCreate
from goal_tracker.stores.base import BaseStore, build_model, timestamps, utc_now
from goal_tracker.stores.user_store import UserStore

logger = logging.getLogger(__name__)


class NotificationChannelStore(BaseStore):

    def __init__(self, table: Optional[GoalTrackerTable] = None, users: Optional[UserStore] = None):
        super().__init__(table)
        self.users = users or UserStore(self.table)

    def create_or_replace_channel(
        self,
        user_id: str,
        channel_type: Union[ChannelType, str],
        identifier: str,
        is_active: bool = True,
    ) -> NotificationChannel:
        """
        Upsert the channel of this type for a user

        createdAt survives a replace, updatedAt is bumped.

        Raises:
            ValidationError: blank identifier or unknown channel type
            NotFoundError: user does not exist
        """
        logger.debug(f"Creating notification channel {channel_type} for user {user_id}")
        pk = keys.user_pk(user_id)
        channel = build_model(NotificationChannelCreate, {
            'channel_type': channel_type,
            'identifier': identifier,
            'is_active': is_active,
        })
        sk = keys.notification_channel_sk(channel.channel_type.value)

        self.users.get_user(user_id)

        now = utc_now().isoformat()
        existing = self.table.get(pk, sk)
        item = {
            'PK': pk,
            'SK': sk,
            'entityType': keys.EntityKind.NOTIFICATION_CHANNEL.value,
            'channelType': channel.channel_type.value,
            'identifier': channel.identifier,
            'isActive': channel.is_active,
            'createdAt': existing['createdAt'] if existing else now,
            'updatedAt': now,
        }
        self.table.put(item)

        action = "Replaced" if existing else "Created"
        logger.info(f"{action} notification channel {channel.channel_type.value} for user {user_id}")
        return self._to_channel(user_id, item)

    def get_channel(self, user_id: str, channel_type: Union[ChannelType, str]) -> NotificationChannel:
        channel_type = _channel_type(channel_type)
        item = self.table.get(keys.user_pk(user_id), keys.notification_channel_sk(channel_type.value))
        if item is None:
            logger.warning(f"Notification channel {channel_type.value} not found for user {user_id}")
            raise NotFoundError(f"Notification channel {channel_type.value} not found for user {user_id}")
        return self._to_channel(user_id, item)

    def list_channels(self, user_id: str) -> List[NotificationChannel]:
        """Every configured channel, active or not; callers filter on is_active"""
        items = self.table.query_all_by_prefix(keys.user_pk(user_id), keys.notification_channel_prefix())
        channels = [self._to_channel(user_id, item) for item in items]
        logger.debug(f"Retrieved {len(channels)} notification channels for user {user_id}")
        return channels

    @staticmethod
    def _to_channel(user_id: str, item: Dict[str, Any]) -> NotificationChannel:
        return NotificationChannel(
            user_id=user_id,
            channel_type=item['channelType'],
            identifier=item['identifier'],
            is_active=item['isActive'],
            **timestamps(item),
        )


def _channel_type(value: Union[ChannelType, str]) -> ChannelType:
    if isinstance(value, ChannelType):
        return value
    try:
        return ChannelType(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown channel type: {value!r}")
