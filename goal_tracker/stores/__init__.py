"""Store classes, one per entity family, all sharing one GoalTrackerTable"""
from goal_tracker.stores.character_store import CharacterStore
from goal_tracker.stores.goal_store import GoalStore
from goal_tracker.stores.notification_channel_store import NotificationChannelStore
from goal_tracker.stores.progress_store import ProgressStore
from goal_tracker.stores.user_store import UserStore

__all__ = [
    "CharacterStore",
    "GoalStore",
    "NotificationChannelStore",
    "ProgressStore",
    "UserStore",
]
