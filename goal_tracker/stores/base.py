"""Shared plumbing for the store classes"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from goal_tracker import dynamo
from goal_tracker.dynamo import GoalTrackerTable
from goal_tracker.exceptions import ValidationError

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)

# A brand new (PK, SK): fails if any item already holds the key
NEW_ITEM_CONDITION = 'attribute_not_exists(#pk) AND attribute_not_exists(#sk)'
NEW_ITEM_NAMES = {'#pk': dynamo.PK, '#sk': dynamo.SK}


class BaseStore:
    """Holds the table client; defaults to the module-level db_client"""

    def __init__(self, table: Optional[GoalTrackerTable] = None):
        self.table = table or dynamo.db_client


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_model(model_cls: Type[M], data: Any) -> M:
    """Validate input into model_cls, re-raising pydantic failures as ValidationError"""
    if isinstance(data, model_cls):
        return data
    try:
        if isinstance(data, BaseModel):
            data = data.model_dump()
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        logger.warning(f"Invalid {model_cls.__name__}: {str(e)}")
        raise ValidationError(str(e)) from e


def require_text(value: Optional[str], field: str) -> str:
    """Non-blank string check for values that never become key segments"""
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} cannot be null or empty")
    return value.strip()


def timestamps(item: Dict[str, Any]) -> Dict[str, Any]:
    return {'created_at': item['createdAt'], 'updated_at': item['updatedAt']}
