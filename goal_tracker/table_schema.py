"""
DynamoDB table definition for the goal tracker single table

# ============================================================================
# PK (HASH)  USER#{userId}
# SK (RANGE) see goal_tracker.keys
#
# GSI EmailIndex: email (HASH) + SK (RANGE), ProjectionType ALL
#   only METADATA rows carry an email attribute, so the index is sparse
#
# TTL attribute: ttl (epoch seconds), set on progress samples only
# ============================================================================
"""
from typing import Any, Dict, Optional

from goal_tracker.config import Settings, get_settings
from goal_tracker.dynamo import PK, SK

EMAIL_ATTRIBUTE = 'email'
TTL_ATTRIBUTE = 'ttl'


def table_definition(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Keyword arguments for dynamodb.create_table(**...)"""
    settings = settings or get_settings()
    return {
        'TableName': settings.GOAL_TRACKER_TABLE_NAME,
        'KeySchema': [
            {'AttributeName': PK, 'KeyType': 'HASH'},
            {'AttributeName': SK, 'KeyType': 'RANGE'},
        ],
        'AttributeDefinitions': [
            {'AttributeName': PK, 'AttributeType': 'S'},
            {'AttributeName': SK, 'AttributeType': 'S'},
            {'AttributeName': EMAIL_ATTRIBUTE, 'AttributeType': 'S'},
        ],
        'GlobalSecondaryIndexes': [
            {
                'IndexName': settings.EMAIL_INDEX_NAME,
                'KeySchema': [
                    {'AttributeName': EMAIL_ATTRIBUTE, 'KeyType': 'HASH'},
                    {'AttributeName': SK, 'KeyType': 'RANGE'},
                ],
                'Projection': {'ProjectionType': 'ALL'},
            }
        ],
        'BillingMode': 'PAY_PER_REQUEST',
    }


def ttl_specification() -> Dict[str, Any]:
    """Keyword arguments for client.update_time_to_live(TableName=..., **...)"""
    return {
        'TimeToLiveSpecification': {
            'Enabled': True,
            'AttributeName': TTL_ATTRIBUTE,
        }
    }
