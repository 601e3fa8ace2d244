"""
DynamoDB operations for the goal tracker table

Thin wrapper over the boto3 Table resource exposing the primitives the stores
need:
- conditional_put / put / get / delete
- query_by_prefix / query_range (begins_with / BETWEEN on SK, paginated)
- query_by_index (equality lookup on a GSI, used for email uniqueness)

botocore errors never leak out: a failed ConditionExpression becomes
ConditionFailedError, everything else StoreUnavailableError.
"""
import base64
import binascii
import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import boto3
from boto3.dynamodb.conditions import Key
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from goal_tracker.config import Settings, get_settings
from goal_tracker.exceptions import ConditionFailedError, StoreUnavailableError, ValidationError

logger = logging.getLogger(__name__)

PK = 'PK'
SK = 'SK'

CONDITIONAL_CHECK_FAILED = 'ConditionalCheckFailedException'

Item = Dict[str, Any]


class GoalTrackerTable:
    """DynamoDB table client with lazy initialization"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._dynamodb = None
        self._table = None

    @property
    def dynamodb(self):
        """Lazy initialization of DynamoDB resource"""
        if self._dynamodb is None:
            kwargs = {
                'region_name': self.settings.AWS_REGION,
                'config': Config(retries={
                    'max_attempts': self.settings.DYNAMODB_MAX_RETRIES,
                    'mode': 'standard',
                }),
            }

            # Only use endpoint_url for LocalStack / DynamoDB Local
            if self.settings.DYNAMODB_ENDPOINT:
                kwargs['endpoint_url'] = self.settings.DYNAMODB_ENDPOINT

            # Only pass explicit credentials if we're in LocalStack mode (endpoint set)
            # In Lambda/ECS, boto3 automatically uses the IAM role
            if self.settings.DYNAMODB_ENDPOINT and self.settings.AWS_ACCESS_KEY_ID:
                kwargs['aws_access_key_id'] = self.settings.AWS_ACCESS_KEY_ID
                kwargs['aws_secret_access_key'] = self.settings.AWS_SECRET_ACCESS_KEY
                logger.info("Using explicit AWS credentials (LocalStack mode)")
            else:
                logger.info("Using default AWS credential chain")

            self._dynamodb = boto3.resource('dynamodb', **kwargs)
        return self._dynamodb

    @property
    def table(self):
        if self._table is None:
            self._table = self.dynamodb.Table(self.settings.GOAL_TRACKER_TABLE_NAME)
        return self._table

    @property
    def table_name(self) -> str:
        return self.settings.GOAL_TRACKER_TABLE_NAME

    # ============= WRITES =============

    def conditional_put(
        self,
        item: Item,
        condition: str,
        names: Optional[Dict[str, str]] = None,
        values: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Put an item only if the ConditionExpression holds

        Raises:
            ConditionFailedError: condition evaluated to false
            StoreUnavailableError: any other DynamoDB failure
        """
        params = {
            'Item': dynamodb_dict(item),
            'ConditionExpression': condition,
        }
        if names:
            params['ExpressionAttributeNames'] = names
        if values:
            params['ExpressionAttributeValues'] = dynamodb_dict(values)

        try:
            self.table.put_item(**params)
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise ConditionFailedError(
                    f"Condition failed for {item.get(PK)}/{item.get(SK)}"
                ) from e
            raise _unavailable('put_item', item.get(PK), item.get(SK), e)
        except BotoCoreError as e:
            raise _unavailable('put_item', item.get(PK), item.get(SK), e)

    def put(self, item: Item) -> None:
        """Unconditional upsert"""
        try:
            self.table.put_item(Item=dynamodb_dict(item))
        except (ClientError, BotoCoreError) as e:
            raise _unavailable('put_item', item.get(PK), item.get(SK), e)

    def delete(
        self,
        pk: str,
        sk: str,
        condition: Optional[str] = None,
        names: Optional[Dict[str, str]] = None,
        values: Optional[Dict[str, Any]] = None,
    ) -> None:
        params: Dict[str, Any] = {'Key': {PK: pk, SK: sk}}
        if condition:
            params['ConditionExpression'] = condition
        if names:
            params['ExpressionAttributeNames'] = names
        if values:
            params['ExpressionAttributeValues'] = dynamodb_dict(values)

        try:
            self.table.delete_item(**params)
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise ConditionFailedError(f"Condition failed deleting {pk}/{sk}") from e
            raise _unavailable('delete_item', pk, sk, e)
        except BotoCoreError as e:
            raise _unavailable('delete_item', pk, sk, e)

    # ============= READS =============

    def get(self, pk: str, sk: str, consistent: bool = True) -> Optional[Item]:
        """Point read, None when the item does not exist"""
        try:
            response = self.table.get_item(Key={PK: pk, SK: sk}, ConsistentRead=consistent)
        except (ClientError, BotoCoreError) as e:
            raise _unavailable('get_item', pk, sk, e)

        if 'Item' not in response:
            return None
        return python_dict(response['Item'])

    def query_by_prefix(
        self,
        pk: str,
        prefix: str,
        page_token: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Item], Optional[str]]:
        """
        One page of items whose SK begins with prefix, ascending by SK

        Returns:
            (items, next_page_token) - token is None on the last page
        """
        condition = Key(PK).eq(pk) & Key(SK).begins_with(prefix)
        start_key = decode_page_token(page_token, pk, sk_prefix=prefix) if page_token else None
        return self._query_page(condition, pk, start_key, limit)

    def query_range(
        self,
        pk: str,
        low_sk: str,
        high_sk: str,
        page_token: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Item], Optional[str]]:
        """One page of items with low_sk <= SK <= high_sk, ascending by SK"""
        condition = Key(PK).eq(pk) & Key(SK).between(low_sk, high_sk)
        start_key = decode_page_token(page_token, pk, low_sk=low_sk, high_sk=high_sk) if page_token else None
        return self._query_page(condition, pk, start_key, limit)

    def query_all_by_prefix(self, pk: str, prefix: str) -> List[Item]:
        """Every item whose SK begins with prefix, following all pages"""
        items: List[Item] = []
        token = None
        while True:
            page, token = self.query_by_prefix(pk, prefix, page_token=token)
            items.extend(page)
            if token is None:
                return items

    def query_by_index(self, index_name: str, conditions: Dict[str, Any]) -> List[Item]:
        """
        Equality query on a GSI, e.g. {'email': e, 'SK': 'METADATA'} on EmailIndex

        GSI reads are eventually consistent.
        """
        if not conditions:
            raise ValidationError("query_by_index requires at least one condition")

        key_condition = None
        for name, value in conditions.items():
            clause = Key(name).eq(value)
            key_condition = clause if key_condition is None else key_condition & clause

        items: List[Item] = []
        params: Dict[str, Any] = {
            'IndexName': index_name,
            'KeyConditionExpression': key_condition,
        }
        try:
            while True:
                response = self.table.query(**params)
                items.extend(python_dict(i) for i in response.get('Items', []))
                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    return items
                params['ExclusiveStartKey'] = last_key
        except (ClientError, BotoCoreError) as e:
            raise _unavailable(f'query {index_name}', None, None, e)

    def _query_page(
        self,
        key_condition,
        pk: str,
        start_key: Optional[Item],
        limit: Optional[int],
    ) -> Tuple[List[Item], Optional[str]]:
        params: Dict[str, Any] = {
            'KeyConditionExpression': key_condition,
            'ScanIndexForward': True,
            'Limit': limit or self.settings.QUERY_PAGE_SIZE,
        }
        if start_key:
            params['ExclusiveStartKey'] = start_key

        try:
            response = self.table.query(**params)
        except (ClientError, BotoCoreError) as e:
            raise _unavailable('query', pk, None, e)

        items = [python_dict(i) for i in response.get('Items', [])]
        last_key = response.get('LastEvaluatedKey')
        return items, encode_page_token(last_key) if last_key else None


# Global instance
db_client = GoalTrackerTable()


# ============= PAGE TOKENS =============

def encode_page_token(last_evaluated_key: Dict[str, Any]) -> str:
    """Opaque continuation token: url-safe base64 of the LastEvaluatedKey JSON"""
    payload = json.dumps(python_dict(last_evaluated_key), sort_keys=True, separators=(',', ':'))
    return base64.urlsafe_b64encode(payload.encode('utf-8')).decode('ascii')


def decode_page_token(
    token: str,
    pk: str,
    sk_prefix: Optional[str] = None,
    low_sk: Optional[str] = None,
    high_sk: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Decode a token produced by encode_page_token

    The decoded SK must sit inside the query's key condition (sk_prefix, or
    low_sk..high_sk), otherwise DynamoDB rejects the ExclusiveStartKey.

    Raises:
        ValidationError: malformed token, or token issued for another
            partition or another key range
    """
    try:
        decoded = json.loads(base64.urlsafe_b64decode(token.encode('ascii')).decode('utf-8'))
    except (ValueError, UnicodeError, binascii.Error) as e:
        raise ValidationError(f"Invalid page token: {str(e)}")

    if (
        not isinstance(decoded, dict)
        or not isinstance(decoded.get(PK), str)
        or not isinstance(decoded.get(SK), str)
    ):
        raise ValidationError("Invalid page token: missing key attributes")
    if decoded[PK] != pk:
        raise ValidationError("Invalid page token: issued for a different partition")

    sk = decoded[SK]
    if (
        (sk_prefix is not None and not sk.startswith(sk_prefix))
        or (low_sk is not None and sk < low_sk)
        or (high_sk is not None and sk > high_sk)
    ):
        raise ValidationError("Invalid page token: issued for a different key range")
    return decoded


# ============= HELPER FUNCTIONS =============

def dynamodb_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert Python dict to DynamoDB compatible dict (handles Decimal)"""
    return {k: dynamodb_value(v) for k, v in data.items()}


def dynamodb_value(value: Any) -> Any:
    """Convert Python value to DynamoDB compatible value"""
    if isinstance(value, float):
        return Decimal(str(value))
    elif isinstance(value, dict):
        return {k: dynamodb_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [dynamodb_value(item) for item in value]
    return value


def python_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert DynamoDB dict to Python dict (handles Decimal)"""
    return {k: python_value(v) for k, v in data.items()}


def python_value(value: Any) -> Any:
    """Convert DynamoDB value to Python value"""
    if isinstance(value, Decimal):
        return int(value) if value % 1 == 0 else float(value)
    elif isinstance(value, dict):
        return {k: python_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [python_value(item) for item in value]
    return value


def _error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', '')


def _unavailable(operation: str, pk: Optional[str], sk: Optional[str], error: Exception) -> StoreUnavailableError:
    logger.error(f"DynamoDB {operation} failed for {pk}/{sk}: {str(error)}")
    return StoreUnavailableError(f"DynamoDB {operation} failed: {str(error)}")
