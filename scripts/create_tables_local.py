#!/usr/bin/env python3
"""
Create the goal tracker DynamoDB table in LocalStack / DynamoDB Local

Usage:
    DYNAMODB_ENDPOINT=http://localhost:4566 python scripts/create_tables_local.py
"""
import logging

import boto3
from botocore.exceptions import ClientError

from goal_tracker.config import get_settings
from goal_tracker.logging_config import configure_logging
from goal_tracker.table_schema import table_definition, ttl_specification

logger = logging.getLogger(__name__)


def create_tables():
    """Create the single goal tracker table with its EmailIndex GSI and TTL"""
    settings = get_settings()

    dynamodb = boto3.client(
        'dynamodb',
        endpoint_url=settings.DYNAMODB_ENDPOINT or 'http://localhost:4566',
        region_name=settings.AWS_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or 'test',
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or 'test'
    )

    table_config = table_definition(settings)
    table_name = table_config['TableName']
    try:
        # Check if table exists
        dynamodb.describe_table(TableName=table_name)
        logger.info(f"Table {table_name} already exists")
    except ClientError as e:
        if e.response['Error']['Code'] == 'ResourceNotFoundException':
            dynamodb.create_table(**table_config)
            dynamodb.get_waiter('table_exists').wait(TableName=table_name)
            logger.info(f"Created table {table_name}")
        else:
            raise

    ttl = dynamodb.describe_time_to_live(TableName=table_name)['TimeToLiveDescription']
    if ttl.get('TimeToLiveStatus') in ('ENABLED', 'ENABLING'):
        logger.info(f"TTL already enabled on {table_name}")
        return
    dynamodb.update_time_to_live(TableName=table_name, **ttl_specification())
    logger.info(f"TTL enabled on {table_name}")


if __name__ == "__main__":
    configure_logging()
    create_tables()
