"""
User and watchlist lookups backed by DynamoDB.

Tables:
    USERS_TABLE: one item per user, ``email`` and ``name`` attributes.
                 Users with ``newsEmailOptOut`` set are not returned.
    WATCHLIST_TABLE: partition key ``email``, one item per watched symbol
                     (``symbol`` attribute).
"""

import logging
import os
from typing import Any, Dict, List

import boto3
from boto3.dynamodb.conditions import Key
from botocore.config import Config
from botocore.exceptions import ClientError

from domain.models import Recipient

logger = logging.getLogger(__name__)

USERS_TABLE = os.environ.get('USERS_TABLE', 'signalist-users')
WATCHLIST_TABLE = os.environ.get('WATCHLIST_TABLE', 'signalist-watchlist')

dynamodb_config = Config(
    retries={
        'max_attempts': 1,
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

# Table handles do not touch the network until the first request
dynamodb = boto3.resource(
    'dynamodb',
    region_name=os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-west-2')),
    config=dynamodb_config
)
users_table = dynamodb.Table(USERS_TABLE)
watchlist_table = dynamodb.Table(WATCHLIST_TABLE)


def _scan_all(table, **kwargs) -> List[Dict[str, Any]]:
    """Scan a table following pagination."""
    items: List[Dict[str, Any]] = []
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get('Items', []))
        last_key = response.get('LastEvaluatedKey')
        if not last_key:
            return items
        kwargs['ExclusiveStartKey'] = last_key


def _query_all(table, **kwargs) -> List[Dict[str, Any]]:
    """Query a table following pagination."""
    items: List[Dict[str, Any]] = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get('Items', []))
        last_key = response.get('LastEvaluatedKey')
        if not last_key:
            return items
        kwargs['ExclusiveStartKey'] = last_key


def get_all_users_for_news_email() -> List[Recipient]:
    """
    List every user who should receive the daily news email.

    Items without a valid email or with ``newsEmailOptOut`` set are skipped.

    Returns:
        List[Recipient]: Recipients in scan order, unique by email

    Raises:
        ClientError: If the users table cannot be scanned
    """
    try:
        items = _scan_all(
            users_table,
            ProjectionExpression='#email, #name, newsEmailOptOut',
            ExpressionAttributeNames={'#email': 'email', '#name': 'name'},
        )
    except ClientError as e:
        logger.error(f"Failed to scan users table {USERS_TABLE}: {e}")
        raise

    recipients: List[Recipient] = []
    seen = set()
    for item in items:
        if item.get('newsEmailOptOut'):
            continue
        try:
            recipient = Recipient.from_record(item)
        except ValueError as e:
            logger.warning(f"Skipping user record: {e}")
            continue
        key = recipient.email.lower()
        if key in seen:
            continue
        seen.add(key)
        recipients.append(recipient)

    logger.info(f"Loaded {len(recipients)} news email recipient(s) from {len(items)} user record(s)")
    return recipients


def get_watchlist_symbols_by_email(email: str) -> List[str]:
    """
    Return the upper-cased watchlist symbols for a user, in stored order.

    Lookup failures are logged and yield an empty list, so the caller
    falls back to general news.
    """
    if not email:
        return []

    try:
        items = _query_all(
            watchlist_table,
            KeyConditionExpression=Key('email').eq(email),
            ProjectionExpression='symbol',
        )
    except ClientError as e:
        logger.error(f"Failed to load watchlist for {email}: {e}")
        return []

    symbols: List[str] = []
    for item in items:
        symbol = str(item.get('symbol') or '').strip().upper()
        if symbol and symbol not in symbols:
            symbols.append(symbol)
    return symbols
