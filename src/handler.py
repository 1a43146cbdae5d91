"""
AWS Lambda handler for Signalist notification triggers.

Thin orchestration layer: turns the inbound Lambda event into a trigger
name and data, then dispatches it through the trigger registry to the
bound NotificationPipeline flow.

Supported events:
    {"name": "app/user.created", "data": {...}}        direct invoke
    {"detail-type": "app/user.created", "detail": {...}} EventBridge custom event
    {"name": "app/send.daily.news"}                    direct invoke
    {"source": "aws.events", "detail-type": "Scheduled Event", ...}
                                                       daily 12:00 UTC rule
"""

import json
import logging
import os
from typing import Any, Dict, Tuple

from domain.models import DigestTick, UserCreated
from domain.pipeline import NotificationPipeline
from domain.triggers import (
    CRON_TRIGGER,
    InvalidPayloadError,
    TriggerDescriptor,
    TriggerRegistry,
    UnknownTriggerError,
)

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

ENVIRONMENT = os.environ.get('ENVIRONMENT', 'dev')

USER_CREATED_EVENT = 'app/user.created'
SEND_DAILY_NEWS_EVENT = 'app/send.daily.news'

SIGN_UP_EMAIL = TriggerDescriptor(
    function_id='sign-up-email',
    events=(USER_CREATED_EVENT,),
)
DAILY_NEWS_SUMMARY = TriggerDescriptor(
    function_id='daily-news-summary',
    events=(SEND_DAILY_NEWS_EVENT,),
    cron='0 12 * * *',
)


def build_registry(pipeline: NotificationPipeline) -> TriggerRegistry:
    """Bind both flows to their triggers."""
    registry = TriggerRegistry()
    registry.register(
        SIGN_UP_EMAIL,
        handler=pipeline.welcome_flow,
        payload_factory=UserCreated.from_event_data,
    )
    registry.register(
        DAILY_NEWS_SUMMARY,
        handler=pipeline.digest_flow,
        payload_factory=lambda data: DigestTick(),
    )
    return registry


# Initialize once at module level (reused across invocations)
pipeline = NotificationPipeline()
registry = build_registry(pipeline)


def parse_trigger(event: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """
    Extract trigger name and data from a Lambda event.

    Raises:
        UnknownTriggerError: If the event shape is not recognized
    """
    if not isinstance(event, dict):
        raise UnknownTriggerError(f"Unsupported trigger: {type(event).__name__}")

    if event.get('source') == 'aws.events' and event.get('detail-type') == 'Scheduled Event':
        return CRON_TRIGGER, {}

    if event.get('name'):
        return event['name'], event.get('data') or {}

    if event.get('detail-type'):
        return event['detail-type'], event.get('detail') or {}

    raise UnknownTriggerError(f"Unsupported trigger: keys={sorted(event.keys())}")


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Run the flow bound to the inbound trigger.

    Args:
        event: Lambda event (direct invoke or EventBridge)
        context: Lambda context

    Returns:
        Dict with success and message

    Errors raised by a flow propagate, so Lambda's own retry applies.
    """
    logger.info(f"Environment: {ENVIRONMENT}")

    try:
        trigger_name, data = parse_trigger(event)
        logger.info(f"Received trigger: {trigger_name}")
        result = registry.dispatch(trigger_name, data)
    except (UnknownTriggerError, InvalidPayloadError) as e:
        logger.error(f"Rejected event: {e}")
        return {'success': False, 'message': str(e)}

    logger.info(f"Flow finished: success={result.success}, message={result.message}")
    return result.to_dict()


def health_check(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Simple health check endpoint for monitoring.
    """
    from integrations import bedrock_inference
    from services import email as email_service
    from services import news as news_service

    return {
        'statusCode': 200,
        'body': json.dumps({
            'status': 'healthy',
            'environment': ENVIRONMENT,
            'model': bedrock_inference.DEFAULT_MODEL_ID,
            'newsConfigured': bool(news_service.FINNHUB_API_KEY),
            'sender': email_service.SES_SENDER,
            'triggers': [d.function_id for d in registry.descriptors],
        })
    }
