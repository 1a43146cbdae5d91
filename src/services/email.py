"""
Email delivery utilities backed by Amazon SES.

This module sends the two Signalist messages (welcome, daily news summary)
and formats the display date used in the digest subject line.
"""

import html
import logging
import os
import re
from datetime import datetime, timezone
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

SES_SENDER = os.environ.get('SES_SENDER', 'Signalist <noreply@signalist.app>')
SES_CONFIGURATION_SET = os.environ.get('SES_CONFIGURATION_SET', '')
APP_URL = os.environ.get('APP_URL', 'https://signalist.app')

# Configure SES client with timeouts to prevent infinite hangs
ses_config = Config(
    retries={
        'max_attempts': 1,
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

ses_client = boto3.client(
    'ses',
    region_name=os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-west-2')),
    config=ses_config
)
logger.info("SES client initialized with timeouts: connect=10s, read=30s, max_attempts=1")

WELCOME_SUBJECT = "Welcome to Signalist - your stock market toolkit is ready!"
NEWS_SUMMARY_SUBJECT = "📈 Market News Summary Today - {date}"

WELCOME_EMAIL_HTML = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #1f2933;">
  <h1>Welcome aboard, {name}!</h1>
  <p>{intro}</p>
  <p>Here is what you can do right now:</p>
  <ul>
    <li>Set up your watchlist to follow your favorite stocks</li>
    <li>Create price and volume alerts so you never miss a move</li>
    <li>Explore the dashboard for trends and the latest market news</li>
  </ul>
  <p><a href="{app_url}">Go to Dashboard</a></p>
  <p>Stay sharp,<br>The Signalist team</p>
</div>
"""

NEWS_SUMMARY_EMAIL_HTML = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #1f2933;">
  <h1>Market News Summary</h1>
  <p>{date}</p>
  {news_content}
  <hr>
  <p>You are receiving this because you subscribed to Signalist daily news.
  <a href="{app_url}">Visit Signalist</a></p>
</div>
"""

_TAG_PATTERN = re.compile(r'<[^>]+>')
_BLANK_LINES = re.compile(r'\n\s*\n+')


def html_to_text(markup: str) -> str:
    """Crude plain-text alternative for an HTML body."""
    text = _TAG_PATTERN.sub('', markup or '')
    text = html.unescape(text)
    return _BLANK_LINES.sub('\n\n', text).strip()


def get_formatted_today_date(now: Optional[datetime] = None) -> str:
    """
    Format today's date for display, in UTC.

    Example:
        >>> get_formatted_today_date(datetime(2026, 10, 19, tzinfo=timezone.utc))
        'Monday, October 19, 2026'
    """
    now = now or datetime.now(timezone.utc)
    return f"{now:%A}, {now:%B} {now.day}, {now.year}"


def _send(to_address: str, subject: str, html_body: str) -> bool:
    """
    Send a single HTML email through SES.

    Returns:
        bool: True when SES accepted the message

    Raises:
        ValueError: If the recipient address is empty
        ClientError: If SES rejects the request
    """
    if not to_address:
        raise ValueError("Recipient address cannot be empty")

    request = {
        'Source': SES_SENDER,
        'Destination': {'ToAddresses': [to_address]},
        'Message': {
            'Subject': {'Data': subject, 'Charset': 'UTF-8'},
            'Body': {
                'Html': {'Data': html_body, 'Charset': 'UTF-8'},
                'Text': {'Data': html_to_text(html_body), 'Charset': 'UTF-8'},
            },
        },
    }
    if SES_CONFIGURATION_SET:
        request['ConfigurationSetName'] = SES_CONFIGURATION_SET

    try:
        response = ses_client.send_email(**request)
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))
        logger.error(
            f"Failed to send email: to={to_address}, subject={subject!r}, "
            f"error_code={error_code}, error_message={error_message}"
        )
        raise

    logger.info(f"Email sent: to={to_address}, message_id={response.get('MessageId')}")
    return bool(response.get('MessageId'))


def send_welcome_email(email: str, name: str, intro: str) -> bool:
    """
    Send the personalized welcome email.

    Args:
        email: Recipient address
        name: Recipient display name (falls back to "there")
        intro: Generated intro paragraph (plain text)

    Returns:
        bool: True when SES accepted the message
    """
    body = WELCOME_EMAIL_HTML.format(
        name=html.escape(name or 'there'),
        intro=html.escape(intro or ''),
        app_url=APP_URL,
    )
    return _send(email, WELCOME_SUBJECT, body)


def send_news_summary_email(email: str, date: str, news_content: str) -> bool:
    """
    Send the daily news summary email.

    Args:
        email: Recipient address
        date: Display date (see get_formatted_today_date)
        news_content: Generated digest body (simple HTML)

    Returns:
        bool: True when SES accepted the message
    """
    body = NEWS_SUMMARY_EMAIL_HTML.format(
        date=html.escape(date),
        news_content=news_content,
        app_url=APP_URL,
    )
    return _send(email, NEWS_SUMMARY_SUBJECT.format(date=date), body)
