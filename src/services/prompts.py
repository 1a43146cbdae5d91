"""
Prompt template management.

Templates for the welcome intro and the daily digest are loaded with the
following priority:
1. S3 override (optional, for copy changes without redeploy)
2. Local filesystem (prompts/ directory packaged with the Lambda)

Templates are cached in memory for warm Lambda invocations with TTL.
"""

import logging
import os
import time
from pathlib import Path
from typing import Dict, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

WELCOME_INTRO_PROMPT = 'welcome_intro.txt'
NEWS_SUMMARY_PROMPT = 'news_summary.txt'

# Cache TTL in seconds (default: 5 minutes)
CACHE_TTL_SECONDS = int(os.environ.get('PROMPT_CACHE_TTL', '300'))

# Module-level cache: {cache_key: (prompt_content, timestamp)}
_prompt_cache: Dict[str, Tuple[str, float]] = {}

s3_config = Config(
    retries={
        'max_attempts': 1,
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

s3_client = boto3.client(
    's3',
    region_name=os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-west-2')),
    config=s3_config
)
logger.info("Prompts S3 client initialized with timeouts: connect=10s, read=30s, max_attempts=1")

PROMPT_BUCKET = os.environ.get('PROMPT_BUCKET')
PROMPT_KEY_PREFIX = os.environ.get('PROMPT_KEY_PREFIX', 'prompts/')

# src/services/prompts.py -> src/prompts/
PROMPTS_DIR = Path(__file__).parent.parent / 'prompts'


def _load_from_filesystem(prompt_name: str) -> str:
    """
    Load prompt from local filesystem.

    Raises:
        FileNotFoundError: If prompt file doesn't exist
    """
    prompt_path = PROMPTS_DIR / prompt_name
    logger.info(f"Loading prompt from filesystem: {prompt_path}")

    with open(prompt_path, 'r', encoding='utf-8') as f:
        content = f.read()

    logger.info(f"Loaded prompt from filesystem: {len(content)} characters")
    return content


def _load_from_s3(prompt_name: str) -> str:
    """
    Load prompt from the S3 override bucket.

    Raises:
        ValueError: If PROMPT_BUCKET not set
        ClientError: If the object cannot be read
    """
    if not PROMPT_BUCKET:
        raise ValueError("PROMPT_BUCKET environment variable not set")

    s3_key = f"{PROMPT_KEY_PREFIX}{prompt_name}"
    logger.info(f"Loading prompt from S3: s3://{PROMPT_BUCKET}/{s3_key}")

    response = s3_client.get_object(
        Bucket=PROMPT_BUCKET,
        Key=s3_key
    )

    content = response['Body'].read().decode('utf-8')
    logger.info(f"Loaded prompt from S3: {len(content)} characters")
    return content


def load_prompt(prompt_name: str, use_cache: bool = True) -> str:
    """
    Load prompt template with caching and fallback.

    Priority: Cache -> S3 override -> Local filesystem

    Args:
        prompt_name: Prompt file name (e.g., "news_summary.txt")
        use_cache: Use cached version if available (default: True)

    Returns:
        str: Prompt template content

    Raises:
        ValueError: If prompt not found
    """
    cache_key = f"prompt:{prompt_name}"
    current_time = time.time()

    if use_cache and cache_key in _prompt_cache:
        cached_content, cached_time = _prompt_cache[cache_key]
        age_seconds = current_time - cached_time

        if age_seconds < CACHE_TTL_SECONDS:
            logger.info(
                f"Using cached prompt: {prompt_name} "
                f"(age: {int(age_seconds)}s, TTL: {CACHE_TTL_SECONDS}s)"
            )
            return cached_content
        logger.info(f"Cache expired for prompt: {prompt_name}, reloading...")

    prompt_content = None

    if PROMPT_BUCKET:
        try:
            prompt_content = _load_from_s3(prompt_name)
            logger.info(f"Using S3 override for prompt: {prompt_name}")
        except (ClientError, ValueError) as e:
            logger.info(
                f"S3 override not available ({e.__class__.__name__}), "
                f"falling back to local filesystem"
            )

    if prompt_content is None:
        try:
            prompt_content = _load_from_filesystem(prompt_name)
        except FileNotFoundError:
            logger.error(
                f"Prompt not found: {prompt_name}. "
                f"Expected location: {PROMPTS_DIR / prompt_name}"
            )
            raise ValueError(
                f"Prompt '{prompt_name}' not found in S3 or local filesystem"
            )

    _prompt_cache[cache_key] = (prompt_content, current_time)

    return prompt_content


def format_prompt(template: str, **variables) -> str:
    """
    Format prompt template with variables.

    Substituted values are inserted literally, so braces in JSON news
    payloads or profile text are not treated as placeholders.

    Raises:
        ValueError: If a required variable is missing from the template

    Example:
        >>> format_prompt("Profile:\\n{user_profile}", user_profile="- Country: US")
        'Profile:\\n- Country: US'
    """
    try:
        return template.format(**variables)
    except KeyError as e:
        missing_var = str(e).strip("'")
        logger.error(f"Missing variable in prompt template: {missing_var}")
        raise ValueError(f"Missing required variable in prompt: {missing_var}")


def render_prompt(prompt_name: str, **variables) -> str:
    """Load a template and substitute its variables."""
    return format_prompt(load_prompt(prompt_name), **variables)


def clear_cache() -> None:
    """Clear the prompt cache."""
    _prompt_cache.clear()
    logger.info("Prompt cache cleared")
