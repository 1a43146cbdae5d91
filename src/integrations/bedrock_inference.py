"""
Amazon Bedrock Runtime Inference Module

This module provides a simple interface for running a single chat
completion against a Bedrock foundation model using the Converse API.

The response is normalized to a ``{"choices": [{"message": {"content": ...}}]}``
shape so callers can read the first completion without knowing which
model family produced it.

Usage:
    from integrations import bedrock_inference

    response = bedrock_inference.infer(
        model_id=bedrock_inference.DEFAULT_MODEL_ID,
        system_message="You summarize financial news succinctly.",
        user_message="Summarize: ...",
    )
    print(response["choices"][0]["message"]["content"])
"""

import logging
import os
import time
from typing import Any, Dict

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

# Configure logging
logger = logging.getLogger(__name__)


# ============================================================================
# Custom Exception Classes
# ============================================================================

class ConfigurationError(Exception):
    """Raised when module configuration is invalid or missing."""
    pass


class ModelNotFoundException(Exception):
    """Raised when the requested model is not available in this account/region."""
    pass


class ThrottlingException(Exception):
    """Raised when Bedrock API requests are throttled."""
    pass


class ValidationException(Exception):
    """Raised when input validation fails."""
    pass


# ============================================================================
# Module-Level Configuration and Initialization
# ============================================================================

def _read_model_id() -> str:
    """
    Read and validate BEDROCK_MODEL_ID from environment variables.

    Returns:
        str: The configured model id

    Raises:
        ConfigurationError: If BEDROCK_MODEL_ID is set but blank
    """
    model_id = os.environ.get('BEDROCK_MODEL_ID', 'anthropic.claude-3-haiku-20240307-v1:0').strip()

    if not model_id:
        raise ConfigurationError(
            "BEDROCK_MODEL_ID environment variable is set but empty. "
            "Unset it to use the default model or provide a valid model id."
        )

    logger.info(f"Bedrock model configured: {model_id}")
    return model_id


def _initialize_bedrock_client():
    """
    Initialize boto3 Bedrock Runtime client with timeout configuration.

    Returns:
        boto3.client: Configured Bedrock Runtime client
    """
    # No client-side retries: the pipeline step is retried as a whole
    client_config = Config(
        retries={
            'max_attempts': 0,
            'mode': 'standard'
        },
        connect_timeout=10,
        read_timeout=120
    )

    region = os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-west-2'))

    client = boto3.client(
        'bedrock-runtime',
        region_name=region,
        config=client_config
    )

    logger.info(
        f"Bedrock Runtime client initialized: region={region}, "
        f"connect_timeout=10s, read_timeout=120s, max_attempts=0 (no retries)"
    )
    return client


MAX_TOKENS = int(os.environ.get('BEDROCK_MAX_TOKENS', '1000'))
TEMPERATURE = float(os.environ.get('BEDROCK_TEMPERATURE', '0.7'))

# Initialize at module import time (thread-safe, reused across invocations)
try:
    DEFAULT_MODEL_ID = _read_model_id()
    bedrock_client = _initialize_bedrock_client()
except ConfigurationError as e:
    logger.error(f"Module initialization failed: {e}")
    raise


# ============================================================================
# Core Inference Functions
# ============================================================================

def _extract_text(response: Dict[str, Any]) -> str:
    """
    Concatenate the text blocks of a Converse response.

    Non-text blocks (tool use, images) are ignored.
    """
    message = response.get('output', {}).get('message', {})
    parts = [
        block['text']
        for block in message.get('content', [])
        if isinstance(block, dict) and isinstance(block.get('text'), str)
    ]
    return "".join(parts)


def infer(model_id: str, system_message: str, user_message: str) -> Dict[str, Any]:
    """
    Run a single-turn chat completion on a Bedrock model.

    Args:
        model_id: Bedrock model id (e.g. "anthropic.claude-3-haiku-20240307-v1:0")
        system_message: System instruction for the model
        user_message: User turn content (required, non-empty string)

    Returns:
        dict: ``{"choices": [{"message": {"role": "assistant", "content": str}}],
        "stop_reason": str, "usage": dict}``. ``choices`` is empty when the
        model produced no text.

    Raises:
        ValidationException: If arguments are invalid or Bedrock rejects the request
        ModelNotFoundException: If the model cannot be found or accessed
        ThrottlingException: If requests are being throttled
        ClientError: For other AWS service errors
    """
    start_time = time.time()

    if not model_id or not isinstance(model_id, str):
        raise ValidationException(f"model_id must be a non-empty string. Got: {model_id!r}")

    if not user_message or not isinstance(user_message, str):
        raise ValidationException(
            f"user_message must be a non-empty string. Got: {type(user_message).__name__}"
        )

    request = {
        'modelId': model_id,
        'messages': [
            {'role': 'user', 'content': [{'text': user_message}]}
        ],
        'inferenceConfig': {
            'maxTokens': MAX_TOKENS,
            'temperature': TEMPERATURE,
        },
    }
    if system_message:
        request['system'] = [{'text': system_message}]

    logger.info(
        f"Invoking model: model_id={model_id}, "
        f"system_length={len(system_message or '')}, user_length={len(user_message)}"
    )

    try:
        response = bedrock_client.converse(**request)
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))

        # Map AWS errors to domain-specific exceptions
        if error_code in ('ResourceNotFoundException', 'AccessDeniedException'):
            logger.error(f"Model not available: model_id={model_id}, error={error_message}")
            raise ModelNotFoundException(
                f"Model not available: {model_id}. "
                f"Verify model access is enabled in this region. Error: {error_message}"
            )
        elif error_code == 'ThrottlingException':
            logger.error(f"Request throttled: {error_message}")
            raise ThrottlingException(f"Request throttled by Bedrock service: {error_message}")
        elif error_code == 'ValidationException':
            logger.error(f"Request rejected: {error_message}")
            raise ValidationException(f"Bedrock rejected the request: {error_message}")
        else:
            logger.error(
                f"Inference failed: error_code={error_code}, "
                f"error_message={error_message}, model_id={model_id}"
            )
            raise

    text = _extract_text(response)
    choices = []
    if text:
        choices.append({'message': {'role': 'assistant', 'content': text}})
    else:
        logger.warning(f"Model returned no text: stop_reason={response.get('stopReason')}")

    execution_time = time.time() - start_time
    logger.info(
        f"Inference succeeded: response_length={len(text)}, "
        f"stop_reason={response.get('stopReason')}, execution_time={execution_time:.2f}s"
    )

    return {
        'choices': choices,
        'stop_reason': response.get('stopReason'),
        'usage': response.get('usage', {}),
    }
