"""
Generative summarization for welcome intros and daily digests.

Each call is one independent inference request. Failures never raise:
they yield None and the caller decides what to do (fallback sentence
for intros, skip the recipient for digests).
"""

import enum
import logging
import time
from typing import Any, Callable, Dict, Optional

from services import prompts as prompt_service

logger = logging.getLogger(__name__)

InferFunc = Callable[[str, str, str], Dict[str, Any]]


class SummaryMode(enum.Enum):
    INTRO = 'intro'
    DIGEST = 'digest'


INTRO_SYSTEM_INSTRUCTION = (
    "You are a concise financial product copywriter. "
    "Keep it warm, on-brand, and under 120 words."
)
DIGEST_SYSTEM_INSTRUCTION = (
    "You summarize financial news succinctly for a daily email. "
    "Keep it scannable with short bullets and one actionable insight."
)

_MODE_SETTINGS = {
    SummaryMode.INTRO: (INTRO_SYSTEM_INSTRUCTION, prompt_service.WELCOME_INTRO_PROMPT, 'user_profile'),
    SummaryMode.DIGEST: (DIGEST_SYSTEM_INSTRUCTION, prompt_service.NEWS_SUMMARY_PROMPT, 'news_data'),
}


def extract_completion_text(response: Any) -> Optional[str]:
    """
    Return the first completion's text, stripped, or None if unusable.

    Accepts the ``{"choices": [{"message": {"content": ...}}]}`` shape.
    """
    if not isinstance(response, dict):
        return None
    choices = response.get('choices') or []
    if not choices or not isinstance(choices[0], dict):
        return None
    content = (choices[0].get('message') or {}).get('content')
    if content is None:
        return None
    text = str(content).strip()
    return text or None


class Summarizer:
    """
    Turns profile text or serialized news into prose.

    Args:
        infer: Inference callable ``(model_id, system_message, user_message) -> response``
        model_id: Model used for every call
    """

    def __init__(self, infer: Optional[InferFunc] = None, model_id: Optional[str] = None):
        if infer is None or model_id is None:
            from integrations import bedrock_inference
            infer = infer or bedrock_inference.infer
            model_id = model_id or bedrock_inference.DEFAULT_MODEL_ID
        self._infer = infer
        self.model_id = model_id

    def build_user_message(self, mode: SummaryMode, context: str) -> str:
        """Render the mode's prompt template around the context."""
        _, template_name, variable = _MODE_SETTINGS[mode]
        return prompt_service.render_prompt(template_name, **{variable: context})

    def summarize(self, mode: SummaryMode, context: str, instruction: Optional[str] = None) -> Optional[str]:
        """
        Summarize context in the given mode.

        Args:
            mode: SummaryMode.INTRO (profile text) or SummaryMode.DIGEST (serialized news)
            context: Prompt context
            instruction: System instruction; defaults to the mode's instruction

        Returns:
            Optional[str]: Trimmed text, or None if the call failed or returned nothing
        """
        system_message = instruction or _MODE_SETTINGS[mode][0]
        start_time = time.time()

        try:
            user_message = self.build_user_message(mode, context)
            response = self._infer(self.model_id, system_message, user_message)
        except Exception as e:
            logger.error(f"Summarization failed ({mode.value}): {e}", exc_info=True)
            return None

        text = extract_completion_text(response)
        if text is None:
            logger.warning(f"Summarization returned no usable text ({mode.value})")
            return None

        logger.info(
            f"Summarization completed ({mode.value}): "
            f"length={len(text)}, time={time.time() - start_time:.3f}s"
        )
        return text
