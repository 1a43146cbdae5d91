"""
Message delivery.

The welcome send is a single synchronous call whose errors propagate.
The digest batch is sent concurrently on a bounded thread pool; each
send settles independently and a failure is recorded only against its
own recipient.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from .models import DeliveryOutcome, DigestItem

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = int(os.environ.get('DIGEST_SEND_CONCURRENCY', '10'))

WelcomeSender = Callable[[str, str, str], bool]
DigestSender = Callable[[str, str, str], bool]


class Dispatcher:
    """
    Sends welcome and digest messages.

    Args:
        welcome_sender: ``(email, name, intro) -> delivered``
        digest_sender: ``(email, date, news_content) -> delivered``
        max_concurrency: Upper bound on in-flight digest sends
    """

    def __init__(
        self,
        welcome_sender: Optional[WelcomeSender] = None,
        digest_sender: Optional[DigestSender] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    ):
        if welcome_sender is None or digest_sender is None:
            from services import email as email_service
            welcome_sender = welcome_sender or email_service.send_welcome_email
            digest_sender = digest_sender or email_service.send_news_summary_email
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

        self._welcome_sender = welcome_sender
        self._digest_sender = digest_sender
        self.max_concurrency = max_concurrency

    def send_welcome(self, email: str, name: str, intro_text: str) -> bool:
        """
        Send the welcome message.

        Raises:
            Whatever the transport raises
        """
        delivered = bool(self._welcome_sender(email, name, intro_text))
        logger.info(f"Welcome email to {email}: delivered={delivered}")
        return delivered

    def _send_one(self, item: DigestItem) -> DeliveryOutcome:
        try:
            delivered = bool(self._digest_sender(item.email, item.date, item.digest_text))
        except Exception as e:
            logger.error(f"Failed to send news summary to {item.email}: {e}", exc_info=True)
            return DeliveryOutcome(recipient=item.recipient, delivered=False, error=str(e))
        return DeliveryOutcome(recipient=item.recipient, delivered=delivered)

    def send_digest_batch(self, items: Sequence[DigestItem]) -> List[DeliveryOutcome]:
        """
        Send all digests concurrently and wait for every send to settle.

        Returns:
            List[DeliveryOutcome]: One outcome per item, in input order
        """
        if not items:
            return []

        workers = min(self.max_concurrency, len(items))
        logger.info(f"Sending {len(items)} news summary email(s) with {workers} worker(s)")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(self._send_one, items))

        delivered = sum(1 for o in outcomes if o.delivered)
        logger.info(f"News summary sends settled: delivered={delivered}, failed={len(outcomes) - delivered}")
        return outcomes
