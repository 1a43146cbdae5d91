"""
Notification pipelines - core business logic.

Two flows, each a sequence of named durable steps:

Welcome (user.created):
1. Build profile description from the event payload
2. generate-welcome-intro: summarize profile into an intro paragraph
3. send-welcome-email: send intro (or fallback sentence)

Daily news summary (send.daily.news event or daily cron):
1. get-all-users: load recipients (empty -> terminal failure report)
2. fetch-user-news:<email>: watchlist-scoped news, one unscoped fallback;
   a fetch error leaves an empty bundle and the run continues
3. summarize-news:<email>: digest text per recipient
4. send-news-emails: concurrent delivery of every non-absent digest

Per-recipient errors are logged and replaced with placeholders so one
recipient never fails the batch. Welcome send errors propagate.
"""

import logging
from typing import Callable, List, Optional, Sequence

from .content_fetcher import ContentFetcher
from .dispatcher import Dispatcher
from .durable import StepRunner
from .models import (
    ContentBundle,
    DeliveryOutcome,
    DigestItem,
    DigestTick,
    FlowResult,
    Recipient,
    SummaryResult,
    UserCreated,
)
from .summarizer import INTRO_SYSTEM_INSTRUCTION, SummaryMode, Summarizer

logger = logging.getLogger(__name__)

WELCOME_FALLBACK_INTRO = (
    "Thanks for joining Signalist. You now have the tools to track markets "
    "and make smarter moves."
)
WELCOME_SENT_MESSAGE = "Welcome email sent successfully"
NO_USERS_MESSAGE = "No users found for news email"
DIGEST_SENT_MESSAGE = "Daily news summary emails sent successfully"


def unique_recipients(recipients: Sequence[Recipient]) -> List[Recipient]:
    """Drop repeated addresses (case-insensitive), keeping the first occurrence."""
    seen = set()
    unique: List[Recipient] = []
    for recipient in recipients:
        key = recipient.email.lower()
        if key in seen:
            logger.warning(f"Duplicate recipient ignored: {recipient.email}")
            continue
        seen.add(key)
        unique.append(recipient)
    return unique


class NotificationPipeline:
    """
    Orchestrates the welcome and daily news summary flows.

    All collaborators are injectable; defaults use the DynamoDB, Finnhub,
    Bedrock and SES adapters.
    """

    def __init__(
        self,
        recipient_source: Optional[Callable[[], Sequence[Recipient]]] = None,
        watchlist_lookup: Optional[Callable[[str], Sequence[str]]] = None,
        fetcher: Optional[ContentFetcher] = None,
        summarizer: Optional[Summarizer] = None,
        dispatcher: Optional[Dispatcher] = None,
        today: Optional[Callable[[], str]] = None
    ):
        if recipient_source is None or watchlist_lookup is None:
            from services import users as user_service
            recipient_source = recipient_source or user_service.get_all_users_for_news_email
            watchlist_lookup = watchlist_lookup or user_service.get_watchlist_symbols_by_email
        if today is None:
            from services import email as email_service
            today = email_service.get_formatted_today_date

        self.recipient_source = recipient_source
        self.watchlist_lookup = watchlist_lookup
        self.fetcher = fetcher or ContentFetcher()
        self.summarizer = summarizer or Summarizer()
        self.dispatcher = dispatcher or Dispatcher()
        self.today = today

    # ------------------------------------------------------------------
    # Welcome flow
    # ------------------------------------------------------------------

    def welcome_flow(self, payload: UserCreated, steps: Optional[StepRunner] = None) -> FlowResult:
        """
        Send the personalized welcome email for a new user.

        Raises:
            Whatever the welcome send raises (fatal to the flow)
        """
        steps = steps or StepRunner()
        logger.info(f"Welcome flow started for {payload.email} (run {steps.run_id})")

        profile = payload.profile_description()
        intro = steps.run_once(
            'generate-welcome-intro',
            self.summarizer.summarize,
            SummaryMode.INTRO,
            profile,
            INTRO_SYSTEM_INSTRUCTION,
        )
        intro_text = intro or WELCOME_FALLBACK_INTRO
        if not intro:
            logger.warning(f"Using fallback welcome intro for {payload.email}")

        steps.run_once(
            'send-welcome-email',
            self.dispatcher.send_welcome,
            payload.email,
            payload.name,
            intro_text,
        )

        return FlowResult(success=True, message=WELCOME_SENT_MESSAGE)

    # ------------------------------------------------------------------
    # Daily news summary flow
    # ------------------------------------------------------------------

    def fetch_with_fallback(self, recipient: Recipient) -> ContentBundle:
        """
        Scoped fetch, then exactly one unscoped fetch if the result was empty.

        A recipient without watchlist symbols gets a single unscoped fetch.

        Raises:
            ContentFetchError: If a lookup fails (no fallback on errors)
        """
        symbols = list(self.watchlist_lookup(recipient.email) or [])
        bundle = self.fetcher.fetch(recipient, symbols or None)
        if bundle.is_empty and symbols:
            logger.info(f"No watchlist news for {recipient.email}, falling back to general news")
            bundle = self.fetcher.fetch(recipient, None)
        return bundle

    def _fetch_step(self, recipient: Recipient) -> ContentBundle:
        try:
            return self.fetch_with_fallback(recipient)
        except Exception as e:
            logger.error(f"daily-news: error preparing user news for {recipient.email}: {e}", exc_info=True)
            return ContentBundle.failed(recipient)

    def _summarize_step(self, bundle: ContentBundle) -> SummaryResult:
        recipient = bundle.recipient
        try:
            text = self.summarizer.summarize(SummaryMode.DIGEST, bundle.to_json())
        except Exception as e:
            logger.error(f"Failed to summarize news for {recipient.email}: {e}", exc_info=True)
            text = None
        if not text:
            logger.warning(f"No news summary for {recipient.email}, recipient will be skipped")
        return SummaryResult(recipient=recipient, text=text)

    def _send_step(self, summaries: Sequence[SummaryResult]) -> List[DeliveryOutcome]:
        date = self.today()
        items = [
            DigestItem(recipient=s.recipient, date=date, digest_text=s.text)
            for s in summaries
            if not s.is_absent
        ]
        skipped = len(summaries) - len(items)
        if skipped:
            logger.info(f"Skipping {skipped} recipient(s) without a news summary")
        return self.dispatcher.send_digest_batch(items)

    def digest_flow(self, trigger: Optional[DigestTick] = None, steps: Optional[StepRunner] = None) -> FlowResult:
        """
        Send the daily news summary to every subscribed user.

        Args:
            trigger: Ignored; present so event and cron triggers share one signature
            steps: Step runner for this run (a fresh one when omitted)

        Returns:
            FlowResult: success=False only when there are no recipients
        """
        steps = steps or StepRunner()
        logger.info("=" * 70)
        logger.info(f"Daily news summary - Started (run {steps.run_id})")
        logger.info("=" * 70)

        recipients = steps.run_once('get-all-users', self.recipient_source)
        if not recipients:
            logger.warning(NO_USERS_MESSAGE)
            return FlowResult(success=False, message=NO_USERS_MESSAGE)
        recipients = unique_recipients(recipients)

        bundles: List[ContentBundle] = []
        for recipient in recipients:
            bundles.append(steps.run_once(f'fetch-user-news:{recipient.email}', self._fetch_step, recipient))

        summaries: List[SummaryResult] = []
        for bundle in bundles:
            summaries.append(
                steps.run_once(f'summarize-news:{bundle.recipient.email}', self._summarize_step, bundle)
            )

        outcomes: List[DeliveryOutcome] = steps.run_once('send-news-emails', self._send_step, summaries)

        counts = self._summarize_run(recipients, bundles, summaries, outcomes)
        return FlowResult(success=True, message=DIGEST_SENT_MESSAGE, details=counts)

    def _summarize_run(
        self,
        recipients: Sequence[Recipient],
        bundles: Sequence[ContentBundle],
        summaries: Sequence[SummaryResult],
        outcomes: Sequence[DeliveryOutcome]
    ) -> dict:
        counts = {
            'recipients': len(recipients),
            'fetch_failed': sum(1 for b in bundles if b.fetch_failed),
            'summarized': sum(1 for s in summaries if not s.is_absent),
            'delivered': sum(1 for o in outcomes if o.delivered),
            'failed': sum(1 for o in outcomes if not o.delivered),
        }
        logger.info("=" * 70)
        logger.info(f"Daily news summary complete: {counts['recipients']} recipient(s)")
        logger.info(f"  Fetch errors: {counts['fetch_failed']}")
        logger.info(f"  Summarized: {counts['summarized']}")
        logger.info(f"  Delivered: {counts['delivered']}")
        logger.info(f"  Failed: {counts['failed']}")
        logger.info("=" * 70)
        return counts
