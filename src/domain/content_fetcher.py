"""
Per-recipient content retrieval.

The fetcher performs exactly one lookup per call and never retries.
Falling back from scoped to unscoped news when the scoped result is
empty is the orchestrator's decision (see NotificationPipeline).
"""

import logging
from typing import Callable, List, Optional, Sequence

from .models import Article, ContentBundle, Recipient

logger = logging.getLogger(__name__)

NewsSource = Callable[[Optional[Sequence[str]]], List[Article]]


class ContentFetchError(Exception):
    """Raised when the news backend fails for a recipient."""
    pass


def normalize_symbols(symbols: Optional[Sequence[str]]) -> List[str]:
    """Trim, upper-case and de-duplicate symbols, keeping first-seen order."""
    normalized: List[str] = []
    for symbol in symbols or []:
        if not isinstance(symbol, str):
            continue
        symbol = symbol.strip().upper()
        if symbol and symbol not in normalized:
            normalized.append(symbol)
    return normalized


class ContentFetcher:
    """
    Retrieves a ContentBundle for one recipient.

    Args:
        news_source: Callable taking a symbol list (or None for general news)
                     and returning articles
    """

    def __init__(self, news_source: Optional[NewsSource] = None):
        if news_source is None:
            from services import news as news_service
            news_source = news_service.get_news
        self._news_source = news_source

    def fetch(self, recipient: Recipient, scope_symbols: Optional[Sequence[str]] = None) -> ContentBundle:
        """
        Fetch content for a recipient.

        Args:
            recipient: Owner of the resulting bundle
            scope_symbols: Watchlist symbols; None or empty means unscoped

        Returns:
            ContentBundle: At most MAX_BUNDLE_ARTICLES articles (may be empty)

        Raises:
            ContentFetchError: If the news source raises
        """
        symbols = normalize_symbols(scope_symbols)
        scope = symbols or None

        try:
            articles = self._news_source(scope)
        except Exception as e:
            raise ContentFetchError(
                f"News lookup failed for {recipient.email} "
                f"({'scoped ' + ','.join(symbols) if symbols else 'unscoped'}): {e}"
            ) from e

        bundle = ContentBundle.capped(recipient, articles)
        logger.info(
            f"Fetched {len(bundle.articles)} article(s) for {recipient.email} "
            f"({'scoped' if scope else 'unscoped'})"
        )
        return bundle
