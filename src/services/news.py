"""
Market news lookups backed by the Finnhub REST API.

Two modes:
    - scoped: company news for each watchlist symbol over the last few days,
      taken round-robin (one article per symbol per round) so a single busy
      ticker cannot crowd out the others;
    - unscoped: general market news, de-duplicated.

Both return validated Article records, at most MAX_ARTICLES.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import requests

from domain.models import Article, InvalidArticleError, MAX_BUNDLE_ARTICLES

logger = logging.getLogger(__name__)

FINNHUB_BASE_URL = os.environ.get('FINNHUB_BASE_URL', 'https://finnhub.io/api/v1')
FINNHUB_API_KEY = os.environ.get('FINNHUB_API_KEY', '')
FINNHUB_TIMEOUT_SEC = int(os.environ.get('FINNHUB_TIMEOUT_SEC', '10'))
NEWS_LOOKBACK_DAYS = int(os.environ.get('NEWS_LOOKBACK_DAYS', '5'))

MAX_ARTICLES = MAX_BUNDLE_ARTICLES

# Module-level session (connection reuse across warm invocations)
session = requests.Session()


class NewsFetchError(Exception):
    """Raised when the news backend cannot be reached or returns an error."""
    pass


def _date_range(now: Optional[datetime] = None) -> Dict[str, str]:
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=NEWS_LOOKBACK_DAYS)
    return {'from': start.strftime('%Y-%m-%d'), 'to': now.strftime('%Y-%m-%d')}


def _get(path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    GET a Finnhub endpoint returning a JSON list.

    Raises:
        NewsFetchError: On missing API key, transport error, HTTP error or bad payload
    """
    if not FINNHUB_API_KEY:
        raise NewsFetchError("FINNHUB_API_KEY environment variable not set")

    url = f"{FINNHUB_BASE_URL}{path}"
    try:
        resp = session.get(
            url,
            params={**params, 'token': FINNHUB_API_KEY},
            timeout=FINNHUB_TIMEOUT_SEC,
        )
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Finnhub request failed: path={path}, params={params}, error={e}")
        raise NewsFetchError("Failed to fetch news") from e

    if not isinstance(payload, list):
        logger.error(f"Unexpected Finnhub payload for {path}: {type(payload).__name__}")
        raise NewsFetchError("Failed to fetch news")
    return payload


def _valid_articles(records: Sequence[Dict[str, Any]], symbol: Optional[str] = None) -> List[Article]:
    articles = []
    for record in records:
        try:
            articles.append(Article.from_record(record, symbol=symbol))
        except InvalidArticleError:
            continue
    return articles


def get_company_news(symbol: str) -> List[Article]:
    """Valid company news for one symbol over the lookback window."""
    records = _get('/company-news', {'symbol': symbol, **_date_range()})
    return _valid_articles(records, symbol=symbol)


def get_general_news() -> List[Article]:
    """
    Valid general market news, de-duplicated by id, url and headline.
    """
    records = _get('/news', {'category': 'general'})

    seen = set()
    unique: List[Article] = []
    for article in _valid_articles(records):
        key = (article.id, article.url, article.headline)
        if key in seen:
            continue
        seen.add(key)
        unique.append(article)
    return unique[:MAX_ARTICLES]


def _round_robin(per_symbol: Dict[str, List[Article]], limit: int) -> List[Article]:
    """Take one article per symbol per round until limit is reached."""
    picked: List[Article] = []
    for round_index in range(limit):
        for articles in per_symbol.values():
            if len(picked) >= limit:
                return picked
            if round_index < len(articles):
                picked.append(articles[round_index])
    return picked


def get_news(symbols: Optional[Sequence[str]] = None) -> List[Article]:
    """
    Fetch news for the given symbols, or general news when none are given.

    Args:
        symbols: Ticker symbols; blank entries are ignored

    Returns:
        List[Article]: At most MAX_ARTICLES articles, newest first for scoped news

    A symbol whose lookup fails is skipped; the call fails only when
    every symbol does.

    Raises:
        NewsFetchError: If the backend cannot be reached
    """
    clean_symbols = []
    for symbol in symbols or []:
        symbol = (symbol or '').strip().upper()
        if symbol and symbol not in clean_symbols:
            clean_symbols.append(symbol)

    if not clean_symbols:
        articles = get_general_news()
        logger.info(f"Fetched {len(articles)} general news article(s)")
        return articles

    per_symbol: Dict[str, List[Article]] = {}
    failed: List[str] = []
    for symbol in clean_symbols:
        try:
            per_symbol[symbol] = get_company_news(symbol)
        except NewsFetchError as e:
            logger.warning(f"Skipping company news for {symbol}: {e}")
            failed.append(symbol)
    if not per_symbol:
        raise NewsFetchError(f"Failed to fetch news for every symbol: {failed}")

    articles = _round_robin(per_symbol, MAX_ARTICLES)
    articles.sort(key=lambda a: a.datetime, reverse=True)
    logger.info(f"Fetched {len(articles)} company news article(s) for {clean_symbols}")
    return articles
