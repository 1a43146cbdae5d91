"""
Data models for the notification pipelines.

These type-safe data structures define clear contracts between components.
All of them are run-scoped: created when a flow starts, discarded when it ends.
"""

import json
import re
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, Tuple

# Maximum number of articles carried in a single digest
MAX_BUNDLE_ARTICLES = 6

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class InvalidArticleError(ValueError):
    """Raised when a news record is missing the fields a digest needs."""
    pass


def is_valid_email(value: Any) -> bool:
    """Check that value is a string that looks like an email address."""
    return isinstance(value, str) and bool(_EMAIL_PATTERN.match(value.strip()))


# ============================================================================
# Trigger payloads
# ============================================================================

@dataclass(frozen=True)
class UserCreated:
    """
    Payload of the user.created event.

    Attributes:
        email: Address of the newly registered user
        name: Display name
        country: Country the user selected at sign-up
        investment_goals: Free-text investment goals
        risk_tolerance: Risk tolerance label
        preferred_industry: Preferred industry label
    """
    email: str
    name: str
    country: str = ''
    investment_goals: str = ''
    risk_tolerance: str = ''
    preferred_industry: str = ''

    @classmethod
    def from_event_data(cls, data: Dict[str, Any]) -> 'UserCreated':
        """
        Build payload from event data (camelCase or snake_case keys).

        Raises:
            ValueError: If email is missing or invalid
        """
        data = data or {}
        email = (data.get('email') or '').strip()
        if not is_valid_email(email):
            raise ValueError(f"user.created event has no valid email: {email!r}")

        def _field(camel: str, snake: str) -> str:
            value = data.get(camel, data.get(snake))
            return str(value).strip() if value is not None else ''

        return cls(
            email=email,
            name=_field('name', 'name'),
            country=_field('country', 'country'),
            investment_goals=_field('investmentGoals', 'investment_goals'),
            risk_tolerance=_field('riskTolerance', 'risk_tolerance'),
            preferred_industry=_field('preferredIndustry', 'preferred_industry'),
        )

    def profile_description(self) -> str:
        """Profile as labeled lines, used as intro prompt context."""
        return "\n".join([
            f"- Country: {self.country}",
            f"- Investment goals: {self.investment_goals}",
            f"- Risk tolerance: {self.risk_tolerance}",
            f"- Preferred industry: {self.preferred_industry}",
        ])


@dataclass(frozen=True)
class DigestTick:
    """Payload of the daily digest trigger (event or cron). Carries nothing."""
    pass


# ============================================================================
# Run-scoped entities
# ============================================================================

@dataclass(frozen=True)
class Recipient:
    """
    A notification target.

    Attributes:
        email: Delivery address
        display_name: Name used in the greeting (may be empty)
    """
    email: str
    display_name: str = ''

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Recipient':
        """
        Validate a user store record and build a Recipient.

        Raises:
            ValueError: If the record has no valid email
        """
        email = record.get('email')
        if not is_valid_email(email):
            raise ValueError(f"Record has no valid email: {email!r}")
        name = record.get('name') or record.get('display_name') or ''
        return cls(email=email.strip(), display_name=str(name).strip())


@dataclass(frozen=True)
class Article:
    """
    A single news item.

    Attributes:
        id: Upstream article id (0 when unknown)
        headline: Article title
        summary: Short article summary
        source: Publisher name
        url: Link to the full article
        datetime: Publication time (unix seconds)
        category: Upstream category (e.g. "company", "general")
        related: Related ticker symbol, if any
        image: Image URL, if any
    """
    id: int
    headline: str
    summary: str
    source: str
    url: str
    datetime: int
    category: str = ''
    related: str = ''
    image: str = ''

    @classmethod
    def from_record(cls, record: Dict[str, Any], symbol: Optional[str] = None) -> 'Article':
        """
        Validate a raw news record and build an Article.

        Args:
            record: Raw record from the news backend
            symbol: Ticker the record was fetched for (overrides ``related``)

        Raises:
            InvalidArticleError: If headline, summary, url or datetime is missing
        """
        if not isinstance(record, dict):
            raise InvalidArticleError(f"Article record must be a dict, got {type(record).__name__}")

        headline = (record.get('headline') or '').strip()
        summary = (record.get('summary') or '').strip()
        url = (record.get('url') or '').strip()
        published = record.get('datetime')

        if not headline or not summary or not url:
            raise InvalidArticleError("Article is missing headline, summary or url")
        if not isinstance(published, (int, float)) or isinstance(published, bool) or published <= 0:
            raise InvalidArticleError(f"Article has invalid datetime: {published!r}")

        try:
            article_id = int(record.get('id') or 0)
        except (TypeError, ValueError):
            article_id = 0

        return cls(
            id=article_id,
            headline=headline,
            summary=summary,
            source=(record.get('source') or 'Unknown').strip(),
            url=url,
            datetime=int(published),
            category=(record.get('category') or ('company' if symbol else 'general')),
            related=(symbol or record.get('related') or ''),
            image=(record.get('image') or ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ContentBundle:
    """
    Articles gathered for exactly one recipient.

    Attributes:
        recipient: Owner of the bundle
        articles: Ordered articles, at most MAX_BUNDLE_ARTICLES
        fetch_failed: True when this is the placeholder recorded after a fetch error
    """
    recipient: Recipient
    articles: Tuple[Article, ...] = ()
    fetch_failed: bool = False

    def __post_init__(self):
        if len(self.articles) > MAX_BUNDLE_ARTICLES:
            raise ValueError(
                f"ContentBundle holds at most {MAX_BUNDLE_ARTICLES} articles, "
                f"got {len(self.articles)}"
            )

    @classmethod
    def capped(cls, recipient: Recipient, articles) -> 'ContentBundle':
        """Build a bundle keeping only the first MAX_BUNDLE_ARTICLES articles."""
        return cls(recipient=recipient, articles=tuple(articles or ())[:MAX_BUNDLE_ARTICLES])

    @classmethod
    def failed(cls, recipient: Recipient) -> 'ContentBundle':
        """Empty placeholder for a recipient whose fetch raised."""
        return cls(recipient=recipient, articles=(), fetch_failed=True)

    @property
    def is_empty(self) -> bool:
        return not self.articles

    def to_json(self) -> str:
        """Serialize articles for the digest prompt."""
        return json.dumps([a.to_dict() for a in self.articles], indent=2)


@dataclass(frozen=True)
class SummaryResult:
    """
    Summarizer output for one recipient.

    ``text`` is None when summarization failed; such recipients are
    skipped at delivery and never receive a partial message.
    """
    recipient: Recipient
    text: Optional[str] = None

    @property
    def is_absent(self) -> bool:
        return not self.text


@dataclass(frozen=True)
class DigestItem:
    """One digest send request."""
    recipient: Recipient
    date: str
    digest_text: str

    @property
    def email(self) -> str:
        return self.recipient.email


@dataclass
class DeliveryOutcome:
    """
    Result of a single send attempt.

    Attributes:
        recipient: Recipient the send was addressed to
        delivered: Whether the transport accepted the message
        error: Error description (if the send raised)
    """
    recipient: Recipient
    delivered: bool
    error: Optional[str] = None

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.delivered:
            return f"DeliveryOutcome(delivered=True, email={self.recipient.email})"
        return f"DeliveryOutcome(delivered=False, email={self.recipient.email}, error={self.error})"


@dataclass
class FlowResult:
    """
    Outcome record returned to the trigger.

    This explicit result type is the only thing the caller observes;
    individual recipient failures are visible in logs only.
    """
    success: bool
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'success': self.success, 'message': self.message}
