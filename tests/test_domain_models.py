"""
Tests for domain models (data structures).
"""

import json
import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from conftest import make_article_record
from domain.models import (
    Article,
    ContentBundle,
    DeliveryOutcome,
    FlowResult,
    InvalidArticleError,
    MAX_BUNDLE_ARTICLES,
    Recipient,
    SummaryResult,
    UserCreated,
    is_valid_email,
)


def _articles(count):
    return [Article.from_record(make_article_record(i)) for i in range(count)]


class TestUserCreated:
    """Test UserCreated payload parsing."""

    def test_from_event_data_camel_case(self):
        payload = UserCreated.from_event_data({
            'email': 'new@example.com',
            'name': 'Ada',
            'country': 'US',
            'investmentGoals': 'Growth',
            'riskTolerance': 'Medium',
            'preferredIndustry': 'Technology',
        })

        assert payload.email == 'new@example.com'
        assert payload.name == 'Ada'
        assert payload.investment_goals == 'Growth'
        assert payload.risk_tolerance == 'Medium'
        assert payload.preferred_industry == 'Technology'

    def test_from_event_data_missing_profile_fields(self):
        payload = UserCreated.from_event_data({'email': 'new@example.com'})

        assert payload.name == ''
        assert payload.country == ''

    def test_from_event_data_invalid_email(self):
        with pytest.raises(ValueError, match="no valid email"):
            UserCreated.from_event_data({'email': 'not-an-email'})

    def test_from_event_data_none(self):
        with pytest.raises(ValueError):
            UserCreated.from_event_data(None)

    def test_profile_description_labeled_lines(self):
        payload = UserCreated(
            email='new@example.com',
            name='Ada',
            country='US',
            investment_goals='Growth',
            risk_tolerance='Medium',
            preferred_industry='Technology',
        )

        assert payload.profile_description() == (
            "- Country: US\n"
            "- Investment goals: Growth\n"
            "- Risk tolerance: Medium\n"
            "- Preferred industry: Technology"
        )


class TestRecipient:
    """Test Recipient validation at the source boundary."""

    def test_from_record(self):
        recipient = Recipient.from_record({'email': ' a@x.com ', 'name': 'Alice'})

        assert recipient.email == 'a@x.com'
        assert recipient.display_name == 'Alice'

    def test_from_record_without_name(self):
        assert Recipient.from_record({'email': 'a@x.com'}).display_name == ''

    @pytest.mark.parametrize('email', [None, '', 'missing-at', 42])
    def test_from_record_invalid_email(self, email):
        with pytest.raises(ValueError):
            Recipient.from_record({'email': email})

    def test_is_valid_email(self):
        assert is_valid_email('a@x.com') is True
        assert is_valid_email('a@x') is False


class TestArticle:
    """Test Article validation."""

    def test_from_record(self):
        article = Article.from_record(make_article_record(1, symbol='AAPL'))

        assert article.headline == 'Headline 1'
        assert article.related == 'AAPL'
        assert article.category == 'company'

    def test_symbol_overrides_related(self):
        article = Article.from_record(make_article_record(1, related='XYZ'), symbol='AAPL')

        assert article.related == 'AAPL'

    @pytest.mark.parametrize('field', ['headline', 'summary', 'url'])
    def test_missing_required_field(self, field):
        with pytest.raises(InvalidArticleError):
            Article.from_record(make_article_record(1, **{field: ''}))

    @pytest.mark.parametrize('value', [None, 0, -5, 'yesterday', True])
    def test_invalid_datetime(self, value):
        with pytest.raises(InvalidArticleError):
            Article.from_record(make_article_record(1, datetime=value))

    def test_non_dict_record(self):
        with pytest.raises(InvalidArticleError):
            Article.from_record(['not', 'a', 'dict'])


class TestContentBundle:
    """Test ContentBundle cap and serialization."""

    def test_capped_truncates_to_max(self):
        recipient = Recipient(email='a@x.com')
        bundle = ContentBundle.capped(recipient, _articles(10))

        assert len(bundle.articles) == MAX_BUNDLE_ARTICLES == 6
        assert bundle.articles[0].headline == 'Headline 0'

    def test_constructor_rejects_oversized(self):
        with pytest.raises(ValueError, match="at most 6"):
            ContentBundle(recipient=Recipient(email='a@x.com'), articles=tuple(_articles(7)))

    def test_empty_bundle(self):
        bundle = ContentBundle.capped(Recipient(email='a@x.com'), None)

        assert bundle.is_empty is True
        assert bundle.fetch_failed is False
        assert bundle.to_json() == '[]'

    def test_failed_placeholder(self):
        bundle = ContentBundle.failed(Recipient(email='a@x.com'))

        assert bundle.is_empty is True
        assert bundle.fetch_failed is True

    def test_to_json(self):
        bundle = ContentBundle.capped(Recipient(email='a@x.com'), _articles(2))

        data = json.loads(bundle.to_json())
        assert [d['headline'] for d in data] == ['Headline 0', 'Headline 1']
        assert set(data[0]) >= {'headline', 'summary', 'url', 'datetime', 'source'}


class TestResults:
    """Test result records."""

    def test_summary_result_absent(self):
        recipient = Recipient(email='a@x.com')

        assert SummaryResult(recipient=recipient, text=None).is_absent is True
        assert SummaryResult(recipient=recipient, text='').is_absent is True
        assert SummaryResult(recipient=recipient, text='News').is_absent is False

    def test_delivery_outcome_repr(self):
        recipient = Recipient(email='a@x.com')

        assert 'delivered=True' in repr(DeliveryOutcome(recipient=recipient, delivered=True))
        failed = repr(DeliveryOutcome(recipient=recipient, delivered=False, error='boom'))
        assert 'delivered=False' in failed
        assert 'boom' in failed

    def test_flow_result_to_dict(self):
        result = FlowResult(success=True, message='done', details={'delivered': 2})

        assert result.to_dict() == {'success': True, 'message': 'done'}
