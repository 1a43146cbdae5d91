"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-west-2')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'testing')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'testing')
os.environ.setdefault('BEDROCK_MODEL_ID', 'anthropic.claude-3-haiku-20240307-v1:0')
os.environ.setdefault('SES_SENDER', 'Signalist <noreply@example.com>')
os.environ.setdefault('USERS_TABLE', 'test-users')
os.environ.setdefault('WATCHLIST_TABLE', 'test-watchlist')
os.environ.setdefault('FINNHUB_API_KEY', 'test-finnhub-key')
os.environ.setdefault('ENVIRONMENT', 'test')


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables for all tests."""
    yield


def make_article_record(index: int, symbol: str = '', **overrides):
    """Raw Finnhub-style news record."""
    record = {
        'id': 1000 + index,
        'headline': f"Headline {index}",
        'summary': f"Summary {index}",
        'source': 'Reuters',
        'url': f"https://news.example.com/{index}",
        'datetime': 1760000000 + index,
        'category': 'company' if symbol else 'general',
        'related': symbol,
        'image': '',
    }
    record.update(overrides)
    return record


@pytest.fixture
def article_record():
    return make_article_record
