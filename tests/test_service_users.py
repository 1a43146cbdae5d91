"""
Tests for DynamoDB user and watchlist lookups.
"""

import pytest
from unittest.mock import patch
from botocore.exceptions import ClientError
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from services import users


class TestGetAllUsersForNewsEmail:
    """Test recipient enumeration."""

    @patch('services.users.users_table')
    def test_returns_recipients(self, mock_table):
        mock_table.scan.return_value = {'Items': [
            {'email': 'a@x.com', 'name': 'Alice'},
            {'email': 'b@x.com'},
        ]}

        recipients = users.get_all_users_for_news_email()

        assert [(r.email, r.display_name) for r in recipients] == [('a@x.com', 'Alice'), ('b@x.com', '')]

    @patch('services.users.users_table')
    def test_follows_pagination(self, mock_table):
        mock_table.scan.side_effect = [
            {'Items': [{'email': 'a@x.com'}], 'LastEvaluatedKey': {'email': 'a@x.com'}},
            {'Items': [{'email': 'b@x.com'}]},
        ]

        recipients = users.get_all_users_for_news_email()

        assert [r.email for r in recipients] == ['a@x.com', 'b@x.com']
        assert mock_table.scan.call_args_list[1][1]['ExclusiveStartKey'] == {'email': 'a@x.com'}

    @patch('services.users.users_table')
    def test_skips_invalid_opted_out_and_duplicates(self, mock_table):
        mock_table.scan.return_value = {'Items': [
            {'email': 'a@x.com'},
            {'name': 'No Email'},
            {'email': 'not-an-email'},
            {'email': 'c@x.com', 'newsEmailOptOut': True},
            {'email': 'A@x.com'},
        ]}

        recipients = users.get_all_users_for_news_email()

        assert [r.email for r in recipients] == ['a@x.com']

    @patch('services.users.users_table')
    def test_empty_table(self, mock_table):
        mock_table.scan.return_value = {'Items': []}

        assert users.get_all_users_for_news_email() == []

    @patch('services.users.users_table')
    def test_scan_error_propagates(self, mock_table):
        mock_table.scan.side_effect = ClientError(
            {'Error': {'Code': 'ResourceNotFoundException', 'Message': 'Table not found'}},
            'Scan'
        )

        with pytest.raises(ClientError):
            users.get_all_users_for_news_email()


class TestGetWatchlistSymbolsByEmail:
    """Test watchlist lookup."""

    @patch('services.users.watchlist_table')
    def test_returns_uppercase_unique_symbols(self, mock_table):
        mock_table.query.return_value = {'Items': [
            {'symbol': 'aapl'},
            {'symbol': 'MSFT'},
            {'symbol': 'AAPL'},
            {'symbol': ''},
        ]}

        assert users.get_watchlist_symbols_by_email('a@x.com') == ['AAPL', 'MSFT']
        assert 'KeyConditionExpression' in mock_table.query.call_args[1]

    @patch('services.users.watchlist_table')
    def test_follows_pagination(self, mock_table):
        mock_table.query.side_effect = [
            {'Items': [{'symbol': 'AAPL'}], 'LastEvaluatedKey': {'email': 'a@x.com', 'symbol': 'AAPL'}},
            {'Items': [{'symbol': 'TSLA'}]},
        ]

        assert users.get_watchlist_symbols_by_email('a@x.com') == ['AAPL', 'TSLA']

    @patch('services.users.watchlist_table')
    def test_query_error_returns_empty(self, mock_table):
        mock_table.query.side_effect = ClientError(
            {'Error': {'Code': 'ProvisionedThroughputExceededException', 'Message': 'Slow down'}},
            'Query'
        )

        assert users.get_watchlist_symbols_by_email('a@x.com') == []

    @patch('services.users.watchlist_table')
    def test_empty_email(self, mock_table):
        assert users.get_watchlist_symbols_by_email('') == []
        mock_table.query.assert_not_called()
