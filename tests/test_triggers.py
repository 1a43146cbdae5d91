"""
Tests for trigger descriptors and the registry.
"""

import pytest
from unittest.mock import Mock
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from domain.models import DigestTick, UserCreated
from domain.triggers import (
    CRON_TRIGGER,
    InvalidPayloadError,
    TriggerDescriptor,
    TriggerRegistry,
    UnknownTriggerError,
)


@pytest.fixture
def registry():
    return TriggerRegistry()


class TestTriggerDescriptor:
    """Test descriptor matching."""

    def test_matches_event(self):
        descriptor = TriggerDescriptor('sign-up-email', events=('app/user.created',))

        assert descriptor.matches('app/user.created') is True
        assert descriptor.matches('app/send.daily.news') is False
        assert descriptor.matches(CRON_TRIGGER) is False

    def test_matches_cron(self):
        descriptor = TriggerDescriptor('daily-news-summary', events=('app/send.daily.news',), cron='0 12 * * *')

        assert descriptor.matches(CRON_TRIGGER) is True
        assert descriptor.matches('app/send.daily.news') is True


class TestTriggerRegistry:
    """Test registration and dispatch."""

    def test_dispatch_builds_payload_and_calls_handler(self, registry):
        handler = Mock(return_value='done')
        registry.register(
            TriggerDescriptor('sign-up-email', events=('app/user.created',)),
            handler=handler,
            payload_factory=UserCreated.from_event_data,
        )

        result = registry.dispatch('app/user.created', {'email': 'a@x.com', 'name': 'Alice'})

        assert result == 'done'
        payload = handler.call_args[0][0]
        assert isinstance(payload, UserCreated)
        assert payload.email == 'a@x.com'

    def test_dispatch_cron(self, registry):
        handler = Mock(return_value='digest')
        registry.register(
            TriggerDescriptor('daily-news-summary', events=('app/send.daily.news',), cron='0 12 * * *'),
            handler=handler,
            payload_factory=lambda data: DigestTick(),
        )

        assert registry.dispatch(CRON_TRIGGER) == 'digest'
        handler.assert_called_once_with(DigestTick())

    def test_unknown_trigger(self, registry):
        with pytest.raises(UnknownTriggerError, match="Unsupported trigger: app/other"):
            registry.dispatch('app/other', {})

    def test_invalid_payload(self, registry):
        handler = Mock()
        registry.register(
            TriggerDescriptor('sign-up-email', events=('app/user.created',)),
            handler=handler,
            payload_factory=UserCreated.from_event_data,
        )

        with pytest.raises(InvalidPayloadError):
            registry.dispatch('app/user.created', {'email': 'bad'})
        handler.assert_not_called()

    def test_duplicate_function_id_rejected(self, registry):
        registry.register(TriggerDescriptor('flow', events=('a',)), Mock(), Mock())

        with pytest.raises(ValueError, match="already registered"):
            registry.register(TriggerDescriptor('flow', events=('b',)), Mock(), Mock())

    def test_event_bound_twice_rejected(self, registry):
        registry.register(TriggerDescriptor('one', events=('a',)), Mock(), Mock())

        with pytest.raises(ValueError, match="already bound"):
            registry.register(TriggerDescriptor('two', events=('a',)), Mock(), Mock())

    def test_second_schedule_rejected(self, registry):
        first = Mock()
        registry.register(TriggerDescriptor('one', cron='0 12 * * *'), first, Mock(return_value=None))

        with pytest.raises(ValueError, match="Schedule already bound to one"):
            registry.register(TriggerDescriptor('two', cron='0 6 * * *'), Mock(), Mock())

        registry.dispatch(CRON_TRIGGER, {})
        first.assert_called_once_with(None)
        assert [d.function_id for d in registry.descriptors] == ['one']

    def test_descriptors(self, registry):
        first = TriggerDescriptor('one', events=('a',))
        second = TriggerDescriptor('two', cron='0 12 * * *')
        registry.register(first, Mock(), Mock())
        registry.register(second, Mock(), Mock())

        assert registry.descriptors == [first, second]
