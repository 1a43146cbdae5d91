"""
Trigger descriptors and the registry that routes them to pipeline flows.

Bindings are declared explicitly at process start: each flow is
registered with a descriptor naming the events (and optional cron
schedule) that invoke it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Key used for schedule-driven invocations
CRON_TRIGGER = 'cron'


class UnknownTriggerError(Exception):
    """Raised when no registered flow matches an inbound trigger."""
    pass


class InvalidPayloadError(Exception):
    """Raised when trigger data cannot be turned into a flow payload."""
    pass


@dataclass(frozen=True)
class TriggerDescriptor:
    """
    Declares which triggers invoke a flow.

    Attributes:
        function_id: Stable flow identifier (e.g. "daily-news-summary")
        events: Event names that invoke the flow
        cron: Cron expression (UTC) for scheduled invocation, if any
    """
    function_id: str
    events: Tuple[str, ...] = ()
    cron: Optional[str] = None

    def matches(self, trigger_name: str) -> bool:
        if trigger_name == CRON_TRIGGER:
            return self.cron is not None
        return trigger_name in self.events


@dataclass(frozen=True)
class Registration:
    descriptor: TriggerDescriptor
    handler: Callable[[Any], Any]
    payload_factory: Callable[[Dict[str, Any]], Any]


class TriggerRegistry:
    """
    Maps trigger names to flows.

    Example:
        >>> registry = TriggerRegistry()
        >>> registry.register(
        ...     TriggerDescriptor("daily-news-summary", events=("app/send.daily.news",), cron="0 12 * * *"),
        ...     handler=pipeline.digest_flow,
        ...     payload_factory=lambda data: DigestTick(),
        ... )
        >>> registry.dispatch("cron", {})
    """

    def __init__(self):
        self._registrations: List[Registration] = []

    def register(
        self,
        descriptor: TriggerDescriptor,
        handler: Callable[[Any], Any],
        payload_factory: Callable[[Dict[str, Any]], Any]
    ) -> None:
        """
        Bind a flow to its triggers.

        Raises:
            ValueError: If the function id is already registered, or an event
                        or the schedule is already bound to another flow
        """
        for existing in self._registrations:
            if existing.descriptor.function_id == descriptor.function_id:
                raise ValueError(f"Flow already registered: {descriptor.function_id}")
            overlap = set(existing.descriptor.events) & set(descriptor.events)
            if overlap:
                raise ValueError(
                    f"Events {sorted(overlap)} already bound to {existing.descriptor.function_id}"
                )
            if existing.descriptor.cron is not None and descriptor.cron is not None:
                raise ValueError(
                    f"Schedule already bound to {existing.descriptor.function_id}"
                )

        self._registrations.append(Registration(descriptor, handler, payload_factory))
        logger.info(
            f"Registered flow {descriptor.function_id}: "
            f"events={list(descriptor.events)}, cron={descriptor.cron}"
        )

    def resolve(self, trigger_name: str) -> Registration:
        """
        Find the registration for a trigger name.

        Raises:
            UnknownTriggerError: If nothing is bound to the trigger
        """
        for registration in self._registrations:
            if registration.descriptor.matches(trigger_name):
                return registration
        raise UnknownTriggerError(f"Unsupported trigger: {trigger_name}")

    def dispatch(self, trigger_name: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Build the payload for a trigger and invoke the bound flow.

        Returns:
            Whatever the flow returns

        Raises:
            UnknownTriggerError: If nothing is bound to the trigger
            InvalidPayloadError: If the trigger data is rejected
        """
        registration = self.resolve(trigger_name)
        try:
            payload = registration.payload_factory(data or {})
        except ValueError as e:
            raise InvalidPayloadError(f"Invalid payload for {trigger_name}: {e}") from e
        logger.info(f"Dispatching {trigger_name} to {registration.descriptor.function_id}")
        return registration.handler(payload)

    @property
    def descriptors(self) -> List[TriggerDescriptor]:
        return [r.descriptor for r in self._registrations]
