"""In-process event routing.

Handlers subscribe to an event name with ``@event_bus.on(name)``. Identity
provider events are dispatched synchronously by the webhook endpoint; app
events are handed to FastAPI background tasks so they run after the response
has been sent.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from rcrpm.core.config import get_settings
from rcrpm.notifications.mailer import SmtpMailer, get_mailer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    name: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class HandlerContext:
    """Collaborators available to handlers.

    ``db`` is only set for synchronous dispatch; background handlers must
    find everything they need in the event data. ``delivered`` survives
    retries of the same event so a retried handler can skip work it
    already finished.
    """

    mailer: Any = None
    db: Session | None = None
    delivered: set[tuple[str, str]] = field(default_factory=set)


Handler = Callable[[Event, HandlerContext], None]


class EventBus:
    def __init__(self, max_attempts: int | None = None) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self.max_attempts = max_attempts

    def on(self, name: str) -> Callable[[Handler], Handler]:
        def register(handler: Handler) -> Handler:
            self._handlers[name].append(handler)
            return handler

        return register

    def handlers_for(self, name: str) -> list[Handler]:
        return list(self._handlers.get(name, ()))

    @property
    def event_names(self) -> list[str]:
        return sorted(self._handlers)

    def dispatch(self, event: Event, context: HandlerContext) -> int:
        """Run every handler registered for ``event.name``.

        A failing handler is retried; the last error propagates. Returns the
        number of handlers that ran.
        """

        handlers = self.handlers_for(event.name)
        if not handlers:
            logger.info("No handler registered for event %s", event.name)
            return 0

        attempts = self.max_attempts or get_settings().event_max_attempts
        for handler in handlers:
            for attempt in range(1, attempts + 1):
                try:
                    handler(event, context)
                    break
                except Exception:
                    if attempt >= attempts:
                        raise
                    logger.warning(
                        "Handler %s failed for %s (attempt %d/%d); retrying",
                        handler.__name__,
                        event.name,
                        attempt,
                        attempts,
                        exc_info=True,
                    )
        return len(handlers)


event_bus = EventBus()


def deliver_in_background(bus: EventBus, event: Event, context: HandlerContext) -> None:
    """Background-task entry point; failures are logged and never re-raised."""

    try:
        bus.dispatch(event, context)
    except Exception:
        logger.exception("Delivery of event %s failed", event.name)


class EventPublisher:
    """Request-scoped sender of app events."""

    def __init__(self, background_tasks: BackgroundTasks, mailer: Any, bus: EventBus | None = None) -> None:
        self.background_tasks = background_tasks
        self.mailer = mailer
        self.bus = bus or event_bus

    def send(self, name: str, data: dict[str, Any]) -> None:
        event = Event(name=name, data=data)
        self.background_tasks.add_task(deliver_in_background, self.bus, event, HandlerContext(mailer=self.mailer))
        logger.debug("Queued event %s", name)


def get_event_publisher(
    background_tasks: BackgroundTasks,
    mailer: SmtpMailer = Depends(get_mailer),
) -> EventPublisher:
    return EventPublisher(background_tasks, mailer)
