import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


@dataclass(frozen=True)
class Subscription:
    topic: str
    token: int


class EventBus:
    """In-process publish/subscribe.

    Handlers run synchronously inside ``publish`` in subscription order, so
    every subscriber sees a topic's events in the order they were published.
    There is no backlog: a subscriber only gets what is published while it is
    registered. A handler that raises is detached and has to resubscribe.
    """

    def __init__(self) -> None:
        self._topics: dict[str, dict[int, Handler]] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, topic: str, handler: Handler) -> Subscription:
        token = next(self._tokens)
        self._topics.setdefault(topic, {})[token] = handler
        return Subscription(topic=topic, token=token)

    def unsubscribe(self, subscription: Subscription) -> None:
        handlers = self._topics.get(subscription.topic)
        if not handlers:
            return
        handlers.pop(subscription.token, None)
        if not handlers:
            del self._topics[subscription.topic]

    def publish(self, topic: str, event: Any) -> int:
        handlers = self._topics.get(topic)
        if not handlers:
            return 0
        delivered = 0
        for token, handler in list(handlers.items()):
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception("subscriber failed topic=%s token=%s, detaching", topic, token)
                self.unsubscribe(Subscription(topic=topic, token=token))
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, {}))
