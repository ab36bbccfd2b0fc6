"""
Change feed used to drive live collection subscriptions.

Stores call ``ChangeFeed.publish(collection)`` after every successful write.
Listeners are invoked synchronously on the publishing thread, in registration
order. A store that watches its database for outside changes can pass
``on_first_listener``/``on_last_listener`` hooks to start and stop that watch.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]
CollectionHook = Callable[[str], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``ChangeFeed.listen``; call ``unsubscribe`` to stop."""

    feed: "ChangeFeed"
    collection: str
    listener: Listener
    active: bool = True
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def unsubscribe(self) -> None:
        # Waits for an in-flight delivery, so nothing runs after this returns.
        with self._lock:
            self.active = False
        self.feed._remove(self)

    def __call__(self) -> None:
        self.unsubscribe()

    @contextmanager
    def held(self) -> Iterator[None]:
        """Queue deliveries from other threads until the block exits."""
        with self._lock:
            yield

    def deliver(self) -> None:
        with self._lock:
            if self.active:
                self.listener(self.collection)


@dataclass
class ChangeFeed:
    on_first_listener: Optional[CollectionHook] = None
    on_last_listener: Optional[CollectionHook] = None
    _subscriptions: Dict[str, List[Subscription]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def listen(self, collection: str, listener: Listener) -> Subscription:
        subscription = Subscription(self, collection, listener)
        with self._lock:
            listeners = self._subscriptions.setdefault(collection, [])
            first = not listeners
            listeners.append(subscription)
        if first and self.on_first_listener is not None:
            try:
                self.on_first_listener(collection)
            except Exception:
                subscription.unsubscribe()
                raise
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            listeners = self._subscriptions.get(subscription.collection, [])
            if subscription not in listeners:
                return
            listeners.remove(subscription)
            last = not listeners
        if last and self.on_last_listener is not None:
            self.on_last_listener(subscription.collection)

    def listener_count(self, collection: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(collection, []))

    def publish(self, collection: str) -> None:
        with self._lock:
            targets = list(self._subscriptions.get(collection, []))
        for subscription in targets:
            try:
                subscription.deliver()
            except Exception:
                logger.exception("Change listener failed for %s", collection)
