"""A thread-safe map from channels to the queues that receive their messages."""

from __future__ import annotations

import threading
from typing import Any

from bayeux.channel import Channel
from bayeux.errors import BayeuxError

__all__ = ["SubscriptionsMap"]


class SubscriptionsMap:
    """Channels and the queue registered for each."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: dict[Channel, Any] = {}

    def add(self, channel: str, queue: Any) -> None:
        """Register ``queue`` for ``channel``; raise if it is already registered."""
        channel = Channel(channel)
        with self._lock:
            if channel in self._subs:
                raise BayeuxError(f"channel '{channel}' already subscribed")
            self._subs[channel] = queue

    def remove(self, channel: str) -> None:
        """Forget ``channel``; unknown channels are ignored."""
        with self._lock:
            self._subs.pop(Channel(channel), None)

    def get(self, channel: str) -> Any:
        """Return the queue registered for ``channel``."""
        with self._lock:
            try:
                return self._subs[Channel(channel)]
            except KeyError:
                raise BayeuxError(f"channel '{channel}' has no subscriptions") from None

    def __contains__(self, channel: object) -> bool:
        with self._lock:
            return channel in self._subs

    def __len__(self) -> int:
        with self._lock:
            return len(self._subs)