"""Bayeux channel names, their types and wildcard matching."""

from __future__ import annotations

import enum

__all__ = [
    "ChannelType",
    "Channel",
    "META_HANDSHAKE",
    "META_CONNECT",
    "META_DISCONNECT",
    "META_SUBSCRIBE",
    "META_UNSUBSCRIBE",
    "EMPTY_CHANNEL",
]

_META_PREFIX = "/meta/"
_SERVICE_PREFIX = "/service/"


class ChannelType(str, enum.Enum):
    """The three kinds of Bayeux channel."""

    META = "meta"
    SERVICE = "service"
    BROADCAST = "broadcast"


class Channel(str):
    """A channel name that looks like a URL path, e.g. ``/foo/bar``."""

    __slots__ = ()

    def type(self) -> ChannelType:
        """Return the kind of channel this name denotes."""
        if self.startswith(_META_PREFIX):
            return ChannelType.META
        if self.startswith(_SERVICE_PREFIX):
            return ChannelType.SERVICE
        return ChannelType.BROADCAST

    def has_wildcard(self) -> bool:
        """Whether the channel ends with ``*`` or ``**``."""
        return self.endswith("*")

    def is_valid(self) -> bool:
        """Best-effort validity check of the channel name."""
        if "*" in self and not self.has_wildcard():
            return False
        return self.startswith("/")

    def match(self, other: str) -> bool:
        """Whether ``other`` matches this channel, honouring trailing wildcards."""
        return self.match_string(str(other))

    def match_string(self, other: str) -> bool:
        """Whether the string ``other`` matches this channel."""
        if self.has_wildcard():
            return self._match_wildcards(other)
        return str.__eq__(self, other) is True

    def _match_wildcards(self, other: str) -> bool:
        index = self.rfind("/")
        if index == -1:
            return False
        if not other.startswith(self[:index]):
            return False
        if len(other) <= index:
            return False
        wildcards = self[index + 1:]
        remainder = other[index + 1:]
        if wildcards == "*":
            return "/" not in remainder
        return wildcards == "**"


META_HANDSHAKE = Channel("/meta/handshake")
META_CONNECT = Channel("/meta/connect")
META_DISCONNECT = Channel("/meta/disconnect")
META_SUBSCRIBE = Channel("/meta/subscribe")
META_UNSUBSCRIBE = Channel("/meta/unsubscribe")
EMPTY_CHANNEL = Channel("")