"""The replay extension: resume channels from the last replay id seen.

Usage::

    client = Client(server_address)
    client.use_extension(ReplayExtension(MapStorage()))
"""

from __future__ import annotations

import abc
import dataclasses
import json
import threading
from typing import Any

from bayeux.channel import META_HANDSHAKE, META_SUBSCRIBE, META_UNSUBSCRIBE, ChannelType
from bayeux.extension import MessageExtender
from bayeux.message import Message

__all__ = [
    "EXTENSION_NAME",
    "IDStore",
    "MapStorage",
    "MessageData",
    "ReplayExtension",
]

EXTENSION_NAME = "replay"
_EVENT_KEY = "event"
_REPLAY_ID_KEY = "replayId"


class IDStore(abc.ABC):
    """Stores the last replay id seen on each channel."""

    @abc.abstractmethod
    def set(self, channel: str, replay_id: int) -> None:
        """Record ``replay_id`` as the latest for ``channel``."""

    @abc.abstractmethod
    def get(self, channel: str) -> int | None:
        """Return the replay id for ``channel``, or None if there is none."""

    @abc.abstractmethod
    def delete(self, channel: str) -> None:
        """Forget ``channel``."""

    @abc.abstractmethod
    def as_map(self) -> dict[str, int]:
        """Return a snapshot of every channel and its replay id."""


class MapStorage(IDStore):
    """A thread-safe in-memory IDStore."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: dict[str, int] = {}

    def set(self, channel: str, replay_id: int) -> None:
        """Record ``replay_id`` as the latest for ``channel``."""
        with self._lock:
            self._store[str(channel)] = replay_id

    def get(self, channel: str) -> int | None:
        """Return the replay id for ``channel``, or None if there is none."""
        with self._lock:
            return self._store.get(str(channel))

    def delete(self, channel: str) -> None:
        """Forget ``channel``; unknown channels are ignored."""
        with self._lock:
            self._store.pop(str(channel), None)

    def as_map(self) -> dict[str, int]:
        """Return a copy of the stored replay ids."""
        with self._lock:
            return dict(self._store)


@dataclasses.dataclass
class MessageData:
    """The object carried in a message's ``data`` field."""

    data: str = ""
    last: bool = False
    meta: dict[str, str] = dataclasses.field(default_factory=dict)


def _message_data(value: Any) -> MessageData | None:
    if isinstance(value, MessageData):
        return value
    if not isinstance(value, dict):
        return None
    data = value.get("data")
    last = value.get("last")
    meta = value.get("meta")
    if data is None:
        data = ""
    if last is None:
        last = False
    if meta is None:
        meta = {}
    if not isinstance(data, str) or not isinstance(last, bool):
        return None
    if not isinstance(meta, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in meta.items()
    ):
        return None
    return MessageData(data=data, last=last, meta=dict(meta))


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _replay_id(message: Message) -> int | None:
    md = _message_data(message.data)
    if md is None:
        return None
    try:
        payload = json.loads(md.data, parse_constant=_reject_constant)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    event = payload.get(_EVENT_KEY)
    if not isinstance(event, dict):
        return None
    value = event.get(_REPLAY_ID_KEY)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


class ReplayExtension(MessageExtender):
    """Sends the stored replay ids on subscribe once the server supports them."""

    def __init__(self, store: IDStore) -> None:
        self._store = store
        self._supported = False
        self._lock = threading.Lock()
        self._extension_name = None
        self._client = None

    @property
    def store(self) -> IDStore:
        """The replay id store in use."""
        return self._store

    def outgoing(self, message: Message) -> None:
        """Announce the extension on handshake and send replay ids on subscribe."""
        if message.channel == META_HANDSHAKE:
            ext = message.get_ext(True)
            ext[EXTENSION_NAME] = True
        elif message.channel == META_SUBSCRIBE and self.is_supported():
            ext = message.get_ext(True)
            ext[EXTENSION_NAME] = self._store.as_map()

    def incoming(self, message: Message) -> None:
        """Detect server support and track replay ids of broadcast messages."""
        kind = message.channel.type()
        if kind is ChannelType.META:
            if message.channel == META_HANDSHAKE:
                ext = message.get_ext(False)
                if ext is not None and ext.get(EXTENSION_NAME) is True:
                    with self._lock:
                        self._supported = True
            elif message.channel == META_UNSUBSCRIBE and message.subscription:
                self._store.delete(str(message.subscription))
        elif kind is ChannelType.BROADCAST:
            replay_id = _replay_id(message)
            if replay_id is not None:
                self._store.set(str(message.channel), replay_id)

    def registered(self, extension_name: str, client: Any) -> None:
        """Remember the name and client the extension was registered with."""
        with self._lock:
            self._extension_name = extension_name
            self._client = client

    def unregistered(self) -> None:
        """Forget the registration."""
        with self._lock:
            self._extension_name = None
            self._client = None

    def is_supported(self) -> bool:
        """Whether the server announced support for replay ids."""
        with self._lock:
            return self._supported