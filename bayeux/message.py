"""Bayeux messages, server advice and their JSON encoding."""

from __future__ import annotations

import dataclasses
import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from bayeux.channel import EMPTY_CHANNEL, Channel
from bayeux.errors import MessageUnparsableError

__all__ = [
    "CONNECTION_TYPE_LONG_POLLING",
    "CONNECTION_TYPE_CALLBACK_POLLING",
    "CONNECTION_TYPE_IFRAME",
    "CONNECTION_TYPES",
    "Advice",
    "Message",
    "MessageError",
    "advice_from_dict",
    "message_from_dict",
    "encode_messages",
    "decode_messages",
]

CONNECTION_TYPE_LONG_POLLING = "long-polling"
CONNECTION_TYPE_CALLBACK_POLLING = "callback-polling"
CONNECTION_TYPE_IFRAME = "iframe"
CONNECTION_TYPES = frozenset(
    {CONNECTION_TYPE_LONG_POLLING, CONNECTION_TYPE_CALLBACK_POLLING, CONNECTION_TYPE_IFRAME}
)

_TIMESTAMP_RE = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2}):([0-9]{2})\.([0-9]{2})"
)
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def _parse_int(text: str) -> int:
    if not _INTEGER_RE.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    return int(text)


@dataclasses.dataclass
class MessageError:
    """A parsed ``error`` field of a message."""

    error_code: int
    error_args: list[str]
    error_message: str


@dataclasses.dataclass
class Advice:
    """The server's advice on how the client should operate."""

    reconnect: str = ""
    timeout: int = 0
    interval: int = 0
    multiple_clients: bool = False
    hosts: list[str] = dataclasses.field(default_factory=list)

    def must_not_retry_or_handshake(self) -> bool:
        """Whether neither a retry nor a handshake is allowed."""
        return self.reconnect == "none"

    def should_retry(self) -> bool:
        """Whether the client should retry."""
        return self.reconnect == "retry"

    def should_handshake(self) -> bool:
        """Whether the client should handshake again."""
        return self.reconnect == "handshake"

    def timeout_as_duration(self) -> timedelta:
        """The timeout (milliseconds) as a duration."""
        return timedelta(milliseconds=self.timeout)

    def interval_as_duration(self) -> timedelta:
        """The interval (milliseconds) as a duration."""
        return timedelta(milliseconds=self.interval)

    def to_dict(self) -> dict[str, Any]:
        """The JSON object for this advice, leaving out empty fields."""
        out: dict[str, Any] = {}
        if self.reconnect:
            out["reconnect"] = self.reconnect
        if self.timeout:
            out["timeout"] = self.timeout
        if self.interval:
            out["interval"] = self.interval
        if self.multiple_clients:
            out["multiple-clients"] = True
        if self.hosts:
            out["hosts"] = list(self.hosts)
        return out


@dataclasses.dataclass(kw_only=True)
class Message:
    """A single Bayeux message."""

    advice: Advice | None = None
    id: str = ""
    channel: Channel = EMPTY_CHANNEL
    client_id: str = ""
    data: Any = None
    version: str = ""
    minimum_version: str = ""
    supported_connection_types: list[str] = dataclasses.field(default_factory=list)
    connection_type: str = ""
    timestamp: str = ""
    successful: bool = False
    auth_successful: bool = False
    subscription: Channel = EMPTY_CHANNEL
    error: str = ""
    ext: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        self.channel = Channel(self.channel)
        self.subscription = Channel(self.subscription)

    def timestamp_as_time(self) -> datetime:
        """Parse the ``YYYY-MM-DDThh:mm:ss.ss`` timestamp as a UTC datetime."""
        match = _TIMESTAMP_RE.fullmatch(self.timestamp)
        if match is None:
            raise ValueError(f"cannot parse timestamp {self.timestamp!r}")
        year, month, day, hour, minute, second, hundredths = (int(g) for g in match.groups())
        return datetime(
            year, month, day, hour, minute, second, hundredths * 10000, tzinfo=timezone.utc
        )

    def parse_error(self) -> MessageError:
        """Parse the ``code:args:message`` error field."""
        pieces = self.error.split(":", 2)
        if len(pieces) != 3:
            raise MessageUnparsableError(self.error)
        code = _parse_int(pieces[0])
        return MessageError(code, pieces[1].split(","), pieces[2])

    def get_ext(self, create: bool) -> dict[str, Any] | None:
        """Return the ext mapping, creating it first when asked and absent."""
        if self.ext is None and create:
            self.ext = {}
        return self.ext

    def to_dict(self) -> dict[str, Any]:
        """The JSON object for this message, leaving out empty fields."""
        out: dict[str, Any] = {}
        if self.advice is not None:
            out["advice"] = self.advice.to_dict()
        if self.id:
            out["id"] = self.id
        out["channel"] = str(self.channel)
        if self.client_id:
            out["clientId"] = self.client_id
        if self.data is not None:
            out["data"] = self.data
        if self.version:
            out["version"] = self.version
        if self.minimum_version:
            out["minimumVersion"] = self.minimum_version
        if self.supported_connection_types:
            out["supportedConnectionTypes"] = list(self.supported_connection_types)
        if self.connection_type:
            out["connectionType"] = self.connection_type
        if self.timestamp:
            out["timestamp"] = self.timestamp
        if self.successful:
            out["successful"] = True
        if self.auth_successful:
            out["authSuccessful"] = True
        if self.subscription:
            out["subscription"] = str(self.subscription)
        if self.error:
            out["error"] = self.error
        if self.ext:
            out["ext"] = dict(self.ext)
        return out


def _field(data: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"field {key!r} must be an integer")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"field {key!r} must be an integer")
            value = int(value)
        return value
    if kind is list:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"field {key!r} must be a list of strings")
        return list(value)
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} must be of type {kind.__name__}")
    return value


def advice_from_dict(data: dict[str, Any]) -> Advice:
    """Build an Advice from its decoded JSON object."""
    if not isinstance(data, dict):
        raise ValueError("advice must be a JSON object")
    return Advice(
        reconnect=_field(data, "reconnect", str, ""),
        timeout=_field(data, "timeout", int, 0),
        interval=_field(data, "interval", int, 0),
        multiple_clients=_field(data, "multiple-clients", bool, False),
        hosts=_field(data, "hosts", list, []),
    )


def message_from_dict(data: dict[str, Any] | None) -> Message:
    """Build a Message from its decoded JSON object."""
    if data is None:
        return Message()
    if not isinstance(data, dict):
        raise ValueError("message must be a JSON object")
    advice_data = data.get("advice")
    return Message(
        advice=None if advice_data is None else advice_from_dict(advice_data),
        id=_field(data, "id", str, ""),
        channel=Channel(_field(data, "channel", str, "")),
        client_id=_field(data, "clientId", str, ""),
        data=data.get("data"),
        version=_field(data, "version", str, ""),
        minimum_version=_field(data, "minimumVersion", str, ""),
        supported_connection_types=_field(data, "supportedConnectionTypes", list, []),
        connection_type=_field(data, "connectionType", str, ""),
        timestamp=_field(data, "timestamp", str, ""),
        successful=_field(data, "successful", bool, False),
        auth_successful=_field(data, "authSuccessful", bool, False),
        subscription=Channel(_field(data, "subscription", str, "")),
        error=_field(data, "error", str, ""),
        ext=_field(data, "ext", dict, None),
    )


def encode_messages(messages: list[Message]) -> str:
    """Encode messages as a compact JSON array."""
    return json.dumps([m.to_dict() for m in messages], separators=(",", ":"), ensure_ascii=False)


def decode_messages(payload: str | bytes | bytearray) -> list[Message]:
    """Decode a JSON array of messages."""
    decoded = json.loads(payload)
    if decoded is None:
        return []
    if not isinstance(decoded, list):
        raise ValueError("expected a JSON array of messages")
    return [message_from_dict(item) for item in decoded]