"""Builders that produce valid Bayeux request messages."""

from __future__ import annotations

import re

from bayeux.channel import (
    META_CONNECT,
    META_DISCONNECT,
    META_HANDSHAKE,
    META_SUBSCRIBE,
    META_UNSUBSCRIBE,
    Channel,
)
from bayeux.errors import (
    BadConnectionTypeError,
    BadConnectionVersionError,
    EmptySliceError,
    InvalidChannelError,
    MissingClientIDError,
    MissingConnectionTypeError,
    NoSupportedConnectionTypesError,
    NoVersionError,
)
from bayeux.message import CONNECTION_TYPES, Message

__all__ = [
    "HandshakeRequestBuilder",
    "ConnectRequestBuilder",
    "SubscribeRequestBuilder",
    "UnsubscribeRequestBuilder",
    "DisconnectRequestBuilder",
    "validate_version",
]

_MAJOR_RE = re.compile(r"[+-]?[0-9]+")


def validate_version(version: str) -> None:
    """Raise if ``version`` does not start with an integer major version."""
    if not version:
        raise BadConnectionVersionError(version)
    major = version.split(".", 1)[0]
    if not _MAJOR_RE.fullmatch(major):
        raise BadConnectionVersionError(version)


def _check_connection_type(connection_type: str) -> None:
    if connection_type not in CONNECTION_TYPES:
        raise BadConnectionTypeError(connection_type)


class HandshakeRequestBuilder:
    """Builds a /meta/handshake request."""

    def __init__(self) -> None:
        self._version = ""
        self._minimum_version = ""
        self._supported_connection_types: list[str] = []

    def add_supported_connection_type(self, connection_type: str) -> None:
        """Add a supported connection type, ignoring duplicates."""
        _check_connection_type(connection_type)
        if connection_type not in self._supported_connection_types:
            self._supported_connection_types.append(connection_type)

    def add_version(self, version: str) -> None:
        """Set the protocol version the client supports."""
        validate_version(version)
        self._version = version

    def add_minimum_version(self, version: str) -> None:
        """Set the oldest protocol version the client supports."""
        validate_version(version)
        self._minimum_version = version

    def build(self) -> list[Message]:
        """Return the handshake request messages."""
        if not self._supported_connection_types:
            raise NoSupportedConnectionTypesError()
        if not self._version:
            raise NoVersionError()
        return [
            Message(
                channel=META_HANDSHAKE,
                version=self._version,
                minimum_version=self._minimum_version,
                supported_connection_types=list(self._supported_connection_types),
            )
        ]


class ConnectRequestBuilder:
    """Builds a /meta/connect request."""

    def __init__(self) -> None:
        self._client_id = ""
        self._connection_type = ""

    def add_client_id(self, client_id: str) -> None:
        """Set the client id obtained from the handshake."""
        self._client_id = client_id

    def add_connection_type(self, connection_type: str) -> None:
        """Set the connection type used for this connection."""
        _check_connection_type(connection_type)
        self._connection_type = connection_type

    def build(self) -> list[Message]:
        """Return the connect request messages."""
        if not self._client_id:
            raise MissingClientIDError()
        if not self._connection_type:
            raise MissingConnectionTypeError()
        return [
            Message(
                channel=META_CONNECT,
                client_id=self._client_id,
                connection_type=self._connection_type,
            )
        ]


class _SubscriptionRequestBuilder:
    _channel: Channel

    def __init__(self) -> None:
        self._client_id = ""
        self._subscriptions: list[Channel] = []

    def _set_client_id(self, client_id: str) -> None:
        self._client_id = client_id

    def _add_subscription(self, channel: str) -> None:
        channel = Channel(channel)
        if not channel.is_valid():
            raise InvalidChannelError(channel)
        if channel not in self._subscriptions:
            self._subscriptions.append(channel)

    def _build(self) -> list[Message]:
        if not self._client_id:
            raise MissingClientIDError()
        if not self._subscriptions:
            raise EmptySliceError("subscriptions")
        return [
            Message(channel=self._channel, client_id=self._client_id, subscription=sub)
            for sub in self._subscriptions
        ]


class SubscribeRequestBuilder(_SubscriptionRequestBuilder):
    """Builds a /meta/subscribe request."""

    _channel = META_SUBSCRIBE

    def add_client_id(self, client_id: str) -> None:
        """Set the client id obtained from the handshake."""
        self._set_client_id(client_id)

    def add_subscription(self, channel: str) -> None:
        """Add a channel to the request, ignoring duplicates."""
        self._add_subscription(channel)

    def build(self) -> list[Message]:
        """Return one subscribe message per channel."""
        return self._build()


class UnsubscribeRequestBuilder(_SubscriptionRequestBuilder):
    """Builds a /meta/unsubscribe request."""

    _channel = META_UNSUBSCRIBE

    def add_client_id(self, client_id: str) -> None:
        """Set the client id obtained from the handshake."""
        self._set_client_id(client_id)

    def add_subscription(self, channel: str) -> None:
        """Add a channel to the request, ignoring duplicates."""
        self._add_subscription(channel)

    def build(self) -> list[Message]:
        """Return one unsubscribe message per channel."""
        return self._build()


class DisconnectRequestBuilder:
    """Builds a /meta/disconnect request."""

    def __init__(self) -> None:
        self._client_id = ""

    def add_client_id(self, client_id: str) -> None:
        """Set the client id obtained from the handshake."""
        self._client_id = client_id

    def build(self) -> list[Message]:
        """Return the disconnect request messages."""
        if not self._client_id:
            raise MissingClientIDError()
        return [Message(channel=META_DISCONNECT, client_id=self._client_id)]