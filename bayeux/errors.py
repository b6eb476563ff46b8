"""Exceptions raised by the Bayeux clients and request builders."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

__all__ = [
    "BayeuxError",
    "ClientNotConnectedError",
    "TooManyMessagesError",
    "BadChannelError",
    "FailedToConnectError",
    "NoSupportedConnectionTypesError",
    "NoVersionError",
    "MissingClientIDError",
    "MissingConnectionTypeError",
    "ConnectionFailedError",
    "HandshakeFailedError",
    "SubscriptionFailedError",
    "UnsubscribeFailedError",
    "ActionFailedError",
    "DisconnectFailedError",
    "AlreadyRegisteredError",
    "BadResponseError",
    "BadConnectionTypeError",
    "BadConnectionVersionError",
    "InvalidChannelError",
    "EmptySliceError",
    "MessageUnparsableError",
    "new_handshake_error",
    "new_subscribe_error",
    "new_unsubscribe_error",
]


def _quote(value: Any) -> str:
    return json.dumps(str(getattr(value, "value", value)), ensure_ascii=False)


class BayeuxError(Exception):
    """Base class of every error raised by this package."""


class _FixedMessageError(BayeuxError):
    message = ""

    def __init__(self) -> None:
        super().__init__(self.message)


class ClientNotConnectedError(_FixedMessageError):
    """The client is not connected to the server."""

    message = "client not connected to server"


class TooManyMessagesError(_FixedMessageError):
    """The handshake response held more than one message."""

    message = "more messages than expected in handshake response"


class BadChannelError(_FixedMessageError):
    """The handshake response came back on the wrong channel."""

    message = "handshake responses must come back via the /meta/handshake channel"


class FailedToConnectError(_FixedMessageError):
    """A /meta/connect request was not successful."""

    message = "connect request was not successful"


class NoSupportedConnectionTypesError(_FixedMessageError, ValueError):
    """No connection types were provided for a handshake."""

    message = "no supported connection types provided"


class NoVersionError(_FixedMessageError, ValueError):
    """No protocol version was provided."""

    message = "no version specified"


class MissingClientIDError(_FixedMessageError, ValueError):
    """The client id has not been set."""

    message = "missing clientID value"


class MissingConnectionTypeError(_FixedMessageError, ValueError):
    """The connection type has not been set."""

    message = "missing connectionType value"


class _WrappingError(BayeuxError):
    def __init__(self, err: BaseException | None) -> None:
        self.err = err
        super().__init__(self._describe())

    def _describe(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self._describe()


class ConnectionFailedError(_WrappingError):
    """A connect request failed."""

    def _describe(self) -> str:
        return f"connection failed ({self.err})"


class HandshakeFailedError(_WrappingError):
    """A handshake failed."""

    def _describe(self) -> str:
        return str(self.err)


class _ChannelsError(_WrappingError):
    def __init__(self, channels: Iterable[str], err: BaseException | None) -> None:
        self.channels = list(channels)
        super().__init__(err)

    def _describe(self) -> str:
        return f"subscription failed ({self.err})"


class SubscriptionFailedError(_ChannelsError):
    """Subscribing to channels failed."""


class UnsubscribeFailedError(_ChannelsError):
    """Unsubscribing from channels failed."""


class DisconnectFailedError(_WrappingError):
    """A disconnect request failed."""

    def __init__(self, err: BaseException | None = None) -> None:
        super().__init__(err)

    def _describe(self) -> str:
        msg = "unable to disconnect from Bayeux server"
        if self.err is None:
            return msg
        return f"{msg} ({self.err})"


class ActionFailedError(BayeuxError):
    """The server reported failure for a subscribe or unsubscribe action."""

    def __init__(self, action: str, error_message: str) -> None:
        self.action = action
        self.error_message = error_message
        super().__init__(f"unable to {action} channels: {error_message}")


class AlreadyRegisteredError(BayeuxError):
    """The extension is already registered with the client."""

    def __init__(self, extension: Any) -> None:
        self.extension = extension
        super().__init__(f"extension already registered: {extension}")


class BadResponseError(BayeuxError):
    """The server answered with something other than HTTP 200."""

    def __init__(self, status_code: int, status: str, body: bytes = b"") -> None:
        self.status_code = status_code
        self.status = status
        self.body = body
        super().__init__(
            f"expected 200 response from bayeux server, got {status_code} "
            f"with status '{status}'"
        )


class BadConnectionTypeError(BayeuxError, ValueError):
    """The connection type is not one this client can handle."""

    def __init__(self, connection_type: str) -> None:
        self.connection_type = connection_type
        super().__init__(f"{_quote(connection_type)} is not a valid connection type")


class BadConnectionVersionError(BayeuxError, ValueError):
    """The protocol version is not valid."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"version {_quote(version)} is invalid for Bayeux protocol")


class InvalidChannelError(BayeuxError, ValueError):
    """The channel name failed validation."""

    def __init__(self, channel: str) -> None:
        self.channel = channel
        super().__init__(f"channel {_quote(channel)} appears to not be a valid channel")


class EmptySliceError(BayeuxError, ValueError):
    """A required collection was empty."""

    def __init__(self, what: str) -> None:
        self.what = what
        super().__init__(f"no {what} provided")


class MessageUnparsableError(BayeuxError, ValueError):
    """A message's error field could not be parsed."""

    def __init__(self, error_message: str) -> None:
        self.error_message = error_message
        super().__init__(f"error message not parseable: {error_message}")


def new_handshake_error(msg: str) -> HandshakeFailedError:
    """Build the error for an unsuccessful handshake response."""
    return HandshakeFailedError(BayeuxError(f"handshake was not successful: {msg}"))


def new_subscribe_error(msg: str) -> ActionFailedError:
    """Build the error for an unsuccessful subscribe response."""
    return ActionFailedError("subscribe to", msg)


def new_unsubscribe_error(msg: str) -> ActionFailedError:
    """Build the error for an unsuccessful unsubscribe response."""
    return ActionFailedError("unsubscribe from", msg)