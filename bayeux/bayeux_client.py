"""A low-level client that speaks the Bayeux protocol over HTTP long-polling."""

from __future__ import annotations

import re
import threading
import time
import urllib.parse
from collections.abc import Callable, Iterable

import httpx

from bayeux.channel import (
    EMPTY_CHANNEL,
    META_CONNECT,
    META_DISCONNECT,
    META_HANDSHAKE,
    META_SUBSCRIBE,
    META_UNSUBSCRIBE,
    Channel,
)
from bayeux.errors import (
    AlreadyRegisteredError,
    BadChannelError,
    BadResponseError,
    BayeuxError,
    ClientNotConnectedError,
    ConnectionFailedError,
    DisconnectFailedError,
    FailedToConnectError,
    HandshakeFailedError,
    SubscriptionFailedError,
    TooManyMessagesError,
    UnsubscribeFailedError,
    new_handshake_error,
    new_subscribe_error,
    new_unsubscribe_error,
)
from bayeux.extension import MessageExtender
from bayeux.logger import Logger, NullLogger
from bayeux.message import (
    CONNECTION_TYPE_LONG_POLLING,
    Message,
    decode_messages,
    encode_messages,
)
from bayeux.message_builders import (
    ConnectRequestBuilder,
    DisconnectRequestBuilder,
    HandshakeRequestBuilder,
    SubscribeRequestBuilder,
    UnsubscribeRequestBuilder,
)
from bayeux.state_machine import ConnectionStateMachine, Event, State

__all__ = ["BayeuxClient"]

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_ESCAPE = re.compile(r"%([0-9A-Fa-f])[0-9A-Fa-f]")
_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


def _parse_address(address: str) -> httpx.URL:
    try:
        parts = urllib.parse.urlsplit(address)
        parts.port  # noqa: B018 - raises on a malformed port
    except ValueError as exc:
        raise ValueError(f"invalid server address {address!r}: {exc}") from exc
    if _BAD_ESCAPE.search(address):
        raise ValueError(f"invalid server address {address!r}: invalid URL escape")
    host = parts.netloc.rpartition("@")[2]
    for escape in _ESCAPE.finditer(host):
        if escape.group(0) != "%25" and int(escape.group(1), 16) < 8:
            raise ValueError(
                f"invalid server address {address!r}: invalid URL escape {escape.group(0)!r}"
            )
    try:
        return httpx.URL(address)
    except httpx.InvalidURL as exc:
        raise ValueError(f"invalid server address {address!r}: {exc}") from exc


class BayeuxClient:
    """Performs individual Bayeux requests against one server."""

    def __init__(
        self,
        server_address: str,
        http_client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._server_address = _parse_address(server_address)
        if http_client is None:
            http_client = httpx.Client(transport=transport, follow_redirects=True, timeout=None)
            self._owns_http_client = True
        elif transport is not None:
            raise ValueError("pass either an HTTP client or a transport, not both")
        else:
            self._owns_http_client = False
        self._http = http_client
        self._state_machine = ConnectionStateMachine()
        self._client_id = ""
        self._client_id_lock = threading.Lock()
        self._extensions: list[MessageExtender] = []
        self._logger: Logger = logger if logger is not None else NullLogger()

    @property
    def client_id(self) -> str:
        """The client id assigned by the server, or ``""`` before a handshake."""
        with self._client_id_lock:
            return self._client_id

    @property
    def state(self) -> State:
        """The current connection state."""
        return self._state_machine.current_state()

    def close(self) -> None:
        """Close the HTTP client if this object created it."""
        if self._owns_http_client:
            self._http.close()

    def __enter__(self) -> BayeuxClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _set_client_id(self, client_id: str) -> None:
        with self._client_id_lock:
            self._client_id = client_id

    def _connected_client_id(self) -> str:
        client_id = self.client_id
        if not self._state_machine.is_connected() or not client_id:
            return ""
        return client_id

    def handshake(self) -> list[Message]:
        """Send a /meta/handshake request and record the assigned client id."""
        logger = self._logger.with_field("at", "handshake")
        start = time.monotonic()
        logger.debug("starting")
        try:
            self._state_machine.process_event(Event.HANDSHAKE_SENT)
        except BayeuxError as exc:
            logger.with_error(exc).debug("invalid action for current state")
            raise HandshakeFailedError(exc) from exc

        builder = HandshakeRequestBuilder()
        try:
            builder.add_version("1.0")
            builder.add_supported_connection_type(CONNECTION_TYPE_LONG_POLLING)
            request = builder.build()
        except BayeuxError as exc:
            raise HandshakeFailedError(exc) from exc

        response = self._round_trip(request, logger, HandshakeFailedError)
        if len(response) > 1:
            raise HandshakeFailedError(TooManyMessagesError())

        message = next((m for m in response if m.channel == META_HANDSHAKE), None)
        if message is None or message.channel == EMPTY_CHANNEL:
            raise HandshakeFailedError(BadChannelError())
        if not message.successful:
            raise new_handshake_error(message.error)

        self._set_client_id(message.client_id)
        self._state_machine.process_event(Event.SUCCESSFULLY_CONNECTED)
        logger.with_field("duration", time.monotonic() - start).debug("finishing")
        return response

    def connect(self) -> list[Message]:
        """Send a /meta/connect request and return what the server delivered."""
        logger = self._logger.with_field("at", "connect")
        start = time.monotonic()
        logger.debug("starting")
        client_id = self._connected_client_id()
        if not client_id:
            raise ClientNotConnectedError()

        builder = ConnectRequestBuilder()
        builder.add_client_id(client_id)
        builder.add_connection_type(CONNECTION_TYPE_LONG_POLLING)
        try:
            request = builder.build()
        except BayeuxError as exc:
            raise ConnectionFailedError(exc) from exc

        response = self._round_trip(request, logger, ConnectionFailedError)
        if any(m.channel == META_CONNECT and not m.successful for m in response):
            raise ConnectionFailedError(FailedToConnectError())
        logger.with_field("duration", time.monotonic() - start).debug("finishing")
        return response

    def subscribe(self, subscriptions: Iterable[str]) -> list[Message]:
        """Send a /meta/subscribe request for the given channels."""
        channels = [Channel(s) for s in subscriptions]
        logger = self._logger.with_field("at", "subscribe")
        start = time.monotonic()
        logger.debug("starting")
        client_id = self._connected_client_id()
        if not client_id:
            logger.debug("cannot subscribe because client is not connected")
            raise SubscriptionFailedError(channels, ClientNotConnectedError())

        def wrap(exc: BaseException) -> BayeuxError:
            return SubscriptionFailedError(channels, exc)

        builder = SubscribeRequestBuilder()
        builder.add_client_id(client_id)
        try:
            for channel in channels:
                builder.add_subscription(channel)
            request = builder.build()
        except BayeuxError as exc:
            raise wrap(exc) from exc

        response = self._round_trip(request, logger, wrap)
        for message in response:
            if message.channel == META_SUBSCRIBE and not message.successful:
                raise SubscriptionFailedError(channels, new_subscribe_error(message.error))
        logger.with_field("duration", time.monotonic() - start).debug("finishing")
        return response

    def unsubscribe(self, subscriptions: Iterable[str]) -> list[Message]:
        """Send a /meta/unsubscribe request for the given channels."""
        channels = [Channel(s) for s in subscriptions]
        logger = self._logger.with_field("at", "unsubscribe")
        client_id = self._connected_client_id()
        if not client_id:
            raise UnsubscribeFailedError(channels, ClientNotConnectedError())

        def wrap(exc: BaseException) -> BayeuxError:
            return UnsubscribeFailedError(channels, exc)

        builder = UnsubscribeRequestBuilder()
        builder.add_client_id(client_id)
        try:
            for channel in channels:
                builder.add_subscription(channel)
            request = builder.build()
        except BayeuxError as exc:
            raise wrap(exc) from exc

        response = self._round_trip(request, logger, wrap)
        for message in response:
            if message.channel == META_UNSUBSCRIBE and not message.successful:
                raise UnsubscribeFailedError(channels, new_unsubscribe_error(message.error))
        return response

    def disconnect(self) -> list[Message]:
        """Send a /meta/disconnect request to end the session."""
        logger = self._logger.with_field("at", "disconnect")
        client_id = self._connected_client_id()
        if not client_id:
            raise DisconnectFailedError(ClientNotConnectedError())

        builder = DisconnectRequestBuilder()
        builder.add_client_id(client_id)
        try:
            request = builder.build()
        except BayeuxError as exc:
            raise DisconnectFailedError(exc) from exc

        response = self._round_trip(request, logger, DisconnectFailedError)
        if any(m.channel == META_DISCONNECT and not m.successful for m in response):
            raise DisconnectFailedError(None)
        return response

    def use_extension(self, ext: MessageExtender) -> None:
        """Register an extension; registering the same one twice raises."""
        if any(registered is ext for registered in self._extensions):
            raise AlreadyRegisteredError(ext)
        self._extensions.append(ext)

    def _round_trip(
        self,
        messages: list[Message],
        logger: Logger,
        wrap: Callable[[BaseException], BayeuxError],
    ) -> list[Message]:
        # Any failure of the transport or of decoding is reported wrapped.
        try:
            response = self._send(messages)
        except Exception as exc:
            logger.with_error(exc).debug("error during request")
            raise wrap(exc) from exc
        try:
            return self._parse_response(response)
        except Exception as exc:
            logger.with_error(exc).debug("error parsing response")
            raise wrap(exc) from exc

    def _send(self, messages: list[Message]) -> httpx.Response:
        for ext in self._extensions:
            for message in messages:
                ext.outgoing(message)
        body = (encode_messages(messages) + "\n").encode("utf-8")
        return self._http.post(str(self._server_address), content=body, headers=_HEADERS)

    def _parse_response(self, response: httpx.Response) -> list[Message]:
        try:
            body = response.read()
        finally:
            response.close()
        if response.status_code != 200:
            status = f"{response.status_code} {response.reason_phrase}".strip()
            raise BadResponseError(response.status_code, status, body)
        messages = decode_messages(body)
        for ext in self._extensions:
            for message in messages:
                ext.incoming(message)
        return messages