"""A high-level Bayeux client that long-polls the server in a background thread.

Typical use::

    client = Client("https://localhost:8080/")
    received = queue.Queue()
    client.subscribe("/example/channel", received)
    errors = client.start()
    batch = received.get()

A custom ``httpx`` transport can be passed with ``transport=`` and extensions
(subclasses of :class:`bayeux.extension.MessageExtender`) registered with
:meth:`Client.use_extension`.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable, Iterator
from datetime import timedelta
from typing import Any, NamedTuple, Protocol

import httpx

from bayeux.bayeux_client import BayeuxClient
from bayeux.channel import EMPTY_CHANNEL, META_CONNECT, Channel
from bayeux.errors import BayeuxError
from bayeux.extension import MessageExtender
from bayeux.logger import Logger, NullLogger
from bayeux.message import Message
from bayeux.subscriptions import SubscriptionsMap

__all__ = ["Client"]


class _Receiver(Protocol):
    def put(self, item: list[Message]) -> Any: ...


class _SubscriptionRequest(NamedTuple):
    channel: Channel
    receiving: _Receiver


def _next(source: Any) -> Any | None:
    try:
        return source.get_nowait()
    except queue.Empty:
        return None


def _drain(source: Any) -> Iterator[Any]:
    while (item := _next(source)) is not None:
        yield item


class Client:
    """Handshakes, subscribes and delivers message batches to per-channel queues."""

    def __init__(
        self,
        server_address: str,
        *,
        logger: Logger | None = None,
        http_client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
        ignore_error: Callable[[BaseException], bool] | None = None,
    ) -> None:
        self._logger: Logger = logger if logger is not None else NullLogger()
        self._ignore_error = ignore_error if ignore_error is not None else (lambda err: False)
        self._client = BayeuxClient(server_address, http_client, transport, self._logger)
        self._subscriptions = SubscriptionsMap()
        self._subscribe_requests: queue.Queue[_SubscriptionRequest] = queue.Queue(maxsize=10)
        self._connect_requests: queue.Queue[bool] = queue.Queue(maxsize=1)
        self._connect_messages: queue.Queue[list[Message]] = queue.Queue(maxsize=5)
        self._handshake_requests: queue.SimpleQueue[bool] = queue.SimpleQueue()
        self._shutdown = threading.Event()

    def subscribe(self, channel: str, receiving: _Receiver) -> None:
        """Queue a subscription; batches for ``channel`` are put on ``receiving``."""
        self._subscribe_requests.put(_SubscriptionRequest(Channel(channel), receiving))

    def start(self) -> queue.Queue[BaseException]:
        """Start talking to the server in the background; errors arrive on the returned queue."""
        errors: queue.Queue[BaseException] = queue.Queue()
        thread = threading.Thread(
            target=self._run, args=(errors,), name="bayeux-client", daemon=True
        )
        thread.start()
        return errors

    def disconnect(self) -> None:
        """Send /meta/disconnect and stop the background loop."""
        try:
            self._client.disconnect()
        finally:
            self._shutdown.set()

    def use_extension(self, ext: MessageExtender) -> None:
        """Register an extension for this session."""
        self._client.use_extension(ext)

    def _run(self, errors: queue.Queue[BaseException]) -> None:
        logger = self._logger.with_field("at", "start")
        try:
            self._client.handshake()
        except Exception as exc:
            errors.put(exc)
            return

        try:
            self._subscriptions.add(META_CONNECT, self._connect_messages)
        except BayeuxError:
            pass

        logger.debug("starting long-polling loop")
        try:
            self._poll(errors)
            self._client.disconnect()
        except Exception as exc:
            errors.put(exc)

    def _poll(self, errors: queue.Queue[BaseException]) -> None:
        logger = self._logger.with_field("at", "poll")
        while not self._shutdown.is_set():
            logger.debug("in polling loop")
            if (request := _next(self._subscribe_requests)) is not None:
                logger.debug("got subscription requests")
                # Batch every waiting request into a single HTTP request.
                self._handle_subscriptions([*_drain(self._subscribe_requests), request], errors)
            elif _next(self._handshake_requests) is not None:
                logger.debug("re-handshaking")
                self._client.handshake()
                self._enqueue_connect_request()
            elif (messages := _next(self._connect_messages)) is not None:
                logger.debug("handling messages from /meta/connect")
                self._handle_connect_messages(messages)
            elif _next(self._connect_requests) is not None:
                logger.debug("checking for new messages")
                try:
                    delivered = self._client.connect()
                except BayeuxError as exc:
                    logger.with_error(exc).debug("error in /meta/connect")
                    raise
                self._deliver(delivered, logger)
            else:
                self._enqueue_connect_request()
        logger.debug("shutting down due to disconnect()")

    def _handle_subscriptions(
        self, requests: list[_SubscriptionRequest], errors: queue.Queue[BaseException]
    ) -> None:
        try:
            self._client.subscribe([r.channel for r in requests])
        except BayeuxError as exc:
            if self._ignore_error(exc):
                errors.put(exc)
                return
            raise

        for request in requests:
            try:
                self._subscriptions.add(request.channel, request.receiving)
            except BayeuxError as exc:
                if self._ignore_error(exc):
                    errors.put(exc)
                    continue
                raise

        self._enqueue_connect_request()

    def _handle_connect_messages(self, messages: list[Message]) -> None:
        for message in messages:
            advice = message.advice
            if advice is not None and advice.should_handshake():
                self._logger.debug("queueing new handshake request")
                self._handshake_requests.put(True)
            interval = advice.interval_as_duration() if advice is not None else timedelta(0)
            self._logger.with_field("interval", interval).debug("waiting per advice")
            timer = threading.Timer(interval.total_seconds(), self._enqueue_connect_request)
            timer.daemon = True
            timer.start()

    def _deliver(self, messages: list[Message], logger: Logger) -> None:
        logger.debug("delivering messages")
        batch: list[Message] = []
        last_channel = EMPTY_CHANNEL
        for message in messages:
            if last_channel == EMPTY_CHANNEL:
                last_channel = message.channel
                batch.append(message)
            elif message.channel == last_channel:
                batch.append(message)
            else:
                receiving = self._subscriptions.get(last_channel)
                logger.with_field("channel", last_channel).debug("sending batch")
                receiving.put(batch)
                last_channel = message.channel
                batch = [message]

    def _enqueue_connect_request(self) -> None:
        logger = self._logger.with_field("at", "enqueueConnectRequest")
        try:
            self._connect_requests.put_nowait(True)
        except queue.Full:
            logger.debug("/meta/connect request queue full")
        else:
            logger.debug("queued next /meta/connect request")