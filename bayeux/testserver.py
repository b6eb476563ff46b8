"""An in-memory Bayeux server for exercising clients without a network."""

from __future__ import annotations

import random
import threading
from collections.abc import Callable

import httpx

from bayeux.channel import (
    META_CONNECT,
    META_HANDSHAKE,
    META_SUBSCRIBE,
    Channel,
)
from bayeux.message import Advice, Message, decode_messages, encode_messages

__all__ = ["VERSION", "Server", "generate_id"]

VERSION = "1.0"

_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmonpqrstuvwxyz0123456789"


def _advice() -> Advice:
    return Advice(reconnect="handshake", timeout=30_000_000_000, interval=1_000_000_000)


def generate_id(length: int) -> str:
    """Return a random alphanumeric identifier of ``length`` characters."""
    return "".join(random.choice(_CHARS) for _ in range(length))


class Server:
    """Answers handshake, connect and subscribe requests from memory.

    ``handle_request`` has the shape ``httpx.MockTransport`` expects, so a
    client can talk to the server through ``httpx.MockTransport(server.handle_request)``.
    """

    def __init__(self, logger: Callable[[str], None] | None = None) -> None:
        self._log: Callable[[str], None] = logger if logger is not None else (lambda text: None)
        self._lock = threading.Lock()
        self._running = False
        self._subs: dict[str, list[Channel]] = {}

    def start(self) -> None:
        """Begin answering requests."""
        with self._lock:
            self._running = True

    def stop(self) -> None:
        """Stop answering requests; later requests fail to connect."""
        with self._lock:
            self._running = False

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Answer one HTTP request carrying a JSON array of messages."""
        with self._lock:
            if not self._running:
                raise httpx.ConnectError("server not running", request=request)

            try:
                messages = decode_messages(request.read())
            except ValueError:
                return httpx.Response(422)

            replies: list[Message] = []
            status_code = 200
            for msg in messages:
                self._log(f"msg: {msg!r}")
                if msg.channel == META_HANDSHAKE:
                    replies.append(
                        Message(
                            channel=META_HANDSHAKE,
                            version=msg.version,
                            supported_connection_types=list(msg.supported_connection_types),
                            client_id=generate_id(10),
                            successful=True,
                            auth_successful=True,
                            advice=_advice(),
                            id=msg.id,
                        )
                    )
                elif msg.channel == META_CONNECT:
                    for channel in self._subs.get(msg.client_id, []):
                        replies.append(
                            Message(
                                channel=channel,
                                id=generate_id(5),
                                client_id=msg.client_id,
                                data={},
                                successful=True,
                            )
                        )
                    replies.append(
                        Message(
                            channel=META_CONNECT,
                            successful=True,
                            client_id=msg.client_id,
                            advice=_advice(),
                            id=msg.id,
                        )
                    )
                elif msg.channel == META_SUBSCRIBE:
                    subscribed = self._subs.setdefault(msg.client_id, [])
                    reply = Message(
                        channel=META_SUBSCRIBE,
                        id=msg.id,
                        client_id=msg.client_id,
                        successful=True,
                        subscription=msg.subscription,
                    )
                    if msg.subscription in subscribed:
                        status_code = 400
                        reply.successful = False
                        reply.error = "403:%s:already subscribed"
                    subscribed.append(msg.subscription)
                    replies.append(reply)
                else:
                    self._log(f"unhandled: {msg!r}")

            body = encode_messages(replies)
            self._log(f"reply: {body}")
            return httpx.Response(
                status_code,
                content=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )