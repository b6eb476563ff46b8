"""The hook interface for Bayeux message extensions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bayeux.message import Message

if TYPE_CHECKING:
    from bayeux.bayeux_client import BayeuxClient

__all__ = ["MessageExtender"]


class MessageExtender:
    """Base class for extensions; message hooks do nothing unless overridden."""

    _extension_name: str | None = None
    _client: BayeuxClient | None = None

    @property
    def extension_name(self) -> str | None:
        """The name the extension was registered under, if it is registered."""
        return self._extension_name

    @property
    def client(self) -> BayeuxClient | None:
        """The client the extension was registered with, if any."""
        return self._client

    def outgoing(self, message: Message) -> None:
        """Adjust a message before it is sent to the server."""

    def incoming(self, message: Message) -> None:
        """Inspect or adjust a message received from the server."""

    def registered(self, extension_name: str, client: BayeuxClient | None) -> None:
        """Remember the name and client the extension was registered with."""
        self._extension_name = extension_name
        self._client = client

    def unregistered(self) -> None:
        """Forget the registration."""
        self._extension_name = None
        self._client = None