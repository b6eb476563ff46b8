"""An httpx transport that authenticates requests to Salesforce with a static token.

Usage::

    client = Client(server_address, transport=StaticTokenAuthenticator(access_token))
"""

from __future__ import annotations

import threading
from http.cookies import CookieError, SimpleCookie

import httpx

from bayeux.errors import BayeuxError

__all__ = ["StaticTokenAuthenticator"]

_SALESFORCE_SUFFIX = "salesforce.com"


def _response_cookies(response: httpx.Response) -> list[tuple[str, str]]:
    found: list[tuple[str, str]] = []
    for header in response.headers.get_list("set-cookie"):
        jar: SimpleCookie = SimpleCookie()
        try:
            jar.load(header)
        except CookieError:
            continue
        found.extend((morsel.key, morsel.value) for morsel in jar.values())
    return found


class StaticTokenAuthenticator(httpx.BaseTransport):
    """Adds a bearer token and session cookies to requests for Salesforce hosts."""

    def __init__(self, token: str, transport: httpx.BaseTransport | None = None) -> None:
        self.token = token
        self.transport = transport if transport is not None else httpx.HTTPTransport()
        self._lock = threading.Lock()
        self._cookies: list[tuple[str, str]] = []

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Forward the request, authenticated when it is for a Salesforce host."""
        if not request.url.host.endswith(_SALESFORCE_SUFFIX):
            return self.transport.handle_request(request)
        if not self.token:
            raise BayeuxError("no Token provided to authenticator transport")

        headers = request.headers.copy()
        headers["Authorization"] = f"Bearer {self.token}"
        with self._lock:
            cookies = list(self._cookies)
        if cookies:
            pairs = "; ".join(f"{name}={value}" for name, value in cookies)
            existing = headers.get("Cookie")
            headers["Cookie"] = f"{existing}; {pairs}" if existing else pairs

        authenticated = httpx.Request(
            request.method,
            request.url,
            headers=headers,
            stream=request.stream,
            extensions=request.extensions,
        )
        response = self.transport.handle_request(authenticated)

        received = _response_cookies(response)
        with self._lock:
            self._cookies = received
        return response

    def close(self) -> None:
        """Close the wrapped transport."""
        self.transport.close()