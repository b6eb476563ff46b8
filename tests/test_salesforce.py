import httpx
import pytest

from bayeux.errors import BayeuxError
from bayeux.extensions.salesforce import StaticTokenAuthenticator


class RecordingTransport(httpx.BaseTransport):
    def __init__(self, expected_token, response_headers=None):
        self.expected_token = expected_token
        self.response_headers = response_headers or []
        self.call_count = 0
        self.requests = []

    def handle_request(self, request):
        self.requests.append(request)
        if request.headers.get("Authorization") == "Bearer " + self.expected_token:
            self.call_count += 1
        return httpx.Response(200, headers=self.response_headers)


@pytest.mark.parametrize(
    ("url", "token", "expected_calls", "should_err"),
    [
        ("https://login.salesforce.com", "", 0, True),
        ("https://login.salesforce.com", "token", 1, False),
        ("https://github.com", "token", 0, False),
    ],
)
def test_static_token_authenticator(url, token, expected_calls, should_err):
    recorder = RecordingTransport(token)
    authenticator = StaticTokenAuthenticator(token, recorder)
    request = httpx.Request("GET", url)
    if should_err:
        with pytest.raises(BayeuxError, match="no Token provided"):
            authenticator.handle_request(request)
    else:
        response = authenticator.handle_request(request)
        assert response.status_code == 200
    assert recorder.call_count == expected_calls


def test_original_request_is_not_modified():
    recorder = RecordingTransport("token")
    authenticator = StaticTokenAuthenticator("token", recorder)
    request = httpx.Request("GET", "https://login.salesforce.com/path")
    authenticator.handle_request(request)
    assert "Authorization" not in request.headers
    assert recorder.requests[0] is not request
    assert recorder.requests[0].url == request.url


def test_non_salesforce_request_passes_through_unchanged():
    recorder = RecordingTransport("token")
    authenticator = StaticTokenAuthenticator("token", recorder)
    request = httpx.Request("GET", "https://example.com/")
    authenticator.handle_request(request)
    assert recorder.requests == [request]
    assert "Authorization" not in recorder.requests[0].headers


def test_cookies_are_replayed_on_next_request():
    recorder = RecordingTransport("token", [("set-cookie", "sid=abc; Path=/")])
    authenticator = StaticTokenAuthenticator("token", recorder)
    authenticator.handle_request(httpx.Request("GET", "https://login.salesforce.com"))
    assert "Cookie" not in recorder.requests[0].headers
    authenticator.handle_request(httpx.Request("GET", "https://login.salesforce.com"))
    assert recorder.requests[1].headers["Cookie"] == "sid=abc"


def test_cookies_are_appended_to_existing_cookie_header():
    recorder = RecordingTransport("token", [("set-cookie", "sid=abc")])
    authenticator = StaticTokenAuthenticator("token", recorder)
    authenticator.handle_request(httpx.Request("GET", "https://login.salesforce.com"))
    request = httpx.Request("GET", "https://login.salesforce.com", headers={"Cookie": "a=1"})
    authenticator.handle_request(request)
    assert recorder.requests[1].headers["Cookie"] == "a=1; sid=abc"


def test_cookies_replaced_by_latest_response():
    recorder = RecordingTransport("token", [("set-cookie", "sid=abc")])
    authenticator = StaticTokenAuthenticator("token", recorder)
    authenticator.handle_request(httpx.Request("GET", "https://login.salesforce.com"))
    recorder.response_headers = []
    authenticator.handle_request(httpx.Request("GET", "https://login.salesforce.com"))
    authenticator.handle_request(httpx.Request("GET", "https://login.salesforce.com"))
    assert "Cookie" not in recorder.requests[2].headers


def test_works_as_httpx_client_transport():
    recorder = RecordingTransport("token")
    with httpx.Client(transport=StaticTokenAuthenticator("token", recorder)) as client:
        response = client.post("https://eu.salesforce.com/cometd", content=b"[]")
    assert response.status_code == 200
    assert recorder.call_count == 1
    assert recorder.requests[0].read() == b"[]"