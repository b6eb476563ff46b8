import pytest

from bayeux.errors import (
    ActionFailedError,
    AlreadyRegisteredError,
    BadChannelError,
    BadConnectionTypeError,
    BadConnectionVersionError,
    BadResponseError,
    BayeuxError,
    ClientNotConnectedError,
    ConnectionFailedError,
    DisconnectFailedError,
    EmptySliceError,
    FailedToConnectError,
    HandshakeFailedError,
    InvalidChannelError,
    MessageUnparsableError,
    MissingClientIDError,
    MissingConnectionTypeError,
    NoSupportedConnectionTypesError,
    NoVersionError,
    SubscriptionFailedError,
    TooManyMessagesError,
    UnsubscribeFailedError,
    new_handshake_error,
    new_subscribe_error,
    new_unsubscribe_error,
)


@pytest.mark.parametrize(
    "cls, message",
    [
        (ClientNotConnectedError, "client not connected to server"),
        (TooManyMessagesError, "more messages than expected in handshake response"),
        (BadChannelError, "handshake responses must come back via the /meta/handshake channel"),
        (FailedToConnectError, "connect request was not successful"),
        (NoSupportedConnectionTypesError, "no supported connection types provided"),
        (NoVersionError, "no version specified"),
        (MissingClientIDError, "missing clientID value"),
        (MissingConnectionTypeError, "missing connectionType value"),
    ],
)
def test_fixed_messages(cls, message):
    err = cls()
    assert str(err) == message
    assert isinstance(err, BayeuxError)


def test_connection_failed_wraps_inner_error():
    inner = FailedToConnectError()
    err = ConnectionFailedError(inner)
    assert err.err is inner
    assert str(err).startswith("connection failed")
    assert str(inner) in str(err)


def test_handshake_failed_uses_inner_message():
    inner = TooManyMessagesError()
    err = HandshakeFailedError(inner)
    assert str(err) == str(inner)
    assert err.err is inner


def test_new_handshake_error():
    err = new_handshake_error("403::denied")
    assert isinstance(err, HandshakeFailedError)
    assert str(err).startswith("handshake was not successful: ")
    assert str(err).endswith("403::denied")


def test_subscription_failed_keeps_channels():
    inner = ClientNotConnectedError()
    err = SubscriptionFailedError(["/foo/bar", "/foo/*"], inner)
    assert err.channels == ["/foo/bar", "/foo/*"]
    assert err.err is inner
    assert str(inner) in str(err)


def test_unsubscribe_failed_keeps_channels():
    inner = ClientNotConnectedError()
    err = UnsubscribeFailedError(["/foo/bar"], inner)
    assert err.channels == ["/foo/bar"]
    assert str(inner) in str(err)


def test_subscribe_and_unsubscribe_action_errors():
    sub = new_subscribe_error("denied")
    unsub = new_unsubscribe_error("denied")
    assert isinstance(sub, ActionFailedError)
    assert sub.action == "subscribe to"
    assert unsub.action == "unsubscribe from"
    assert sub.error_message == "denied"
    assert "subscribe to" in str(sub)
    assert str(sub).endswith("denied")


def test_disconnect_failed_without_inner():
    err = DisconnectFailedError()
    assert str(err) == "unable to disconnect from Bayeux server"
    assert err.err is None


def test_disconnect_failed_with_inner():
    inner = ClientNotConnectedError()
    err = DisconnectFailedError(inner)
    assert str(err).startswith("unable to disconnect from Bayeux server")
    assert str(inner) in str(err)


def test_bad_response_error():
    err = BadResponseError(502, "Bad Gateway", b"oops")
    assert err.status_code == 502
    assert err.body == b"oops"
    assert str(err).startswith("expected 200 response from bayeux server")
    assert "Bad Gateway" in str(err)


def test_bad_connection_type_error():
    err = BadConnectionTypeError("invalid-polling")
    assert err.connection_type == "invalid-polling"
    assert '"invalid-polling"' in str(err)
    with pytest.raises(ValueError):
        raise err


def test_bad_connection_version_error():
    err = BadConnectionVersionError("a.0")
    assert err.version == "a.0"
    assert '"a.0"' in str(err)


def test_invalid_channel_error():
    err = InvalidChannelError("foo/bar")
    assert err.channel == "foo/bar"
    assert '"foo/bar"' in str(err)


def test_empty_slice_error():
    assert str(EmptySliceError("subscriptions")) == "no subscriptions provided"


def test_message_unparsable_error():
    err = MessageUnparsableError("404-/foo/bar-Unknown Channel")
    assert err.error_message == "404-/foo/bar-Unknown Channel"
    assert str(err).endswith("404-/foo/bar-Unknown Channel")


def test_already_registered_error():
    extension = object()
    err = AlreadyRegisteredError(extension)
    assert err.extension is extension
    assert str(extension) in str(err)