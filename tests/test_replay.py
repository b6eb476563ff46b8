import json

import httpx
import pytest

from bayeux.bayeux_client import BayeuxClient
from bayeux.channel import Channel
from bayeux.extensions.replay import (
    EXTENSION_NAME,
    MapStorage,
    MessageData,
    ReplayExtension,
)
from bayeux.message import Message


def _supported_extension(store=None):
    ext = ReplayExtension(store if store is not None else MapStorage())
    ext.incoming(Message(channel="/meta/handshake", ext={EXTENSION_NAME: True}))
    return ext


def test_new_is_unsupported():
    ext = ReplayExtension(MapStorage())
    assert ext.is_supported() is False


def test_outgoing_meta_handshake_sets_flag():
    ext = ReplayExtension(MapStorage())
    ext.registered(EXTENSION_NAME, None)
    message = Message(channel="/meta/handshake")
    assert message.ext is None
    ext.outgoing(message)
    assert message.ext == {EXTENSION_NAME: True}


def test_supported_outgoing_meta_subscribe_includes_store():
    store = MapStorage()
    store.set("/foo/bar", 1234)
    ext = _supported_extension(store)
    ext.registered(EXTENSION_NAME, None)
    message = Message(channel="/meta/subscribe")
    ext.outgoing(message)
    assert message.ext[EXTENSION_NAME] == {"/foo/bar": 1234}


def test_unsupported_outgoing_meta_subscribe_adds_nothing():
    store = MapStorage()
    store.set("/foo/bar", 1)
    ext = ReplayExtension(store)
    ext.registered(EXTENSION_NAME, None)
    message = Message(channel="/meta/subscribe")
    ext.outgoing(message)
    assert message.ext is None or EXTENSION_NAME not in message.ext


def test_detects_it_is_supported():
    ext = ReplayExtension(MapStorage())
    ext.registered(EXTENSION_NAME, None)
    ext.incoming(Message(channel="/meta/handshake", ext={EXTENSION_NAME: True}))
    assert ext.is_supported() is True


@pytest.mark.parametrize("value", [False, "true", 1, None])
def test_non_true_flag_is_not_support(value):
    ext = ReplayExtension(MapStorage())
    ext.incoming(Message(channel="/meta/handshake", ext={EXTENSION_NAME: value}))
    assert ext.is_supported() is False


def test_handshake_without_ext_is_not_support():
    ext = ReplayExtension(MapStorage())
    ext.incoming(Message(channel="/meta/handshake"))
    assert ext.is_supported() is False


def test_incoming_meta_unsubscribe_removes_channel():
    store = MapStorage()
    store.set("/foo/bar", 1)
    store.set("/bar/*", 2)
    store.set("/", 3)
    ext = ReplayExtension(store)
    ext.incoming(Message(channel="/meta/unsubscribe", subscription=Channel("/")))
    assert store.get("/") is None
    assert store.as_map() == {"/foo/bar": 1, "/bar/*": 2}


@pytest.mark.parametrize("channel", ["/meta/connect", "/meta/subscribe", "/service/foo"])
def test_incoming_edges_leave_store_alone(channel):
    store = MapStorage()
    store.set(channel, 7)
    ext = ReplayExtension(store)
    ext.incoming(
        Message(channel=channel, data={"data": json.dumps({"event": {"replayId": 9}})})
    )
    assert store.as_map() == {channel: 7}
    assert ext.is_supported() is False


@pytest.mark.parametrize(
    ("data", "want"),
    [
        ('{"event": {"replayId": 2, "body": "data"}}', 2),
        ('{"event": {"replayId": "abc", "body": "data"}}', 1),
        ('{"not_an_event": {"replay": 2, "body": "data"}}', 1),
        ('{"event": [{"replay": 2, "body": "data"}]}', 1),
        ('{"event": {"body": "data"]}', 1),
        ("just some plain text", 1),
    ],
)
def test_incoming_updates_replay_id_store(data, want):
    store = MapStorage()
    store.set("/foo/bar", 1)
    ext = ReplayExtension(store)
    ext.incoming(Message(channel="/foo/bar", data={"data": data}))
    assert store.get("/foo/bar") == want


def test_incoming_accepts_message_data_instance():
    store = MapStorage()
    ext = ReplayExtension(store)
    payload = MessageData(data='{"event": {"replayId": 42.9}}')
    ext.incoming(Message(channel="/foo/bar", data=payload))
    assert store.get("/foo/bar") == 42


@pytest.mark.parametrize(
    "data",
    [None, "plain", [1, 2], {"data": 5}, {"data": '{"event": {"replayId": true}}'}],
)
def test_incoming_ignores_malformed_data(data):
    store = MapStorage()
    store.set("/foo/bar", 1)
    ext = ReplayExtension(store)
    ext.incoming(Message(channel="/foo/bar", data=data))
    assert store.get("/foo/bar") == 1


def test_registered_does_not_change_support():
    ext = ReplayExtension(MapStorage())
    ext.registered(EXTENSION_NAME, None)
    assert ext.is_supported() is False


def test_unregistered_keeps_store():
    store = MapStorage()
    store.set("/foo/bar", 5)
    ext = ReplayExtension(store)
    ext.unregistered()
    assert ext.store.as_map() == {"/foo/bar": 5}


def test_map_storage_set():
    store = MapStorage()
    store.set("/foo/bar", 1)
    assert store.get("/foo/bar") == 1


def test_empty_map_storage_get():
    assert MapStorage().get("/foo/bar") is None


def test_map_storage_delete():
    store = MapStorage()
    store.set("/foo/bar", 1)
    store.delete("/foo/bar")
    assert store.get("/foo/bar") is None


def test_map_storage_as_map_is_copy():
    store = MapStorage()
    store.set("/foo/bar", 1234)
    snapshot = store.as_map()
    assert snapshot == {"/foo/bar": 1234}
    snapshot["/other"] = 1
    assert store.as_map() == {"/foo/bar": 1234}


def test_extension_through_bayeux_client():
    seen = []

    def handler(request):
        seen.append(json.loads(request.read()))
        reply = [
            {
                "channel": "/meta/handshake",
                "successful": True,
                "clientId": "abc123",
                "ext": {EXTENSION_NAME: True},
            }
        ]
        return httpx.Response(200, json=reply)

    ext = ReplayExtension(MapStorage())
    client = BayeuxClient("https://example.com", transport=httpx.MockTransport(handler))
    client.use_extension(ext)
    client.handshake()
    assert seen[0][0]["ext"] == {EXTENSION_NAME: True}
    assert ext.is_supported() is True