import pytest

from bayeux.channel import (
    META_CONNECT,
    META_HANDSHAKE,
    Channel,
    ChannelType,
)


@pytest.mark.parametrize(
    "name, want",
    [
        ("/meta/connect", ChannelType.META),
        ("meta/connect", ChannelType.BROADCAST),
        ("/service/chat", ChannelType.SERVICE),
        ("/foo/bar", ChannelType.BROADCAST),
    ],
)
def test_type(name, want):
    assert Channel(name).type() is want


@pytest.mark.parametrize(
    "name, want",
    [
        ("/meta/connect", False),
        ("/foo/*", True),
        ("/foo/**", True),
        ("/foo/**/biz", False),
    ],
)
def test_has_wildcard(name, want):
    assert Channel(name).has_wildcard() is want


@pytest.mark.parametrize(
    "name, want",
    [
        ("/foo", True),
        ("/foo/*", True),
        ("/foo/**", True),
        ("/foo/*/bar", False),
        ("foo/bar", False),
    ],
)
def test_is_valid(name, want):
    assert Channel(name).is_valid() is want


@pytest.mark.parametrize(
    "pattern, other, want",
    [
        ("/meta/connect", "/meta/connect", True),
        ("/meta/connect", "/foo/bar", False),
        ("/foo/*", "/foo/bar", True),
        ("/foo/*", "/foo/bar/baz", False),
        ("/foo/**", "/foo/bar", True),
        ("/foo/**", "/foo/bar/baz", True),
        ("*", "/foo", False),
        ("/foo/*", "/bar/baz", False),
        ("/foo/***", "/foo/bar", False),
    ],
)
def test_match(pattern, other, want):
    assert Channel(pattern).match(Channel(other)) is want


def test_match_string_accepts_plain_strings():
    assert Channel("/foo/**").match_string("/foo/a/b/c") is True
    assert Channel("/foo/*").match_string("/foo/a/b") is False


def test_wildcard_against_shorter_channel_does_not_match():
    assert Channel("/foo/*").match("/foo") is False


def test_channel_compares_as_string():
    assert Channel("/meta/connect") == "/meta/connect"
    assert META_CONNECT.type() is ChannelType.META
    assert META_HANDSHAKE == "/meta/handshake"