# bayeux

Clients for servers that speak the Bayeux protocol (as used by CometD and
Salesforce streaming APIs) over HTTP long-polling, built on `httpx`.

The package has two layers:

- `bayeux.bayeux_client.BayeuxClient` is a low-level protocol client. Each
  method sends one request and returns the decoded response messages:
  `handshake()`, `connect()`, `subscribe(channels)`, `unsubscribe(channels)`
  and `disconnect()`. Its `client_id` and `state` properties show the id the
  server assigned and the connection state. It can be used as a context
  manager; `close()` closes the `httpx.Client` if the object created it.
- `bayeux.client.Client` is a high-level client. It handshakes, runs the
  long-polling loop in a background thread and puts the messages for each
  subscribed channel on a queue that you supply.

## Installation

```
pip install .
```

## Using the high-level client

```python
import queue

from bayeux.client import Client

client = Client("https://localhost:8080/")

received = queue.Queue()
client.subscribe("/foo/bar", received)

errors = client.start()          # a queue.Queue of exceptions

batch = received.get()           # a list of Message objects
for message in batch:
    print(message.channel, message.data)

client.disconnect()
```

`subscribe()` only queues the request; the background loop sends all waiting
subscriptions in one `/meta/subscribe` request. Messages from a
`/meta/connect` response are grouped into batches of consecutive messages on
the same channel, and a batch is put on its channel's queue when a message on
a different channel follows it. Subscribing twice to the same channel raises
a `BayeuxError` ("already subscribed") in the loop.

Keyword options of `Client`:

- `logger`: an object with the `bayeux.logger.Logger` interface. By default
  nothing is logged (`NullLogger`). `bayeux.logger.StdlibLogger` wraps a
  `logging.Logger` (by default the one named `bayeux`) and writes lines of
  the form `msg key=value ...`.
- `http_client` or `transport`: a custom `httpx.Client`, or an
  `httpx.BaseTransport` for the client to use. Passing both raises
  `ValueError`.
- `ignore_error`: a callable that takes an exception and returns `True` when
  an error from subscribing should not stop the loop. Ignored errors are
  still put on the error queue that `start()` returns.

When the loop stops because of an error, the error is put on that queue.

## Channels

`bayeux.channel.Channel` is a `str` with helpers for the Bayeux channel
rules:

```python
from bayeux.channel import Channel, ChannelType

Channel("/meta/connect").type() is ChannelType.META   # True
Channel("/foo/*").match(Channel("/foo/bar"))          # True
Channel("/foo/*").match("/foo/bar/baz")               # False
Channel("/foo/**").match_string("/foo/bar/baz")       # True
Channel("/foo/*/bar").is_valid()                      # False
```

## Messages

`bayeux.message.Message` and `bayeux.message.Advice` are dataclasses.
`encode_messages` and `decode_messages` turn lists of messages into and out
of JSON, leaving out empty fields. `Message.parse_error()` splits an error
field such as `"403:xj3sjdsjdsjad,/foo/bar:Subscription denied"` into a
`MessageError`, and `Message.timestamp_as_time()` parses a
`YYYY-MM-DDThh:mm:ss.ss` timestamp as a UTC `datetime`.

## Building requests by hand

The builders in `bayeux.message_builders` check their input before they
produce messages:

```python
from bayeux.message import encode_messages
from bayeux.message_builders import HandshakeRequestBuilder

builder = HandshakeRequestBuilder()
builder.add_version("1.0")
builder.add_supported_connection_type("long-polling")
print(encode_messages(builder.build()))
# [{"channel":"/meta/handshake","version":"1.0","supportedConnectionTypes":["long-polling"]}]
```

There are also `ConnectRequestBuilder`, `SubscribeRequestBuilder`,
`UnsubscribeRequestBuilder` and `DisconnectRequestBuilder`. Invalid input
raises an exception from `bayeux.errors`, for example
`BadConnectionTypeError`, `BadConnectionVersionError`,
`InvalidChannelError` or `MissingClientIDError`. All exceptions in that
module derive from `BayeuxError`.

## Extensions

An extension subclasses `bayeux.extension.MessageExtender`. Its `outgoing`
and `incoming` methods may change every message that is sent or received.
Register it with `Client.use_extension(ext)` or
`BayeuxClient.use_extension(ext)`. Registering the same extension object
twice raises `AlreadyRegisteredError`.

Two extras come with the package:

- `bayeux.extensions.replay.ReplayExtension` announces the replay extension
  on handshake, records the `replayId` of events received on broadcast
  channels, and sends the recorded ids with subscribe requests once the
  server has said it supports them. The ids are kept in a
  `bayeux.extensions.replay.MapStorage` or in any other `IDStore`.
- `bayeux.extensions.salesforce.StaticTokenAuthenticator` is an `httpx`
  transport. For hosts ending in `salesforce.com` it adds an
  `Authorization: Bearer <token>` header and the cookies from the previous
  response; other requests pass through unchanged.

```python
import httpx

from bayeux.client import Client
from bayeux.extensions.replay import MapStorage, ReplayExtension
from bayeux.extensions.salesforce import StaticTokenAuthenticator

transport = StaticTokenAuthenticator("token", httpx.HTTPTransport())
client = Client("https://example.my.salesforce.com/cometd/59.0", transport=transport)
client.use_extension(ReplayExtension(MapStorage()))
```

## Testing against an in-memory server

`bayeux.testserver.Server` answers handshake, connect and subscribe requests
from memory. Its `handle_request` method fits `httpx.MockTransport`:

```python
import httpx

from bayeux.client import Client
from bayeux.testserver import Server

server = Server()
server.start()
client = Client("https://example.com", transport=httpx.MockTransport(server.handle_request))
```

Run the package's tests with:

```
pip install ".[test]"
pytest
```

## What the package does not do

- It does not publish messages to the server; neither client has a publish
  method.
- The high-level `Client` has no unsubscribe method; use
  `BayeuxClient.unsubscribe` for that.
- Only the long-polling connection type is used for requests.
- `bayeux.testserver.Server` is not a network server and ignores
  `/meta/unsubscribe` and `/meta/disconnect` requests.