# blackboard

Backend for a shared blackboard. Clients send small binary messages to a
server over TLS connections. Each message carries either a canvas drawing
command or a chunk of audio. The server decodes every message and logs what it
received.

The package has three modules:

- `blackboard.messages`: the wire format. A `ClientToServer` holds at most one
  payload. The payload is either a `CanvasCommand` (a JSON command string
  `command_json` and a timestamp `timestamp_ms` in milliseconds) or an
  `AudioChunk` (raw bytes `data` and a sequence number `sequence`).
  `encode()` turns a message into protobuf-compatible bytes and `decode()`
  reads them back. `decode()` raises `DecodeError` on malformed input.
  Integer fields must fit in a signed 64-bit integer. Anything outside that
  range raises `ValueError`.
- `blackboard.server`: `BlackboardServer`, an asyncio TLS server. It reads one
  message per connection, up to 64 KiB, then decodes and logs it. It also
  keeps the decoded messages in its `received` list. `configure_server()`
  creates a self-signed certificate and a matching server `ssl.SSLContext`.
- `blackboard.client`: a load-testing client. It sends many concurrent
  requests and reports how long they took.

## Installation

```
pip install .
```

The only runtime dependency is `cryptography`. It is used to generate the
server's self-signed certificate.

## Running the server

```
blackboard-server [--host HOST] [--port PORT] [--cert-out PATH]
```

By default the server listens on `0.0.0.0:12345`. At startup it generates a
self-signed certificate for `localhost` and writes the certificate in DER form
to `--cert-out` (default `cert.der` in the current directory). Press Ctrl+C to
stop it.

Each message the server receives is logged, for example:

```
Received Canvas Command: '{"action": "stress_test"}' at timestamp 1700000000000
Received Audio Chunk: sequence 42, size 10 bytes
```

A message with no payload is logged as `Received an empty payload.` Undecodable
or oversized input is logged as an error, and the server goes on running.

## Running the load test

```
blackboard-client <canvas|audio> [num_requests]
```

For example:

```
blackboard-client canvas 5000
```

- `canvas` sends `CanvasCommand` messages with the command
  `{"action": "stress_test"}`. Each one is stamped with the current time in
  milliseconds.
- `audio` sends `AudioChunk` messages of ten zero bytes. Each one is numbered
  with its request index.

`num_requests` defaults to 1000. A value that is not a non-negative whole
number, or that does not fit in 32 bits, also falls back to 1000. The client
behaves as follows:

- Without arguments it prints its usage and exits.
- With an unknown message type it prints an error and exits with status 1.

Every request opens its own connection to `127.0.0.1:12345`, sends one message
and closes. Failed requests are reported on standard error. When all requests
are done, the client prints:

- the total number of requests
- the elapsed time
- the requests per second

The client accepts any server certificate. It is meant for testing against a
local server only.

## Using the library

```python
from blackboard.messages import AudioChunk, ClientToServer, decode, encode

message = ClientToServer(payload=AudioChunk(data=b"\x01\x02\x03", sequence=1))
data = encode(message)
assert decode(data) == message
```

Running a server from your own code:

```python
import asyncio

from blackboard.server import BlackboardServer, configure_server


async def run() -> None:
    ssl_context, _cert_der = configure_server(["localhost"])
    async with BlackboardServer("127.0.0.1", 0, ssl_context) as server:
        print("listening on", server.address())
        await server.serve_forever()


asyncio.run(run())
```

If no `ssl_context` is given, `start()` creates one for `localhost` itself.

Driving the load test programmatically:

```python
import asyncio

from blackboard.client import configure_client, run_stress_test

result = asyncio.run(
    run_stress_test("127.0.0.1", 12345, "audio", 100, configure_client())
)
print(result.total_requests, result.failures, result.requests_per_second())
```

`build_message()` and `stamp_message()` build the sample messages the load
test sends. `send_single_request()` sends a single message.

## What it does not do

- The server never replies. Clients get no acknowledgement, and nothing is
  sent from the server to clients.
- Received messages are only logged and kept in memory on the
  `BlackboardServer` instance. Nothing is stored or forwarded to other clients.
- The certificate written to `cert.der` is not used by the bundled client,
  which skips certificate verification.

## Tests

```
pip install ".[test]"
pytest
```