"""Load-testing client that sends many messages to a blackboard server."""

from __future__ import annotations

import asyncio
import contextlib
import re
import ssl
import sys
import time
from dataclasses import dataclass, replace
from typing import Sequence

from blackboard.messages import AudioChunk, CanvasCommand, ClientToServer, encode

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 12345
NUM_REQUESTS = 1000
SERVER_NAME = "localhost"

USAGE = (
    "Usage: client <canvas|audio> [num_requests]\n"
    "Example: client canvas 5000"
)


@dataclass(frozen=True)
class StressTestResult:
    """Outcome of a stress test run."""

    total_requests: int
    elapsed: float
    failures: int = 0

    def requests_per_second(self) -> float:
        """Requests completed per second of wall time."""
        if self.elapsed <= 0:
            return float("inf")
        return self.total_requests / self.elapsed


def configure_client() -> ssl.SSLContext:
    """TLS context accepting any server certificate, for self-signed test servers."""
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def build_message(message_type: str) -> ClientToServer:
    """Build the sample message for 'canvas' or 'audio'."""
    if message_type == "canvas":
        return ClientToServer(CanvasCommand('{"action": "stress_test"}', 0))
    if message_type == "audio":
        return ClientToServer(AudioChunk(bytes(10), 0))
    raise ValueError("Invalid message type. Use 'canvas' or 'audio'.")


def stamp_message(message: ClientToServer, index: int) -> ClientToServer:
    """Give a message a unique timestamp (canvas) or sequence number (audio)."""
    match message.payload:
        case CanvasCommand() as command:
            now_ms = time.time_ns() // 1_000_000
            return ClientToServer(replace(command, timestamp_ms=now_ms))
        case AudioChunk() as chunk:
            return ClientToServer(replace(chunk, sequence=index))
    return message


async def send_single_request(
    host: str,
    port: int,
    message: ClientToServer,
    ssl_context: ssl.SSLContext | None = None,
) -> None:
    """Open a connection, send one encoded message and close it."""
    context = ssl_context if ssl_context is not None else configure_client()
    _, writer = await asyncio.open_connection(
        host, port, ssl=context, server_hostname=SERVER_NAME
    )
    try:
        writer.write(encode(message))
        await writer.drain()
    finally:
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()


async def run_stress_test(
    host: str,
    port: int,
    message_type: str,
    num_requests: int = NUM_REQUESTS,
    ssl_context: ssl.SSLContext | None = None,
) -> StressTestResult:
    """Send num_requests messages concurrently and time the run."""
    template = build_message(message_type)
    context = ssl_context if ssl_context is not None else configure_client()

    async def request(index: int) -> bool:
        try:
            await send_single_request(host, port, stamp_message(template, index), context)
        except (OSError, asyncio.TimeoutError) as exc:
            print(f"[Request {index}] Failed: {exc}", file=sys.stderr)
            return False
        return True

    start = time.perf_counter()
    outcomes = await asyncio.gather(*(request(index) for index in range(num_requests)))
    elapsed = time.perf_counter() - start
    return StressTestResult(num_requests, elapsed, outcomes.count(False))


def _parse_count(text: str) -> int:
    if re.fullmatch(r"\+?[0-9]+", text):
        value = int(text)
        if value <= 0xFFFFFFFF:
            return value
    return NUM_REQUESTS


def main(argv: Sequence[str] | None = None) -> int:
    """Command-line entry point for the stress test."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(USAGE)
        return 0
    message_type = args[0]
    num_requests = _parse_count(args[1]) if len(args) > 1 else NUM_REQUESTS
    try:
        build_message(message_type)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Starting stress test with {num_requests} concurrent requests...")
    result = asyncio.run(
        run_stress_test(DEFAULT_HOST, DEFAULT_PORT, message_type, num_requests)
    )
    print("\nTest finished!")
    print("--------------------")
    print(f"Total requests: {result.total_requests}")
    print(f"Total time: {result.elapsed:.6f}s")
    print(f"Requests per second: {result.requests_per_second():.2f}")
    return 0