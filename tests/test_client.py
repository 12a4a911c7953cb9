import asyncio
import socket
import ssl
import time

import pytest

from blackboard.client import (
    StressTestResult,
    build_message,
    configure_client,
    main,
    run_stress_test,
    send_single_request,
    stamp_message,
)
from blackboard.messages import AudioChunk, CanvasCommand, ClientToServer
from blackboard.server import BlackboardServer, configure_server


async def _wait_for(condition, timeout=10.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True


def _unused_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_configure_client_skips_verification():
    context = configure_client()
    assert context.verify_mode == ssl.CERT_NONE
    assert context.check_hostname is False


def test_build_canvas_message():
    assert build_message("canvas") == ClientToServer(
        CanvasCommand('{"action": "stress_test"}', 0)
    )


def test_build_audio_message():
    assert build_message("audio") == ClientToServer(AudioChunk(bytes(10), 0))


def test_build_invalid_message():
    with pytest.raises(ValueError, match="Invalid message type"):
        build_message("video")


def test_stamp_audio_sets_sequence():
    stamped = stamp_message(build_message("audio"), 42)
    assert stamped == ClientToServer(AudioChunk(bytes(10), 42))


def test_stamp_canvas_sets_current_time():
    before = time.time_ns() // 1_000_000
    stamped = stamp_message(build_message("canvas"), 5)
    after = time.time_ns() // 1_000_000
    assert before <= stamped.payload.timestamp_ms <= after
    assert stamped.payload.command_json == '{"action": "stress_test"}'


def test_stamp_empty_message_unchanged():
    assert stamp_message(ClientToServer(), 3) == ClientToServer()


def test_requests_per_second():
    assert StressTestResult(100, 2.0).requests_per_second() == 50.0
    assert StressTestResult(1, 0.0).requests_per_second() == float("inf")


def test_main_without_arguments_prints_usage(capsys):
    assert main([]) == 0
    assert "Usage:" in capsys.readouterr().out


def test_main_invalid_type_fails(capsys):
    assert main(["video"]) == 1
    assert "Invalid message type" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_send_single_request_delivers_message():
    context, _ = configure_server(["localhost"])
    message = ClientToServer(CanvasCommand("test_command", 123))
    async with BlackboardServer("127.0.0.1", 0, context) as server:
        host, port = server.address()
        await send_single_request(host, port, message, configure_client())
        done = await _wait_for(lambda: len(server.received) == 1)
    assert done
    assert server.received == [message]


@pytest.mark.asyncio
async def test_stress_test_sends_unique_sequences():
    context, _ = configure_server(["localhost"])
    async with BlackboardServer("127.0.0.1", 0, context) as server:
        host, port = server.address()
        result = await run_stress_test(host, port, "audio", 5)
        done = await _wait_for(lambda: len(server.received) == 5)
    assert done
    assert result.total_requests == 5
    assert result.failures == 0
    assert {m.payload.sequence for m in server.received} == {0, 1, 2, 3, 4}


@pytest.mark.asyncio
async def test_stress_test_counts_failures(capsys):
    port = _unused_port()
    result = await run_stress_test("127.0.0.1", port, "canvas", 3)
    assert result.failures == 3
    assert "[Request 0] Failed" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_stress_test_rejects_invalid_type():
    with pytest.raises(ValueError):
        await run_stress_test("127.0.0.1", 1, "video", 1)