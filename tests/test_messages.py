import pytest

from blackboard.messages import (
    AudioChunk,
    CanvasCommand,
    ClientToServer,
    DecodeError,
    decode,
    encode,
)


CANVAS = ClientToServer(CanvasCommand(command_json="test_command", timestamp_ms=123))
AUDIO = ClientToServer(AudioChunk(data=bytes([1, 2, 3]), sequence=1))


def test_canvas_message_bytes():
    assert encode(CANVAS) == b"\x0a\x10\x0a\x0ctest_command\x10\x7b"


def test_audio_message_bytes():
    assert encode(AUDIO) == b"\x12\x07\x0a\x03\x01\x02\x03\x10\x01"


def test_empty_envelope_encodes_to_nothing():
    assert encode(ClientToServer()) == b""


def test_default_payload_still_marks_variant():
    assert encode(ClientToServer(CanvasCommand())) == b"\x0a\x00"
    assert decode(b"\x0a\x00") == ClientToServer(CanvasCommand())
    assert decode(b"\x12\x00") == ClientToServer(AudioChunk())


@pytest.mark.parametrize(
    "message",
    [
        CANVAS,
        AUDIO,
        ClientToServer(),
        ClientToServer(CanvasCommand('{"action": "stress_test"}', 0)),
        ClientToServer(AudioChunk(bytes(10), 0)),
        ClientToServer(CanvasCommand("ünïcödé", -1)),
        ClientToServer(AudioChunk(b"\x00" * 300, 2**63 - 1)),
        ClientToServer(AudioChunk(b"x", -(2**63))),
    ],
)
def test_round_trip(message):
    assert decode(encode(message)) == message


def test_negative_int64_uses_ten_byte_varint():
    encoded = encode(CanvasCommand(timestamp_ms=-1))
    assert encoded == b"\x10" + b"\xff" * 9 + b"\x01"


def test_nested_messages_encode_alone():
    assert encode(AudioChunk(data=b"\x01", sequence=2)) == b"\x0a\x01\x01\x10\x02"


def test_audio_data_is_stored_as_bytes():
    assert AudioChunk(data=[1, 2, 3]).data == b"\x01\x02\x03"


def test_out_of_range_integer_rejected():
    with pytest.raises(ValueError):
        CanvasCommand(timestamp_ms=2**63)


def test_truncated_payload_raises():
    with pytest.raises(DecodeError):
        decode(b"\x0a\x05\x0a")


def test_truncated_varint_raises():
    with pytest.raises(DecodeError):
        decode(b"\x0a\x02\x10\xff")


def test_invalid_utf8_raises():
    with pytest.raises(DecodeError):
        decode(b"\x0a\x03\x0a\x01\xff")


def test_wrong_wire_type_raises():
    with pytest.raises(DecodeError):
        decode(b"\x08\x01")


def test_field_zero_raises():
    with pytest.raises(DecodeError):
        decode(b"\x00\x01")


def test_unknown_fields_skipped():
    assert decode(b"\x18\x05" + encode(AUDIO) + b"\x25\x00\x00\x00\x00") == AUDIO


def test_last_variant_wins():
    assert decode(encode(CANVAS) + encode(AUDIO)) == AUDIO


def test_repeated_variant_merges():
    first = encode(ClientToServer(CanvasCommand(command_json="a")))
    second = encode(ClientToServer(CanvasCommand(timestamp_ms=7)))
    assert decode(first + second) == ClientToServer(CanvasCommand("a", 7))


def test_encode_rejects_other_types():
    with pytest.raises(TypeError):
        encode("not a message")