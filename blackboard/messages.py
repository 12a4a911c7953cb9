"""Wire messages exchanged between blackboard clients and the server.

The encoding is the protobuf binary format for the schema::

    message ClientToServer {
      oneof payload {
        CanvasCommand canvas_command = 1;
        AudioChunk audio_chunk = 2;
      }
    }
    message CanvasCommand { string command_json = 1; int64 timestamp_ms = 2; }
    message AudioChunk { bytes data = 1; int64 sequence = 2; }
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator, Union

_MASK64 = (1 << 64) - 1
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

_VARINT = 0
_FIXED64 = 1
_LENGTH_DELIMITED = 2
_FIXED32 = 5


class DecodeError(ValueError):
    """Raised when bytes are not a valid encoded message."""


def _check_int64(name: str, value: int) -> None:
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"{name} {value} does not fit in a signed 64-bit integer")


@dataclass(frozen=True)
class CanvasCommand:
    """A drawing command for the canvas."""

    command_json: str = ""
    timestamp_ms: int = 0

    def __post_init__(self) -> None:
        _check_int64("timestamp_ms", self.timestamp_ms)


@dataclass(frozen=True)
class AudioChunk:
    """A piece of raw audio with its ordering number."""

    data: bytes = b""
    sequence: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))
        _check_int64("sequence", self.sequence)


Payload = Union[CanvasCommand, AudioChunk]


@dataclass(frozen=True)
class ClientToServer:
    """The envelope a client sends; carries at most one payload."""

    payload: Payload | None = None


def _varint(value: int) -> bytes:
    value &= _MASK64
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def _key(field: int, wire_type: int) -> bytes:
    return _varint((field << 3) | wire_type)


def _length_delimited(field: int, payload: bytes) -> bytes:
    return _key(field, _LENGTH_DELIMITED) + _varint(len(payload)) + payload


def _encode_canvas(command: CanvasCommand) -> bytes:
    out = bytearray()
    if command.command_json:
        out += _length_delimited(1, command.command_json.encode("utf-8"))
    if command.timestamp_ms:
        out += _key(2, _VARINT) + _varint(command.timestamp_ms)
    return bytes(out)


def _encode_audio(chunk: AudioChunk) -> bytes:
    out = bytearray()
    if chunk.data:
        out += _length_delimited(1, chunk.data)
    if chunk.sequence:
        out += _key(2, _VARINT) + _varint(chunk.sequence)
    return bytes(out)


def encode(message: ClientToServer | CanvasCommand | AudioChunk) -> bytes:
    """Serialise a message to protobuf wire bytes."""
    match message:
        case CanvasCommand():
            return _encode_canvas(message)
        case AudioChunk():
            return _encode_audio(message)
        case ClientToServer(payload=None):
            return b""
        case ClientToServer(payload=CanvasCommand() as command):
            return _length_delimited(1, _encode_canvas(command))
        case ClientToServer(payload=AudioChunk() as chunk):
            return _length_delimited(2, _encode_audio(chunk))
    raise TypeError(f"cannot encode {type(message).__name__}")


def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    for shift in range(0, 70, 7):
        if pos >= len(data):
            raise DecodeError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if byte < 0x80:
            if shift == 63 and byte > 1:
                raise DecodeError("varint overflows 64 bits")
            return result & _MASK64, pos
    raise DecodeError("varint is too long")


def _take(data: bytes, pos: int, size: int) -> tuple[bytes, int]:
    end = pos + size
    if end > len(data):
        raise DecodeError("buffer underflow")
    return data[pos:end], end


def _iter_fields(data: bytes) -> Iterator[tuple[int, int, int | bytes]]:
    pos = 0
    while pos < len(data):
        key, pos = _read_varint(data, pos)
        if key > 0xFFFFFFFF:
            raise DecodeError(f"invalid key value {key}")
        field, wire_type = key >> 3, key & 0x7
        if field == 0:
            raise DecodeError("invalid field number 0")
        value: int | bytes
        if wire_type == _VARINT:
            value, pos = _read_varint(data, pos)
        elif wire_type == _FIXED64:
            value, pos = _take(data, pos, 8)
        elif wire_type == _LENGTH_DELIMITED:
            length, pos = _read_varint(data, pos)
            value, pos = _take(data, pos, length)
        elif wire_type == _FIXED32:
            value, pos = _take(data, pos, 4)
        else:
            raise DecodeError(f"unsupported wire type {wire_type}")
        yield field, wire_type, value


def _expect(wire_type: int, expected: int, name: str) -> None:
    if wire_type != expected:
        raise DecodeError(f"invalid wire type {wire_type} for field {name}")


def _signed(value: int) -> int:
    return value - (1 << 64) if value > _INT64_MAX else value


def _decode_canvas(data: bytes, base: CanvasCommand) -> CanvasCommand:
    changes: dict[str, object] = {}
    for field, wire_type, value in _iter_fields(data):
        if field == 1:
            _expect(wire_type, _LENGTH_DELIMITED, "CanvasCommand.command_json")
            try:
                changes["command_json"] = bytes(value).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DecodeError("command_json is not valid UTF-8") from exc
        elif field == 2:
            _expect(wire_type, _VARINT, "CanvasCommand.timestamp_ms")
            changes["timestamp_ms"] = _signed(value)
    return replace(base, **changes)


def _decode_audio(data: bytes, base: AudioChunk) -> AudioChunk:
    changes: dict[str, object] = {}
    for field, wire_type, value in _iter_fields(data):
        if field == 1:
            _expect(wire_type, _LENGTH_DELIMITED, "AudioChunk.data")
            changes["data"] = bytes(value)
        elif field == 2:
            _expect(wire_type, _VARINT, "AudioChunk.sequence")
            changes["sequence"] = _signed(value)
    return replace(base, **changes)


def decode(data: bytes) -> ClientToServer:
    """Parse protobuf wire bytes into a ClientToServer message."""
    payload: Payload | None = None
    for field, wire_type, value in _iter_fields(bytes(data)):
        if field == 1:
            _expect(wire_type, _LENGTH_DELIMITED, "ClientToServer.canvas_command")
            base = payload if isinstance(payload, CanvasCommand) else CanvasCommand()
            payload = _decode_canvas(value, base)
        elif field == 2:
            _expect(wire_type, _LENGTH_DELIMITED, "ClientToServer.audio_chunk")
            base = payload if isinstance(payload, AudioChunk) else AudioChunk()
            payload = _decode_audio(value, base)
    return ClientToServer(payload)