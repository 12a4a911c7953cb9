"""TLS server that receives and logs blackboard client messages."""

from __future__ import annotations

import argparse
import asyncio
import datetime
import logging
import ssl
import tempfile
from pathlib import Path
from typing import Sequence

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from blackboard.messages import AudioChunk, CanvasCommand, ClientToServer, DecodeError, decode

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 12345
MAX_MESSAGE_SIZE = 65536


def configure_server(hostnames: Sequence[str]) -> tuple[ssl.SSLContext, bytes]:
    """Create a self-signed certificate and a server TLS context using it.

    Returns the context and the certificate in DER form.
    """
    names = list(hostnames)
    if not names:
        raise ValueError("at least one hostname is required")
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "self signed cert")])
    now = datetime.datetime.now(datetime.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=3650))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in names]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    cert_pem = certificate.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    with tempfile.TemporaryDirectory() as directory:
        cert_path = Path(directory, "cert.pem")
        key_path = Path(directory, "key.pem")
        cert_path.write_bytes(cert_pem)
        key_path.write_bytes(key_pem)
        context.load_cert_chain(cert_path, key_path)
    return context, certificate.public_bytes(serialization.Encoding.DER)


def describe_message(message: ClientToServer) -> str:
    """Return the log line describing a received message."""
    match message.payload:
        case CanvasCommand(command_json=command_json, timestamp_ms=timestamp_ms):
            return f"Received Canvas Command: '{command_json}' at timestamp {timestamp_ms}"
        case AudioChunk(data=data, sequence=sequence):
            return f"Received Audio Chunk: sequence {sequence}, size {len(data)} bytes"
    return "Received an empty payload."


def handle_payload(data: bytes) -> ClientToServer:
    """Decode one received message, log it and return it."""
    logger.info("Received %d bytes of data.", len(data))
    message = decode(data)
    logger.info("%s", describe_message(message))
    return message


async def _read_to_end(reader: asyncio.StreamReader, limit: int) -> bytes:
    buffer = bytearray()
    while chunk := await reader.read(limit + 1):
        buffer += chunk
        if len(buffer) > limit:
            raise ValueError(f"stream exceeded the limit of {limit} bytes")
    return bytes(buffer)


class BlackboardServer:
    """Accepts TLS connections, each carrying one encoded message."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.ssl_context = ssl_context
        self.received: list[ClientToServer] = []
        self._server: asyncio.base_events.Server | None = None

    async def start(self) -> None:
        """Bind the listening socket."""
        if self.ssl_context is None:
            self.ssl_context, _ = configure_server(["localhost"])
        self._server = await asyncio.start_server(
            self._handle_connection, self.host, self.port, ssl=self.ssl_context
        )
        host, port = self.address()
        logger.info("Listening on %s:%d", host, port)

    async def serve_forever(self) -> None:
        """Serve connections until cancelled."""
        if self._server is None:
            await self.start()
        assert self._server is not None
        await self._server.serve_forever()

    async def close(self) -> None:
        """Stop accepting connections and wait for the listener to close."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    def address(self) -> tuple[str, int]:
        """Return the bound host and port."""
        if self._server is None or not self._server.sockets:
            raise RuntimeError("server is not started")
        host, port = self._server.sockets[0].getsockname()[:2]
        return host, port

    async def __aenter__(self) -> "BlackboardServer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        peer = writer.get_extra_info("peername")
        logger.info("Connection established with: %s", peer)
        try:
            data = await _read_to_end(reader, MAX_MESSAGE_SIZE)
            self.received.append(handle_payload(data))
        except (DecodeError, ValueError, OSError) as exc:
            logger.error("Stream handling failed for %s: %s", peer, exc)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server, saving its certificate for clients."""
    parser = argparse.ArgumentParser(description="Blackboard message server")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--cert-out", default="cert.der", type=Path)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    logger.info("Starting server...")
    context, cert_der = configure_server(["localhost"])
    logger.info("Saving server certificate to %s", args.cert_out)
    args.cert_out.write_bytes(cert_der)
    logger.info("Certificate saved successfully.")

    server = BlackboardServer(args.host, args.port, context)
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        logger.info("Shutting down.")
    return 0