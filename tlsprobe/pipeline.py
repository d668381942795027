"""Connection pipeline — TCP connect, TLS handshake, certificates, HTTP/1.0 fetch.

Every stage awaits the previous one on a single asyncio event loop and
records a milestone on the pipeline's own EventTimeline. The first failure
aborts the attempt; nothing is retried and no partial result is returned.
"""

import asyncio
import logging
import socket
from dataclasses import dataclass, field
from enum import Enum

from tlsprobe.certificate import CertificateRecord
from tlsprobe.chain import DerTrustChain, extract_certificates
from tlsprobe.config import ProbeConfig, ascii_hostname
from tlsprobe.errors import (
    CertificateDecodeFailure,
    ConnectionFailure,
    HandshakeFailure,
    MalformedResponse,
    ResolutionFailure,
    StageTimeout,
    TransportFailure,
)
from tlsprobe.timeline import EventTimeline
from tlsprobe.tls_context import create_probe_context, is_requested_version

logger = logging.getLogger(__name__)

HEADER_SEPARATOR = b"\r\n\r\n"

CONNECTION_ESTABLISHED = "Connection Established"
TLS_HANDSHAKE = "TLS Handshake"
READING_RESPONSE = "Reading Response"
RESPONSE_FETCHED = "Response Fetched"


class PipelineState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    HANDSHAKE_IN_PROGRESS = "handshake_in_progress"
    CERTIFICATES_EXTRACTED = "certificates_extracted"
    REQUEST_SENT = "request_sent"
    READING_RESPONSE = "reading_response"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class PipelineResult:
    response_header: str
    response_body: bytes
    certificates: list[CertificateRecord]
    timeline: EventTimeline
    protocol: str | None = None
    cipher: str | None = None
    peer_address: tuple = field(default=())


def build_request(host: str) -> bytes:
    """Minimal HTTP/1.0 request; the peer closing the stream ends the response.

    ``host`` must already be in ASCII (IDNA) form.
    """
    return (
        f"GET / HTTP/1.0\r\n"
        f"Host: {host}\r\n"
        f"Connection: close\r\n"
        f"\r\n"
    ).encode("ascii")


def split_response(data: bytes) -> tuple[str, bytes]:
    """Split at the first blank line into (header text, body bytes).

    The header keeps the CRLF that ends its last line.
    """
    boundary = data.find(HEADER_SEPARATOR)
    if boundary < 0:
        raise MalformedResponse(
            f"stream closed after {len(data)} bytes without a header/body separator",
            stage="response parsing",
        )
    header = data[:boundary + 2].decode("utf-8", errors="replace")
    body = data[boundary + len(HEADER_SEPARATOR):]
    return header, body


class ConnectionPipeline:
    """Drives one connection attempt from IDLE to COMPLETE or FAILED."""

    def __init__(self, config: ProbeConfig, timeline: EventTimeline | None = None):
        self.config = config
        self.timeline = timeline if timeline is not None else EventTimeline()
        self.state = PipelineState.IDLE
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    async def run(self) -> PipelineResult:
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"pipeline already used (state={self.state.value})")
        try:
            result = await self._run()
        except BaseException:
            self.state = PipelineState.FAILED
            self._abort()
            raise
        await self._close()
        return result

    async def _run(self) -> PipelineResult:
        self.state = PipelineState.CONNECTING
        try:
            host = ascii_hostname(self.config.host)
        except UnicodeError as e:
            raise ResolutionFailure(
                f"{self.config.host!r} is not a valid hostname", stage="name resolution", cause=e
            ) from e

        address = await self._resolve(host)
        self._reader, self._writer = await self._stage(
            "TCP connect",
            asyncio.open_connection(address[0], address[1]),
            ConnectionFailure,
            f"could not connect to {address[0]} port {address[1]}",
        )
        self._record(CONNECTION_ESTABLISHED)

        self.state = PipelineState.HANDSHAKE_IN_PROGRESS
        protocol, cipher, ssl_object = await self._handshake(host)
        self._record(TLS_HANDSHAKE, {"protocol": protocol, "cipher": cipher})

        try:
            certificates = extract_certificates(DerTrustChain.from_ssl_object(ssl_object))
        except CertificateDecodeFailure as e:
            e.stage = e.stage or "certificate extraction"
            raise
        logger.info("Peer presented %d certificate(s)", len(certificates))
        self.state = PipelineState.CERTIFICATES_EXTRACTED

        request = build_request(host)
        logger.debug("HTTP request: %r", request)
        self._writer.write(request)
        await self._stage(
            "request write", self._writer.drain(), TransportFailure, "failed to send request"
        )
        self.state = PipelineState.REQUEST_SENT

        self._record(READING_RESPONSE)
        self.state = PipelineState.READING_RESPONSE
        data = await self._stage(
            "response read", self._reader.read(), TransportFailure, "failed to read response"
        )
        self._record(RESPONSE_FETCHED)
        logger.debug("Read %d response bytes", len(data))

        header, body = split_response(data)
        self.state = PipelineState.COMPLETE
        return PipelineResult(
            response_header=header,
            response_body=body,
            certificates=certificates,
            timeline=self.timeline,
            protocol=protocol,
            cipher=cipher,
            peer_address=tuple(address[:2]),
        )

    async def _resolve(self, host: str) -> tuple:
        loop = asyncio.get_running_loop()
        try:
            infos = await self._stage(
                "name resolution",
                loop.getaddrinfo(host, self.config.port, type=socket.SOCK_STREAM),
                ResolutionFailure,
                f"could not resolve {host!r}",
            )
        except UnicodeError as e:
            # getaddrinfo IDNA-encodes the name itself
            raise ResolutionFailure(
                f"could not resolve {host!r}", stage="name resolution", cause=e
            ) from e
        if not infos:
            raise ResolutionFailure(f"no addresses for {host!r}", stage="name resolution")
        # Only the first address is tried
        address = infos[0][4]
        logger.debug("Resolved %s to %s (%d candidates)", host, address[0], len(infos))
        return address

    async def _handshake(self, host: str):
        versions = self.config.tls_versions
        ctx = create_probe_context(versions)
        await self._stage(
            "TLS handshake",
            self._writer.start_tls(ctx, server_hostname=host),
            HandshakeFailure,
            "TLS negotiation failed",
        )
        ssl_object = self._writer.get_extra_info("ssl_object")
        protocol = ssl_object.version()
        cipher = ssl_object.cipher()
        cipher_name = cipher[0] if cipher else None
        if not is_requested_version(protocol, versions):
            raise HandshakeFailure(
                f"peer negotiated {protocol}, which was not requested",
                stage="TLS handshake",
            )
        logger.debug("Negotiated %s with %s", protocol, cipher_name)
        return protocol, cipher_name, ssl_object

    async def _stage(self, stage: str, awaitable, failure: type, message: str):
        timeout = self.config.stage_timeout
        if timeout is not None:
            awaitable = asyncio.wait_for(awaitable, timeout)
        try:
            return await awaitable
        except TimeoutError as e:
            if timeout is None:
                raise failure(message, stage=stage, cause=e) from e
            raise StageTimeout(f"no progress after {timeout}s", stage=stage, cause=e) from e
        except (OSError, EOFError) as e:
            raise failure(message, stage=stage, cause=e) from e

    def _record(self, description: str, metadata=None):
        if metadata is None:
            event = self.timeline.add(description)
        else:
            event = self.timeline.add_with_metadata(description, metadata)
        logger.info("[%d.%03d] %s", event.seconds, event.millis, description)
        return event

    def _abort(self):
        if self._writer is not None:
            self._writer.transport.abort()
            self._writer = None

    async def _close(self):
        if self._writer is None:
            return
        writer, self._writer = self._writer, None
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Error while closing connection: %s", e)


async def probe(config: ProbeConfig, timeline: EventTimeline | None = None) -> PipelineResult:
    """Run a single connection attempt."""
    return await ConnectionPipeline(config, timeline).run()
