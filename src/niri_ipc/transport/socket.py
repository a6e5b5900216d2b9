"""Asyncio transport over the niri unix socket.

Wire format:
- Requests: one JSON value + newline
- Replies: one JSON value + newline, exactly one per request, in order
- After an EventStream request: one acknowledgment reply, then one event
  per line until the compositor closes the socket

A socket that started streaming events accepts no further requests. Open a
second NiriSocket for requests while following the event stream.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from ..errors import (
    CannotSendRequestError,
    NiriSocketError,
    ProtocolError,
    SocketEnvironmentNotFound,
)
from ..protocol.events import Event, UnknownEventError, event_from_json
from ..protocol.replies import Reply, Response
from ..protocol.requests import Request, RequestType
from ..state import EventStreamStatePart

logger = logging.getLogger(__name__)

SOCKET_ENV_VAR = "NIRI_SOCKET"
TIMEOUT_ENV_VAR = "NIRI_IPC_TIMEOUT"


@dataclass
class SocketConfig:
    """Configuration for a niri socket connection."""

    # Path of the compositor's unix socket
    path: str | None = None

    # Seconds to wait for a reply
    timeout: float = 5.0

    # Longest accepted line; full snapshots easily exceed asyncio's 64 KiB default
    read_limit: int = 16 * 1024 * 1024

    @classmethod
    def from_env(cls) -> SocketConfig:
        """Create config from $NIRI_SOCKET and $NIRI_IPC_TIMEOUT."""
        config = cls(path=os.environ.get(SOCKET_ENV_VAR) or None)
        timeout = os.environ.get(TIMEOUT_ENV_VAR)
        if timeout:
            try:
                config.timeout = float(timeout)
            except ValueError:
                logger.warning(f"Ignoring invalid {TIMEOUT_ENV_VAR}: {timeout!r}")
        return config


class NiriSocket:
    """Connection to the niri IPC socket.

    Example:
        async with await NiriSocket.connect() as sock:
            response = await sock.request(Request.version())
            print(response.data)
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        config: SocketConfig,
    ):
        self.config = config
        self._reader = reader
        self._writer = writer
        self._lock = asyncio.Lock()
        self._streaming = False
        self._broken = False

    @classmethod
    async def connect(cls, config: SocketConfig | None = None) -> NiriSocket:
        """Open the unix socket.

        Raises:
            SocketEnvironmentNotFound: If no path is configured and
                $NIRI_SOCKET is unset
            NiriSocketError: If the socket cannot be opened
        """
        config = config or SocketConfig.from_env()
        if not config.path:
            raise SocketEnvironmentNotFound(SOCKET_ENV_VAR)

        try:
            reader, writer = await asyncio.open_unix_connection(
                config.path, limit=config.read_limit
            )
        except OSError as e:
            raise NiriSocketError(
                f"Failed to connect to {config.path}: {e}", path=config.path
            ) from e

        logger.debug(f"Connected to niri socket at {config.path}")
        return cls(reader, writer, config)

    @property
    def is_streaming(self) -> bool:
        """Whether this socket switched to streaming events."""
        return self._streaming

    @property
    def is_broken(self) -> bool:
        """Whether a reply was abandoned, leaving the socket unusable."""
        return self._broken

    async def send(self, request: Request) -> Reply:
        """Send a request and wait for its reply.

        Raises:
            CannotSendRequestError: For EventStream requests (use
                `event_stream`) or if the socket is already streaming
            TimeoutError: If no reply arrives within the configured timeout.
                The socket is unusable afterwards, as is one whose `send` was
                cancelled.
            NiriSocketError: If an earlier reply was abandoned
        """
        if request.type == RequestType.EVENT_STREAM:
            raise CannotSendRequestError("Use event_stream() to request the event stream")

        async with self._lock:
            self._check_usable()
            if self._streaming:
                raise CannotSendRequestError("Socket is streaming events")

            line = await self._exchange(request)

        return Reply.from_json(_decode(line))

    async def request(self, request: Request) -> Response:
        """Send a request and return its response.

        Raises:
            ReplyError: If the compositor answers with an error
        """
        reply = await self.send(request)
        return reply.unwrap()

    async def event_stream(self) -> AsyncIterator[Event]:
        """Switch the socket to streaming and yield events until EOF.

        The first events describe the full current state (WorkspacesChanged,
        WindowsChanged, ...); everything after that is incremental.

        Raises:
            CannotSendRequestError: If the socket is already streaming
            NiriSocketError: If an earlier reply was abandoned
            ProtocolError: If the compositor does not acknowledge with
                Ok(Handled), or sends malformed events
        """
        async with self._lock:
            self._check_usable()
            if self._streaming:
                raise CannotSendRequestError("Socket is already streaming events")
            self._streaming = True

            line = await self._exchange(Request.event_stream())

        reply = Reply.from_json(_decode(line))
        if reply.is_error():
            raise ProtocolError(f"Event stream refused: {reply.error}")
        if reply.response is None or not reply.response.is_handled():
            raise ProtocolError(f"Unexpected event stream acknowledgment: {reply.to_json()}")

        logger.debug("Event stream started")

        while True:
            line = await self._read_line()
            if not line:
                logger.debug("Event stream closed by compositor")
                break
            if not line.strip():
                continue

            try:
                event = event_from_json(_decode(line))
            except UnknownEventError as e:
                logger.warning(f"Skipping unknown event: {e.tag}")
                continue

            yield event

    async def follow(self, state: EventStreamStatePart) -> AsyncIterator[Event]:
        """Apply every streamed event to `state`, yielding it afterwards."""
        async for event in self.event_stream():
            state.apply(event)
            yield event

    async def close(self) -> None:
        """Close the socket."""
        if self._writer.is_closing():
            return
        self._writer.close()
        with contextlib.suppress(OSError):
            await self._writer.wait_closed()
        logger.debug("Niri socket closed")

    def _check_usable(self) -> None:
        if self._broken:
            raise NiriSocketError(
                "Socket abandoned a reply after a timeout or cancellation; reconnect",
                path=self.config.path,
            )

    async def _exchange(self, request: Request) -> bytes:
        """Write one request and read its reply line. The caller holds the lock."""
        try:
            await self._write(request)
            line = await asyncio.wait_for(self._read_line(), timeout=self.config.timeout)
        except (TimeoutError, asyncio.CancelledError):
            # A late reply would otherwise be read as the answer to the next request
            self._broken = True
            self._writer.close()
            logger.warning(f"Abandoned reply to {request.type.value}, closing socket")
            raise

        if not line:
            raise NiriSocketError("Socket closed before reply", path=self.config.path)
        return line

    async def _write(self, request: Request) -> None:
        line = json.dumps(request.to_json()) + "\n"
        try:
            self._writer.write(line.encode("utf-8"))
            await self._writer.drain()
        except OSError as e:
            raise NiriSocketError(f"Failed to write request: {e}", path=self.config.path) from e

    async def _read_line(self) -> bytes:
        try:
            return await self._reader.readline()
        except ValueError as e:
            # StreamReader raises ValueError when a line exceeds the limit
            raise ProtocolError(f"Line exceeds read limit: {e}") from e
        except OSError as e:
            raise NiriSocketError(f"Failed to read from socket: {e}", path=self.config.path) from e

    async def __aenter__(self) -> NiriSocket:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _decode(line: bytes) -> Any:
    try:
        return json.loads(line)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON line: {line[:80]!r}") from e
