"""Newline-delimited JSON transport over stdin/stdout."""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from typing import Any, AsyncIterator

from toolhost.lib import oj
from toolhost.protocol.errors import MCPError
from toolhost.protocol.messages import JSONRPCResponse
from toolhost.transport.base import Transport, TransportClosedError, TransportError
from toolhost.transport.types import TransportEvent, TransportEventType

logger = logging.getLogger(__name__)


class StdioTransport(Transport):
    """
    MCP stdio transport.

    Each message is one line of UTF-8 JSON. stdout carries protocol
    traffic only, so all logging must go to stderr.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader | None = None,
        writer: asyncio.StreamWriter | None = None,
        max_line_bytes: int = 4 * 1024 * 1024,
    ):
        """
        Initialize stdio transport.

        Args:
            reader: Stream to read from (defaults to process stdin).
            writer: Stream to write to (defaults to process stdout).
            max_line_bytes: Longest accepted input line.
        """
        super().__init__()
        self._reader = reader
        self._writer = writer
        self._max_line_bytes = max_line_bytes
        self._write_lock = asyncio.Lock()
        self._connected = False

    async def connect(self) -> None:
        if self._connected:
            return

        loop = asyncio.get_running_loop()
        if self._reader is None:
            self._reader = asyncio.StreamReader(limit=self._max_line_bytes)
            await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(self._reader),
                sys.stdin,
            )
        if self._writer is None:
            transport, protocol = await loop.connect_write_pipe(
                asyncio.streams.FlowControlMixin,
                sys.stdout,
            )
            self._writer = asyncio.StreamWriter(transport, protocol, None, loop)

        self._connected = True
        self._emit_event(
            TransportEvent(type=TransportEventType.CONNECTED, timestamp=time.time())
        )

    async def disconnect(self) -> None:
        if not self._connected:
            return
        self._connected = False
        if self._writer is not None:
            try:
                self._writer.close()
            except Exception as e:
                logger.debug(f"Error closing stdout writer: {e}")
        self._emit_event(
            TransportEvent(type=TransportEventType.DISCONNECTED, timestamp=time.time())
        )

    async def send(
        self,
        message: dict[str, Any],
        related_request_id: str | int | None = None,
    ) -> None:
        if not self._connected or self._writer is None:
            raise TransportClosedError("stdio transport is closed")

        line = oj.dumps_bytes(message) + b"\n"
        async with self._write_lock:
            try:
                self._writer.write(line)
                await self._writer.drain()
            except (ConnectionError, BrokenPipeError) as e:
                self._connected = False
                raise TransportClosedError("stdout closed", cause=e)

        self._emit_event(
            TransportEvent(
                type=TransportEventType.MESSAGE_SENT,
                timestamp=time.time(),
                data={"method": message.get("method"), "id": message.get("id")},
            )
        )

    async def receive(self) -> AsyncIterator[Any]:
        if self._reader is None:
            raise TransportError("stdio transport not connected")

        while self._connected:
            try:
                line = await self._reader.readline()
            except ValueError as e:
                # Line exceeded the reader limit; the rest of it is discarded.
                logger.error(f"Dropping oversized message: {e}")
                await self._send_parse_error("Message too large")
                continue

            if not line:
                logger.info("stdin closed")
                break

            line = line.strip()
            if not line:
                continue

            try:
                message = oj.loads(line)
            except oj.JSONDecodeError as e:
                logger.warning(f"Invalid JSON on stdin: {e}")
                await self._send_parse_error(str(e))
                continue

            self._emit_event(
                TransportEvent(
                    type=TransportEventType.MESSAGE_RECEIVED,
                    timestamp=time.time(),
                )
            )
            yield message

    async def _send_parse_error(self, details: str) -> None:
        response = JSONRPCResponse.from_error(None, MCPError.parse_error(details))
        try:
            await self.send(response.to_dict())
        except TransportError as e:
            logger.debug(f"Could not report parse error: {e}")

    def is_connected(self) -> bool:
        return self._connected
