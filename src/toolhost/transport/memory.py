"""In-process transport pair for embedding and tests."""

from __future__ import annotations

import asyncio
import time
from typing import Any, AsyncIterator

from toolhost.transport.base import Transport, TransportClosedError
from toolhost.transport.types import TransportEvent, TransportEventType

_CLOSED = object()


class MemoryTransport(Transport):
    """
    One end of an in-memory connection.

    Messages sent on one end arrive, in order, on the other end's
    receive() iterator. Disconnecting either end ends both iterators.
    """

    def __init__(self) -> None:
        super().__init__()
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._peer: MemoryTransport | None = None
        self._connected = False

    @classmethod
    def create_pair(cls) -> tuple["MemoryTransport", "MemoryTransport"]:
        """Create two linked ends: (server side, client side)."""
        server_end = cls()
        client_end = cls()
        server_end._peer = client_end
        client_end._peer = server_end
        server_end._connected = True
        client_end._connected = True
        return server_end, client_end

    async def connect(self) -> None:
        if self._peer is None:
            raise TransportClosedError("Memory transport has no peer")
        self._connected = True
        self._emit_event(
            TransportEvent(type=TransportEventType.CONNECTED, timestamp=time.time())
        )

    async def disconnect(self) -> None:
        if not self._connected:
            return
        self._connected = False
        self._inbox.put_nowait(_CLOSED)
        if self._peer is not None and self._peer._connected:
            self._peer._connected = False
            self._peer._inbox.put_nowait(_CLOSED)
        self._emit_event(
            TransportEvent(type=TransportEventType.DISCONNECTED, timestamp=time.time())
        )

    async def send(
        self,
        message: dict[str, Any],
        related_request_id: str | int | None = None,
    ) -> None:
        if not self._connected or self._peer is None:
            raise TransportClosedError("Memory transport is closed")
        self._peer._inbox.put_nowait(message)
        self._emit_event(
            TransportEvent(
                type=TransportEventType.MESSAGE_SENT,
                timestamp=time.time(),
                data={"related_request_id": related_request_id},
            )
        )

    async def receive(self) -> AsyncIterator[Any]:
        while True:
            message = await self._inbox.get()
            if message is _CLOSED:
                return
            yield message

    async def get(self, timeout: float | None = 5.0) -> Any:
        """
        Wait for the next message on this end.

        Raises:
            TransportClosedError: If the connection closed first.
            asyncio.TimeoutError: If nothing arrived in time.
        """
        message = await asyncio.wait_for(self._inbox.get(), timeout=timeout)
        if message is _CLOSED:
            raise TransportClosedError("Memory transport is closed")
        return message

    def is_connected(self) -> bool:
        return self._connected
