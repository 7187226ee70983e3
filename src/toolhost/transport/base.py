"""Abstract base transport and error types."""

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable

from toolhost.transport.types import TransportEvent

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base exception for transport errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class TransportClosedError(TransportError):
    """Message could not be delivered because the connection is gone."""

    pass


class Transport(ABC):
    """
    Abstract base class for server-side MCP transports.

    A transport carries decoded JSON-RPC messages between one client
    connection and its ServerSession. Framing and encoding are the
    transport's business; the session only sees dicts.
    """

    def __init__(self) -> None:
        self._event_handlers: list[Callable[[TransportEvent], None]] = []

    def on_event(self, handler: Callable[[TransportEvent], None]) -> None:
        """
        Register an event handler for transport events.

        Args:
            handler: Callback invoked when transport events occur.
        """
        self._event_handlers.append(handler)

    def _emit_event(self, event: TransportEvent) -> None:
        """Emit an event to all registered handlers."""
        for handler in self._event_handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Transport event handler failed")

    @abstractmethod
    async def connect(self) -> None:
        """Prepare the transport for message exchange."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Close the connection and release all resources.

        Must be safe to call multiple times.
        """
        pass

    @abstractmethod
    async def send(
        self,
        message: dict[str, Any],
        related_request_id: str | int | None = None,
    ) -> None:
        """
        Deliver a JSON-RPC message to the client.

        Args:
            message: Response, notification or server-initiated request.
            related_request_id: Id of the client request this message
                belongs to, so transports that keep one stream per request
                can route it.

        Raises:
            TransportClosedError: If the connection is gone.
        """
        pass

    @abstractmethod
    def receive(self) -> AsyncIterator[Any]:
        """
        Async iterator yielding decoded messages from the client.

        Iteration ends when the client disconnects.
        """
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the transport can still deliver messages."""
        pass

    @property
    def session_id(self) -> str | None:
        """Transport-level session id, for transports that have one."""
        return None

    async def complete_request(self, request_id: str | int) -> None:
        """Signal that no more messages will be sent for a client request."""
        return None

    async def __aenter__(self) -> "Transport":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
