"""Transport layer types and configuration."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class TransportEventType(Enum):
    """Types of transport events for observability."""

    CONNECTED = auto()
    DISCONNECTED = auto()
    MESSAGE_SENT = auto()
    MESSAGE_RECEIVED = auto()
    ERROR = auto()
    SESSION_ESTABLISHED = auto()
    SESSION_CLOSED = auto()


@dataclass
class TransportEvent:
    """Event emitted by transport for observability."""

    type: TransportEventType
    timestamp: float
    data: dict[str, Any] | None = None
    error: Exception | None = None

    def __str__(self) -> str:
        base = f"[{self.type.name}]"
        if self.data:
            base += f" {self.data}"
        if self.error:
            base += f" error={self.error}"
        return base


@dataclass
class TransportConfig:
    """Configuration for the HTTP transport."""

    host: str = "127.0.0.1"
    """Interface to bind."""

    port: int = 3000
    """TCP port to listen on."""

    endpoint: str = "/mcp"
    """Path of the MCP endpoint."""

    max_message_bytes: int = 4 * 1024 * 1024
    """Largest request body or stdio line accepted."""

    stream_queue_size: int = 256
    """Buffered server messages per SSE stream."""

    session_idle_timeout: float = 1800.0
    """Seconds an HTTP session may go unused before it is closed; 0 disables."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.host:
            raise ValueError("host is required")
        if not 0 <= self.port <= 65535:
            raise ValueError("port must be between 0 and 65535")
        if not self.endpoint.startswith("/"):
            raise ValueError("endpoint must start with '/'")
        if self.max_message_bytes < 1:
            raise ValueError("max_message_bytes must be positive")
        if self.stream_queue_size < 1:
            raise ValueError("stream_queue_size must be at least 1")
        if self.session_idle_timeout < 0:
            raise ValueError("session_idle_timeout must not be negative")
