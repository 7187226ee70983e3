"""
MCP Transport Layer.

Server-side transports: newline-delimited stdio, Streamable HTTP with
SSE, and an in-memory pair for embedding and tests.
"""

from toolhost.transport.types import TransportConfig, TransportEvent, TransportEventType
from toolhost.transport.base import Transport, TransportClosedError, TransportError
from toolhost.transport.memory import MemoryTransport
from toolhost.transport.stdio import StdioTransport

__all__ = [
    "Transport",
    "TransportConfig",
    "TransportEvent",
    "TransportEventType",
    "TransportError",
    "TransportClosedError",
    "MemoryTransport",
    "StdioTransport",
]
