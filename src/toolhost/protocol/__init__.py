"""
MCP Protocol Core.

Implements JSON-RPC 2.0 message framing, protocol errors and the
session state machine.
"""

from toolhost.protocol.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    REQUEST_CANCELLED,
    REQUEST_TIMEOUT,
    RESOURCE_NOT_FOUND,
    HandlerFault,
    InvalidArgument,
    MCPError,
    UnknownCapability,
)
from toolhost.protocol.messages import (
    JSONRPCError,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    Message,
    RequestId,
    parse_message,
)
from toolhost.protocol.state import (
    InvalidStateTransition,
    SessionState,
    SessionStateMachine,
)

__all__ = [
    # Messages
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCNotification",
    "JSONRPCError",
    "Message",
    "RequestId",
    "parse_message",
    # Errors
    "MCPError",
    "UnknownCapability",
    "InvalidArgument",
    "HandlerFault",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "REQUEST_TIMEOUT",
    "RESOURCE_NOT_FOUND",
    "REQUEST_CANCELLED",
    # State
    "SessionState",
    "SessionStateMachine",
    "InvalidStateTransition",
]
