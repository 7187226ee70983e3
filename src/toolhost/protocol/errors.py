"""Protocol error types and error codes."""

from dataclasses import dataclass
from typing import Any

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# MCP error codes (-32000 to -32099 reserved for implementation)
REQUEST_TIMEOUT = -32001
RESOURCE_NOT_FOUND = -32002
REQUEST_CANCELLED = -32800

ERROR_MESSAGES = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    INTERNAL_ERROR: "Internal error",
    REQUEST_TIMEOUT: "Request timeout",
    RESOURCE_NOT_FOUND: "Resource not found",
    REQUEST_CANCELLED: "Request cancelled",
}


@dataclass
class MCPError(Exception):
    """
    MCP protocol error.

    Represents errors from the JSON-RPC layer or MCP protocol.
    Can be converted to/from JSON-RPC error objects.
    """

    code: int
    message: str
    data: dict[str, Any] | None = None

    def __post_init__(self):
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-RPC error object."""
        error = {
            "code": self.code,
            "message": self.message,
        }
        if self.data is not None:
            error["data"] = self.data
        return error

    @classmethod
    def from_dict(cls, error: dict[str, Any]) -> "MCPError":
        """Create from JSON-RPC error object."""
        return cls(
            code=error.get("code", INTERNAL_ERROR),
            message=error.get("message", "Unknown error"),
            data=error.get("data"),
        )

    @classmethod
    def parse_error(cls, details: str | None = None) -> "MCPError":
        """Create a parse error."""
        return cls(
            code=PARSE_ERROR,
            message=ERROR_MESSAGES[PARSE_ERROR],
            data={"details": details} if details else None,
        )

    @classmethod
    def invalid_request(cls, details: str | None = None) -> "MCPError":
        """Create an invalid request error."""
        return cls(
            code=INVALID_REQUEST,
            message=ERROR_MESSAGES[INVALID_REQUEST],
            data={"details": details} if details else None,
        )

    @classmethod
    def method_not_found(cls, method: str) -> "MCPError":
        """Create a method not found error."""
        return cls(
            code=METHOD_NOT_FOUND,
            message=f"Method not found: {method}",
            data={"method": method},
        )

    @classmethod
    def invalid_params(cls, details: str | None = None) -> "MCPError":
        """Create an invalid params error."""
        return cls(
            code=INVALID_PARAMS,
            message=ERROR_MESSAGES[INVALID_PARAMS],
            data={"details": details} if details else None,
        )

    @classmethod
    def internal_error(cls, details: str | None = None) -> "MCPError":
        """Create an internal error."""
        return cls(
            code=INTERNAL_ERROR,
            message=details or ERROR_MESSAGES[INTERNAL_ERROR],
        )

    @classmethod
    def resource_not_found(cls, uri: str) -> "MCPError":
        """Create a resource not found error."""
        return cls(
            code=RESOURCE_NOT_FOUND,
            message=f"Resource not found: {uri}",
            data={"uri": uri},
        )

    @classmethod
    def timeout(cls, timeout_seconds: float) -> "MCPError":
        """Create a request timeout error."""
        return cls(
            code=REQUEST_TIMEOUT,
            message=f"Request timed out after {timeout_seconds}s",
            data={"timeout": timeout_seconds},
        )

    @classmethod
    def cancelled(cls, reason: str | None = None) -> "MCPError":
        """Create a request cancelled error."""
        return cls(
            code=REQUEST_CANCELLED,
            message=reason or ERROR_MESSAGES[REQUEST_CANCELLED],
        )

    def __str__(self) -> str:
        base = f"MCPError({self.code}): {self.message}"
        if self.data:
            base += f" {self.data}"
        return base

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code}, message={self.message!r}, data={self.data})"


class UnknownCapability(MCPError):
    """Requested tool, prompt or resource is not registered."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(
            code=INVALID_PARAMS,
            message=f"Unknown {kind}: {name}",
            data={"kind": kind, "name": name},
        )


class InvalidArgument(MCPError):
    """Arguments failed schema validation before the handler ran."""

    def __init__(self, field: str | None, details: str):
        self.field = field
        self.details = details
        super().__init__(
            code=INVALID_PARAMS,
            message=f"Invalid arguments: {details}",
            data={"field": field, "details": details},
        )


class HandlerFault(MCPError):
    """A handler raised an unexpected exception."""

    def __init__(self, name: str, cause: BaseException):
        self.name = name
        self.cause = cause
        super().__init__(
            code=INTERNAL_ERROR,
            message=f"Handler for '{name}' failed: {cause}",
            data={"tool": name, "error": type(cause).__name__},
        )
