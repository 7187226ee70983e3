"""JSON-RPC 2.0 message types for MCP protocol."""

from dataclasses import dataclass, field
from typing import Any

from toolhost.protocol.errors import MCPError

RequestId = str | int


@dataclass
class JSONRPCRequest:
    """
    JSON-RPC 2.0 request message.

    Requests expect a response from the recipient. Incoming requests keep
    the id chosen by the client; outgoing ones are numbered by the session.
    """

    method: str
    id: RequestId
    params: dict[str, Any] | None = None
    jsonrpc: str = field(default="2.0", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        msg: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
        }
        if self.params is not None:
            msg["params"] = self.params
        return msg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCRequest":
        """Create from JSON dict."""
        return cls(
            method=data["method"],
            id=data["id"],
            params=data.get("params"),
        )

    @property
    def meta(self) -> dict[str, Any]:
        """The `_meta` object from params, or an empty dict."""
        if not self.params:
            return {}
        meta = self.params.get("_meta")
        return meta if isinstance(meta, dict) else {}

    @property
    def progress_token(self) -> RequestId | None:
        """Progress token the caller attached, if any."""
        token = self.meta.get("progressToken")
        if isinstance(token, (str, int)) and not isinstance(token, bool):
            return token
        return None

    def __str__(self) -> str:
        return f"Request({self.method}, id={self.id})"


@dataclass
class JSONRPCError:
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.data is not None:
            error["data"] = self.data
        return error

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCError":
        """Create from JSON dict."""
        return cls(
            code=data.get("code", -32603),
            message=data.get("message", "Unknown error"),
            data=data.get("data"),
        )


@dataclass
class JSONRPCResponse:
    """
    JSON-RPC 2.0 response message.

    Either result or error must be present, but not both.
    """

    id: RequestId | None
    result: Any = None
    error: JSONRPCError | None = None
    jsonrpc: str = field(default="2.0", init=False)

    @property
    def is_error(self) -> bool:
        """Check if this is an error response."""
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        msg: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
        }
        if self.error is not None:
            msg["error"] = self.error.to_dict()
        else:
            msg["result"] = self.result if self.result is not None else {}
        return msg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCResponse":
        """Create from JSON dict."""
        error = None
        if "error" in data:
            error = JSONRPCError.from_dict(data["error"])
        return cls(
            id=data.get("id"),
            result=data.get("result"),
            error=error,
        )

    @classmethod
    def success(cls, id: RequestId | None, result: Any = None) -> "JSONRPCResponse":
        """Create a success response."""
        return cls(id=id, result=result)

    @classmethod
    def from_error(cls, id: RequestId | None, error: MCPError) -> "JSONRPCResponse":
        """Create an error response from a protocol error."""
        return cls(
            id=id,
            error=JSONRPCError(code=error.code, message=error.message, data=error.data),
        )

    def __str__(self) -> str:
        if self.is_error:
            return f"Response(id={self.id}, error={self.error.code})"
        return f"Response(id={self.id}, success)"


@dataclass
class JSONRPCNotification:
    """
    JSON-RPC 2.0 notification message.

    Notifications do not expect a response (no id field).
    """

    method: str
    params: dict[str, Any] | None = None
    jsonrpc: str = field(default="2.0", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        msg: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
        }
        if self.params is not None:
            msg["params"] = self.params
        return msg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCNotification":
        """Create from JSON dict."""
        return cls(
            method=data["method"],
            params=data.get("params"),
        )

    def __str__(self) -> str:
        return f"Notification({self.method})"


Message = JSONRPCRequest | JSONRPCResponse | JSONRPCNotification


def parse_message(data: Any) -> Message:
    """
    Parse a decoded JSON value into the appropriate message type.

    Args:
        data: Decoded JSON-RPC message.

    Returns:
        The appropriate message type based on content.

    Raises:
        MCPError: INVALID_REQUEST if the message is malformed.
    """
    if not isinstance(data, dict):
        raise MCPError.invalid_request("Message must be a JSON object")
    if data.get("jsonrpc") != "2.0":
        raise MCPError.invalid_request("Invalid JSON-RPC version")

    params = data.get("params")
    if params is not None and not isinstance(params, dict):
        raise MCPError.invalid_request("params must be an object")

    if is_request(data):
        if not isinstance(data["method"], str):
            raise MCPError.invalid_request("method must be a string")
        request_id = data["id"]
        if not isinstance(request_id, (str, int)) or isinstance(request_id, bool):
            raise MCPError.invalid_request("id must be a string or number")
        return JSONRPCRequest.from_dict(data)
    if is_notification(data):
        return JSONRPCNotification.from_dict(data)
    if is_response(data) and ("result" in data or "error" in data):
        return JSONRPCResponse.from_dict(data)
    raise MCPError.invalid_request("Cannot determine message type")


def is_request(data: dict[str, Any]) -> bool:
    """Check if message is a request (has id and method)."""
    return "id" in data and "method" in data


def is_notification(data: dict[str, Any]) -> bool:
    """Check if message is a notification (has method, no id)."""
    return "method" in data and "id" not in data


def is_response(data: dict[str, Any]) -> bool:
    """Check if message is a response (has id, no method)."""
    return "id" in data and "method" not in data
