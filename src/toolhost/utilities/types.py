"""Shared types for MCP utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Literal, TypeVar


class LogLevel(Enum):
    """
    MCP log levels following RFC 5424 severity levels.

    Ordered from least to most severe.
    """

    DEBUG = "debug"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    ALERT = "alert"
    EMERGENCY = "emergency"

    @classmethod
    def from_string(cls, value: str) -> "LogLevel":
        """Parse log level from string value."""
        if not isinstance(value, str):
            raise ValueError(f"Invalid log level: {value!r}")
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Invalid log level: {value}")

    @classmethod
    def from_python(cls, levelno: int) -> "LogLevel":
        """Map a Python logging level onto the nearest MCP level."""
        if levelno >= logging.CRITICAL:
            return cls.CRITICAL
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.DEBUG

    @property
    def severity(self) -> int:
        return list(LogLevel).index(self)

    def __lt__(self, other: "LogLevel") -> bool:
        """Compare severity (lower = less severe)."""
        return self.severity < other.severity

    def __le__(self, other: "LogLevel") -> bool:
        return self == other or self < other


@dataclass
class ProgressInfo:
    """
    Payload of notifications/progress.

    Sent by the server while a request carrying a progress token runs.
    """

    progress_token: str | int
    progress: float
    total: float | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "progressToken": self.progress_token,
            "progress": self.progress,
        }
        if self.total is not None:
            result["total"] = self.total
        if self.message is not None:
            result["message"] = self.message
        return result

    @property
    def is_complete(self) -> bool:
        if self.total is not None:
            return self.progress >= self.total
        return False


@dataclass
class LogMessage:
    """
    Server log message notification data.

    Sent via notifications/message from server to client.
    """

    level: LogLevel
    logger: str | None = None
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"level": self.level.value}
        if self.logger is not None:
            result["logger"] = self.logger
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class CancellationInfo:
    """
    Cancellation notification data.

    Sent via notifications/cancelled in either direction.
    """

    request_id: str | int
    reason: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CancellationInfo":
        """
        Parse from notification params.

        Raises:
            ValueError: If requestId is missing or not a string/integer.
        """
        request_id = data.get("requestId")
        if not isinstance(request_id, (str, int)) or isinstance(request_id, bool):
            raise ValueError(f"Invalid requestId: {request_id!r}")
        return cls(request_id=request_id, reason=data.get("reason"))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"requestId": self.request_id}
        if self.reason is not None:
            result["reason"] = self.reason
        return result


@dataclass
class CompletionRef:
    """
    Reference for completion context.

    Identifies the prompt (by name) or resource template (by URI) whose
    argument is being completed.
    """

    type: Literal["ref/prompt", "ref/resource"]
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompletionRef":
        ref_type = data["type"]
        if ref_type == "ref/prompt":
            return cls(type=ref_type, name=data["name"])
        if ref_type == "ref/resource":
            return cls(type=ref_type, name=data["uri"])
        raise ValueError(f"Invalid reference type: {ref_type}")


@dataclass
class CompletionArgument:
    """Argument being completed."""

    name: str
    value: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompletionArgument":
        return cls(name=data["name"], value=str(data.get("value", "")))


@dataclass
class CompletionRequest:
    """
    Parameters of completion/complete.
    """

    ref: CompletionRef
    argument: CompletionArgument
    context: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompletionRequest":
        """
        Raises:
            KeyError, ValueError, TypeError: On malformed params.
        """
        return cls(
            ref=CompletionRef.from_dict(data["ref"]),
            argument=CompletionArgument.from_dict(data["argument"]),
            context=data.get("context"),
        )


@dataclass
class CompletionResponse:
    """
    Result of completion/complete.
    """

    values: list[str] = field(default_factory=list)
    """Completion suggestions (max 100)."""

    total: int | None = None
    has_more: bool = False

    def to_dict(self) -> dict[str, Any]:
        completion: dict[str, Any] = {"values": self.values, "hasMore": self.has_more}
        if self.total is not None:
            completion["total"] = self.total
        return {"completion": completion}


# Generic type for paginated items
T = TypeVar("T")


@dataclass
class PaginatedResult(Generic[T]):
    """
    One page of a list operation.
    """

    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None
    """Cursor for fetching next page (None if no more pages)."""
