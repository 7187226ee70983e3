"""Sampling: asking the client's LLM for a completion mid-request."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from toolhost.protocol.errors import MCPError

if TYPE_CHECKING:
    from toolhost.server.session import ServerSession

logger = logging.getLogger(__name__)


class SamplingError(Exception):
    """Base error for sampling requests."""

    pass


class SamplingNotSupportedError(SamplingError):
    """Client did not declare the sampling capability."""

    def __init__(self) -> None:
        super().__init__("Client does not support sampling")


class SamplingFailedError(SamplingError):
    """Client answered with an error, timed out, or went away."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


# Content types
@dataclass
class TextContent:
    """Text content in sampling."""

    type: Literal["text"] = "text"
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass
class ImageContent:
    """Image content in sampling."""

    type: Literal["image"] = "image"
    data: str = ""  # Base64 encoded
    mime_type: str = "image/png"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "data": self.data,
            "mimeType": self.mime_type,
        }


Content = TextContent | ImageContent


def parse_content(data: Any) -> Content:
    """Parse a sampling content block; unknown kinds keep no text."""
    if isinstance(data, str):
        return TextContent(text=data)
    if not isinstance(data, dict):
        raise ValueError("content must be an object")
    if data.get("type") == "image":
        return ImageContent(
            data=data.get("data", ""),
            mime_type=data.get("mimeType", "image/png"),
        )
    if data.get("type") == "text":
        return TextContent(text=data.get("text", ""))
    # Audio and future content kinds are carried as empty images so
    # that `.text` stays None for them.
    return ImageContent(data=data.get("data", ""), mime_type=data.get("mimeType", ""))


@dataclass
class SamplingMessage:
    """Message in sampling request."""

    role: Literal["user", "assistant"]
    content: Content

    @classmethod
    def user(cls, text: str) -> "SamplingMessage":
        return cls(role="user", content=TextContent(text=text))

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content.to_dict(),
        }


@dataclass
class ModelPreferences:
    """Server hints for model selection."""

    hints: list[str] = field(default_factory=list)
    cost_priority: float | None = None  # 0.0-1.0
    speed_priority: float | None = None  # 0.0-1.0
    intelligence_priority: float | None = None  # 0.0-1.0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.hints:
            result["hints"] = [{"name": hint} for hint in self.hints]
        if self.cost_priority is not None:
            result["costPriority"] = self.cost_priority
        if self.speed_priority is not None:
            result["speedPriority"] = self.speed_priority
        if self.intelligence_priority is not None:
            result["intelligencePriority"] = self.intelligence_priority
        return result


@dataclass
class SamplingRequest:
    """Server request for LLM completion."""

    messages: list[SamplingMessage]
    max_tokens: int
    model_preferences: ModelPreferences | None = None
    system_prompt: str | None = None
    include_context: Literal["none", "thisServer", "allServers"] | None = None
    temperature: float | None = None
    stop_sequences: list[str] | None = None
    metadata: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not self.messages:
            raise ValueError("sampling request needs at least one message")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")

    def to_dict(self) -> dict[str, Any]:
        """Convert to sampling/createMessage params."""
        params: dict[str, Any] = {
            "messages": [msg.to_dict() for msg in self.messages],
            "maxTokens": self.max_tokens,
        }
        if self.model_preferences is not None:
            params["modelPreferences"] = self.model_preferences.to_dict()
        if self.system_prompt is not None:
            params["systemPrompt"] = self.system_prompt
        if self.include_context is not None:
            params["includeContext"] = self.include_context
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.stop_sequences:
            params["stopSequences"] = self.stop_sequences
        if self.metadata is not None:
            params["metadata"] = self.metadata
        return params


@dataclass
class SamplingResult:
    """Completion returned by the client."""

    role: str
    content: Content
    model: str = ""
    stop_reason: str | None = None

    @property
    def text(self) -> str | None:
        """Text of the completion, or None for non-text content."""
        if isinstance(self.content, TextContent):
            return self.content.text
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SamplingResult":
        """
        Parse a sampling/createMessage result.

        Raises:
            SamplingFailedError: If the result has no usable content.
        """
        if not isinstance(data, dict) or "content" not in data:
            raise SamplingFailedError("Malformed sampling result: missing content")
        try:
            content = parse_content(data["content"])
        except ValueError as e:
            raise SamplingFailedError(f"Malformed sampling result: {e}", cause=e)
        return cls(
            role=data.get("role", "assistant"),
            content=content,
            model=data.get("model", ""),
            stop_reason=data.get("stopReason"),
        )


async def create_message(
    session: ServerSession,
    request: SamplingRequest,
    timeout: float | None = None,
) -> SamplingResult:
    """
    Send sampling/createMessage and wait for the client's completion.

    Raises:
        SamplingNotSupportedError: If the client lacks the capability.
        SamplingFailedError: On an error response, timeout or disconnect.
    """
    if not session.client_capabilities.supports_sampling():
        raise SamplingNotSupportedError()

    logger.debug(f"Requesting sampling with {len(request.messages)} message(s)")
    try:
        response = await session.request(
            "sampling/createMessage",
            request.to_dict(),
            timeout=timeout,
        )
    except MCPError as e:
        logger.info(f"Sampling request failed: {e.message}")
        raise SamplingFailedError(e.message, cause=e)

    result = SamplingResult.from_dict(response)
    logger.debug(f"Sampling completed by model '{result.model}'")
    return result
