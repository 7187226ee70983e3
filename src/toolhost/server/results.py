"""Result envelopes returned by tool, resource and prompt handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from toolhost.lib import oj


@dataclass
class TextItem:
    """Plain text content."""

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass
class ImageItem:
    """Base64 image content."""

    data: str
    mime_type: str = "image/png"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image", "data": self.data, "mimeType": self.mime_type}


@dataclass
class ResourceLink:
    """Pointer to a resource the client can read separately."""

    uri: str
    name: str
    description: str | None = None
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {"type": "resource_link", "uri": self.uri, "name": self.name}
        if self.description is not None:
            item["description"] = self.description
        if self.mime_type is not None:
            item["mimeType"] = self.mime_type
        return item


ContentItem = TextItem | ImageItem | ResourceLink


@dataclass
class CallToolResult:
    """
    Response envelope for tools/call.

    `is_error` marks an application-level failure the model should see;
    protocol faults are raised as MCPError instead.
    """

    content: list[ContentItem] = field(default_factory=list)
    structured_content: dict[str, Any] | None = None
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> "CallToolResult":
        return cls(content=[TextItem(text)])

    @classmethod
    def error(cls, text: str) -> "CallToolResult":
        return cls(content=[TextItem(text)], is_error=True)

    @classmethod
    def structured(cls, payload: dict[str, Any]) -> "CallToolResult":
        """Structured payload plus its pretty JSON rendition as text."""
        return cls(content=[TextItem(oj.dumps_pretty(payload))], structured_content=payload)

    @property
    def first_text(self) -> str | None:
        for item in self.content:
            if isinstance(item, TextItem):
                return item.text
        return None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "content": [item.to_dict() for item in self.content],
            "isError": self.is_error,
        }
        if self.structured_content is not None:
            result["structuredContent"] = self.structured_content
        return result


def to_call_result(value: Any) -> CallToolResult:
    """
    Normalize a handler's return value.

    Raises:
        TypeError: For values that have no envelope form.
    """
    if isinstance(value, CallToolResult):
        return value
    if isinstance(value, str):
        return CallToolResult.text(value)
    if isinstance(value, dict):
        return CallToolResult.structured(value)
    raise TypeError(f"Tool handlers must return CallToolResult, str or dict, not {type(value).__name__}")


@dataclass
class ResourceContents:
    """Text contents of one resource."""

    uri: str
    text: str
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"uri": self.uri, "text": self.text}
        if self.mime_type is not None:
            result["mimeType"] = self.mime_type
        return result


def to_resource_contents(uri: str, value: Any, mime_type: str | None = None) -> list[ResourceContents]:
    """
    Normalize a resource handler's return value.

    Raises:
        TypeError: For unsupported values.
    """
    if isinstance(value, ResourceContents):
        return [value]
    if isinstance(value, str):
        return [ResourceContents(uri=uri, text=value, mime_type=mime_type)]
    if isinstance(value, list) and all(isinstance(item, ResourceContents) for item in value):
        return value
    raise TypeError(f"Resource handlers must return str or ResourceContents, not {type(value).__name__}")


@dataclass
class PromptMessage:
    """One message of a rendered prompt."""

    role: str
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": {"type": "text", "text": self.text}}


@dataclass
class GetPromptResult:
    """Rendered prompt returned by prompts/get."""

    messages: list[PromptMessage]
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"messages": [msg.to_dict() for msg in self.messages]}
        if self.description is not None:
            result["description"] = self.description
        return result


def to_prompt_result(value: Any, description: str | None = None) -> GetPromptResult:
    """
    Normalize a prompt handler's return value. A bare string becomes a
    single user message.

    Raises:
        TypeError: For unsupported values.
    """
    if isinstance(value, GetPromptResult):
        return value
    if isinstance(value, str):
        return GetPromptResult(messages=[PromptMessage("user", value)], description=description)
    if isinstance(value, list) and all(isinstance(item, PromptMessage) for item in value):
        return GetPromptResult(messages=value, description=description)
    raise TypeError(f"Prompt handlers must return str or GetPromptResult, not {type(value).__name__}")
