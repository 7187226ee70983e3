"""Immutable capability descriptors for tools, resources and prompts."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote

from toolhost.registry.schema import EMPTY_SCHEMA, InputSchema

_TEMPLATE_VAR = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class ToolAnnotations:
    """
    Behavioral hints for clients.

    Each hint is tri-state: True, False, or None (unset). They are
    advisory only and never enforced by the server.
    """

    title: str | None = None
    read_only_hint: bool | None = None
    """Tool does not modify its environment."""

    destructive_hint: bool | None = None
    """Tool may perform destructive updates."""

    idempotent_hint: bool | None = None
    """Repeating a call with the same arguments has no extra effect."""

    open_world_hint: bool | None = None
    """Tool reaches systems outside the server."""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.title is not None:
            result["title"] = self.title
        if self.read_only_hint is not None:
            result["readOnlyHint"] = self.read_only_hint
        if self.destructive_hint is not None:
            result["destructiveHint"] = self.destructive_hint
        if self.idempotent_hint is not None:
            result["idempotentHint"] = self.idempotent_hint
        if self.open_world_hint is not None:
            result["openWorldHint"] = self.open_world_hint
        return result


@dataclass(frozen=True)
class Icon:
    """Icon a client may show next to a capability."""

    src: str
    mime_type: str | None = None
    sizes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"src": self.src}
        if self.mime_type is not None:
            result["mimeType"] = self.mime_type
        if self.sizes:
            result["sizes"] = list(self.sizes)
        return result


@dataclass(frozen=True)
class ToolDescriptor:
    """Metadata for one callable tool."""

    name: str
    description: str = ""
    title: str | None = None
    input_schema: InputSchema = EMPTY_SCHEMA
    output_schema: InputSchema | None = None
    annotations: ToolAnnotations | None = None
    icons: tuple[Icon, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("tool name is required")
        object.__setattr__(self, "icons", tuple(self.icons))

    @property
    def key(self) -> str:
        return self.name

    def to_dict(self) -> dict[str, Any]:
        """Convert to the tools/list wire format."""
        result: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema.to_dict(),
        }
        if self.title is not None:
            result["title"] = self.title
        if self.output_schema is not None:
            result["outputSchema"] = self.output_schema.to_dict()
        if self.annotations is not None:
            result["annotations"] = self.annotations.to_dict()
        if self.icons:
            result["icons"] = [icon.to_dict() for icon in self.icons]
        return result


@dataclass(frozen=True)
class ResourceDescriptor:
    """A readable resource at a fixed URI."""

    uri: str
    name: str
    description: str = ""
    title: str | None = None
    mime_type: str | None = None

    @property
    def key(self) -> str:
        return self.uri

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "uri": self.uri,
            "name": self.name,
            "description": self.description,
        }
        if self.title is not None:
            result["title"] = self.title
        if self.mime_type is not None:
            result["mimeType"] = self.mime_type
        return result


@dataclass(frozen=True)
class ResourceTemplateDescriptor:
    """
    A family of resources addressed by a URI template.

    Only simple `{var}` expansion is supported; each variable matches one
    path segment.
    """

    uri_template: str
    name: str
    description: str = ""
    title: str | None = None
    mime_type: str | None = None
    completions: dict[str, tuple[str, ...]] = field(default_factory=dict, compare=False, hash=False)
    """Suggested values per template variable, for completion/complete."""

    def __post_init__(self) -> None:
        if not self.variables:
            raise ValueError(f"URI template has no variables: {self.uri_template}")

    @property
    def key(self) -> str:
        return self.uri_template

    @property
    def variables(self) -> list[str]:
        return _TEMPLATE_VAR.findall(self.uri_template)

    def match(self, uri: str) -> dict[str, str] | None:
        """Extract template variables from a URI, or None if it does not match."""
        pattern = ""
        position = 0
        for m in _TEMPLATE_VAR.finditer(self.uri_template):
            pattern += re.escape(self.uri_template[position:m.start()])
            pattern += f"(?P<{m.group(1)}>[^/]+)"
            position = m.end()
        pattern += re.escape(self.uri_template[position:])

        found = re.fullmatch(pattern, uri)
        if found is None:
            return None
        return {name: unquote(value) for name, value in found.groupdict().items()}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "uriTemplate": self.uri_template,
            "name": self.name,
            "description": self.description,
        }
        if self.title is not None:
            result["title"] = self.title
        if self.mime_type is not None:
            result["mimeType"] = self.mime_type
        return result


@dataclass(frozen=True)
class PromptArgument:
    """One argument of a prompt template."""

    name: str
    description: str = ""
    title: str | None = None
    required: bool = False
    completions: tuple[str, ...] = ()
    """Suggested values offered through completion/complete."""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "required": self.required,
        }
        if self.title is not None:
            result["title"] = self.title
        return result


@dataclass(frozen=True)
class PromptDescriptor:
    """Metadata for a prompt template."""

    name: str
    description: str = ""
    title: str | None = None
    arguments: tuple[PromptArgument, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", tuple(self.arguments))

    @property
    def key(self) -> str:
        return self.name

    def argument(self, name: str) -> PromptArgument | None:
        for arg in self.arguments:
            if arg.name == name:
                return arg
        return None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "arguments": [arg.to_dict() for arg in self.arguments],
        }
        if self.title is not None:
            result["title"] = self.title
        return result
