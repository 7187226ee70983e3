"""Capabilities this server advertises in its initialize result."""

from dataclasses import dataclass
from typing import Any


@dataclass
class ServerToolsCapability:
    """Server provides callable tools."""

    list_changed: bool = True
    """Server sends notifications/tools/list_changed."""


@dataclass
class ServerResourcesCapability:
    """Server provides readable resources."""

    subscribe: bool = False
    list_changed: bool = True


@dataclass
class ServerPromptsCapability:
    """Server provides prompt templates."""

    list_changed: bool = True


@dataclass
class ServerCapabilities:
    """
    Feature set declared to clients during initialization.

    Built from what the server actually has wired up, so a client never
    sees a capability the server cannot serve.
    """

    tools: ServerToolsCapability | None = None
    resources: ServerResourcesCapability | None = None
    prompts: ServerPromptsCapability | None = None

    logging: bool = False
    """Server accepts logging/setLevel and emits notifications/message."""

    completions: bool = False
    """Server answers completion/complete."""

    experimental: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the 'capabilities' object of the initialize result."""
        caps: dict[str, Any] = {}

        if self.tools is not None:
            caps["tools"] = {"listChanged": self.tools.list_changed}

        if self.resources is not None:
            caps["resources"] = {
                "subscribe": self.resources.subscribe,
                "listChanged": self.resources.list_changed,
            }

        if self.prompts is not None:
            caps["prompts"] = {"listChanged": self.prompts.list_changed}

        if self.logging:
            caps["logging"] = {}

        if self.completions:
            caps["completions"] = {}

        if self.experimental is not None:
            caps["experimental"] = self.experimental

        return caps

    def get_available_features(self) -> list[str]:
        features = []
        if self.tools is not None:
            features.append("tools")
        if self.resources is not None:
            features.append("resources")
        if self.prompts is not None:
            features.append("prompts")
        if self.logging:
            features.append("logging")
        if self.completions:
            features.append("completions")
        return features


DEFAULT_SERVER_CAPABILITIES = ServerCapabilities(
    tools=ServerToolsCapability(),
    resources=ServerResourcesCapability(),
    prompts=ServerPromptsCapability(),
    logging=True,
    completions=True,
)
