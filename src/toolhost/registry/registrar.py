"""Narrow registration surface handed to running handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from toolhost.registry.descriptor import (
    PromptDescriptor,
    ResourceDescriptor,
    ResourceTemplateDescriptor,
    ToolDescriptor,
)
from toolhost.registry.registry import Handler

if TYPE_CHECKING:
    from toolhost.registry.registry import Registry


class CapabilityRegistrar:
    """
    Lets handlers add capabilities without holding the registries.

    The server builds one registrar over its registries and passes it to
    every InvocationContext.
    """

    def __init__(
        self,
        tools: Registry[ToolDescriptor],
        resources: Registry[ResourceDescriptor],
        templates: Registry[ResourceTemplateDescriptor],
        prompts: Registry[PromptDescriptor],
    ):
        self._tools = tools
        self._resources = resources
        self._templates = templates
        self._prompts = prompts

    def register_tool(self, descriptor: ToolDescriptor, handler: Handler) -> None:
        self._tools.register(descriptor, handler)

    def register_resource(self, descriptor: ResourceDescriptor, handler: Handler) -> None:
        self._resources.register(descriptor, handler)

    def register_resource_template(
        self, descriptor: ResourceTemplateDescriptor, handler: Handler
    ) -> None:
        self._templates.register(descriptor, handler)

    def register_prompt(self, descriptor: PromptDescriptor, handler: Handler) -> None:
        self._prompts.register(descriptor, handler)

    def has_tool(self, name: str) -> bool:
        return name in self._tools
