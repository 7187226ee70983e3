"""Capability descriptors, argument schemas and the runtime registry."""

from toolhost.registry.descriptor import (
    Icon,
    PromptArgument,
    PromptDescriptor,
    ResourceDescriptor,
    ResourceTemplateDescriptor,
    ToolAnnotations,
    ToolDescriptor,
)
from toolhost.registry.registrar import CapabilityRegistrar
from toolhost.registry.registry import Handler, Registry, RegistryEntry
from toolhost.registry.schema import EMPTY_SCHEMA, NO_DEFAULT, FieldSpec, InputSchema

__all__ = [
    "CapabilityRegistrar",
    "EMPTY_SCHEMA",
    "FieldSpec",
    "Handler",
    "Icon",
    "InputSchema",
    "NO_DEFAULT",
    "PromptArgument",
    "PromptDescriptor",
    "Registry",
    "RegistryEntry",
    "ResourceDescriptor",
    "ResourceTemplateDescriptor",
    "ToolAnnotations",
    "ToolDescriptor",
]
