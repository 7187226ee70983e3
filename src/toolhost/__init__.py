"""
toolhost: a Model Context Protocol server.

Hosts a registry of tools, resources and prompts and serves them to MCP
clients over stdio or Streamable HTTP.

Submodules:
- registry: capability descriptors, argument schemas and the registry
- server: sessions, method routing and tool dispatch
- transport: stdio, Streamable HTTP and in-memory transports
- protocol: JSON-RPC 2.0 messages, errors and the session state machine
- capabilities: capability declarations and version negotiation
- features: sampling and elicitation
- utilities: ping, progress, cancellation, logging, completion, pagination
- starter: the demonstration capabilities
"""

__version__ = "1.0.0"

from toolhost.config import ServerConfig, load_config
from toolhost.protocol import InvalidArgument, HandlerFault, MCPError, UnknownCapability
from toolhost.registry import (
    FieldSpec,
    InputSchema,
    PromptArgument,
    PromptDescriptor,
    Registry,
    ResourceDescriptor,
    ResourceTemplateDescriptor,
    ToolAnnotations,
    ToolDescriptor,
)
from toolhost.server import CallToolResult, InvocationContext, MCPServer, ServerSession
from toolhost.transport import MemoryTransport, StdioTransport, Transport

__all__ = [
    "__version__",
    # Config
    "ServerConfig",
    "load_config",
    # Errors
    "MCPError",
    "UnknownCapability",
    "InvalidArgument",
    "HandlerFault",
    # Registry
    "Registry",
    "FieldSpec",
    "InputSchema",
    "ToolAnnotations",
    "ToolDescriptor",
    "ResourceDescriptor",
    "ResourceTemplateDescriptor",
    "PromptArgument",
    "PromptDescriptor",
    # Server
    "MCPServer",
    "ServerSession",
    "InvocationContext",
    "CallToolResult",
    # Transport
    "Transport",
    "StdioTransport",
    "MemoryTransport",
]
