"""
MCP server runtime.

- MCPServer: registries and method routing, shared by all sessions
- ServerSession: one client connection
- ToolDispatcher: lookup, validation and invocation of tools
- InvocationContext: what a tool handler can reach while it runs
"""

from toolhost.server.context import InvocationContext
from toolhost.server.dispatcher import ToolCall, ToolDispatcher
from toolhost.server.results import (
    CallToolResult,
    GetPromptResult,
    ImageItem,
    PromptMessage,
    ResourceContents,
    ResourceLink,
    TextItem,
    to_call_result,
    to_prompt_result,
    to_resource_contents,
)
from toolhost.server.server import MCPServer
from toolhost.server.session import ServerSession

__all__ = [
    "MCPServer",
    "ServerSession",
    "ToolCall",
    "ToolDispatcher",
    "InvocationContext",
    "CallToolResult",
    "TextItem",
    "ImageItem",
    "ResourceLink",
    "ResourceContents",
    "PromptMessage",
    "GetPromptResult",
    "to_call_result",
    "to_resource_contents",
    "to_prompt_result",
]
