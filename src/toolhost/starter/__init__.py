"""
Starter capabilities.

The demonstration tools, resources and prompts a fresh server ships
with. Handler code logs under this package so records reach clients
as notifications/message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from toolhost.server.server import MCPServer
from toolhost.starter.instructions import SERVER_INSTRUCTIONS
from toolhost.starter.prompts import register_prompts
from toolhost.starter.resources import register_resources
from toolhost.starter.tools import LONG_TASK_STEP_DELAY, register_tools

if TYPE_CHECKING:
    from toolhost.config import ServerConfig

__all__ = [
    "SERVER_INSTRUCTIONS",
    "create_server",
    "register_all",
]


def register_all(server: MCPServer, step_delay: float = LONG_TASK_STEP_DELAY) -> None:
    """Populate a server's registries with the starter capabilities."""
    register_tools(server, step_delay=step_delay)
    register_resources(server)
    register_prompts(server)


def create_server(config: ServerConfig | None = None, step_delay: float = LONG_TASK_STEP_DELAY) -> MCPServer:
    """Build an MCPServer with the starter capabilities and instructions."""
    server = MCPServer(config=config, instructions=SERVER_INSTRUCTIONS)
    register_all(server, step_delay=step_delay)
    return server
