"""Ping utility for MCP connection health checks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from toolhost.protocol.errors import MCPError

if TYPE_CHECKING:
    from toolhost.protocol.messages import JSONRPCRequest
    from toolhost.server.session import ServerSession

logger = logging.getLogger(__name__)


class PingHandler:
    """
    Answers client pings.

    Ping is bidirectional and allowed before initialization completes.
    """

    async def handle_ping(self, request: JSONRPCRequest) -> dict[str, Any]:
        logger.debug("Received ping request")
        return {}

    def register_handlers(self, session: ServerSession) -> None:
        session.on_request("ping", self.handle_ping)
        logger.debug("Registered ping handler")


async def ping_client(session: ServerSession, timeout: float = 5.0) -> bool:
    """
    Ping the client to check connection health.

    Returns:
        True if the client responded, False on timeout or error.
    """
    try:
        await session.request("ping", timeout=timeout)
        logger.debug("Ping successful")
        return True
    except MCPError as e:
        logger.warning(f"Ping failed: {e}")
        return False
