"""Server side of the MCP initialize handshake."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from toolhost.capabilities.client import ClientCapabilities
from toolhost.capabilities.server import ServerCapabilities
from toolhost.protocol.errors import MCPError

logger = logging.getLogger(__name__)

# Newest first
SUPPORTED_VERSIONS = ["2025-11-25", "2025-06-18", "2025-03-26", "2024-11-05"]
PROTOCOL_VERSION = SUPPORTED_VERSIONS[0]


@dataclass
class ClientInfo:
    """Information the client sent about itself."""

    name: str = "unknown"
    version: str = "unknown"
    title: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ClientInfo":
        data = data or {}
        return cls(
            name=str(data.get("name", "unknown")),
            version=str(data.get("version", "unknown")),
            title=data.get("title"),
        )


@dataclass
class ServerInfo:
    """Information about this server."""

    name: str
    version: str
    title: str | None = None

    def to_dict(self) -> dict[str, str]:
        result = {"name": self.name, "version": self.version}
        if self.title is not None:
            result["title"] = self.title
        return result


@dataclass
class NegotiationResult:
    """
    Outcome of an initialize request.

    Holds everything the session keeps about the client plus the
    payload returned to it.
    """

    protocol_version: str
    client_info: ClientInfo
    client_capabilities: ClientCapabilities
    server_info: ServerInfo
    server_capabilities: ServerCapabilities
    instructions: str | None = None
    requested_version: str | None = field(default=None, compare=False)

    def to_initialize_result(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "protocolVersion": self.protocol_version,
            "capabilities": self.server_capabilities.to_dict(),
            "serverInfo": self.server_info.to_dict(),
        }
        if self.instructions:
            result["instructions"] = self.instructions
        return result

    def __str__(self) -> str:
        return (
            f"NegotiationResult(version={self.protocol_version}, "
            f"client={self.client_info.name}/{self.client_info.version}, "
            f"features={self.server_capabilities.get_available_features()})"
        )


def select_version(requested: str) -> str:
    """Echo a supported version, otherwise answer with the latest one."""
    if requested in SUPPORTED_VERSIONS:
        return requested
    logger.info(
        f"Client requested unsupported protocol version '{requested}', "
        f"offering {PROTOCOL_VERSION}"
    )
    return PROTOCOL_VERSION


def negotiate(
    params: dict[str, Any] | None,
    server_info: ServerInfo,
    server_capabilities: ServerCapabilities,
    instructions: str | None = None,
) -> NegotiationResult:
    """
    Process initialize request parameters.

    Raises:
        MCPError: If protocolVersion is missing or malformed.
    """
    params = params or {}
    requested = params.get("protocolVersion")
    if not isinstance(requested, str) or not requested:
        raise MCPError.invalid_params("protocolVersion is required")

    capabilities = params.get("capabilities")
    if capabilities is not None and not isinstance(capabilities, dict):
        raise MCPError.invalid_params("capabilities must be an object")

    client_info = ClientInfo.from_dict(params.get("clientInfo"))
    client_capabilities = ClientCapabilities.from_dict(capabilities)
    result = NegotiationResult(
        protocol_version=select_version(requested),
        client_info=client_info,
        client_capabilities=client_capabilities,
        server_info=server_info,
        server_capabilities=server_capabilities,
        instructions=instructions,
        requested_version=requested,
    )

    logger.info(f"Client connected: {client_info.name} v{client_info.version}")
    logger.debug(f"Negotiated {result}")
    return result
