"""
MCP Capability Negotiation.

Parses what the client declares during initialization and builds what
the server advertises back.
"""

from toolhost.capabilities.client import (
    ClientCapabilities,
    ElicitationCapability,
    RootsCapability,
    SamplingCapability,
)
from toolhost.capabilities.negotiation import (
    PROTOCOL_VERSION,
    SUPPORTED_VERSIONS,
    ClientInfo,
    NegotiationResult,
    ServerInfo,
    negotiate,
    select_version,
)
from toolhost.capabilities.server import (
    DEFAULT_SERVER_CAPABILITIES,
    ServerCapabilities,
    ServerPromptsCapability,
    ServerResourcesCapability,
    ServerToolsCapability,
)

__all__ = [
    # Client capabilities
    "ClientCapabilities",
    "SamplingCapability",
    "RootsCapability",
    "ElicitationCapability",
    # Server capabilities
    "ServerCapabilities",
    "ServerToolsCapability",
    "ServerResourcesCapability",
    "ServerPromptsCapability",
    "DEFAULT_SERVER_CAPABILITIES",
    # Negotiation
    "ClientInfo",
    "ServerInfo",
    "NegotiationResult",
    "negotiate",
    "select_version",
    "PROTOCOL_VERSION",
    "SUPPORTED_VERSIONS",
]
