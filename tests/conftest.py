"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest
import pytest_asyncio

from toolhost.config import ServerConfig
from toolhost.server.server import MCPServer
from toolhost.server.session import ServerSession
from toolhost.starter import create_server
from toolhost.transport.memory import MemoryTransport

pytest_plugins = ["pytest_asyncio"]

# Capabilities a full-featured client declares
FULL_CLIENT_CAPABILITIES = {
    "sampling": {},
    "elicitation": {"form": {}, "url": {}},
    "roots": {"listChanged": True},
}

Responder = Callable[[dict[str, Any] | None], dict[str, Any]]


class ClientHarness:
    """
    Scripted MCP client on the far end of a MemoryTransport.

    Answers server-initiated requests with registered responders and
    records every notification it receives.
    """

    def __init__(self, transport: MemoryTransport, session: ServerSession):
        self.transport = transport
        self.session = session
        self.notifications: list[dict[str, Any]] = []
        self.server_requests: list[dict[str, Any]] = []
        self.responders: dict[str, Responder] = {}
        self._responses: dict[Any, dict[str, Any]] = {}
        self._next_id = 0

    def respond_to(self, method: str, responder: Responder) -> None:
        self.responders[method] = responder

    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> int:
        self._next_id += 1
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": self._next_id, "method": method}
        if params is not None:
            message["params"] = params
        await self.transport.send(message)
        return self._next_id

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float = 5.0,
    ) -> dict[str, Any]:
        """Send a request and return the whole response message."""
        request_id = await self.send_request(method, params)
        return await self.wait_response(request_id, timeout=timeout)

    async def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Send a request and return its result, failing on an error response."""
        response = await self.request(method, params)
        assert "error" not in response, response["error"]
        return response["result"]

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        await self.transport.send(message)

    async def wait_response(self, request_id: Any, timeout: float = 5.0) -> dict[str, Any]:
        while request_id not in self._responses:
            await self._pump(timeout)
        return self._responses.pop(request_id)

    async def wait_notification(self, method: str, timeout: float = 5.0) -> dict[str, Any]:
        while True:
            for notification in self.notifications:
                if notification["method"] == method:
                    self.notifications.remove(notification)
                    return notification
            await self._pump(timeout)

    async def wait_server_request(self, method: str, timeout: float = 5.0) -> dict[str, Any]:
        """Wait for a server request that has no responder registered."""
        while True:
            for request in self.server_requests:
                if request["method"] == method:
                    self.server_requests.remove(request)
                    return request
            await self._pump(timeout)

    async def respond(self, request_id: Any, result: dict[str, Any]) -> None:
        await self.transport.send({"jsonrpc": "2.0", "id": request_id, "result": result})

    async def respond_error(self, request_id: Any, code: int, message: str) -> None:
        await self.transport.send(
            {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}
        )

    async def _pump(self, timeout: float) -> None:
        message = await self.transport.get(timeout=timeout)
        if "method" in message and "id" in message:
            responder = self.responders.get(message["method"])
            if responder is None:
                self.server_requests.append(message)
            else:
                await self.respond(message["id"], responder(message.get("params")))
        elif "method" in message:
            self.notifications.append(message)
        else:
            self._responses[message.get("id")] = message

    async def initialize(self, capabilities: dict[str, Any] | None = None) -> dict[str, Any]:
        result = await self.call(
            "initialize",
            {
                "protocolVersion": "2025-11-25",
                "capabilities": capabilities if capabilities is not None else {},
                "clientInfo": {"name": "test-client", "version": "0.1.0"},
            },
        )
        await self.notify("notifications/initialized")
        return result

    def progress_values(self, token: Any) -> list[float]:
        return [
            n["params"]["progress"]
            for n in self.notifications
            if n["method"] == "notifications/progress" and n["params"]["progressToken"] == token
        ]


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig(request_timeout=2.0, forward_logs=False)


@pytest.fixture
def server(config) -> MCPServer:
    """Bare server with empty registries."""
    return MCPServer(config=config, instructions="Test server")


@pytest.fixture
def starter_server(config) -> MCPServer:
    """Server with the starter capabilities and no long_task delay."""
    return create_server(config, step_delay=0)


async def _connect(server: MCPServer):
    server_end, client_end = MemoryTransport.create_pair()
    session = server.create_session(server_end)
    task = asyncio.create_task(session.run())
    return ClientHarness(client_end, session), task


@pytest_asyncio.fixture
async def client(server):
    """Connected, not yet initialized client for the bare server."""
    harness, task = await _connect(server)
    yield harness
    await harness.session.close()
    await task


@pytest_asyncio.fixture
async def starter_client(starter_server):
    """Initialized full-capability client for the starter server."""
    harness, task = await _connect(starter_server)
    await harness.initialize(FULL_CLIENT_CAPABILITIES)
    yield harness
    await harness.session.close()
    await task


@pytest_asyncio.fixture
async def plain_starter_client(starter_server):
    """Initialized starter client that declared no capabilities."""
    harness, task = await _connect(starter_server)
    await harness.initialize({})
    yield harness
    await harness.session.close()
    await task
