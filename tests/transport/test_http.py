"""Tests for the Streamable HTTP transport."""

import asyncio
import time

import httpx
import pytest
import pytest_asyncio

from toolhost.lib import oj
from toolhost.protocol.errors import INVALID_REQUEST, PARSE_ERROR
from toolhost.starter import create_server
from toolhost.transport.base import TransportClosedError
from toolhost.transport.http import MCP_SESSION_HEADER, HTTPSessionTransport, StreamableHTTPApp
from toolhost.transport.types import TransportConfig

JSON_ONLY = {"Accept": "application/json"}
WITH_SSE = {"Accept": "application/json, text/event-stream"}

INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-11-25",
        "capabilities": {},
        "clientInfo": {"name": "http-test", "version": "1.0"},
    },
}


def sse_messages(body):
    """Decode the data lines of an SSE body."""
    return [oj.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]


@pytest.fixture
def http_app(config):
    return StreamableHTTPApp(create_server(config, step_delay=0))


@pytest_asyncio.fixture
async def http(http_app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=http_app), base_url="http://test") as client:
        yield client
    await http_app.close()


async def open_session(http):
    response = await http.post("/mcp", json=INITIALIZE, headers=JSON_ONLY)
    session_id = response.headers[MCP_SESSION_HEADER]
    await http.post(
        "/mcp",
        json={"jsonrpc": "2.0", "method": "notifications/initialized"},
        headers={**JSON_ONLY, MCP_SESSION_HEADER: session_id},
    )
    return session_id


class TestStreamableHTTPApp:
    """Tests for the HTTP endpoint."""

    @pytest.mark.asyncio
    async def test_health(self, http):
        response = await http.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "server": "toolhost", "version": "1.0.0"}

    @pytest.mark.asyncio
    async def test_initialize_creates_session(self, http, http_app):
        response = await http.post("/mcp", json=INITIALIZE, headers=JSON_ONLY)

        assert response.status_code == 200
        assert response.json()["result"]["protocolVersion"] == "2025-11-25"
        assert response.headers[MCP_SESSION_HEADER] in http_app.session_ids

    @pytest.mark.asyncio
    async def test_notification_accepted(self, http):
        response = await http.post("/mcp", json=INITIALIZE, headers=JSON_ONLY)
        session_id = response.headers[MCP_SESSION_HEADER]

        response = await http.post(
            "/mcp",
            json={"jsonrpc": "2.0", "method": "notifications/initialized"},
            headers={**JSON_ONLY, MCP_SESSION_HEADER: session_id},
        )
        assert response.status_code == 202
        assert response.headers[MCP_SESSION_HEADER] == session_id

    @pytest.mark.asyncio
    async def test_json_tool_call(self, http):
        session_id = await open_session(http)
        response = await http.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 2, "method": "tools/call", "params": {"name": "hello", "arguments": {"name": "Ada"}}},
            headers={**JSON_ONLY, MCP_SESSION_HEADER: session_id},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == 2
        assert body["result"]["content"][0]["text"] == "Hello, Ada! Welcome to MCP."

    @pytest.mark.asyncio
    async def test_sse_carries_progress_then_response(self, http):
        session_id = await open_session(http)
        response = await http.post(
            "/mcp",
            json={
                "jsonrpc": "2.0",
                "id": 3,
                "method": "tools/call",
                "params": {"name": "long_task", "arguments": {"taskName": "web"}, "_meta": {"progressToken": "t"}},
            },
            headers={**WITH_SSE, MCP_SESSION_HEADER: session_id},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        messages = sse_messages(response.text)
        progress = [m["params"]["progress"] for m in messages if m.get("method") == "notifications/progress"]
        assert progress == [0.0, 0.2, 0.4, 0.6, 0.8, 1.0]
        assert messages[-1]["id"] == 3
        assert "web" in messages[-1]["result"]["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_missing_session_header(self, http):
        response = await http.post(
            "/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"}, headers=JSON_ONLY
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_unknown_session(self, http):
        response = await http.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
            headers={**JSON_ONLY, MCP_SESSION_HEADER: "nope"},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_parse_error(self, http):
        response = await http.post("/mcp", content=b"{not json", headers=JSON_ONLY)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_batch_rejected(self, http):
        response = await http.post("/mcp", json=[INITIALIZE], headers=JSON_ONLY)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_ends_session(self, http, http_app):
        session_id = await open_session(http)

        response = await http.delete("/mcp", headers={MCP_SESSION_HEADER: session_id})
        assert response.status_code == 204
        assert session_id not in http_app.session_ids

        response = await http.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 5, "method": "ping"},
            headers={**JSON_ONLY, MCP_SESSION_HEADER: session_id},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_requires_event_stream(self, http):
        session_id = await open_session(http)
        response = await http.get("/mcp", headers={**JSON_ONLY, MCP_SESSION_HEADER: session_id})
        assert response.status_code == 406


class TestMessageSizeLimit:
    """Tests for max_message_bytes."""

    @pytest.fixture
    def http_app(self, config):
        return StreamableHTTPApp(create_server(config), TransportConfig(max_message_bytes=64))

    @pytest.mark.asyncio
    async def test_oversized_body(self, http):
        response = await http.post("/mcp", json=INITIALIZE, headers=JSON_ONLY)
        assert response.status_code == 413


class TestIdleSessionExpiry:
    """Tests for closing HTTP sessions that go unused."""

    @pytest.mark.asyncio
    async def test_idle_session_expires(self, http, http_app):
        session_id = await open_session(http)
        timeout = http_app.config.session_idle_timeout

        assert await http_app.expire_idle_sessions(now=time.monotonic() + timeout / 2) == []
        assert await http_app.expire_idle_sessions(now=time.monotonic() + timeout + 1) == [session_id]
        assert session_id not in http_app.session_ids

        response = await http.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 2, "method": "ping"},
            headers={**JSON_ONLY, MCP_SESSION_HEADER: session_id},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requests_keep_session_alive(self, http, http_app):
        session_id = await open_session(http)
        timeout = http_app.config.session_idle_timeout
        http_app._sessions[session_id].last_seen = time.monotonic() - timeout * 2

        response = await http.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 2, "method": "ping"},
            headers={**JSON_ONLY, MCP_SESSION_HEADER: session_id},
        )
        assert response.status_code == 200

        assert await http_app.expire_idle_sessions() == []
        assert session_id in http_app.session_ids

    @pytest.mark.asyncio
    async def test_session_with_open_stream_is_kept(self, http, http_app):
        session_id = await open_session(http)
        http_app._sessions[session_id].transport.open_standalone_stream()

        far_future = time.monotonic() + http_app.config.session_idle_timeout * 10
        assert await http_app.expire_idle_sessions(now=far_future) == []
        assert session_id in http_app.session_ids


class TestIdleExpiryDisabled:
    """Tests for session_idle_timeout=0."""

    @pytest.fixture
    def http_app(self, config):
        return StreamableHTTPApp(create_server(config), TransportConfig(session_idle_timeout=0))

    @pytest.mark.asyncio
    async def test_sessions_never_expire(self, http, http_app):
        session_id = await open_session(http)
        assert await http_app.expire_idle_sessions(now=time.monotonic() + 10**9) == []
        assert session_id in http_app.session_ids


class TestHTTPSessionTransport:
    """Tests for message routing inside one HTTP session."""

    @pytest.mark.asyncio
    async def test_routes_to_request_stream(self):
        transport = HTTPSessionTransport()
        queue = transport.open_request_stream(1)

        await transport.send({"jsonrpc": "2.0", "method": "notifications/progress"}, related_request_id=1)
        await transport.send({"jsonrpc": "2.0", "id": 1, "result": {}}, related_request_id=1)

        assert queue.get_nowait()["method"] == "notifications/progress"
        assert queue.get_nowait()["id"] == 1

    @pytest.mark.asyncio
    async def test_final_only_sends_other_messages_to_standalone(self):
        transport = HTTPSessionTransport()
        request_queue = transport.open_request_stream(1, final_only=True)
        standalone = transport.open_standalone_stream()

        await transport.send({"jsonrpc": "2.0", "id": 7, "method": "sampling/createMessage"}, related_request_id=1)
        await transport.send({"jsonrpc": "2.0", "id": 1, "result": {}}, related_request_id=1)

        assert standalone.get_nowait()["method"] == "sampling/createMessage"
        assert request_queue.get_nowait()["id"] == 1
        assert request_queue.empty()

    @pytest.mark.asyncio
    async def test_unrouted_message_dropped(self):
        transport = HTTPSessionTransport()
        await transport.send({"jsonrpc": "2.0", "method": "notifications/tools/list_changed"})

    @pytest.mark.asyncio
    async def test_single_standalone_stream(self):
        transport = HTTPSessionTransport()
        queue = transport.open_standalone_stream()
        assert transport.open_standalone_stream() is None
        transport.close_standalone_stream(queue)
        assert transport.open_standalone_stream() is not None

    @pytest.mark.asyncio
    async def test_complete_request_closes_stream(self):
        transport = HTTPSessionTransport()
        transport.open_request_stream("a")
        await transport.complete_request("a")
        assert not transport.has_request_stream("a")

    @pytest.mark.asyncio
    async def test_disconnect_ends_receive(self):
        transport = HTTPSessionTransport()
        await transport.put({"jsonrpc": "2.0", "method": "ping", "id": 1})

        async def collect():
            return [message async for message in transport.receive()]

        task = asyncio.create_task(collect())
        await asyncio.sleep(0)
        await transport.disconnect()

        assert await asyncio.wait_for(task, timeout=1) == [{"jsonrpc": "2.0", "method": "ping", "id": 1}]
        with pytest.raises(TransportClosedError):
            await transport.send({"jsonrpc": "2.0", "method": "x"})
