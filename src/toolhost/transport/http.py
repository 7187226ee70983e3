"""Streamable HTTP transport (server side) built on Starlette."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from toolhost.lib import oj
from toolhost.protocol.errors import MCPError
from toolhost.protocol.messages import JSONRPCResponse, is_request, is_response
from toolhost.transport.base import Transport, TransportClosedError
from toolhost.transport.types import TransportConfig, TransportEvent, TransportEventType

if TYPE_CHECKING:
    from toolhost.config import ServerConfig
    from toolhost.server.server import MCPServer
    from toolhost.server.session import ServerSession

logger = logging.getLogger(__name__)

MCP_SESSION_HEADER = "Mcp-Session-Id"
SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}

_END = object()


class HTTPSessionTransport(Transport):
    """
    Transport for one HTTP session.

    Client messages arrive through POST bodies and are queued for the
    session's receive loop. Server messages are routed to the SSE stream
    of the POST they belong to, or to the standalone GET stream when they
    belong to no open request.
    """

    def __init__(self, session_id: str | None = None, queue_size: int = 256):
        super().__init__()
        self._session_id = session_id or uuid.uuid4().hex
        self._queue_size = queue_size
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._streams: dict[Any, asyncio.Queue[Any]] = {}
        self._final_only: set[Any] = set()
        self._standalone: asyncio.Queue[Any] | None = None
        self._connected = True

    @property
    def session_id(self) -> str:
        return self._session_id

    async def connect(self) -> None:
        self._connected = True
        self._emit_event(
            TransportEvent(
                type=TransportEventType.SESSION_ESTABLISHED,
                timestamp=time.time(),
                data={"session_id": self._session_id},
            )
        )

    async def disconnect(self) -> None:
        if not self._connected:
            return
        self._connected = False
        self._inbox.put_nowait(_END)
        for queue in self._streams.values():
            queue.put_nowait(_END)
        self._streams.clear()
        if self._standalone is not None:
            self._standalone.put_nowait(_END)
            self._standalone = None
        self._emit_event(
            TransportEvent(
                type=TransportEventType.SESSION_CLOSED,
                timestamp=time.time(),
                data={"session_id": self._session_id},
            )
        )

    def is_connected(self) -> bool:
        return self._connected

    async def put(self, message: Any) -> None:
        """Queue a message received from the client."""
        if not self._connected:
            raise TransportClosedError("Session is closed")
        await self._inbox.put(message)
        self._emit_event(
            TransportEvent(type=TransportEventType.MESSAGE_RECEIVED, timestamp=time.time())
        )

    async def receive(self) -> AsyncIterator[Any]:
        while True:
            message = await self._inbox.get()
            if message is _END:
                return
            yield message

    async def send(
        self,
        message: dict[str, Any],
        related_request_id: str | int | None = None,
    ) -> None:
        if not self._connected:
            raise TransportClosedError("Session is closed")

        queue = self._streams.get(related_request_id) if related_request_id is not None else None
        if queue is not None and related_request_id in self._final_only and not is_response(message):
            queue = None
        if queue is None:
            queue = self._standalone
        if queue is None:
            logger.debug(f"No open stream for message {message.get('method') or message.get('id')}, dropping")
            return

        await queue.put(message)
        self._emit_event(
            TransportEvent(
                type=TransportEventType.MESSAGE_SENT,
                timestamp=time.time(),
                data={"related_request_id": related_request_id},
            )
        )

    async def complete_request(self, request_id: str | int) -> None:
        queue = self._streams.pop(request_id, None)
        self._final_only.discard(request_id)
        if queue is not None:
            await queue.put(_END)

    def open_request_stream(self, request_id: str | int, final_only: bool = False) -> asyncio.Queue[Any]:
        """
        Open the stream that carries messages for one client request.

        With final_only, only the response goes to this stream; other
        messages fall through to the standalone stream.
        """
        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=self._queue_size)
        self._streams[request_id] = queue
        if final_only:
            self._final_only.add(request_id)
        return queue

    def close_request_stream(self, request_id: str | int, queue: asyncio.Queue[Any]) -> None:
        if self._streams.get(request_id) is queue:
            del self._streams[request_id]
            self._final_only.discard(request_id)

    def has_request_stream(self, request_id: str | int) -> bool:
        return request_id in self._streams

    def has_open_streams(self) -> bool:
        return bool(self._streams) or self._standalone is not None

    def open_standalone_stream(self) -> asyncio.Queue[Any] | None:
        """Open the GET stream; returns None if one is already open."""
        if self._standalone is not None:
            return None
        self._standalone = asyncio.Queue(maxsize=self._queue_size)
        return self._standalone

    def close_standalone_stream(self, queue: asyncio.Queue[Any]) -> None:
        if self._standalone is queue:
            self._standalone = None


@dataclass
class HTTPSession:
    """A live HTTP session and the task running it."""

    transport: HTTPSessionTransport
    session: ServerSession
    task: asyncio.Task
    last_seen: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.last_seen = time.monotonic()


def _sse_event(message: dict[str, Any]) -> str:
    return f"event: message\ndata: {oj.dumps(message)}\n\n"


def _json(content: Any, status_code: int = 200, headers: dict[str, str] | None = None) -> Response:
    return Response(
        content=oj.dumps_bytes(content),
        status_code=status_code,
        media_type="application/json",
        headers=headers,
    )


def _error(error: MCPError, status_code: int, request_id: Any = None) -> Response:
    return _json(JSONRPCResponse.from_error(request_id, error).to_dict(), status_code=status_code)


class StreamableHTTPApp:
    """
    ASGI application exposing an MCPServer over Streamable HTTP.

    - POST {endpoint}: one JSON-RPC message. Requests are answered with an
      SSE stream when the client accepts text/event-stream, else with a
      single JSON response. Notifications and responses get 202.
    - GET {endpoint}: standalone SSE stream for server messages that are
      not tied to a POST.
    - DELETE {endpoint}: end the session.
    - GET /health: liveness probe.

    Sessions left unused for session_idle_timeout seconds are closed.
    """

    def __init__(self, server: MCPServer, config: TransportConfig | None = None):
        self.server = server
        self.config = config or TransportConfig()
        self._sessions: dict[str, HTTPSession] = {}
        self.app = Starlette(
            routes=[
                Route(self.config.endpoint, self.handle_mcp, methods=["GET", "POST", "DELETE"]),
                Route("/health", self.health, methods=["GET"]),
            ],
            lifespan=self._lifespan,
        )

    async def __call__(self, scope, receive, send) -> None:
        await self.app(scope, receive, send)

    @property
    def session_ids(self) -> list[str]:
        return list(self._sessions)

    @asynccontextmanager
    async def _lifespan(self, app: Starlette):
        logger.info(f"Streamable HTTP transport serving {self.config.endpoint}")
        expiry = None
        if self.config.session_idle_timeout > 0:
            expiry = asyncio.create_task(self._expire_loop(), name="mcp-http-session-expiry")
        try:
            yield
        finally:
            if expiry is not None:
                expiry.cancel()
                try:
                    await expiry
                except asyncio.CancelledError:
                    pass
            await self.close()

    async def _expire_loop(self) -> None:
        interval = min(self.config.session_idle_timeout / 4, 60.0)
        while True:
            await asyncio.sleep(interval)
            await self.expire_idle_sessions()

    async def expire_idle_sessions(self, now: float | None = None) -> list[str]:
        """
        Close sessions unused for longer than session_idle_timeout.

        A session with an open SSE stream counts as in use. Returns the
        ids of the sessions closed.
        """
        timeout = self.config.session_idle_timeout
        if timeout <= 0:
            return []
        now = time.monotonic() if now is None else now

        expired = []
        for session_id, http_session in list(self._sessions.items()):
            if http_session.transport.has_open_streams():
                http_session.last_seen = now
            elif now - http_session.last_seen > timeout:
                expired.append(session_id)

        for session_id in expired:
            http_session = self._sessions.pop(session_id, None)
            if http_session is not None:
                logger.info(f"Expiring idle HTTP session {session_id}")
                await http_session.session.close()
        return expired

    async def close(self) -> None:
        """Close every session."""
        for http_session in list(self._sessions.values()):
            await http_session.session.close()
        self._sessions.clear()

    async def health(self, request: Request) -> Response:
        return JSONResponse(
            {
                "status": "ok",
                "server": self.server.config.name,
                "version": self.server.config.version,
            }
        )

    async def handle_mcp(self, request: Request) -> Response:
        if request.method == "POST":
            return await self._handle_post(request)
        if request.method == "GET":
            return await self._handle_get(request)
        return await self._handle_delete(request)

    def _lookup(self, request: Request) -> HTTPSession | Response:
        session_id = request.headers.get(MCP_SESSION_HEADER)
        if not session_id:
            return _error(MCPError.invalid_request(f"Missing {MCP_SESSION_HEADER} header"), 400)
        http_session = self._sessions.get(session_id)
        if http_session is None:
            return _error(MCPError.invalid_request("Unknown or expired session"), 404)
        http_session.touch()
        return http_session

    def _start_session(self) -> HTTPSession:
        transport = HTTPSessionTransport(queue_size=self.config.stream_queue_size)
        session = self.server.create_session(transport)
        task = asyncio.create_task(session.run(), name=f"mcp-http-session-{transport.session_id}")
        http_session = HTTPSession(transport=transport, session=session, task=task)
        self._sessions[transport.session_id] = http_session
        session.on_close(lambda _: self._sessions.pop(transport.session_id, None))
        logger.info(f"Started HTTP session {transport.session_id}")
        return http_session

    async def _handle_post(self, request: Request) -> Response:
        body = await request.body()
        if len(body) > self.config.max_message_bytes:
            return _error(MCPError.invalid_request("Message too large"), 413)
        try:
            message = oj.loads(body)
        except oj.JSONDecodeError as e:
            return _error(MCPError.parse_error(str(e)), 400)
        if not isinstance(message, dict):
            return _error(MCPError.invalid_request("Expected a single JSON-RPC object"), 400)

        method = message.get("method")
        request_id = message.get("id")
        expects_response = is_request(message)

        if method == "initialize" and not request.headers.get(MCP_SESSION_HEADER):
            http_session = self._start_session()
        else:
            found = self._lookup(request)
            if isinstance(found, Response):
                return found
            http_session = found

        transport = http_session.transport
        headers = {MCP_SESSION_HEADER: transport.session_id}

        if not expects_response:
            await transport.put(message)
            return Response(status_code=202, headers=headers)

        if transport.has_request_stream(request_id):
            return _error(MCPError.invalid_request(f"Duplicate request id: {request_id}"), 409, request_id)

        wants_sse = "text/event-stream" in request.headers.get("accept", "")
        queue = transport.open_request_stream(request_id, final_only=not wants_sse)
        await transport.put(message)

        if wants_sse:
            return StreamingResponse(
                self._stream(transport, request_id, queue),
                media_type="text/event-stream",
                headers={**SSE_HEADERS, **headers},
            )

        try:
            final = None
            while True:
                item = await queue.get()
                if item is _END:
                    break
                final = item
        finally:
            transport.close_request_stream(request_id, queue)
        if final is None:
            return Response(status_code=202, headers=headers)
        return _json(final, headers=headers)

    async def _stream(
        self,
        transport: HTTPSessionTransport,
        request_id: Any,
        queue: asyncio.Queue[Any],
    ) -> AsyncIterator[str]:
        try:
            while True:
                item = await queue.get()
                if item is _END:
                    return
                yield _sse_event(item)
        finally:
            transport.close_request_stream(request_id, queue)

    async def _handle_get(self, request: Request) -> Response:
        if "text/event-stream" not in request.headers.get("accept", ""):
            return _error(MCPError.invalid_request("GET requires Accept: text/event-stream"), 406)
        found = self._lookup(request)
        if isinstance(found, Response):
            return found
        transport = found.transport
        queue = transport.open_standalone_stream()
        if queue is None:
            return _error(MCPError.invalid_request("Stream already open for this session"), 409)

        async def events() -> AsyncIterator[str]:
            try:
                while True:
                    item = await queue.get()
                    if item is _END:
                        return
                    yield _sse_event(item)
            finally:
                transport.close_standalone_stream(queue)

        return StreamingResponse(
            events(),
            media_type="text/event-stream",
            headers={**SSE_HEADERS, MCP_SESSION_HEADER: transport.session_id},
        )

    async def _handle_delete(self, request: Request) -> Response:
        found = self._lookup(request)
        if isinstance(found, Response):
            return found
        session_id = found.transport.session_id
        await found.session.close()
        self._sessions.pop(session_id, None)
        logger.info(f"Closed HTTP session {session_id}")
        return Response(status_code=204)


_UVICORN_LEVELS = {"debug": "debug", "info": "info", "notice": "info", "warning": "warning"}


async def run_http(server: MCPServer, config: ServerConfig) -> None:
    """Serve an MCPServer over Streamable HTTP until shut down."""
    app = StreamableHTTPApp(
        server,
        TransportConfig(
            host=config.host,
            port=config.port,
            session_idle_timeout=config.session_idle_timeout,
        ),
    )
    uvicorn_config = uvicorn.Config(
        app=app,
        host=config.host,
        port=config.port,
        log_level=_UVICORN_LEVELS.get(config.log_level, "error"),
    )
    logger.info(f"Listening on http://{config.host}:{config.port}{app.config.endpoint}")
    await uvicorn.Server(uvicorn_config).serve()
