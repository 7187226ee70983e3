"""One client connection: message routing and server-initiated requests."""

from __future__ import annotations

import asyncio
import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from toolhost.capabilities.client import ClientCapabilities
from toolhost.capabilities.negotiation import ClientInfo, NegotiationResult
from toolhost.features import elicitation, sampling
from toolhost.protocol.errors import MCPError
from toolhost.protocol.messages import (
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    RequestId,
    parse_message,
)
from toolhost.protocol.state import SessionState, SessionStateMachine
from toolhost.transport.base import Transport, TransportError
from toolhost.utilities.types import CancellationInfo, LogLevel

if TYPE_CHECKING:
    from toolhost.registry.schema import InputSchema
    from toolhost.utilities import UtilityHandlers

logger = logging.getLogger(__name__)

# Type aliases for handlers
RequestHandler = Callable[[JSONRPCRequest], Awaitable[Any]]
NotificationHandler = Callable[[dict[str, Any] | None], Awaitable[None]]
CloseCallback = Callable[["ServerSession"], None]

# Requests accepted before the initialize handshake
PRE_INIT_METHODS = frozenset({"initialize", "ping"})

# (session, request id) of the client request the current task is serving
_current_request: ContextVar[tuple["ServerSession", RequestId] | None] = ContextVar(
    "toolhost_current_request", default=None
)


@dataclass
class InFlightRequest:
    """A client request whose handler is still running."""

    request: JSONRPCRequest
    task: asyncio.Task
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)


class ServerSession:
    """
    Server side of one MCP connection.

    Reads messages from the transport, runs each client request as its
    own task, correlates responses to server-initiated requests
    (sampling, elicitation, ping), and tears everything down when the
    connection ends.
    """

    def __init__(
        self,
        transport: Transport,
        request_timeout: float = 60.0,
        max_pending_requests: int = 100,
    ):
        """
        Args:
            transport: Connection to the client.
            request_timeout: Default timeout for server-initiated requests.
            max_pending_requests: Limit on concurrent server-initiated requests.
        """
        self.transport = transport
        self.request_timeout = request_timeout
        self.max_pending_requests = max_pending_requests
        self.negotiation: NegotiationResult | None = None
        self.utilities: UtilityHandlers | None = None

        self._state = SessionStateMachine()
        self._next_id = 0
        self._pending_requests: dict[RequestId, asyncio.Future[Any]] = {}
        self._in_flight: dict[RequestId, InFlightRequest] = {}
        self._request_handlers: dict[str, RequestHandler] = {}
        self._notification_handlers: dict[str, NotificationHandler] = {}
        self._close_callbacks: list[CloseCallback] = []
        self._background: set[asyncio.Task] = set()
        self._closing = False

    @property
    def state(self) -> SessionState:
        return self._state.state

    @property
    def is_initialized(self) -> bool:
        return self._state.is_initialized

    @property
    def is_ready(self) -> bool:
        return self._state.is_ready

    @property
    def is_closed(self) -> bool:
        return self._closing or self._state.is_closed

    @property
    def session_id(self) -> str | None:
        return self.transport.session_id

    @property
    def client_capabilities(self) -> ClientCapabilities:
        """Capabilities the client declared, empty before initialization."""
        if self.negotiation is None:
            return ClientCapabilities()
        return self.negotiation.client_capabilities

    @property
    def client_info(self) -> ClientInfo | None:
        return self.negotiation.client_info if self.negotiation else None

    def on_request(self, method: str, handler: RequestHandler) -> None:
        """Register the handler for a client request method."""
        self._request_handlers[method] = handler

    def on_notification(self, method: str, handler: NotificationHandler) -> None:
        """Register the handler for a client notification."""
        self._notification_handlers[method] = handler

    def on_close(self, callback: CloseCallback) -> None:
        self._close_callbacks.append(callback)

    def mark_initialized(self, negotiation: NegotiationResult) -> None:
        """
        Record the answered initialize request.

        Raises:
            MCPError: If the session was already initialized.
        """
        if self._state.state != SessionState.CONNECTED:
            raise MCPError.invalid_request("Session already initialized")
        self.negotiation = negotiation
        self._state.transition(SessionState.INITIALIZING)

    def mark_ready(self) -> None:
        """Called when the client sends notifications/initialized."""
        if self._state.state == SessionState.INITIALIZING:
            self._state.transition(SessionState.READY)
        else:
            logger.debug(f"Ignoring initialized notification in state {self.state}")

    def cancel_event(self, request_id: RequestId) -> asyncio.Event:
        """Event set when the given in-flight request is cancelled."""
        entry = self._in_flight.get(request_id)
        if entry is None:
            return asyncio.Event()
        return entry.cancelled

    def cancel_request(self, request_id: RequestId, reason: str | None = None) -> bool:
        """
        Cancel a client request that is still running.

        The initialize request cannot be cancelled.

        Returns:
            True if a running request was cancelled.
        """
        entry = self._in_flight.get(request_id)
        if entry is None or entry.task.done():
            return False
        if entry.request.method == "initialize":
            logger.warning("Ignoring attempt to cancel initialize request")
            return False
        logger.debug(f"Cancelling request {request_id}: {reason}")
        entry.cancelled.set()
        entry.task.cancel()
        return True

    async def run(self) -> None:
        """Process messages until the client disconnects, then close."""
        if not self.transport.is_connected():
            await self.transport.connect()

        try:
            async for message in self.transport.receive():
                if self._closing:
                    break
                await self.handle_message(message)
        except TransportError as e:
            logger.error(f"Transport error: {e}")
        finally:
            await self.close()

    async def handle_message(self, raw: Any) -> None:
        """Route one decoded message from the client."""
        try:
            message = parse_message(raw)
        except MCPError as e:
            logger.warning(f"Rejected malformed message: {e.message}")
            request_id = raw.get("id") if isinstance(raw, dict) else None
            if not isinstance(request_id, (str, int)) or isinstance(request_id, bool):
                request_id = None
            await self._send_safe(JSONRPCResponse.from_error(request_id, e).to_dict())
            return

        if isinstance(message, JSONRPCRequest):
            self._start_request(message)
        elif isinstance(message, JSONRPCResponse):
            self._handle_response(message)
        else:
            await self._handle_notification(message)

    def _start_request(self, request: JSONRPCRequest) -> None:
        if request.id in self._in_flight:
            error = MCPError.invalid_request(f"Duplicate request id: {request.id}")
            self._spawn(self._send_safe(JSONRPCResponse.from_error(request.id, error).to_dict()))
            return

        task = asyncio.create_task(
            self._run_request(request),
            name=f"mcp-request-{request.method}-{request.id}",
        )
        self._in_flight[request.id] = InFlightRequest(request=request, task=task)
        task.add_done_callback(lambda t, rid=request.id: self._request_done(rid, t))

    def _request_done(self, request_id: RequestId, task: asyncio.Task) -> None:
        entry = self._in_flight.get(request_id)
        if entry is not None and entry.task is task:
            del self._in_flight[request_id]

    async def _run_request(self, request: JSONRPCRequest) -> None:
        _current_request.set((self, request.id))
        try:
            response = await self._dispatch_request(request)
            await self._send_safe(response.to_dict(), related_request_id=request.id)
        except asyncio.CancelledError:
            # A cancelled request gets no response
            logger.info(f"Request {request.id} ({request.method}) cancelled")
        finally:
            try:
                await self.transport.complete_request(request.id)
            except TransportError as e:
                logger.debug(f"Could not complete request {request.id}: {e}")

    async def _dispatch_request(self, request: JSONRPCRequest) -> JSONRPCResponse:
        if not self._state.is_initialized and request.method not in PRE_INIT_METHODS:
            return JSONRPCResponse.from_error(
                request.id,
                MCPError.invalid_request(f"Session not initialized; cannot handle {request.method}"),
            )

        handler = self._request_handlers.get(request.method)
        if handler is None:
            return JSONRPCResponse.from_error(request.id, MCPError.method_not_found(request.method))

        try:
            result = await handler(request)
            return JSONRPCResponse.success(id=request.id, result=result)
        except MCPError as e:
            logger.debug(f"{request.method} failed: {e}")
            return JSONRPCResponse.from_error(request.id, e)
        except Exception as e:
            logger.exception(f"Handler error for {request.method}")
            return JSONRPCResponse.from_error(request.id, MCPError.internal_error(str(e)))

    def _handle_response(self, response: JSONRPCResponse) -> None:
        """Complete the pending future of a server-initiated request."""
        if response.id is None:
            logger.warning("Received response without id")
            return

        future = self._pending_requests.get(response.id)
        if future is None:
            logger.warning(f"No pending request for id: {response.id}")
            return
        if future.done():
            return

        if response.is_error:
            future.set_exception(MCPError.from_dict(response.error.to_dict()))
        else:
            future.set_result(response.result)

    async def _handle_notification(self, notification: JSONRPCNotification) -> None:
        handler = self._notification_handlers.get(notification.method)
        if handler is None:
            logger.debug(f"Unhandled notification: {notification.method}")
            return
        try:
            await handler(notification.params)
        except Exception:
            logger.exception(f"Notification handler error for {notification.method}")

    def _related_request_id(self) -> RequestId | None:
        current = _current_request.get()
        if current is not None and current[0] is self:
            return current[1]
        return None

    def current_request_id(self) -> RequestId | None:
        """Id of the request of this session the running task serves, if any."""
        return self._related_request_id()

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
        related_request_id: RequestId | None = None,
    ) -> Any:
        """
        Send a request to the client and wait for its response.

        When called from a request handler, the request is tied to the
        client request being served.

        Raises:
            MCPError: On an error response, timeout, or closed connection.
        """
        if self.is_closed:
            raise MCPError.cancelled("Connection closed")
        if len(self._pending_requests) >= self.max_pending_requests:
            raise MCPError.internal_error("Too many pending requests")

        self._next_id += 1
        request = JSONRPCRequest(method=method, id=self._next_id, params=params)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending_requests[request.id] = future

        if related_request_id is None:
            related_request_id = self._related_request_id()
        effective_timeout = timeout if timeout is not None else self.request_timeout

        try:
            try:
                await self.transport.send(request.to_dict(), related_request_id=related_request_id)
            except TransportError as e:
                raise MCPError.cancelled(f"Connection closed: {e}")
            return await asyncio.wait_for(future, timeout=effective_timeout)

        except asyncio.TimeoutError:
            self._spawn(self._notify_cancelled(request.id, "Request timed out", related_request_id))
            raise MCPError.timeout(effective_timeout)

        except asyncio.CancelledError:
            self._spawn(self._notify_cancelled(request.id, "Request cancelled", related_request_id))
            raise

        finally:
            self._pending_requests.pop(request.id, None)

    async def notify(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        related_request_id: RequestId | None = None,
    ) -> None:
        """
        Send a notification to the client.

        Raises:
            TransportError: If the connection is gone.
        """
        if related_request_id is None:
            related_request_id = self._related_request_id()
        notification = JSONRPCNotification(method=method, params=params)
        await self.transport.send(notification.to_dict(), related_request_id=related_request_id)

    async def _notify_cancelled(
        self,
        request_id: RequestId,
        reason: str,
        related_request_id: RequestId | None,
    ) -> None:
        if self.is_closed:
            return
        info = CancellationInfo(request_id=request_id, reason=reason)
        try:
            await self.notify("notifications/cancelled", info.to_dict(), related_request_id)
        except TransportError as e:
            logger.debug(f"Could not send cancellation for {request_id}: {e}")

    async def _send_safe(self, message: dict[str, Any], related_request_id: RequestId | None = None) -> None:
        try:
            await self.transport.send(message, related_request_id=related_request_id)
        except TransportError as e:
            logger.warning(f"Could not send message to client: {e}")

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # Server-initiated features

    async def create_message(
        self,
        messages: list[sampling.SamplingMessage] | str,
        max_tokens: int,
        system_prompt: str | None = None,
        temperature: float | None = None,
        model_preferences: sampling.ModelPreferences | None = None,
        stop_sequences: list[str] | None = None,
        include_context: str | None = None,
        timeout: float | None = None,
    ) -> sampling.SamplingResult:
        """
        Ask the client's LLM for a completion.

        Raises:
            SamplingNotSupportedError: If the client lacks sampling.
            SamplingFailedError: On an error response, timeout or disconnect.
        """
        if isinstance(messages, str):
            messages = [sampling.SamplingMessage.user(messages)]
        request = sampling.SamplingRequest(
            messages=messages,
            max_tokens=max_tokens,
            model_preferences=model_preferences,
            system_prompt=system_prompt,
            include_context=include_context,
            temperature=temperature,
            stop_sequences=stop_sequences,
        )
        return await sampling.create_message(self, request, timeout=timeout)

    async def elicit_form(
        self,
        message: str,
        schema: InputSchema,
        timeout: float | None = None,
    ) -> elicitation.ElicitationOutcome:
        """Ask the user to fill in a form. See features.elicitation."""
        return await elicitation.elicit_form(self, message, schema, timeout=timeout)

    async def elicit_url(
        self,
        message: str,
        url: str,
        timeout: float | None = None,
    ) -> elicitation.ElicitationOutcome:
        """Ask the user to visit a URL. See features.elicitation."""
        return await elicitation.elicit_url(self, message, url, timeout=timeout)

    async def send_log(self, level: LogLevel, data: Any, logger_name: str | None = None) -> bool:
        """Send notifications/message if the client's level allows it."""
        if self.utilities is None:
            return False
        return await self.utilities.logging.send(level, data, logger_name=logger_name)

    async def close(self) -> None:
        """
        End the session.

        Cancels running requests, fails pending server-initiated requests
        and disconnects the transport.
        """
        if self._closing:
            return
        self._closing = True
        if not self._state.is_closed:
            self._state.transition(SessionState.CLOSING)

        current = asyncio.current_task()
        tasks = []
        for entry in list(self._in_flight.values()):
            if entry.task is current or entry.task.done():
                continue
            entry.cancelled.set()
            entry.task.cancel()
            tasks.append(entry.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        for future in self._pending_requests.values():
            if not future.done():
                future.set_exception(MCPError.cancelled("Connection closed"))
        self._pending_requests.clear()

        for task in list(self._background):
            task.cancel()

        try:
            await self.transport.disconnect()
        except TransportError as e:
            logger.debug(f"Error disconnecting transport: {e}")

        self._state.transition(SessionState.CLOSED)
        logger.info("Session closed")

        for callback in self._close_callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Session close callback failed")

    async def __aenter__(self) -> "ServerSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
