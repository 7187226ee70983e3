"""MCP server: capability registries and method routing."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any

from toolhost.capabilities.negotiation import ServerInfo, negotiate
from toolhost.capabilities.server import DEFAULT_SERVER_CAPABILITIES, ServerCapabilities
from toolhost.config import ServerConfig
from toolhost.protocol.errors import InvalidArgument, MCPError
from toolhost.protocol.messages import JSONRPCRequest
from toolhost.registry.descriptor import (
    PromptDescriptor,
    ResourceDescriptor,
    ResourceTemplateDescriptor,
    ToolDescriptor,
)
from toolhost.registry.registrar import CapabilityRegistrar
from toolhost.registry.registry import Handler, Registry
from toolhost.server.context import InvocationContext
from toolhost.server.dispatcher import ToolCall, ToolDispatcher
from toolhost.server.results import to_prompt_result, to_resource_contents
from toolhost.server.session import ServerSession
from toolhost.transport.base import Transport, TransportError
from toolhost.utilities import setup_utility_handlers
from toolhost.utilities.completion import CompletionHandler
from toolhost.utilities.pagination import InvalidCursorError, paginate
from toolhost.utilities.progress import NO_PROGRESS, ProgressReporter
from toolhost.utilities.server_logging import attach_session_logging, detach_session_logging
from toolhost.utilities.types import LogLevel

logger = logging.getLogger(__name__)


class MCPServer:
    """
    Owns the capability registries and serves any number of sessions.

    Registries are shared by every session. A change to any of them is
    announced to initialized sessions as notifications/<kind>/list_changed.
    """

    def __init__(
        self,
        config: ServerConfig | None = None,
        instructions: str | None = None,
        capabilities: ServerCapabilities | None = None,
    ):
        self.config = config or ServerConfig()
        self.instructions = instructions
        self.capabilities = capabilities or DEFAULT_SERVER_CAPABILITIES
        self.server_info = ServerInfo(name=self.config.name, version=self.config.version)

        self.tools: Registry[ToolDescriptor] = Registry("tool")
        self.resources: Registry[ResourceDescriptor] = Registry("resource")
        self.resource_templates: Registry[ResourceTemplateDescriptor] = Registry("resource_template")
        self.prompts: Registry[PromptDescriptor] = Registry("prompt")

        self.registrar = CapabilityRegistrar(
            tools=self.tools,
            resources=self.resources,
            templates=self.resource_templates,
            prompts=self.prompts,
        )
        self.dispatcher = ToolDispatcher(self.tools)
        self.completion = CompletionHandler(self.prompts, self.resource_templates)

        self._sessions: set[ServerSession] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._broadcasts: set[asyncio.Task] = set()

        self.tools.on_change(lambda _: self._list_changed("notifications/tools/list_changed"))
        self.resources.on_change(lambda _: self._list_changed("notifications/resources/list_changed"))
        self.resource_templates.on_change(lambda _: self._list_changed("notifications/resources/list_changed"))
        self.prompts.on_change(lambda _: self._list_changed("notifications/prompts/list_changed"))

    @property
    def sessions(self) -> frozenset[ServerSession]:
        return frozenset(self._sessions)

    # Registration

    def register_tool(self, descriptor: ToolDescriptor, handler: Handler) -> None:
        self.registrar.register_tool(descriptor, handler)

    def register_resource(self, descriptor: ResourceDescriptor, handler: Handler) -> None:
        self.registrar.register_resource(descriptor, handler)

    def register_resource_template(self, descriptor: ResourceTemplateDescriptor, handler: Handler) -> None:
        self.registrar.register_resource_template(descriptor, handler)

    def register_prompt(self, descriptor: PromptDescriptor, handler: Handler) -> None:
        self.registrar.register_prompt(descriptor, handler)

    # Sessions

    def create_session(self, transport: Transport) -> ServerSession:
        """Create a session on a transport and wire all method handlers."""
        self._loop = asyncio.get_running_loop()
        session = ServerSession(transport, request_timeout=self.config.request_timeout)

        session.on_request("initialize", partial(self._handle_initialize, session))
        session.on_notification("notifications/initialized", partial(self._handle_initialized, session))
        session.on_request("tools/list", self._list_tools)
        session.on_request("tools/call", partial(self._call_tool, session))
        session.on_request("resources/list", self._list_resources)
        session.on_request("resources/templates/list", self._list_resource_templates)
        session.on_request("resources/read", self._read_resource)
        session.on_request("prompts/list", self._list_prompts)
        session.on_request("prompts/get", self._get_prompt)

        session.utilities = setup_utility_handlers(
            session,
            completion=self.completion if self.capabilities.completions else None,
            log_level=LogLevel.from_string(self.config.log_level),
        )
        if self.config.forward_logs:
            log_handler = attach_session_logging(session.utilities.logging)
            session.on_close(lambda _: detach_session_logging(log_handler))

        self._sessions.add(session)
        session.on_close(self._sessions.discard)
        return session

    async def serve(self, transport: Transport) -> None:
        """Run one session on the transport until the client disconnects."""
        session = self.create_session(transport)
        await session.run()

    async def close(self) -> None:
        """Close every open session."""
        for session in list(self._sessions):
            await session.close()

    # Lifecycle handlers

    async def _handle_initialize(self, session: ServerSession, request: JSONRPCRequest) -> dict[str, Any]:
        result = negotiate(
            request.params,
            server_info=self.server_info,
            server_capabilities=self.capabilities,
            instructions=self.instructions,
        )
        session.mark_initialized(result)
        return result.to_initialize_result()

    async def _handle_initialized(self, session: ServerSession, params: dict[str, Any] | None) -> None:
        session.mark_ready()

    # Tools

    def _page(self, request: JSONRPCRequest, items: tuple, key: str) -> dict[str, Any]:
        cursor = (request.params or {}).get("cursor")
        if cursor is not None and not isinstance(cursor, str):
            raise MCPError.invalid_params("cursor must be a string")
        try:
            page = paginate(items, cursor, self.config.page_size)
        except InvalidCursorError as e:
            raise MCPError.invalid_params(str(e))

        result: dict[str, Any] = {key: [item.to_dict() for item in page.items]}
        if page.next_cursor is not None:
            result["nextCursor"] = page.next_cursor
        return result

    async def _list_tools(self, request: JSONRPCRequest) -> dict[str, Any]:
        return self._page(request, self.tools.list(), "tools")

    async def _call_tool(self, session: ServerSession, request: JSONRPCRequest) -> dict[str, Any]:
        call = ToolCall.from_params(request.params)
        token = request.progress_token
        progress = ProgressReporter(session, token, related_request_id=request.id) if token is not None else NO_PROGRESS
        context = InvocationContext(
            session=session,
            request_id=request.id,
            tool_name=call.name,
            progress=progress,
            cancelled=session.cancel_event(request.id),
            registrar=self.registrar,
        )
        result = await self.dispatcher.invoke(call, context)
        return result.to_dict()

    # Resources

    async def _list_resources(self, request: JSONRPCRequest) -> dict[str, Any]:
        return self._page(request, self.resources.list(), "resources")

    async def _list_resource_templates(self, request: JSONRPCRequest) -> dict[str, Any]:
        return self._page(request, self.resource_templates.list(), "resourceTemplates")

    async def _read_resource(self, request: JSONRPCRequest) -> dict[str, Any]:
        uri = (request.params or {}).get("uri")
        if not isinstance(uri, str) or not uri:
            raise MCPError.invalid_params("uri is required")

        entry = self.resources.get(uri)
        if entry is not None:
            value = await self._run_resource_handler(uri, entry.handler)
            contents = to_resource_contents(uri, value, entry.descriptor.mime_type)
        else:
            for template_entry in self.resource_templates.entries():
                variables = template_entry.descriptor.match(uri)
                if variables is not None:
                    value = await self._run_resource_handler(uri, template_entry.handler, **variables)
                    contents = to_resource_contents(uri, value, template_entry.descriptor.mime_type)
                    break
            else:
                raise MCPError.resource_not_found(uri)

        return {"contents": [item.to_dict() for item in contents]}

    async def _run_resource_handler(self, uri: str, handler: Handler, **variables: str) -> Any:
        try:
            return await handler(uri, **variables)
        except MCPError:
            raise
        except Exception as e:
            logger.exception(f"Resource handler for {uri} failed")
            raise MCPError.internal_error(f"Failed to read {uri}: {e}")

    # Prompts

    async def _list_prompts(self, request: JSONRPCRequest) -> dict[str, Any]:
        return self._page(request, self.prompts.list(), "prompts")

    async def _get_prompt(self, request: JSONRPCRequest) -> dict[str, Any]:
        params = request.params or {}
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise MCPError.invalid_params("Prompt name is required")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise MCPError.invalid_params("arguments must be an object")

        entry = self.prompts.lookup(name)
        descriptor = entry.descriptor
        values: dict[str, str] = {}
        for arg in descriptor.arguments:
            value = arguments.get(arg.name)
            if value is None or value == "":
                if arg.required:
                    raise InvalidArgument(arg.name, f"missing required argument '{arg.name}'")
                continue
            values[arg.name] = str(value)

        try:
            value = await entry.handler(**values)
        except MCPError:
            raise
        except Exception as e:
            logger.exception(f"Prompt {name} failed")
            raise MCPError.internal_error(f"Prompt '{name}' failed: {e}")

        return to_prompt_result(value, description=descriptor.description).to_dict()

    # Change notifications

    def _list_changed(self, method: str) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._broadcast, method)

    def _broadcast(self, method: str) -> None:
        for session in list(self._sessions):
            if not session.is_initialized or session.is_closed:
                continue
            task = asyncio.ensure_future(self._notify_session(session, method))
            self._broadcasts.add(task)
            task.add_done_callback(self._broadcasts.discard)

    async def _notify_session(self, session: ServerSession, method: str) -> None:
        try:
            await session.notify(method)
        except TransportError as e:
            logger.debug(f"Could not send {method}: {e}")
