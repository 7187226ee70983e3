"""Per-invocation context handed to tool handlers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from toolhost.utilities.progress import NO_PROGRESS, ProgressReporter
from toolhost.utilities.types import LogLevel

if TYPE_CHECKING:
    from toolhost.protocol.messages import RequestId
    from toolhost.registry.descriptor import (
        PromptDescriptor,
        ResourceDescriptor,
        ResourceTemplateDescriptor,
        ToolDescriptor,
    )
    from toolhost.registry.registrar import CapabilityRegistrar
    from toolhost.registry.registry import Handler
    from toolhost.server.session import ServerSession


@dataclass
class InvocationContext:
    """
    What a handler can reach while it runs.

    The session gives access to sampling and elicitation; the registrar
    lets a handler add capabilities that later lookups will see.
    """

    session: ServerSession
    request_id: RequestId
    tool_name: str
    progress: ProgressReporter = NO_PROGRESS
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)
    registrar: CapabilityRegistrar | None = None

    async def report_progress(
        self,
        progress: float,
        total: float = 1.0,
        message: str | None = None,
    ) -> bool:
        """Send a progress notification if the client asked for them."""
        return await self.progress.report(progress, total=total, message=message)

    async def log(self, level: LogLevel | str, data: Any, logger_name: str | None = None) -> bool:
        """Send a log message to the client."""
        if isinstance(level, str):
            level = LogLevel.from_string(level)
        return await self.session.send_log(level, data, logger_name=logger_name or self.tool_name)

    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()

    def _require_registrar(self) -> CapabilityRegistrar:
        if self.registrar is None:
            raise RuntimeError("This invocation cannot register capabilities")
        return self.registrar

    def register_tool(self, descriptor: ToolDescriptor, handler: Handler) -> None:
        self._require_registrar().register_tool(descriptor, handler)

    def register_resource(self, descriptor: ResourceDescriptor, handler: Handler) -> None:
        self._require_registrar().register_resource(descriptor, handler)

    def register_resource_template(self, descriptor: ResourceTemplateDescriptor, handler: Handler) -> None:
        self._require_registrar().register_resource_template(descriptor, handler)

    def register_prompt(self, descriptor: PromptDescriptor, handler: Handler) -> None:
        self._require_registrar().register_prompt(descriptor, handler)

    def has_tool(self, name: str) -> bool:
        return self._require_registrar().has_tool(name)
