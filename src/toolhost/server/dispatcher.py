"""Routing of tools/call to registered handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from toolhost.protocol.errors import HandlerFault, MCPError
from toolhost.registry.descriptor import ToolDescriptor
from toolhost.registry.registry import Registry
from toolhost.server.context import InvocationContext
from toolhost.server.results import CallToolResult, to_call_result

logger = logging.getLogger(__name__)


@dataclass
class ToolCall:
    """Parsed tools/call parameters."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_params(cls, params: dict[str, Any] | None) -> "ToolCall":
        """
        Raises:
            MCPError: INVALID_PARAMS if name or arguments are malformed.
        """
        params = params or {}
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise MCPError.invalid_params("Tool name is required")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise MCPError.invalid_params("arguments must be an object")
        return cls(name=name, arguments=arguments)


class ToolDispatcher:
    """
    Invokes tool handlers.

    Lookup and argument validation happen before any handler code runs.
    Handler failures become HandlerFault; they never escape as anything
    else and never stop other invocations.
    """

    def __init__(self, tools: Registry[ToolDescriptor]):
        self.tools = tools

    async def invoke(self, call: ToolCall, context: InvocationContext) -> CallToolResult:
        """
        Run one tool call.

        Raises:
            UnknownCapability: If no tool has the name.
            InvalidArgument: If the arguments fail the input schema.
            HandlerFault: If the handler raised.
        """
        entry = self.tools.lookup(call.name)
        descriptor = entry.descriptor
        arguments = descriptor.input_schema.validate(call.arguments)

        logger.debug(f"Invoking tool {call.name} (request {context.request_id})")
        try:
            raw = await entry.handler(context, **arguments)
            result = to_call_result(raw)
        except MCPError:
            raise
        except Exception as e:
            # CancelledError is a BaseException and propagates untouched
            logger.exception(f"Tool {call.name} failed")
            raise HandlerFault(call.name, e) from e

        self._check_output(descriptor, result)
        await context.progress.complete()
        return result

    def _check_output(self, descriptor: ToolDescriptor, result: CallToolResult) -> None:
        if descriptor.output_schema is None or result.is_error:
            return
        if result.structured_content is None:
            logger.warning(f"Tool {descriptor.name} declares an output schema but returned no structured content")
            return
        for problem in descriptor.output_schema.problems(result.structured_content):
            logger.warning(f"Tool {descriptor.name} output does not match its schema: {problem}")
