"""Tests for tool dispatch."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from toolhost.protocol.errors import (
    INTERNAL_ERROR,
    HandlerFault,
    InvalidArgument,
    MCPError,
    UnknownCapability,
)
from toolhost.registry import CapabilityRegistrar, FieldSpec, InputSchema, Registry, ToolDescriptor
from toolhost.server.context import InvocationContext
from toolhost.server.dispatcher import ToolCall, ToolDispatcher
from toolhost.server.results import CallToolResult
from toolhost.utilities.progress import ProgressReporter

NAME_SCHEMA = InputSchema.of(FieldSpec("name", required=True))


@pytest.fixture
def tools():
    return Registry("tool")


@pytest.fixture
def dispatcher(tools):
    return ToolDispatcher(tools)


@pytest.fixture
def context(tools):
    registrar = CapabilityRegistrar(
        tools=tools,
        resources=Registry("resource"),
        templates=Registry("resource_template"),
        prompts=Registry("prompt"),
    )
    return InvocationContext(session=MagicMock(), request_id=1, tool_name="test", registrar=registrar)


class TestToolCall:
    """Tests for tools/call parameter parsing."""

    def test_from_params(self):
        call = ToolCall.from_params({"name": "hello", "arguments": {"name": "Ada"}})
        assert call.name == "hello"
        assert call.arguments == {"name": "Ada"}

    def test_missing_arguments_default_to_empty(self):
        assert ToolCall.from_params({"name": "hello"}).arguments == {}

    def test_missing_name(self):
        with pytest.raises(MCPError, match="Tool name is required"):
            ToolCall.from_params({"arguments": {}})

    def test_arguments_must_be_object(self):
        with pytest.raises(MCPError, match="must be an object"):
            ToolCall.from_params({"name": "hello", "arguments": [1]})


class TestToolDispatcher:
    """Tests for ToolDispatcher.invoke."""

    @pytest.mark.asyncio
    async def test_invokes_handler_with_validated_arguments(self, tools, dispatcher, context):
        handler = AsyncMock(return_value="hi")
        tools.register(ToolDescriptor(name="hello", input_schema=NAME_SCHEMA), handler)

        result = await dispatcher.invoke(ToolCall("hello", {"name": "Ada", "junk": 1}), context)

        handler.assert_awaited_once_with(context, name="Ada")
        assert result.first_text == "hi"
        assert result.is_error is False

    @pytest.mark.asyncio
    async def test_unknown_tool(self, dispatcher, context):
        with pytest.raises(UnknownCapability):
            await dispatcher.invoke(ToolCall("missing"), context)

    @pytest.mark.asyncio
    async def test_invalid_arguments_never_reach_handler(self, tools, dispatcher, context):
        handler = AsyncMock()
        tools.register(ToolDescriptor(name="hello", input_schema=NAME_SCHEMA), handler)

        with pytest.raises(InvalidArgument):
            await dispatcher.invoke(ToolCall("hello", {}), context)
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_fault(self, tools, dispatcher, context):
        async def broken(ctx):
            raise KeyError("oops")

        tools.register(ToolDescriptor(name="broken"), broken)

        with pytest.raises(HandlerFault) as exc_info:
            await dispatcher.invoke(ToolCall("broken"), context)
        assert exc_info.value.code == INTERNAL_ERROR
        assert exc_info.value.data == {"tool": "broken", "error": "KeyError"}

    @pytest.mark.asyncio
    async def test_mcp_error_passes_through(self, tools, dispatcher, context):
        async def refuses(ctx):
            raise MCPError.invalid_params("nope")

        tools.register(ToolDescriptor(name="refuses"), refuses)

        with pytest.raises(MCPError, match="nope") as exc_info:
            await dispatcher.invoke(ToolCall("refuses"), context)
        assert not isinstance(exc_info.value, HandlerFault)

    @pytest.mark.asyncio
    async def test_cancellation_is_not_a_fault(self, tools, dispatcher, context):
        async def cancelled(ctx):
            raise asyncio.CancelledError()

        tools.register(ToolDescriptor(name="slow"), cancelled)

        with pytest.raises(asyncio.CancelledError):
            await dispatcher.invoke(ToolCall("slow"), context)

    @pytest.mark.asyncio
    async def test_unsupported_return_value_is_fault(self, tools, dispatcher, context):
        tools.register(ToolDescriptor(name="weird"), AsyncMock(return_value=42))
        with pytest.raises(HandlerFault):
            await dispatcher.invoke(ToolCall("weird"), context)

    @pytest.mark.asyncio
    async def test_dict_becomes_structured_content(self, tools, dispatcher, context):
        tools.register(ToolDescriptor(name="data"), AsyncMock(return_value={"value": 2}))
        result = await dispatcher.invoke(ToolCall("data"), context)
        assert result.structured_content == {"value": 2}
        assert '"value": 2' in result.first_text

    @pytest.mark.asyncio
    async def test_output_schema_mismatch_is_passed_through(self, tools, dispatcher, context, caplog):
        output = InputSchema.of(FieldSpec("value", "integer", required=True))
        tools.register(
            ToolDescriptor(name="data", output_schema=output),
            AsyncMock(return_value={"value": "two"}),
        )

        result = await dispatcher.invoke(ToolCall("data"), context)

        assert result.structured_content == {"value": "two"}
        assert "does not match its schema" in caplog.text

    @pytest.mark.asyncio
    async def test_handler_registration_visible_to_next_call(self, tools, dispatcher, context):
        async def installer(ctx):
            ctx.register_tool(ToolDescriptor(name="late"), AsyncMock(return_value="late result"))
            return "installed"

        tools.register(ToolDescriptor(name="installer"), installer)

        await dispatcher.invoke(ToolCall("installer"), context)
        result = await dispatcher.invoke(ToolCall("late"), context)
        assert result.first_text == "late result"

    @pytest.mark.asyncio
    async def test_completes_progress_after_handler(self, tools, dispatcher, context):
        session = MagicMock()
        session.notify = AsyncMock()
        context.progress = ProgressReporter(session, "tok")

        async def halfway(ctx):
            await ctx.report_progress(0.5)
            return CallToolResult.text("done")

        tools.register(ToolDescriptor(name="halfway"), halfway)
        await dispatcher.invoke(ToolCall("halfway"), context)

        sent = [call.args[1]["progress"] for call in session.notify.await_args_list]
        assert sent == [0.5, 1.0]


class TestInvocationContext:
    """Tests for the context handed to handlers."""

    def test_register_without_registrar_fails(self):
        ctx = InvocationContext(session=MagicMock(), request_id=1, tool_name="t")
        with pytest.raises(RuntimeError, match="cannot register"):
            ctx.register_tool(ToolDescriptor(name="x"), AsyncMock())

    @pytest.mark.asyncio
    async def test_log_uses_tool_name_as_logger(self):
        session = MagicMock()
        session.send_log = AsyncMock(return_value=True)
        ctx = InvocationContext(session=session, request_id=1, tool_name="hello")

        assert await ctx.log("warning", "careful") is True
        args, kwargs = session.send_log.await_args
        assert args[1] == "careful"
        assert kwargs["logger_name"] == "hello"

    def test_is_cancelled(self):
        ctx = InvocationContext(session=MagicMock(), request_id=1, tool_name="t")
        assert not ctx.is_cancelled()
        ctx.cancelled.set()
        assert ctx.is_cancelled()
