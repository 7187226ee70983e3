"""Starter tools: greeting, weather, sampling, progress, dynamic loading, elicitation."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from functools import partial
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from toolhost.features.elicitation import (
    Accepted,
    Declined,
    ElicitationError,
    UnexpectedElicitationAction,
)
from toolhost.features.sampling import SamplingError
from toolhost.registry.descriptor import Icon, ToolAnnotations, ToolDescriptor
from toolhost.registry.schema import FieldSpec, InputSchema
from toolhost.server.context import InvocationContext
from toolhost.server.results import CallToolResult

if TYPE_CHECKING:
    from toolhost.server.server import MCPServer

logger = logging.getLogger(__name__)

LONG_TASK_STEPS = 5
LONG_TASK_STEP_DELAY = 1.0
"""Seconds per long_task step."""

WEATHER_CONDITIONS = ("sunny", "cloudy", "rainy", "windy")
CALCULATOR_OPERATIONS = ("add", "subtract", "multiply", "divide")
FEEDBACK_URL = "https://github.com/SamMorrowDrums/mcp-starters/issues/new?template=workshop-feedback.yml"


def _annotations(
    title: str,
    read_only: bool = True,
    idempotent: bool = False,
    open_world: bool = False,
) -> ToolAnnotations:
    return ToolAnnotations(
        title=title,
        read_only_hint=read_only,
        destructive_hint=False,
        idempotent_hint=idempotent,
        open_world_hint=open_world,
    )


def _emoji_icon(emoji: str) -> tuple[Icon, ...]:
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 100">'
        f'<text y=".9em" font-size="90">{emoji}</text></svg>'
    )
    return (Icon(src="data:image/svg+xml," + quote(svg), mime_type="image/svg+xml", sizes=("any",)),)


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return str(value)


# Handlers


async def hello(ctx: InvocationContext, name: str) -> CallToolResult:
    return CallToolResult.text(f"Hello, {name}! Welcome to MCP.")


async def get_weather(ctx: InvocationContext, location: str) -> CallToolResult:
    weather = {
        "location": location,
        "temperature": 15 + random.randrange(20),
        "unit": "celsius",
        "conditions": random.choice(WEATHER_CONDITIONS),
        "humidity": 40 + random.randrange(40),
    }
    return CallToolResult.structured(weather)


async def ask_llm(ctx: InvocationContext, prompt: str, **options: Any) -> CallToolResult:
    """Ask the client's model through sampling."""
    max_tokens = options.get("maxTokens", 100)
    try:
        result = await ctx.session.create_message(prompt, max_tokens=max_tokens)
    except SamplingError as e:
        logger.warning(f"Sampling failed: {e}")
        return CallToolResult.error(f"Sampling not supported or failed: {e}")

    text = result.text if result.text is not None else "[non-text response]"
    return CallToolResult.text(f"LLM Response: {text}")


async def long_task(
    ctx: InvocationContext,
    step_delay: float = LONG_TASK_STEP_DELAY,
    **arguments: Any,
) -> CallToolResult:
    """Work through fixed steps, reporting progress before each one."""
    task_name = arguments["taskName"]
    logger.info(f"Starting long task {task_name!r}")

    for i in range(LONG_TASK_STEPS):
        await ctx.report_progress(i / LONG_TASK_STEPS, total=1.0, message=f"Step {i + 1}/{LONG_TASK_STEPS}")
        await asyncio.sleep(step_delay)
    await ctx.report_progress(1.0, total=1.0, message="Complete!")

    logger.info(f"Long task {task_name!r} finished")
    return CallToolResult.text(f'Task "{task_name}" completed successfully after {LONG_TASK_STEPS} steps!')


async def load_bonus_tool(ctx: InvocationContext) -> CallToolResult:
    if ctx.has_tool(BONUS_CALCULATOR.name):
        return CallToolResult.text("Bonus tool is already loaded! Try calling 'bonus_calculator'.")

    ctx.register_tool(BONUS_CALCULATOR, bonus_calculator)
    logger.info("Loaded bonus_calculator")
    return CallToolResult.text(
        "Bonus tool 'bonus_calculator' has been loaded! Refresh your tools list to see it."
    )


async def bonus_calculator(ctx: InvocationContext, a: float, b: float, operation: str) -> CallToolResult:
    if operation == "divide" and b == 0:
        return CallToolResult.error("Error: division by zero")

    try:
        if operation == "add":
            result = a + b
        elif operation == "subtract":
            result = a - b
        elif operation == "multiply":
            result = a * b
        else:
            result = a / b
        finite = math.isfinite(result)
    except OverflowError:
        finite = False
    if not finite:
        return CallToolResult.error("Error: result is not a finite number")

    return CallToolResult.text(
        f"{_format_number(a)} {operation} {_format_number(b)} = {_format_number(result)}"
    )


CONFIRM_SCHEMA = InputSchema.of(
    FieldSpec("confirm", "boolean", title="Confirm", description="Confirm the action", required=True),
    FieldSpec("reason", "string", title="Reason", description="Optional reason for your choice"),
)


async def confirm_action(ctx: InvocationContext, action: str) -> CallToolResult:
    """Ask the user to confirm an action through a form."""
    try:
        outcome = await ctx.session.elicit_form(f"Please confirm: {action}", CONFIRM_SCHEMA)
    except UnexpectedElicitationAction as e:
        return CallToolResult.text(str(e))
    except ElicitationError as e:
        return CallToolResult.error(f"Elicitation not supported or failed: {e}")

    if isinstance(outcome, Accepted):
        if outcome.get("confirm", bool, False):
            reason = outcome.get("reason", str) or "No reason provided"
            return CallToolResult.text(f"Action confirmed: {action}\nReason: {reason}")
        return CallToolResult.text(f"Action declined by user: {action}")
    if isinstance(outcome, Declined):
        return CallToolResult.text(f"User declined to respond for: {action}")
    return CallToolResult.text(f"User cancelled elicitation for: {action}")


async def get_feedback(ctx: InvocationContext, topic: str | None = None) -> CallToolResult:
    """Send the user to the feedback form."""
    url = FEEDBACK_URL
    if topic:
        url += "&title=" + quote(topic)

    try:
        outcome = await ctx.session.elicit_url(
            "Please provide feedback on MCP Starters by completing the form at the URL below:",
            url,
        )
    except UnexpectedElicitationAction:
        return CallToolResult.text("Feedback URL: " + url)
    except ElicitationError as e:
        return CallToolResult.error(f"URL elicitation not supported or failed: {e}")

    if isinstance(outcome, Accepted):
        return CallToolResult.text("Thank you for providing feedback! Your input helps improve MCP Starters.")
    if isinstance(outcome, Declined):
        return CallToolResult.text("No problem! Feel free to provide feedback anytime at: " + url)
    return CallToolResult.text("Feedback request cancelled.")


# Descriptors

HELLO = ToolDescriptor(
    name="hello",
    title="Say Hello",
    description="A friendly greeting tool that says hello to someone",
    input_schema=InputSchema.of(FieldSpec("name", description="The name to greet", required=True)),
    annotations=_annotations("Say Hello", idempotent=True),
    icons=_emoji_icon("👋"),
)

WEATHER_SCHEMA = InputSchema.of(
    FieldSpec("location", required=True),
    FieldSpec("temperature", "integer", required=True),
    FieldSpec("unit", enum=("celsius",), required=True),
    FieldSpec("conditions", enum=WEATHER_CONDITIONS, required=True),
    FieldSpec("humidity", "integer", required=True),
)

GET_WEATHER = ToolDescriptor(
    name="get_weather",
    title="Get Weather",
    description="Get current weather for a location (simulated)",
    input_schema=InputSchema.of(
        FieldSpec("location", description="City name or coordinates", required=True)
    ),
    output_schema=WEATHER_SCHEMA,
    annotations=_annotations("Get Weather"),
    icons=_emoji_icon("⛅"),
)

ASK_LLM = ToolDescriptor(
    name="ask_llm",
    title="Ask LLM",
    description="Ask the connected LLM a question using sampling",
    input_schema=InputSchema.of(
        FieldSpec("prompt", description="The question or prompt for the LLM", required=True),
        FieldSpec("maxTokens", "integer", description="Maximum tokens in response", default=100),
    ),
    annotations=_annotations("Ask LLM"),
    icons=_emoji_icon("🤖"),
)

LONG_TASK = ToolDescriptor(
    name="long_task",
    title="Long Running Task",
    description="A task that takes 5 seconds and reports progress along the way",
    input_schema=InputSchema.of(
        FieldSpec("taskName", description="Name for this task", required=True)
    ),
    annotations=_annotations("Long Running Task", idempotent=True),
    icons=_emoji_icon("⏳"),
)

LOAD_BONUS_TOOL = ToolDescriptor(
    name="load_bonus_tool",
    title="Load Bonus Tool",
    description="Dynamically loads a bonus tool that wasn't available at startup",
    annotations=_annotations("Load Bonus Tool", read_only=False, idempotent=True),
    icons=_emoji_icon("📦"),
)

BONUS_CALCULATOR = ToolDescriptor(
    name="bonus_calculator",
    title="Bonus Calculator",
    description="A calculator that was dynamically loaded",
    input_schema=InputSchema.of(
        FieldSpec("a", "number", description="First number", required=True),
        FieldSpec("b", "number", description="Second number", required=True),
        FieldSpec("operation", enum=CALCULATOR_OPERATIONS, description="Operation to perform", required=True),
    ),
    annotations=_annotations("Bonus Calculator", idempotent=True),
    icons=_emoji_icon("🧮"),
)

CONFIRM_ACTION = ToolDescriptor(
    name="confirm_action",
    title="Confirm Action",
    description="Demonstrates elicitation - requests user confirmation before proceeding",
    input_schema=InputSchema.of(
        FieldSpec("action", description="The action to confirm with the user", required=True)
    ),
    annotations=_annotations("Confirm Action"),
    icons=_emoji_icon("✅"),
)

GET_FEEDBACK = ToolDescriptor(
    name="get_feedback",
    title="Get Feedback",
    description="Demonstrates URL elicitation - opens a feedback form in the browser",
    input_schema=InputSchema.of(
        FieldSpec("topic", description="Optional topic for the feedback")
    ),
    annotations=_annotations("Get Feedback", open_world=True),
    icons=_emoji_icon("💬"),
)


def register_tools(server: MCPServer, step_delay: float = LONG_TASK_STEP_DELAY) -> None:
    """Register the startup tools. bonus_calculator is loaded on demand."""
    server.register_tool(HELLO, hello)
    server.register_tool(GET_WEATHER, get_weather)
    server.register_tool(ASK_LLM, ask_llm)
    server.register_tool(LONG_TASK, partial(long_task, step_delay=step_delay))
    server.register_tool(LOAD_BONUS_TOOL, load_bonus_tool)
    server.register_tool(CONFIRM_ACTION, confirm_action)
    server.register_tool(GET_FEEDBACK, get_feedback)
