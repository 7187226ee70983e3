"""Starter prompts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from toolhost.registry.descriptor import PromptArgument, PromptDescriptor

if TYPE_CHECKING:
    from toolhost.server.server import MCPServer

GREETING_STYLES = {
    "formal": "Please compose a formal, professional greeting for {name}.",
    "casual": "Write a casual, friendly hello to {name}.",
    "enthusiastic": "Create an excited, enthusiastic greeting for {name}!",
}


async def greet(name: str, style: str = "casual") -> str:
    """Unknown styles fall back to casual."""
    template = GREETING_STYLES.get(style, GREETING_STYLES["casual"])
    return template.format(name=name)


async def code_review(code: str) -> str:
    return f"Please review the following code:\n\n```\n{code}\n```"


GREET = PromptDescriptor(
    name="greet",
    title="Greeting Prompt",
    description="Generate a greeting message",
    arguments=(
        PromptArgument(name="name", title="Name", description="Name of the person to greet", required=True),
        PromptArgument(
            name="style",
            title="Style",
            description="Greeting style (formal/casual/enthusiastic)",
            completions=tuple(GREETING_STYLES),
        ),
    ),
)

CODE_REVIEW = PromptDescriptor(
    name="code_review",
    title="Code Review",
    description="Review code for potential improvements",
    arguments=(
        PromptArgument(name="code", title="Code", description="The code to review", required=True),
    ),
)


def register_prompts(server: MCPServer) -> None:
    server.register_prompt(GREET, greet)
    server.register_prompt(CODE_REVIEW, code_review)
