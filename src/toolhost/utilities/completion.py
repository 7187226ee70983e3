"""Argument completion for prompts and resource templates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from toolhost.protocol.errors import MCPError
from toolhost.utilities.types import CompletionRequest, CompletionResponse

if TYPE_CHECKING:
    from toolhost.protocol.messages import JSONRPCRequest
    from toolhost.registry.descriptor import PromptDescriptor, ResourceTemplateDescriptor
    from toolhost.registry.registry import Registry
    from toolhost.server.session import ServerSession

logger = logging.getLogger(__name__)

MAX_COMPLETION_VALUES = 100


def filter_completions(candidates: Iterable[str], prefix: str) -> CompletionResponse:
    """
    Match candidates by case-insensitive prefix.

    At most MAX_COMPLETION_VALUES are returned; `total` counts every match.
    """
    needle = prefix.lower()
    matches = [value for value in candidates if value.lower().startswith(needle)]
    return CompletionResponse(
        values=matches[:MAX_COMPLETION_VALUES],
        total=len(matches),
        has_more=len(matches) > MAX_COMPLETION_VALUES,
    )


class CompletionHandler:
    """
    Serves completion/complete from the values declared on prompt
    arguments and resource template variables.
    """

    def __init__(
        self,
        prompts: Registry[PromptDescriptor],
        templates: Registry[ResourceTemplateDescriptor],
    ) -> None:
        self._prompts = prompts
        self._templates = templates

    def candidates(self, request: CompletionRequest) -> tuple[str, ...]:
        """
        Raises:
            UnknownCapability: If the referenced prompt or template is not registered.
        """
        if request.ref.type == "ref/prompt":
            prompt = self._prompts.lookup(request.ref.name).descriptor
            argument = prompt.argument(request.argument.name)
            return argument.completions if argument is not None else ()

        template = self._templates.lookup(request.ref.name).descriptor
        return template.completions.get(request.argument.name, ())

    async def handle_complete(self, request: JSONRPCRequest) -> dict[str, Any]:
        """Handle completion/complete."""
        try:
            completion = CompletionRequest.from_dict(request.params or {})
        except (KeyError, ValueError, TypeError) as e:
            raise MCPError.invalid_params(f"Invalid completion request: {e}")

        response = filter_completions(self.candidates(completion), completion.argument.value)
        logger.debug(
            f"Completion for {completion.ref.name}.{completion.argument.name}: "
            f"{len(response.values)} values"
        )
        return response.to_dict()

    def register_handlers(self, session: ServerSession) -> None:
        session.on_request("completion/complete", self.handle_complete)
