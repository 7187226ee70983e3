"""Elicitation: asking the user for input while a handler is suspended."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, TypeVar
from urllib.parse import urlparse

from toolhost.protocol.errors import MCPError
from toolhost.registry.schema import InputSchema

if TYPE_CHECKING:
    from toolhost.server.session import ServerSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

FORM_FIELD_TYPES = ("string", "number", "integer", "boolean")
ALLOWED_URL_SCHEMES = ("https", "http")


class ElicitationError(Exception):
    """Base error for elicitation operations."""

    pass


class ElicitationNotSupportedError(ElicitationError):
    """Client did not declare elicitation for the requested mode."""

    def __init__(self, mode: str):
        super().__init__(f"Client does not support {mode} elicitation")
        self.mode = mode


class ElicitationFailedError(ElicitationError):
    """Client answered with an error, timed out, or went away."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class UnexpectedElicitationAction(ElicitationError):
    """Client answered with an action outside accept/decline/cancel."""

    def __init__(self, action: Any):
        super().__init__(f"Unexpected elicitation response: {action}")
        self.action = action


class ElicitationState(Enum):
    """Lifecycle of a single elicitation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ElicitationState.PENDING


@dataclass(frozen=True)
class Accepted:
    """User submitted the form (or completed the URL flow)."""

    content: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, expected_type: type[T], default: T | None = None) -> T | None:
        """
        Read a submitted field, falling back to `default` when it is
        absent or of the wrong type.
        """
        value = self.content.get(name)
        if value is None:
            return default
        if expected_type is not bool and isinstance(value, bool):
            return default
        if expected_type is float and isinstance(value, int):
            return float(value)  # type: ignore[return-value]
        if not isinstance(value, expected_type):
            return default
        return value


@dataclass(frozen=True)
class Declined:
    """User explicitly refused."""

    pass


@dataclass(frozen=True)
class Cancelled:
    """User dismissed the request without choosing."""

    pass


ElicitationOutcome = Accepted | Declined | Cancelled


@dataclass
class Elicitation:
    """
    One elicitation/create exchange.

    Starts PENDING and moves exactly once to a terminal state.
    """

    message: str
    mode: Literal["form", "url"] = "form"
    requested_schema: InputSchema | None = None
    url: str | None = None
    elicitation_id: str | None = None
    state: ElicitationState = ElicitationState.PENDING
    outcome: ElicitationOutcome | None = None
    error: ElicitationError | None = None

    def to_params(self) -> dict[str, Any]:
        """Convert to elicitation/create params."""
        if self.mode == "url":
            return {
                "mode": "url",
                "message": self.message,
                "url": self.url,
                "elicitationId": self.elicitation_id,
            }
        schema = self.requested_schema or InputSchema()
        return {
            "mode": "form",
            "message": self.message,
            "requestedSchema": schema.to_dict(),
        }

    def resolve(self, response: Any) -> ElicitationOutcome:
        """
        Apply the client's answer.

        Raises:
            UnexpectedElicitationAction: For an unknown action value.
        """
        self._check_pending()
        action = response.get("action") if isinstance(response, dict) else None

        if action == "accept":
            content = response.get("content") or {}
            if not isinstance(content, dict):
                content = {}
            if self.requested_schema is not None:
                for problem in self.requested_schema.problems(content):
                    logger.warning(f"Elicitation content mismatch: {problem}")
            self.outcome = Accepted(content=content)
            self.state = ElicitationState.ACCEPTED
        elif action == "decline":
            self.outcome = Declined()
            self.state = ElicitationState.DECLINED
        elif action == "cancel":
            self.outcome = Cancelled()
            self.state = ElicitationState.CANCELLED
        else:
            error = UnexpectedElicitationAction(action)
            self.fail(error)
            raise error

        logger.debug(f"Elicitation resolved: {self.state.value}")
        return self.outcome

    def fail(self, error: ElicitationError) -> None:
        self._check_pending()
        self.error = error
        self.state = ElicitationState.FAILED

    def _check_pending(self) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"Elicitation already {self.state.value}")


async def elicit(
    session: ServerSession,
    elicitation: Elicitation,
    timeout: float | None = None,
) -> ElicitationOutcome:
    """
    Send elicitation/create and suspend until the user answers.

    Raises:
        ElicitationNotSupportedError: If the client lacks the mode.
        ElicitationFailedError: On an error response, timeout or disconnect.
        UnexpectedElicitationAction: For an unknown action value.
    """
    capabilities = session.client_capabilities
    if elicitation.mode == "url":
        supported = capabilities.supports_url_elicitation()
    else:
        supported = capabilities.supports_form_elicitation()
    if not supported:
        error = ElicitationNotSupportedError(elicitation.mode)
        elicitation.fail(error)
        raise error

    logger.info(f"Requesting {elicitation.mode} elicitation: {elicitation.message}")
    try:
        response = await session.request(
            "elicitation/create",
            elicitation.to_params(),
            timeout=timeout,
        )
    except MCPError as e:
        error = ElicitationFailedError(e.message, cause=e)
        elicitation.fail(error)
        raise error

    return elicitation.resolve(response)


async def elicit_form(
    session: ServerSession,
    message: str,
    schema: InputSchema,
    timeout: float | None = None,
) -> ElicitationOutcome:
    """Ask the user to fill in a flat form of primitive fields."""
    for spec in schema:
        if spec.type not in FORM_FIELD_TYPES:
            raise ValueError(
                f"Elicitation field '{spec.name}' must be a primitive type, got {spec.type}"
            )
    elicitation = Elicitation(message=message, mode="form", requested_schema=schema)
    return await elicit(session, elicitation, timeout=timeout)


async def elicit_url(
    session: ServerSession,
    message: str,
    url: str,
    timeout: float | None = None,
) -> ElicitationOutcome:
    """Ask the user to complete an out-of-band flow at a URL."""
    scheme = urlparse(url).scheme
    if scheme not in ALLOWED_URL_SCHEMES:
        raise ValueError(
            f"URL scheme '{scheme}' not allowed. Allowed: {list(ALLOWED_URL_SCHEMES)}"
        )
    elicitation = Elicitation(
        message=message,
        mode="url",
        url=url,
        elicitation_id=str(uuid.uuid4()),
    )
    return await elicit(session, elicitation, timeout=timeout)
