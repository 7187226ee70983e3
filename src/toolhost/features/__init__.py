"""
MCP Features.

Server-initiated sub-protocols a handler can run during a request:
sampling and elicitation.
"""

from toolhost.features.elicitation import (
    Accepted,
    Cancelled,
    Declined,
    Elicitation,
    ElicitationError,
    ElicitationFailedError,
    ElicitationNotSupportedError,
    ElicitationOutcome,
    ElicitationState,
    UnexpectedElicitationAction,
    elicit,
    elicit_form,
    elicit_url,
)
from toolhost.features.sampling import (
    ImageContent,
    ModelPreferences,
    SamplingError,
    SamplingFailedError,
    SamplingMessage,
    SamplingNotSupportedError,
    SamplingRequest,
    SamplingResult,
    TextContent,
    create_message,
)

__all__ = [
    # Sampling
    "SamplingError",
    "SamplingNotSupportedError",
    "SamplingFailedError",
    "SamplingMessage",
    "SamplingRequest",
    "SamplingResult",
    "ModelPreferences",
    "TextContent",
    "ImageContent",
    "create_message",
    # Elicitation
    "ElicitationState",
    "Elicitation",
    "ElicitationOutcome",
    "Accepted",
    "Declined",
    "Cancelled",
    "ElicitationError",
    "ElicitationNotSupportedError",
    "ElicitationFailedError",
    "UnexpectedElicitationAction",
    "elicit",
    "elicit_form",
    "elicit_url",
]
