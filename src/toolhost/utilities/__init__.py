"""
MCP protocol utilities.

- Ping: connection health checks
- Progress: long-running operation notifications
- Cancellation: request cancellation handling
- Logging: logging/setLevel and notifications/message
- Completion: argument autocompletion
- Pagination: cursor-based list pagination
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

# Types
from toolhost.utilities.types import (
    CancellationInfo,
    CompletionArgument,
    CompletionRef,
    CompletionRequest,
    CompletionResponse,
    LogLevel,
    LogMessage,
    PaginatedResult,
    ProgressInfo,
)

# Ping
from toolhost.utilities.ping import PingHandler, ping_client

# Progress
from toolhost.utilities.progress import NO_PROGRESS, ProgressReporter

# Cancellation
from toolhost.utilities.cancellation import CancellationHandler

# Logging
from toolhost.utilities.server_logging import (
    FORWARDED_LOGGER,
    MCP_TO_PYTHON_LEVEL,
    LoggingHandler,
    SessionLogHandler,
    attach_session_logging,
    detach_session_logging,
)

# Completion
from toolhost.utilities.completion import (
    MAX_COMPLETION_VALUES,
    CompletionHandler,
    filter_completions,
)

# Pagination
from toolhost.utilities.pagination import (
    DEFAULT_PAGE_SIZE,
    InvalidCursorError,
    PaginationError,
    decode_cursor,
    encode_cursor,
    paginate,
)

if TYPE_CHECKING:
    from toolhost.server.session import ServerSession

logger = logging.getLogger(__name__)

__all__ = [
    # Types
    "LogLevel",
    "ProgressInfo",
    "LogMessage",
    "CancellationInfo",
    "CompletionRef",
    "CompletionArgument",
    "CompletionRequest",
    "CompletionResponse",
    "PaginatedResult",
    # Ping
    "PingHandler",
    "ping_client",
    # Progress
    "ProgressReporter",
    "NO_PROGRESS",
    # Cancellation
    "CancellationHandler",
    # Logging
    "LoggingHandler",
    "SessionLogHandler",
    "FORWARDED_LOGGER",
    "MCP_TO_PYTHON_LEVEL",
    "attach_session_logging",
    "detach_session_logging",
    # Completion
    "CompletionHandler",
    "MAX_COMPLETION_VALUES",
    "filter_completions",
    # Pagination
    "DEFAULT_PAGE_SIZE",
    "PaginationError",
    "InvalidCursorError",
    "encode_cursor",
    "decode_cursor",
    "paginate",
    # Setup
    "setup_utility_handlers",
    "UtilityHandlers",
]


class UtilityHandlers:
    """Container for the utility handlers registered on one session."""

    def __init__(
        self,
        ping: PingHandler,
        cancellation: CancellationHandler,
        logging: LoggingHandler,
        completion: CompletionHandler | None = None,
    ) -> None:
        self.ping = ping
        self.cancellation = cancellation
        self.logging = logging
        self.completion = completion


def setup_utility_handlers(
    session: ServerSession,
    completion: CompletionHandler | None = None,
    log_level: LogLevel = LogLevel.INFO,
) -> UtilityHandlers:
    """
    Register ping, cancellation, logging and (when given) completion
    handlers on a session.
    """
    logger.debug("Setting up utility handlers")

    # Ping - always available, even before initialization
    ping_handler = PingHandler()
    ping_handler.register_handlers(session)

    cancellation_handler = CancellationHandler(session.cancel_request)
    cancellation_handler.register_handlers(session)

    logging_handler = LoggingHandler(session, level=log_level)
    logging_handler.register_handlers(session)

    if completion is not None:
        completion.register_handlers(session)

    return UtilityHandlers(
        ping=ping_handler,
        cancellation=cancellation_handler,
        logging=logging_handler,
        completion=completion,
    )
