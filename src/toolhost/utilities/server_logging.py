"""Logging feature: logging/setLevel and notifications/message."""

from __future__ import annotations

import asyncio
import logging as python_logging
from typing import TYPE_CHECKING, Any

from toolhost.protocol.errors import MCPError
from toolhost.utilities.types import LogLevel, LogMessage

if TYPE_CHECKING:
    from toolhost.protocol.messages import JSONRPCRequest
    from toolhost.server.session import ServerSession

logger = python_logging.getLogger(__name__)

# Mapping from MCP log levels to Python logging levels
MCP_TO_PYTHON_LEVEL: dict[LogLevel, int] = {
    LogLevel.DEBUG: python_logging.DEBUG,
    LogLevel.INFO: python_logging.INFO,
    LogLevel.NOTICE: python_logging.INFO,  # Python has no NOTICE
    LogLevel.WARNING: python_logging.WARNING,
    LogLevel.ERROR: python_logging.ERROR,
    LogLevel.CRITICAL: python_logging.CRITICAL,
    LogLevel.ALERT: python_logging.CRITICAL,
    LogLevel.EMERGENCY: python_logging.CRITICAL,
}

# Records from this logger hierarchy are forwarded to clients
FORWARDED_LOGGER = "toolhost.starter"


class LoggingHandler:
    """
    Per-session client logging.

    - logging/setLevel: client sets the minimum level it wants
    - notifications/message: server sends log messages at or above it
    """

    def __init__(self, session: ServerSession, level: LogLevel = LogLevel.INFO) -> None:
        self._session = session
        self.level = level

    @property
    def session(self) -> ServerSession:
        return self._session

    def is_enabled(self, level: LogLevel) -> bool:
        return self.level <= level

    async def handle_set_level(self, request: JSONRPCRequest) -> dict[str, Any]:
        """
        Handle logging/setLevel.

        Raises:
            MCPError: INVALID_PARAMS for a missing or unknown level.
        """
        params = request.params or {}
        try:
            level = LogLevel.from_string(params.get("level"))
        except ValueError as e:
            raise MCPError.invalid_params(str(e))

        self.level = level
        logger.info(f"Client log level set to {level.value}")
        return {}

    async def send(
        self,
        level: LogLevel,
        data: Any,
        logger_name: str | None = None,
        related_request_id: Any = None,
    ) -> bool:
        """
        Send notifications/message if the level passes the threshold.

        Returns:
            True if the message was sent.
        """
        if not self.is_enabled(level):
            return False
        message = LogMessage(level=level, logger=logger_name, data=data)
        await self._session.notify(
            "notifications/message",
            message.to_dict(),
            related_request_id=related_request_id,
        )
        return True

    def register_handlers(self, session: ServerSession) -> None:
        session.on_request("logging/setLevel", self.handle_set_level)
        logger.debug("Registered logging handler")


class SessionLogHandler(python_logging.Handler):
    """
    Python logging handler that forwards records to one client.

    Attach it to the FORWARDED_LOGGER hierarchy so handler code can log
    with the standard library and the client sees it as
    notifications/message. Only records logged while serving a request
    of this handler's session are forwarded.
    """

    def __init__(
        self,
        logging_handler: LoggingHandler,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        super().__init__()
        self._logging = logging_handler
        self._loop = loop or asyncio.get_running_loop()
        self._tasks: set[asyncio.Task] = set()

    def emit(self, record: python_logging.LogRecord) -> None:
        try:
            request_id = self._logging.session.current_request_id()
            if request_id is None:
                return
            level = LogLevel.from_python(record.levelno)
            if not self._logging.is_enabled(level):
                return
            data = self.format(record)
            self._loop.call_soon_threadsafe(self._dispatch, level, data, record.name, request_id)
        except RuntimeError:
            # Loop already closed
            pass
        except Exception:
            self.handleError(record)

    def _dispatch(self, level: LogLevel, data: str, logger_name: str, request_id: Any) -> None:
        task = self._loop.create_task(self._deliver(level, data, logger_name, request_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, level: LogLevel, data: str, logger_name: str, request_id: Any) -> None:
        try:
            await self._logging.send(
                level, data, logger_name=logger_name, related_request_id=request_id
            )
        except Exception as e:
            logger.debug(f"Could not forward log record: {e}")

    def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        super().close()


def attach_session_logging(
    logging_handler: LoggingHandler,
    logger_name: str = FORWARDED_LOGGER,
) -> SessionLogHandler:
    """Start forwarding a logger hierarchy to a session."""
    handler = SessionLogHandler(logging_handler)
    python_logging.getLogger(logger_name).addHandler(handler)
    return handler


def detach_session_logging(
    handler: SessionLogHandler,
    logger_name: str = FORWARDED_LOGGER,
) -> None:
    python_logging.getLogger(logger_name).removeHandler(handler)
    handler.close()
