"""Handling of notifications/cancelled from the client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from toolhost.utilities.types import CancellationInfo

if TYPE_CHECKING:
    from toolhost.protocol.messages import RequestId
    from toolhost.server.session import ServerSession

logger = logging.getLogger(__name__)

# Cancels an in-flight request; returns False if it was not found
CancelFunc = Callable[["RequestId", "str | None"], bool]


class CancellationHandler:
    """
    Cancels in-flight requests when the client asks.

    Unknown or already finished request ids are ignored, as the
    notification may race with the response.
    """

    def __init__(self, cancel: CancelFunc) -> None:
        self._cancel = cancel

    async def handle_cancelled(self, params: dict[str, Any] | None) -> None:
        """Handle notifications/cancelled from the client."""
        if not params:
            logger.warning("Received cancellation notification without params")
            return

        try:
            info = CancellationInfo.from_dict(params)
        except ValueError as e:
            logger.warning(f"Invalid cancellation notification: {e}")
            return

        logger.info(f"Request cancelled: id={info.request_id}, reason={info.reason}")
        if not self._cancel(info.request_id, info.reason):
            logger.debug(f"No in-flight request with id={info.request_id}")

    def register_handlers(self, session: ServerSession) -> None:
        session.on_notification("notifications/cancelled", self.handle_cancelled)
        logger.debug("Registered cancellation notification handler")
