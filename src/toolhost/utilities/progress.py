"""Progress notifications for long-running requests."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from toolhost.utilities.types import ProgressInfo

if TYPE_CHECKING:
    from toolhost.protocol.messages import RequestId
    from toolhost.server.session import ServerSession

logger = logging.getLogger(__name__)


class ProgressReporter:
    """
    Sends notifications/progress for one request.

    Bound to the progress token the client attached to its request.
    Without a token the reporter still checks values but sends nothing.

    Emitted values never decrease: a report whose fraction of its total
    is below the last one sent is dropped with a warning. Delivery
    failures are logged and do not reach the handler.
    """

    def __init__(
        self,
        session: ServerSession | None,
        token: RequestId | None,
        related_request_id: RequestId | None = None,
    ):
        self._session = session
        self._token = token
        self._related_request_id = related_request_id
        self._last: ProgressInfo | None = None
        self._sent = 0

    @property
    def enabled(self) -> bool:
        return self._session is not None and self._token is not None

    @property
    def token(self) -> RequestId | None:
        return self._token

    @property
    def last(self) -> ProgressInfo | None:
        """Last notification sent, if any."""
        return self._last

    @property
    def sent_count(self) -> int:
        return self._sent

    async def report(
        self,
        progress: float,
        total: float = 1.0,
        message: str | None = None,
    ) -> bool:
        """
        Report progress.

        Returns:
            True if a notification was sent.

        Raises:
            ValueError: If a value is not finite or progress is outside
                [0, total].
        """
        if not math.isfinite(progress) or not math.isfinite(total):
            raise ValueError(f"progress values must be finite (got {progress}/{total})")
        if total <= 0:
            raise ValueError(f"total must be positive (got {total})")
        if progress < 0 or progress > total:
            raise ValueError(f"progress must be within [0, {total}] (got {progress})")

        if not self.enabled:
            return False

        if self._last is not None and progress / total < self._last.progress / self._last.total:
            logger.warning(
                f"Dropping decreasing progress for token {self._token}: "
                f"{progress}/{total} < {self._last.progress}/{self._last.total}"
            )
            return False

        info = ProgressInfo(
            progress_token=self._token,
            progress=progress,
            total=total,
            message=message,
        )
        try:
            await self._session.notify(
                "notifications/progress",
                info.to_dict(),
                related_request_id=self._related_request_id,
            )
        except Exception as e:
            logger.warning(f"Failed to deliver progress for token {self._token}: {e}")
            return False

        self._last = info
        self._sent += 1
        return True

    async def complete(self, message: str = "Complete") -> bool:
        """
        Send a final progress == total notification if one is owed.

        Only sends when something was reported and the last value was
        still below its total.
        """
        if self._last is None or self._last.is_complete:
            return False
        return await self.report(self._last.total, total=self._last.total, message=message)


NO_PROGRESS = ProgressReporter(session=None, token=None)
"""Reporter for requests without a progress token."""
