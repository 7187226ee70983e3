"""Tests for progress reporting."""

import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from toolhost.transport.base import TransportClosedError
from toolhost.utilities.progress import NO_PROGRESS, ProgressReporter


@pytest.fixture
def session():
    session = MagicMock()
    session.notify = AsyncMock()
    return session


@pytest.fixture
def reporter(session):
    return ProgressReporter(session, "token-1", related_request_id=7)


def sent_values(session):
    return [call.args[1]["progress"] for call in session.notify.await_args_list]


class TestProgressReporter:
    """Tests for ProgressReporter."""

    @pytest.mark.asyncio
    async def test_sends_notification(self, reporter, session):
        assert await reporter.report(0.25, message="Step 1") is True
        session.notify.assert_awaited_once_with(
            "notifications/progress",
            {"progressToken": "token-1", "progress": 0.25, "total": 1.0, "message": "Step 1"},
            related_request_id=7,
        )

    @pytest.mark.asyncio
    async def test_decreasing_value_dropped(self, reporter, session):
        await reporter.report(0.5)
        assert await reporter.report(0.25) is False
        await reporter.report(0.5)
        await reporter.report(0.75)
        assert sent_values(session) == [0.5, 0.5, 0.75]

    @pytest.mark.asyncio
    async def test_order_judged_by_fraction_of_total(self, reporter, session):
        await reporter.report(3, total=10)
        assert await reporter.report(0.5, total=1.0) is True
        assert await reporter.report(4, total=10) is False
        assert sent_values(session) == [3, 0.5]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("progress, total", [(-0.1, 1.0), (1.5, 1.0), (math.nan, 1.0), (0.5, 0), (0.5, math.inf)])
    async def test_rejects_out_of_range(self, reporter, progress, total):
        with pytest.raises(ValueError):
            await reporter.report(progress, total=total)

    @pytest.mark.asyncio
    async def test_delivery_failure_is_swallowed(self, reporter, session):
        session.notify.side_effect = TransportClosedError("gone")
        assert await reporter.report(0.5) is False
        assert reporter.sent_count == 0

    @pytest.mark.asyncio
    async def test_complete_sends_total_once(self, reporter, session):
        await reporter.report(2, total=4)
        assert await reporter.complete() is True
        assert await reporter.complete() is False
        assert sent_values(session) == [2, 4]

    @pytest.mark.asyncio
    async def test_complete_without_reports_sends_nothing(self, reporter, session):
        assert await reporter.complete() is False
        session.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_reporter_still_validates(self):
        assert NO_PROGRESS.enabled is False
        assert await NO_PROGRESS.report(0.5) is False
        with pytest.raises(ValueError):
            await NO_PROGRESS.report(2.0)
