"""
Tests for the background ExpirySweeper.
"""
import asyncio
import datetime
from unittest.mock import AsyncMock

import pytest

from src.live_sessions_backend.database.db_enums import BookingStatusEnum
from src.live_sessions_backend.services.expiry_sweeper import ExpirySweeper
from src.live_sessions_backend.services.scheduling_engine import SchedulingEngine
from tests.factories import BookingRequestCreateFactory


@pytest.mark.anyio
class TestExpirySweeper:
    """Test class for the ExpirySweeper."""

    async def test_sweep_once_expires_overdue_requests(self, engine: SchedulingEngine, window_slots, clock):
        print("\n--- Testing a single sweep ---")
        request = await engine.submit_request(BookingRequestCreateFactory(slot_id=window_slots[0].id))
        clock.now = request.expires_at + datetime.timedelta(minutes=1)

        result = await ExpirySweeper(engine, interval_seconds=60).sweep_once()

        assert result.expired_requests == [request.id]
        assert engine._requests[request.id].status == BookingStatusEnum.EXPIRED

    async def test_sweep_once_survives_engine_errors(self, engine: SchedulingEngine, mocker):
        """A failing sweep is logged and the loop keeps going."""
        mocker.patch.object(engine, "run_sweep", new_callable=AsyncMock, side_effect=RuntimeError("boom"))

        assert await ExpirySweeper(engine, interval_seconds=60).sweep_once() is None

    async def test_start_and_stop(self, engine: SchedulingEngine, mocker):
        mock_sweep = mocker.patch.object(engine, "run_sweep", new_callable=AsyncMock)
        sweeper = ExpirySweeper(engine, interval_seconds=0.01)

        sweeper.start()
        assert sweeper.running
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert not sweeper.running
        assert mock_sweep.await_count >= 1

    async def test_disabled_when_interval_is_zero(self, engine: SchedulingEngine):
        sweeper = ExpirySweeper(engine, interval_seconds=0)

        sweeper.start()

        assert not sweeper.running
        await sweeper.stop()
