"""
Tests for derived slot status and the capacity tracker.
"""
import datetime
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.live_sessions_backend.common.exceptions import CapacityExceededError, SlotNotFoundError
from src.live_sessions_backend.core.capacity import (
    CapacityTracker,
    can_accept_bookings,
    derive_status,
    release_slot,
    reserve_slot,
    slot_capacity
)
from src.live_sessions_backend.database.db_enums import SlotStatusEnum
from tests.constants import TEST_NOW
from tests.factories import TimeSlotFactory, slot_time


class TestDeriveStatus:
    """Status priority: blocked, booked, past, available."""

    def test_available(self):
        assert derive_status(TimeSlotFactory(), TEST_NOW) == SlotStatusEnum.AVAILABLE

    def test_blocked_wins_over_booked(self):
        slot = TimeSlotFactory(is_blocked=True, current_bookings=1, max_bookings=1)
        assert derive_status(slot, TEST_NOW) == SlotStatusEnum.BLOCKED

    def test_booked_wins_over_past(self):
        slot = TimeSlotFactory(current_bookings=1, max_bookings=1)
        after_start = slot.start_time + datetime.timedelta(minutes=5)
        assert derive_status(slot, after_start) == SlotStatusEnum.BOOKED

    def test_past_once_started(self):
        slot = TimeSlotFactory()
        assert derive_status(slot, slot.start_time) == SlotStatusEnum.PAST
        assert not can_accept_bookings(slot, slot.start_time)

    def test_partially_booked_group_slot_is_available(self):
        slot = TimeSlotFactory(current_bookings=2, max_bookings=5)
        assert derive_status(slot, TEST_NOW) == SlotStatusEnum.AVAILABLE
        assert can_accept_bookings(slot, TEST_NOW)


class TestReserveRelease:

    def test_reserve_increments_until_full(self):
        slot = TimeSlotFactory(max_bookings=2)

        slot = reserve_slot(reserve_slot(slot))

        assert slot.current_bookings == 2
        with pytest.raises(CapacityExceededError):
            reserve_slot(slot)

    def test_release_never_goes_negative(self):
        slot = release_slot(TimeSlotFactory(current_bookings=0))
        assert slot.current_bookings == 0

    def test_release_after_reserve_restores_count(self):
        slot = TimeSlotFactory(max_bookings=3, current_bookings=1)
        assert release_slot(reserve_slot(slot)).current_bookings == 1

    def test_capacity_summary(self):
        capacity = slot_capacity(TimeSlotFactory(max_bookings=4, current_bookings=1))
        assert (capacity.current, capacity.max, capacity.available) == (1, 4, 3)


class TestCapacityTracker:
    """Test class for the CapacityTracker."""

    @pytest.fixture
    def tracker(self) -> CapacityTracker:
        return CapacityTracker()

    def _add(self, tracker: CapacityTracker, **kwargs):
        slot = TimeSlotFactory(**kwargs)
        tracker.replace_window_slots(slot.window_id, lambda current: [slot])
        return slot

    def test_unknown_slot_raises(self, tracker: CapacityTracker):
        with pytest.raises(SlotNotFoundError):
            tracker.get(TimeSlotFactory().id)

    def test_concurrent_reserves_never_exceed_capacity(self, tracker: CapacityTracker):
        """Many threads racing for three spots: exactly three win."""
        print("\n--- Testing concurrent reserve() calls ---")
        slot = self._add(tracker, max_bookings=3)

        def attempt():
            try:
                tracker.reserve(slot.id)
                return True
            except CapacityExceededError:
                return False

        with ThreadPoolExecutor(max_workers=16) as pool:
            outcomes = list(pool.map(lambda _: attempt(), range(50)))

        assert outcomes.count(True) == 3
        assert tracker.get(slot.id).current_bookings == 3

    def test_concurrent_reserve_release_pairs_return_to_start(self, tracker: CapacityTracker):
        """Reserve/release pairs keep 0 <= current <= max and end where they started."""
        slot = self._add(tracker, max_bookings=2, current_bookings=1)
        observed = []

        def pair():
            try:
                reserved = tracker.reserve(slot.id)
            except CapacityExceededError:
                return
            observed.append(reserved.current_bookings)
            observed.append(tracker.release(slot.id).current_bookings)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: pair(), range(100)))

        assert all(0 <= count <= 2 for count in observed)
        assert tracker.get(slot.id).current_bookings == 1

    def test_block_and_unblock(self, tracker: CapacityTracker):
        slot = self._add(tracker)

        blocked = tracker.set_blocked(slot.id, True, "Doctor's appointment")
        assert blocked.is_blocked and blocked.block_reason == "Doctor's appointment"

        unblocked = tracker.set_blocked(slot.id, False)
        assert not unblocked.is_blocked and unblocked.block_reason is None

    def test_replace_window_slots_reports_removed(self, tracker: CapacityTracker):
        first = self._add(tracker)
        second = TimeSlotFactory(window_id=first.window_id, start_time=slot_time(10))

        removed = tracker.replace_window_slots(first.window_id, lambda current: [second])

        assert removed == [first]
        assert tracker.for_window(first.window_id) == [second]

    def test_replace_window_slots_aborts_when_build_raises(self, tracker: CapacityTracker):
        slot = self._add(tracker)

        def refuse(current):
            raise CapacityExceededError(slot.id, 1)

        with pytest.raises(CapacityExceededError):
            tracker.replace_window_slots(slot.window_id, refuse)
        assert tracker.get(slot.id) == slot

    def test_locks_of_removed_slots_are_dropped(self, tracker: CapacityTracker):
        first = self._add(tracker)
        second = TimeSlotFactory(window_id=first.window_id, start_time=slot_time(10))
        kept_lock = tracker.lock_for(first.id)

        tracker.replace_window_slots(first.window_id, lambda current: [second])

        assert first.id not in tracker._locks
        assert tracker.lock_for(first.id) is not kept_lock

    def test_forget_locks_keeps_live_slots(self, tracker: CapacityTracker):
        slot = self._add(tracker)
        lock = tracker.lock_for(slot.id)

        tracker.forget_locks([slot.id])

        assert tracker.lock_for(slot.id) is lock
