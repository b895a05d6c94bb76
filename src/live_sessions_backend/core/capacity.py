'''
Slot capacity: derived status, reserve/release and the per-slot locks that
make them atomic with the lifecycle transitions that trigger them.
'''
import threading
from contextlib import ExitStack
from datetime import datetime
from typing import Callable, Iterable, Optional
from uuid import UUID

from ..common.exceptions import CapacityExceededError, SlotNotFoundError
from ..database.db_enums import SlotStatusEnum
from ..models.availability import SlotCapacity, TimeSlot


def derive_status(slot: TimeSlot, now: datetime) -> SlotStatusEnum:
    """
    The single source of a slot's status. Priority: blocked, booked, past, available.
    """
    if slot.is_blocked:
        return SlotStatusEnum.BLOCKED
    if slot.current_bookings >= slot.max_bookings:
        return SlotStatusEnum.BOOKED
    if slot.start_time <= now:
        return SlotStatusEnum.PAST
    return SlotStatusEnum.AVAILABLE


def slot_capacity(slot: TimeSlot) -> SlotCapacity:
    return SlotCapacity(
        current=slot.current_bookings,
        max=slot.max_bookings,
        available=max(slot.max_bookings - slot.current_bookings, 0)
    )


def can_accept_bookings(slot: TimeSlot, now: datetime) -> bool:
    return derive_status(slot, now) == SlotStatusEnum.AVAILABLE


def reserve_slot(slot: TimeSlot) -> TimeSlot:
    if slot.current_bookings >= slot.max_bookings:
        raise CapacityExceededError(slot.id, slot.max_bookings)
    return slot.model_copy(update={"current_bookings": slot.current_bookings + 1})


def release_slot(slot: TimeSlot) -> TimeSlot:
    return slot.model_copy(update={"current_bookings": max(slot.current_bookings - 1, 0)})


class CapacityTracker:
    """
    Owns the live slot records. It is the only place current_bookings changes.

    Each slot has its own re-entrant lock so a caller can hold it around a
    lifecycle transition and still call reserve/release inside.
    """
    def __init__(self):
        self._slots: dict[UUID, TimeSlot] = {}
        self._locks: dict[UUID, threading.RLock] = {}
        self._guard = threading.Lock()

    # --- Locks ---

    def lock_for(self, slot_id: UUID) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(slot_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[slot_id] = lock
            return lock

    def forget_locks(self, slot_ids: Iterable[UUID]) -> None:
        """Drops the locks of slots that no longer exist."""
        with self._guard:
            for slot_id in slot_ids:
                if slot_id not in self._slots:
                    self._locks.pop(slot_id, None)

    # --- Reads ---

    def find(self, slot_id: UUID) -> Optional[TimeSlot]:
        return self._slots.get(slot_id)

    def get(self, slot_id: UUID) -> TimeSlot:
        slot = self._slots.get(slot_id)
        if slot is None:
            raise SlotNotFoundError(f"Slot {slot_id} not found.")
        return slot

    def all(self) -> list[TimeSlot]:
        return sorted(self._slots.values(), key=lambda s: s.start_time)

    def for_window(self, window_id: UUID) -> list[TimeSlot]:
        return [s for s in self.all() if s.window_id == window_id]

    def capacity(self, slot_id: UUID) -> SlotCapacity:
        return slot_capacity(self.get(slot_id))

    # --- Mutations ---

    def reserve(self, slot_id: UUID) -> TimeSlot:
        with self.lock_for(slot_id):
            slot = reserve_slot(self.get(slot_id))
            self._slots[slot_id] = slot
            return slot

    def release(self, slot_id: UUID) -> TimeSlot:
        with self.lock_for(slot_id):
            slot = release_slot(self.get(slot_id))
            self._slots[slot_id] = slot
            return slot

    def set_blocked(self, slot_id: UUID, blocked: bool, reason: Optional[str] = None) -> TimeSlot:
        with self.lock_for(slot_id):
            slot = self.get(slot_id).model_copy(update={
                "is_blocked": blocked,
                "block_reason": reason if blocked else None,
            })
            self._slots[slot_id] = slot
            return slot

    def replace_window_slots(
        self,
        window_id: UUID,
        build: Callable[[list[TimeSlot]], list[TimeSlot]]
    ) -> list[TimeSlot]:
        """
        Swaps the slots of one window while holding the lock of every slot it
        currently owns. `build` receives those slots and returns the new set;
        it may raise to leave everything untouched.
        Returns the slots that were removed.
        """
        with ExitStack() as stack:
            owned = sorted(s.id for s in list(self._slots.values()) if s.window_id == window_id)
            for slot_id in owned:
                stack.enter_context(self.lock_for(slot_id))

            current = [s for s in self._slots.values() if s.window_id == window_id]
            slots = build(current)

            keep = {s.id for s in slots}
            removed = [s for s in current if s.id not in keep]
            for slot in removed:
                del self._slots[slot.id]
            for slot in slots:
                self._slots[slot.id] = slot
        self.forget_locks(s.id for s in removed)
        return removed
