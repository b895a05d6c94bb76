'''
Turns an availability window into its bookable time slots.
'''
import uuid
from datetime import datetime, timedelta

from ..models.availability import AvailabilityWindow, TimeSlot


def slot_id_for(window_id: uuid.UUID, start: datetime, end: datetime) -> uuid.UUID:
    """
    Slot IDs are name-based UUIDs under the owning window, so regenerating an
    unchanged window always yields the same IDs.
    """
    return uuid.uuid5(window_id, f"{start.isoformat()}/{end.isoformat()}")


def generate_slots(window: AvailabilityWindow) -> list[TimeSlot]:
    """
    Walks a cursor from the window start: emit [cursor, cursor + duration),
    advance by duration + buffer, stop once the next slot would pass the end.
    A duration longer than the window gives an empty list.
    """
    duration = timedelta(minutes=window.slot_duration_minutes)
    step = duration + timedelta(minutes=window.buffer_minutes)
    if duration <= timedelta(0):
        return []

    window_end = window.end_datetime()
    cursor = window.start_datetime()
    slots: list[TimeSlot] = []

    while cursor + duration <= window_end:
        slot_end = cursor + duration
        slots.append(TimeSlot(
            id=slot_id_for(window.id, cursor, slot_end),
            window_id=window.id,
            instructor_id=window.instructor_id,
            session_type=window.session_type,
            start_time=cursor,
            end_time=slot_end,
            duration_minutes=window.slot_duration_minutes,
            max_bookings=window.max_bookings_per_slot
        ))
        cursor += step

    return slots


def carry_forward(
    previous: list[TimeSlot],
    regenerated: list[TimeSlot]
) -> tuple[list[TimeSlot], list[TimeSlot]]:
    """
    Copies bookings and blocks from the previous slots onto regenerated ones
    with the same start and end.

    Returns (slots, dropped): the regenerated slots with state carried over,
    and the previous slots that no longer exist.
    """
    by_interval = {(slot.start_time, slot.end_time): slot for slot in previous}
    slots = []
    for slot in regenerated:
        old = by_interval.pop((slot.start_time, slot.end_time), None)
        if old is not None:
            slot = slot.model_copy(update={
                "current_bookings": old.current_bookings,
                "is_blocked": old.is_blocked,
                "block_reason": old.block_reason,
            })
        slots.append(slot)
    return slots, list(by_interval.values())
