'''
Conflict detection for a candidate interval.
'''
from datetime import datetime
from typing import Iterable

from ..database.db_enums import ConflictTypeEnum
from ..models.availability import TimeSlot
from ..models.scheduling import Conflict, ConfirmedBooking, ScheduledSession


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: touching endpoints are not a conflict."""
    return a_start < b_end and a_end > b_start


def find_conflicts(
    start: datetime,
    end: datetime,
    sessions: Iterable[ScheduledSession],
    bookings: Iterable[ConfirmedBooking],
    blocked_slots: Iterable[TimeSlot]
) -> list[Conflict]:
    """
    Checks the candidate [start, end) against all three collections and
    returns every overlap found, sessions first, then bookings, then blocks.
    """
    conflicts: list[Conflict] = []

    for session in sessions:
        if intervals_overlap(start, end, session.start_time, session.end_time):
            conflicts.append(Conflict(
                type=ConflictTypeEnum.SESSION,
                start_time=session.start_time,
                end_time=session.end_time,
                reason=f"Conflicts with session: {session.title or 'Untitled'}"
            ))

    for booking in bookings:
        if intervals_overlap(start, end, booking.start_time, booking.end_time):
            conflicts.append(Conflict(
                type=ConflictTypeEnum.BOOKING,
                start_time=booking.start_time,
                end_time=booking.end_time,
                reason=f"Conflicts with booking: {booking.learner_name or 'Student'}"
            ))

    for slot in blocked_slots:
        if slot.is_blocked and intervals_overlap(start, end, slot.start_time, slot.end_time):
            conflicts.append(Conflict(
                type=ConflictTypeEnum.BLOCKED,
                start_time=slot.start_time,
                end_time=slot.end_time,
                reason="Time slot is blocked"
            ))

    return conflicts
