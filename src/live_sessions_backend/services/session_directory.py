'''
Read-only view of sessions and bookings that live outside the engine.
'''
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from ..core.conflicts import intervals_overlap
from ..models.scheduling import ConfirmedBooking, ScheduledSession


class SessionDirectory(ABC):
    """Supplies existing sessions and confirmed bookings to the conflict detector."""

    @abstractmethod
    async def get_sessions(self, instructor_id: UUID, start: datetime, end: datetime) -> list[ScheduledSession]:
        ...

    @abstractmethod
    async def get_confirmed_bookings(self, instructor_id: UUID, start: datetime, end: datetime) -> list[ConfirmedBooking]:
        ...


class InMemorySessionDirectory(SessionDirectory):

    def __init__(
        self,
        sessions: Optional[list[ScheduledSession]] = None,
        bookings: Optional[list[ConfirmedBooking]] = None
    ):
        self.sessions = list(sessions or [])
        self.bookings = list(bookings or [])

    def add_session(self, session: ScheduledSession) -> None:
        self.sessions.append(session)

    def add_booking(self, booking: ConfirmedBooking) -> None:
        self.bookings.append(booking)

    async def get_sessions(self, instructor_id: UUID, start: datetime, end: datetime) -> list[ScheduledSession]:
        return [
            s for s in self.sessions
            if s.instructor_id == instructor_id and intervals_overlap(start, end, s.start_time, s.end_time)
        ]

    async def get_confirmed_bookings(self, instructor_id: UUID, start: datetime, end: datetime) -> list[ConfirmedBooking]:
        return [
            b for b in self.bookings
            if b.instructor_id == instructor_id and intervals_overlap(start, end, b.start_time, b.end_time)
        ]
