'''
Availability window and slot models
'''
from datetime import date, datetime, time
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..common.config import settings
from ..database.db_enums import SessionTypeEnum, SlotStatusEnum


class AvailabilityWindowCreate(BaseModel):
    """
    Payload for declaring a new availability window.
    Range checks live in core.availability.validate_window, which reports
    every problem of the window together.
    """
    instructor_id: UUID
    specific_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    slot_duration_minutes: int = settings.DEFAULT_SLOT_DURATION_MINUTES
    buffer_minutes: int = 0
    max_bookings_per_slot: int = 1
    min_advance_hours: int = settings.DEFAULT_MIN_ADVANCE_HOURS
    max_advance_hours: int = settings.DEFAULT_MAX_ADVANCE_HOURS
    is_active: bool = True
    session_type: SessionTypeEnum = SessionTypeEnum.INDIVIDUAL
    title: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    timezone: str = settings.DEFAULT_TIMEZONE


class AvailabilityWindowUpdate(BaseModel):
    """
    Partial update (PATCH) for a window. Unset fields keep their stored value.
    """
    specific_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    slot_duration_minutes: Optional[int] = None
    buffer_minutes: Optional[int] = None
    max_bookings_per_slot: Optional[int] = None
    min_advance_hours: Optional[int] = None
    max_advance_hours: Optional[int] = None
    is_active: Optional[bool] = None
    session_type: Optional[SessionTypeEnum] = None
    title: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    timezone: Optional[str] = None


class AvailabilityWindow(AvailabilityWindowCreate):
    """
    A stored, validated availability window.
    """
    id: UUID
    specific_date: date
    start_time: time
    end_time: time
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    def start_datetime(self) -> datetime:
        return datetime.combine(self.specific_date, self.start_time, tzinfo=ZoneInfo(self.timezone))

    def end_datetime(self) -> datetime:
        return datetime.combine(self.specific_date, self.end_time, tzinfo=ZoneInfo(self.timezone))

    @property
    def duration_hours(self) -> float:
        return (self.end_datetime() - self.start_datetime()).total_seconds() / 3600


class TimeSlot(BaseModel):
    """
    One bookable unit generated from a window.
    Records are immutable; capacity and blocking changes produce new copies.
    """
    id: UUID
    window_id: UUID
    instructor_id: UUID
    session_type: SessionTypeEnum
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    max_bookings: int
    current_bookings: int = 0
    is_blocked: bool = False
    block_reason: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class SlotCapacity(BaseModel):
    current: int
    max: int
    available: int


class SlotRead(TimeSlot):
    """
    A slot as returned by the API, annotated with its derived status.
    """
    status: SlotStatusEnum

    @computed_field
    @property
    def available_spots(self) -> int:
        return max(self.max_bookings - self.current_bookings, 0)


class BlockSlotInput(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class AvailabilityStats(BaseModel):
    """
    Slot counts by derived status, for one window or the whole store.
    """
    total_slots: int = 0
    available_slots: int = 0
    booked_slots: int = 0
    blocked_slots: int = 0
    past_slots: int = 0
    utilization_rate: float = 0.0


class WeeklySummaryEntry(BaseModel):
    day_of_week: int = Field(..., description="0=Monday, 6=Sunday")
    day_name: str
    count: int
    total_hours: float


class AvailabilityImportResult(BaseModel):
    created: list[AvailabilityWindow]

    @computed_field
    @property
    def count(self) -> int:
        return len(self.created)


class AvailabilityImportInput(BaseModel):
    instructor_id: UUID
    csv_data: str = Field(..., min_length=1)
