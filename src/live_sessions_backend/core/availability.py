'''
Availability window validation and read-side queries over a window collection.
'''
import calendar
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..common.exceptions import WindowValidationError
from ..models.availability import (
    AvailabilityWindow,
    AvailabilityWindowCreate,
    AvailabilityWindowUpdate,
    WeeklySummaryEntry
)

MIN_SLOT_DURATION_MINUTES = 15

# Fields carried from a stored window into a fresh create payload when merging edits.
_EDITABLE_FIELDS = set(AvailabilityWindowCreate.model_fields)


def validate_window(data: AvailabilityWindowCreate) -> list[str]:
    """
    Returns every problem found in the window, in a stable order.
    An empty list means the window is valid.
    """
    errors: list[str] = []

    if data.specific_date is None:
        errors.append('Date is required')
    if data.start_time is None:
        errors.append('Start time is required')
    if data.end_time is None:
        errors.append('End time is required')
    if data.start_time is not None and data.end_time is not None and data.start_time >= data.end_time:
        errors.append('Start time must be before end time')
    for label, value in (('Start', data.start_time), ('End', data.end_time)):
        if value is not None and (value.second or value.microsecond):
            errors.append(f'{label} time must be a whole minute')

    if data.max_bookings_per_slot < 1:
        errors.append('Maximum sessions per slot must be at least 1')
    if data.slot_duration_minutes < MIN_SLOT_DURATION_MINUTES:
        errors.append(f'Slot duration must be at least {MIN_SLOT_DURATION_MINUTES} minutes')
    if data.min_advance_hours < 1:
        errors.append('Minimum advance hours must be at least 1')
    if data.max_advance_hours < data.min_advance_hours:
        errors.append('Maximum advance hours cannot be less than minimum advance hours')
    if data.buffer_minutes < 0:
        errors.append('Buffer minutes cannot be negative')

    try:
        ZoneInfo(data.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f'Unknown timezone: {data.timezone}')

    return errors


def build_window(data: AvailabilityWindowCreate, window_id: UUID, now: datetime) -> AvailabilityWindow:
    """
    Validates a create payload and turns it into a stored window.
    Raises WindowValidationError with all messages, before anything is created.
    """
    errors = validate_window(data)
    if errors:
        raise WindowValidationError(errors)
    return AvailabilityWindow(**data.model_dump(), id=window_id, created_at=now, updated_at=now)


def merge_window(window: AvailabilityWindow, changes: AvailabilityWindowUpdate, now: datetime) -> AvailabilityWindow:
    """
    Applies a partial update and validates the merged result as a whole.
    """
    merged = window.model_dump(include=_EDITABLE_FIELDS)
    merged.update(changes.model_dump(exclude_unset=True))
    candidate = AvailabilityWindowCreate(**merged)

    errors = validate_window(candidate)
    if errors:
        raise WindowValidationError(errors)
    return window.model_copy(update={**candidate.model_dump(), "updated_at": now})


def _sort_key(window: AvailabilityWindow):
    return (window.specific_date, window.start_time)


def windows_in_range(
    windows: Iterable[AvailabilityWindow],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    instructor_id: Optional[UUID] = None
) -> list[AvailabilityWindow]:
    """Filters windows by an inclusive date range and owner, ordered by date then start."""
    selected = []
    for window in windows:
        if instructor_id is not None and window.instructor_id != instructor_id:
            continue
        if start_date is not None and window.specific_date < start_date:
            continue
        if end_date is not None and window.specific_date > end_date:
            continue
        selected.append(window)
    return sorted(selected, key=_sort_key)


def upcoming_windows(
    windows: Iterable[AvailabilityWindow],
    today: date,
    days: int = 7,
    instructor_id: Optional[UUID] = None
) -> list[AvailabilityWindow]:
    return windows_in_range(windows, today, today + timedelta(days=days), instructor_id)


def weekly_summary(windows: Iterable[AvailabilityWindow]) -> list[WeeklySummaryEntry]:
    """
    Per weekday: how many windows fall on it and how many hours they cover.
    Only weekdays with at least one window are reported, Monday first.
    """
    counts: dict[int, int] = {}
    hours: dict[int, float] = {}
    for window in windows:
        day = window.specific_date.weekday()
        counts[day] = counts.get(day, 0) + 1
        hours[day] = hours.get(day, 0.0) + window.duration_hours

    return [
        WeeklySummaryEntry(
            day_of_week=day,
            day_name=calendar.day_name[day],
            count=counts[day],
            total_hours=round(hours[day], 2)
        )
        for day in sorted(counts)
    ]
