"""
Tests for window validation, merging and the read-side window queries.
"""
import datetime
import uuid

import pytest

from src.live_sessions_backend.common.exceptions import WindowValidationError
from src.live_sessions_backend.core.availability import (
    build_window,
    merge_window,
    upcoming_windows,
    validate_window,
    weekly_summary,
    windows_in_range
)
from src.live_sessions_backend.models.availability import AvailabilityWindowUpdate
from tests.constants import TEST_NOW, TEST_OTHER_INSTRUCTOR_ID, TEST_WINDOW_DATE
from tests.factories import AvailabilityWindowCreateFactory, AvailabilityWindowFactory


class TestValidateWindow:
    """Test class for validate_window."""

    def test_valid_window_has_no_errors(self):
        assert validate_window(AvailabilityWindowCreateFactory()) == []

    def test_all_problems_reported_together(self):
        """Every broken rule shows up in one pass."""
        print("\n--- Testing window validation messages ---")
        data = AvailabilityWindowCreateFactory(
            start_time=datetime.time(12, 0),
            end_time=datetime.time(9, 0),
            max_bookings_per_slot=0,
            slot_duration_minutes=10,
            min_advance_hours=0
        )

        errors = validate_window(data)

        assert errors == [
            'Start time must be before end time',
            'Maximum sessions per slot must be at least 1',
            'Slot duration must be at least 15 minutes',
            'Minimum advance hours must be at least 1',
        ]

    def test_missing_fields(self):
        data = AvailabilityWindowCreateFactory(specific_date=None, start_time=None, end_time=None)

        assert validate_window(data) == ['Date is required', 'Start time is required', 'End time is required']

    def test_times_must_be_whole_minutes(self):
        """CSV exchange carries HH:MM, so seconds would be lost on export."""
        data = AvailabilityWindowCreateFactory(
            start_time=datetime.time(9, 0, 30),
            end_time=datetime.time(12, 0, 0, 500)
        )

        assert validate_window(data) == [
            'Start time must be a whole minute',
            'End time must be a whole minute',
        ]

    def test_advance_bounds_and_buffer(self):
        data = AvailabilityWindowCreateFactory(min_advance_hours=10, max_advance_hours=5, buffer_minutes=-5)

        assert validate_window(data) == [
            'Maximum advance hours cannot be less than minimum advance hours',
            'Buffer minutes cannot be negative',
        ]

    def test_unknown_timezone(self):
        data = AvailabilityWindowCreateFactory(timezone="Mars/Olympus_Mons")

        assert validate_window(data) == ['Unknown timezone: Mars/Olympus_Mons']

    def test_build_window_raises_with_every_message(self):
        data = AvailabilityWindowCreateFactory(end_time=datetime.time(8, 0), max_bookings_per_slot=0)

        with pytest.raises(WindowValidationError) as exc_info:
            build_window(data, uuid.uuid4(), TEST_NOW)

        assert len(exc_info.value.errors) == 2


class TestMergeWindow:

    def test_partial_update_keeps_other_fields(self):
        window = AvailabilityWindowFactory()
        later = TEST_NOW + datetime.timedelta(hours=1)

        merged = merge_window(window, AvailabilityWindowUpdate(title="Renamed"), later)

        assert merged.title == "Renamed"
        assert merged.start_time == window.start_time
        assert merged.id == window.id
        assert merged.created_at == window.created_at
        assert merged.updated_at == later

    def test_merged_result_is_validated_as_a_whole(self):
        """A new end time before the stored start time is caught even though it is valid alone."""
        window = AvailabilityWindowFactory()

        with pytest.raises(WindowValidationError) as exc_info:
            merge_window(window, AvailabilityWindowUpdate(end_time=datetime.time(8, 0)), TEST_NOW)

        assert exc_info.value.errors == ['Start time must be before end time']


class TestWindowQueries:
    """Test class for range, upcoming and weekly summary queries."""

    @pytest.fixture
    def windows(self):
        # 2024-06-10 is a Monday.
        return [
            AvailabilityWindowFactory(specific_date=TEST_WINDOW_DATE, start_time=datetime.time(14, 0), end_time=datetime.time(15, 0)),
            AvailabilityWindowFactory(specific_date=TEST_WINDOW_DATE),
            AvailabilityWindowFactory(specific_date=datetime.date(2024, 6, 12)),
            AvailabilityWindowFactory(specific_date=datetime.date(2024, 6, 20), instructor_id=TEST_OTHER_INSTRUCTOR_ID),
        ]

    def test_range_is_inclusive_and_ordered(self, windows):
        selected = windows_in_range(windows, TEST_WINDOW_DATE, datetime.date(2024, 6, 12))

        assert [w.id for w in selected] == [windows[1].id, windows[0].id, windows[2].id]

    def test_range_by_instructor(self, windows):
        selected = windows_in_range(windows, instructor_id=TEST_OTHER_INSTRUCTOR_ID)

        assert [w.id for w in selected] == [windows[3].id]

    def test_upcoming_defaults_to_seven_days(self, windows):
        selected = upcoming_windows(windows, TEST_NOW.date())

        assert len(selected) == 3

    def test_weekly_summary(self, windows):
        summary = weekly_summary(windows)

        assert [(e.day_name, e.count, e.total_hours) for e in summary] == [
            ("Monday", 2, 4.0),
            ("Wednesday", 1, 3.0),
            ("Thursday", 1, 3.0),
        ]
        assert summary[0].day_of_week == 0
