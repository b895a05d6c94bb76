'''
CSV exchange format for availability windows.

One row per window under a mandatory header:
    Date,Start Time,End Time,Title,Status,Max Sessions,Duration,Notes
'''
import csv
import io
import re
from datetime import date, time
from typing import Iterable, Optional
from uuid import UUID

from ..common.exceptions import WindowValidationError
from ..models.availability import AvailabilityWindow, AvailabilityWindowCreate
from .availability import validate_window

CSV_COLUMNS = ['Date', 'Start Time', 'End Time', 'Title', 'Status', 'Max Sessions', 'Duration', 'Notes']
STATUS_ACTIVE = 'Active'
STATUS_INACTIVE = 'Inactive'

_DURATION_PATTERN = re.compile(r'^\s*(\d+)\s*(minutes?)?\s*$', re.IGNORECASE)


def export_availability_data(windows: Iterable[AvailabilityWindow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(CSV_COLUMNS)
    for window in windows:
        writer.writerow([
            window.specific_date.isoformat(),
            window.start_time.strftime('%H:%M'),
            window.end_time.strftime('%H:%M'),
            window.title or '',
            STATUS_ACTIVE if window.is_active else STATUS_INACTIVE,
            window.max_bookings_per_slot,
            f'{window.slot_duration_minutes} minutes',
            window.notes or '',
        ])
    return buffer.getvalue()


def _parse_row(row: dict[str, Optional[str]], instructor_id: UUID, defaults: dict) -> tuple[Optional[AvailabilityWindowCreate], list[str]]:
    errors = []
    values = {column: (row.get(column) or '').strip() for column in CSV_COLUMNS}

    specific_date = start_time = end_time = None
    max_bookings = duration = None

    try:
        specific_date = date.fromisoformat(values['Date']) if values['Date'] else None
    except ValueError:
        errors.append(f"Invalid date '{values['Date']}'")
    try:
        start_time = time.fromisoformat(values['Start Time']) if values['Start Time'] else None
    except ValueError:
        errors.append(f"Invalid start time '{values['Start Time']}'")
    try:
        end_time = time.fromisoformat(values['End Time']) if values['End Time'] else None
    except ValueError:
        errors.append(f"Invalid end time '{values['End Time']}'")

    if values['Status'] not in (STATUS_ACTIVE, STATUS_INACTIVE):
        errors.append(f"Status must be '{STATUS_ACTIVE}' or '{STATUS_INACTIVE}'")
    try:
        max_bookings = int(values['Max Sessions'])
    except ValueError:
        errors.append(f"Invalid max sessions '{values['Max Sessions']}'")
    match = _DURATION_PATTERN.match(values['Duration'])
    if match:
        duration = int(match.group(1))
    else:
        errors.append(f"Invalid duration '{values['Duration']}'")

    if errors:
        return None, errors

    data = AvailabilityWindowCreate(
        **defaults,
        instructor_id=instructor_id,
        specific_date=specific_date,
        start_time=start_time,
        end_time=end_time,
        title=values['Title'] or None,
        is_active=values['Status'] == STATUS_ACTIVE,
        max_bookings_per_slot=max_bookings,
        slot_duration_minutes=duration,
        notes=values['Notes'] or None,
    )
    return data, validate_window(data)


def import_availability_data(
    csv_data: str,
    instructor_id: UUID,
    defaults: Optional[dict] = None
) -> list[AvailabilityWindowCreate]:
    """
    Parses and validates every row. Raises WindowValidationError with one
    message per problem (prefixed by its row number) if any row is bad, so
    callers create all of the windows or none of them.

    `defaults` fills the window fields the format does not carry
    (buffer, advance hours, session type, timezone).
    """
    defaults = defaults or {}
    reader = csv.DictReader(io.StringIO(csv_data.strip()))
    if reader.fieldnames is None:
        raise WindowValidationError(['CSV data is empty'])

    headers = [h.strip() for h in reader.fieldnames]
    missing = [c for c in CSV_COLUMNS if c not in headers]
    if missing:
        raise WindowValidationError([f"Missing columns: {', '.join(missing)}"])
    reader.fieldnames = headers

    parsed: list[AvailabilityWindowCreate] = []
    errors: list[str] = []
    # Row 1 is the header.
    for row_number, row in enumerate(reader, start=2):
        if not any((v or '').strip() for k, v in row.items() if k is not None):
            continue
        data, row_errors = _parse_row(row, instructor_id, defaults)
        errors.extend(f'Row {row_number}: {message}' for message in row_errors)
        if data is not None:
            parsed.append(data)

    if errors:
        raise WindowValidationError(errors)
    return parsed
