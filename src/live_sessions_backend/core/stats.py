'''
Read-only projections over requests and slots. Recomputed from scratch on each call.
'''
from collections import Counter
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping
from uuid import UUID

from ..database.db_enums import BookingStatusEnum, PaymentStatusEnum, SlotStatusEnum
from ..models.availability import AvailabilityStats, TimeSlot
from ..models.booking import BookingRequest
from ..models.stats import SessionStats
from .capacity import derive_status

TWO_PLACES = Decimal("0.01")


def utilization_rate(booked_slots: int, total_slots: int) -> float:
    if total_slots == 0:
        return 0.0
    return round(booked_slots / total_slots * 100, 2)


def compute_availability_stats(slots: Iterable[TimeSlot], now: datetime) -> AvailabilityStats:
    counts = Counter(derive_status(slot, now) for slot in slots)
    total = sum(counts.values())
    return AvailabilityStats(
        total_slots=total,
        available_slots=counts[SlotStatusEnum.AVAILABLE],
        booked_slots=counts[SlotStatusEnum.BOOKED],
        blocked_slots=counts[SlotStatusEnum.BLOCKED],
        past_slots=counts[SlotStatusEnum.PAST],
        utilization_rate=utilization_rate(counts[SlotStatusEnum.BOOKED], total)
    )


def popular_time_slots(
    requests: Iterable[BookingRequest],
    slots_by_id: Mapping[UUID, TimeSlot],
    limit: int = 3
) -> list[str]:
    """Most requested slot start times as HH:MM. Ties go to the earlier time."""
    counts: Counter[str] = Counter()
    for request in requests:
        slot = slots_by_id.get(request.slot_id)
        if slot is not None:
            counts[slot.start_time.strftime("%H:%M")] += 1
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [label for label, _ in ranked[:limit]]


def compute_session_stats(
    requests: Iterable[BookingRequest],
    slots_by_id: Mapping[UUID, TimeSlot],
    now: datetime,
    popular_limit: int = 3
) -> SessionStats:
    requests = list(requests)
    pending = [r for r in requests if r.status == BookingStatusEnum.PENDING]
    accepted = [r for r in requests if r.status == BookingStatusEnum.ACCEPTED]
    paid = [r for r in accepted if r.payment_status == PaymentStatusEnum.PAID]

    average_bid = Decimal("0.00")
    if pending:
        average_bid = (sum(r.offered_price for r in pending) / len(pending)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    upcoming = 0
    for request in accepted:
        slot = slots_by_id.get(request.slot_id)
        if request.reservation_held and slot is not None and slot.start_time > now:
            upcoming += 1

    completion_rate = 0.0
    if accepted:
        completion_rate = round(len(paid) / len(accepted) * 100, 2)

    return SessionStats(
        pending_requests=len(pending),
        total_earnings=sum((r.offered_price for r in paid), Decimal("0")),
        upcoming_sessions=upcoming,
        completion_rate=completion_rate,
        average_bid=average_bid,
        popular_time_slots=popular_time_slots(requests, slots_by_id, popular_limit)
    )
