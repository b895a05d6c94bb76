'''
Booking request state machine.

Every function here is pure: it takes the current record and returns the next
one, or raises InvalidTransitionError. The engine decides when to commit.

    pending -> accepted (payment: none -> awaiting -> paid | failed | expired)
    pending -> rejected (manual, withdrawn by the learner, or by the system)
    pending -> expired  (only once now > expires_at)
'''
import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

from ..common.exceptions import InvalidTransitionError, NotRequesterError
from ..database.db_enums import BookingStatusEnum, PaymentStatusEnum, PriceDecisionEnum
from ..models.availability import TimeSlot
from ..models.booking import BookingRequest, BookingRequestCreate
from ..models.pricing import PriceRule

TERMINAL_PAYMENT_FAILURES = (PaymentStatusEnum.FAILED, PaymentStatusEnum.EXPIRED)

_PAYMENT_TRANSITIONS = {
    PaymentStatusEnum.NONE: {PaymentStatusEnum.AWAITING},
    PaymentStatusEnum.AWAITING: {PaymentStatusEnum.PAID, PaymentStatusEnum.FAILED, PaymentStatusEnum.EXPIRED},
}


def compute_expires_at(slot_start: datetime, rule: PriceRule, created_at: datetime) -> datetime:
    """
    A bid stays open until the rule's lead-time cutoff before the session.
    If that moment has already passed, it stays open until the session starts.
    """
    expires_at = slot_start - timedelta(hours=rule.lead_time_cutoff_hours)
    if expires_at <= created_at:
        expires_at = slot_start
    return expires_at


def new_request(
    data: BookingRequestCreate,
    slot: TimeSlot,
    rule: PriceRule,
    decision: PriceDecisionEnum,
    now: datetime,
    request_id: Optional[UUID] = None
) -> BookingRequest:
    return BookingRequest(
        id=request_id or uuid.uuid4(),
        slot_id=slot.id,
        requester_id=data.requester_id,
        offered_price=data.offered_price,
        message=data.message,
        price_decision=decision,
        created_at=now,
        expires_at=compute_expires_at(slot.start_time, rule, now)
    )


def is_overdue(request: BookingRequest, now: datetime) -> bool:
    return request.status == BookingStatusEnum.PENDING and now > request.expires_at


def _require_pending(request: BookingRequest, attempted: BookingStatusEnum, now: datetime) -> None:
    if request.status != BookingStatusEnum.PENDING:
        raise InvalidTransitionError(request.id, request.status.value, attempted.value)
    if attempted != BookingStatusEnum.EXPIRED and is_overdue(request, now):
        raise InvalidTransitionError(
            request.id, request.status.value, attempted.value,
            reason=f"It expired at {request.expires_at.isoformat()}."
        )


def accept(request: BookingRequest, now: datetime) -> BookingRequest:
    _require_pending(request, BookingStatusEnum.ACCEPTED, now)
    return request.model_copy(update={
        "status": BookingStatusEnum.ACCEPTED,
        "payment_status": PaymentStatusEnum.AWAITING,
        "reservation_held": True,
        "responded_at": now,
        "payment_updated_at": now,
        "is_highest_bid": False,
    })


def reject(request: BookingRequest, now: datetime) -> BookingRequest:
    _require_pending(request, BookingStatusEnum.REJECTED, now)
    return request.model_copy(update={
        "status": BookingStatusEnum.REJECTED,
        "responded_at": now,
        "is_highest_bid": False,
    })


def withdraw(request: BookingRequest, requester_id: UUID, now: datetime) -> BookingRequest:
    """The learner's own cancellation. Recorded as a rejection flagged as withdrawn."""
    if request.requester_id != requester_id:
        raise NotRequesterError(request.id, requester_id)
    rejected = reject(request, now)
    return rejected.model_copy(update={"withdrawn": True})


def expire(request: BookingRequest, now: datetime) -> BookingRequest:
    _require_pending(request, BookingStatusEnum.EXPIRED, now)
    if not is_overdue(request, now):
        raise InvalidTransitionError(
            request.id, request.status.value, BookingStatusEnum.EXPIRED.value,
            reason=f"It is open until {request.expires_at.isoformat()}."
        )
    return request.model_copy(update={
        "status": BookingStatusEnum.EXPIRED,
        "responded_at": now,
        "is_highest_bid": False,
    })


def advance_payment(request: BookingRequest, target: PaymentStatusEnum, now: datetime) -> BookingRequest:
    """Moves the payment sub-state forward. Only accepted requests have one."""
    if request.status != BookingStatusEnum.ACCEPTED or target not in _PAYMENT_TRANSITIONS.get(request.payment_status, set()):
        raise InvalidTransitionError(
            request.id,
            f"{request.status.value}/{request.payment_status.value}",
            f"payment {target.value}"
        )
    return request.model_copy(update={"payment_status": target, "payment_updated_at": now})


def is_payment_overdue(request: BookingRequest, now: datetime, timeout: timedelta) -> bool:
    if request.status != BookingStatusEnum.ACCEPTED or request.payment_status != PaymentStatusEnum.AWAITING:
        return False
    started = request.payment_updated_at or request.responded_at or request.created_at
    return now - started > timeout


def release_reservation(request: BookingRequest, now: datetime) -> BookingRequest:
    """
    Compensation after a failed or expired payment: the slot spot is given back.
    The request keeps its accepted status and payment outcome.
    """
    if (request.status != BookingStatusEnum.ACCEPTED
            or not request.reservation_held
            or request.payment_status not in TERMINAL_PAYMENT_FAILURES):
        raise InvalidTransitionError(
            request.id,
            f"{request.status.value}/{request.payment_status.value}",
            "released",
            reason="Only reservations whose payment failed or expired can be released."
        )
    return request.model_copy(update={"reservation_held": False})


def mark_highest_bids(requests: Iterable[BookingRequest]) -> list[BookingRequest]:
    """
    Flags, per slot, the pending request with the greatest offered price.
    Ties go to the earliest created_at. Input order is preserved.
    """
    requests = list(requests)
    best: dict[UUID, BookingRequest] = {}
    for request in requests:
        if request.status != BookingStatusEnum.PENDING:
            continue
        current = best.get(request.slot_id)
        if (current is None
                or request.offered_price > current.offered_price
                or (request.offered_price == current.offered_price and request.created_at < current.created_at)):
            best[request.slot_id] = request

    winners = {r.id for r in best.values()}
    return [
        r if r.is_highest_bid == (r.id in winners) else r.model_copy(update={"is_highest_bid": r.id in winners})
        for r in requests
    ]
