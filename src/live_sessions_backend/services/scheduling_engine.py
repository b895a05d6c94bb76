'''
The scheduling engine: owns windows, slots, booking requests and price rules,
and exposes every scheduling operation as a method.

Core functions compute new records; this class commits them. Capacity changes
and the request transition that causes them are committed together under the
slot's lock. Conflict detection, storage, payment requests and notifications
all happen outside that lock.
'''
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional
from uuid import UUID

from fastapi import Request

from ..common.config import settings
from ..common.exceptions import (
    BookingRequestNotFoundError,
    BookingWindowError,
    CapacityExceededError,
    ConflictError,
    InvalidTransitionError,
    PaymentGatewayError,
    PriceRuleNotFoundError,
    SchedulingError,
    WindowNotFoundError
)
from ..common.logger import log
from ..core import availability as availability_core
from ..core import lifecycle
from ..core.availability_csv import export_availability_data, import_availability_data
from ..core.capacity import CapacityTracker, derive_status, slot_capacity
from ..core.conflicts import find_conflicts
from ..core.pricing import check_bid_range, evaluate, hours_until, validate_price_rule
from ..core.slot_generator import carry_forward, generate_slots
from ..core.stats import compute_availability_stats, compute_session_stats
from ..database.db_enums import (
    BookingStatusEnum,
    ConflictTypeEnum,
    LifecycleEventEnum,
    PaymentOutcomeEnum,
    PaymentStatusEnum,
    PriceDecisionEnum,
    SessionTypeEnum,
    SlotStatusEnum
)
from ..models.availability import (
    AvailabilityStats,
    AvailabilityWindow,
    AvailabilityWindowCreate,
    AvailabilityWindowUpdate,
    SlotCapacity,
    SlotRead,
    TimeSlot,
    WeeklySummaryEntry
)
from ..models.booking import (
    BookingRequest,
    BookingRequestCreate,
    BulkItemResult,
    BulkUpdateResult,
    LifecycleEvent,
    PaymentCallback,
    SweepResult
)
from ..models.pricing import PriceEvaluation, PriceRule, PriceRuleInput
from ..models.scheduling import Conflict, ConfirmedBooking
from ..models.stats import SessionStats
from .availability_repository import AvailabilityRepository, InMemoryAvailabilityRepository
from .notifications import LoggingNotifier, Notifier
from .payment_gateway import LoggingPaymentGateway, PaymentGateway
from .session_directory import InMemorySessionDirectory, SessionDirectory

_PAYMENT_EVENTS = {
    PaymentStatusEnum.PAID: LifecycleEventEnum.PAYMENT_PAID,
    PaymentStatusEnum.FAILED: LifecycleEventEnum.PAYMENT_FAILED,
    PaymentStatusEnum.EXPIRED: LifecycleEventEnum.PAYMENT_EXPIRED,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SchedulingEngine:
    """
    State store for the booking marketplace.
    """
    def __init__(
        self,
        repository: Optional[AvailabilityRepository] = None,
        session_directory: Optional[SessionDirectory] = None,
        payment_gateway: Optional[PaymentGateway] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
        payment_timeout: Optional[timedelta] = None,
        popular_time_slots_limit: Optional[int] = None
    ):
        self.repository = repository or InMemoryAvailabilityRepository()
        self.session_directory = session_directory or InMemorySessionDirectory()
        self.payment_gateway = payment_gateway or LoggingPaymentGateway()
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock
        self.payment_timeout = payment_timeout or timedelta(minutes=settings.PAYMENT_TIMEOUT_MINUTES)
        self.popular_time_slots_limit = popular_time_slots_limit or settings.POPULAR_TIME_SLOTS_LIMIT

        self.slots = CapacityTracker()
        self._windows: dict[UUID, AvailabilityWindow] = {}
        self._requests: dict[UUID, BookingRequest] = {}
        self._price_rules: dict[SessionTypeEnum, PriceRule] = {}
        self.stats = SessionStats()

    async def load(self) -> None:
        """Reads every stored window and generates its slots."""
        windows = await self.repository.list_windows()
        for window in windows:
            self._windows[window.id] = window
            regenerated = generate_slots(window)
            self.slots.replace_window_slots(window.id, lambda current: regenerated)
        log.info(f"Scheduling engine loaded {len(windows)} availability windows.")

    # --- Internal helpers ---

    async def _publish(
        self,
        event_type: LifecycleEventEnum,
        request_id: Optional[UUID] = None,
        slot_id: Optional[UUID] = None,
        window_id: Optional[UUID] = None,
        **payload
    ) -> None:
        event = LifecycleEvent(
            type=event_type,
            occurred_at=self.clock(),
            request_id=request_id,
            slot_id=slot_id,
            window_id=window_id,
            payload=payload
        )
        try:
            await self.notifier.publish(event)
        except Exception as e:
            log.error(f"Failed to publish {event_type.value} event: {e}", exc_info=True)

    def _refresh_stats(self) -> None:
        self.stats = self._compute_stats()

    def _compute_stats(self) -> SessionStats:
        slots_by_id = {s.id: s for s in self.slots.all()}
        return compute_session_stats(
            self._requests.values(),
            slots_by_id,
            self.clock(),
            self.popular_time_slots_limit
        )

    def _get_request(self, request_id: UUID) -> BookingRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise BookingRequestNotFoundError(f"Booking request {request_id} not found.")
        return request

    def _slot_read(self, slot: TimeSlot, now: datetime) -> SlotRead:
        return SlotRead(**slot.model_dump(), status=derive_status(slot, now))

    def _with_highest_bid(self, requests: Iterable[BookingRequest]) -> list[BookingRequest]:
        """Derives is_highest_bid against every pending request, then keeps the asked-for ones."""
        wanted = {r.id for r in requests}
        marked = lifecycle.mark_highest_bids(self._requests.values())
        return [r for r in marked if r.id in wanted]

    # --- Windows ---

    def get_window(self, window_id: UUID) -> AvailabilityWindow:
        window = self._windows.get(window_id)
        if window is None:
            raise WindowNotFoundError(f"Availability window {window_id} not found.")
        return window

    def list_windows(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        instructor_id: Optional[UUID] = None
    ) -> list[AvailabilityWindow]:
        return availability_core.windows_in_range(self._windows.values(), start_date, end_date, instructor_id)

    def upcoming_windows(self, days: int = 7, instructor_id: Optional[UUID] = None) -> list[AvailabilityWindow]:
        return availability_core.upcoming_windows(self._windows.values(), self.clock().date(), days, instructor_id)

    def weekly_summary(self, instructor_id: Optional[UUID] = None) -> list[WeeklySummaryEntry]:
        return availability_core.weekly_summary(self.list_windows(instructor_id=instructor_id))

    async def create_window(self, data: AvailabilityWindowCreate) -> AvailabilityWindow:
        window = availability_core.build_window(data, uuid.uuid4(), self.clock())
        await self.repository.save_window(window)

        self._windows[window.id] = window
        slots = generate_slots(window)
        self.slots.replace_window_slots(window.id, lambda current: slots)
        log.info(f"Created availability window {window.id} on {window.specific_date} with {len(slots)} slots.")

        await self._publish(LifecycleEventEnum.WINDOW_CREATED, window_id=window.id, slot_count=len(slots))
        self._refresh_stats()
        return window

    @staticmethod
    def _reservation_conflicts(slots: Iterable[TimeSlot]) -> list[Conflict]:
        return [
            Conflict(
                type=ConflictTypeEnum.BOOKING,
                start_time=s.start_time,
                end_time=s.end_time,
                reason=f"Slot holds {s.current_bookings} reservation(s)"
            )
            for s in slots
        ]

    def _carry_slots(self, current: list[TimeSlot], regenerated: list[TimeSlot]) -> list[TimeSlot]:
        """Carries state onto regenerated slots; refuses to lose or overfill a reservation."""
        slots, dropped = carry_forward(current, regenerated)
        problems = [s for s in dropped if s.current_bookings > 0]
        problems += [s for s in slots if s.current_bookings > s.max_bookings]
        if problems:
            raise ConflictError(self._reservation_conflicts(problems))
        return slots

    async def _reject_orphaned_requests(self, removed: list[TimeSlot], reason: str) -> None:
        """Pending requests on slots that no longer exist are rejected by the system."""
        removed_ids = {s.id for s in removed}
        now = self.clock()
        for request in list(self._requests.values()):
            if request.slot_id not in removed_ids or request.status != BookingStatusEnum.PENDING:
                continue
            with self.slots.lock_for(request.slot_id):
                current = self._requests[request.id]
                if current.status != BookingStatusEnum.PENDING:
                    continue
                self._requests[request.id] = current.model_copy(update={
                    "status": BookingStatusEnum.REJECTED,
                    "responded_at": now,
                })
            log.info(f"Rejected booking request {request.id}: {reason}")
            await self._publish(LifecycleEventEnum.REQUEST_REJECTED, request_id=request.id, slot_id=request.slot_id, reason=reason)
        self.slots.forget_locks(removed_ids)

    async def update_window(self, window_id: UUID, changes: AvailabilityWindowUpdate) -> AvailabilityWindow:
        window = self.get_window(window_id)
        updated = availability_core.merge_window(window, changes, self.clock())
        regenerated = generate_slots(updated)

        # Dry run against the current slots before touching storage.
        self._carry_slots(self.slots.for_window(window_id), regenerated)
        await self.repository.save_window(updated)
        try:
            removed = self.slots.replace_window_slots(window_id, lambda current: self._carry_slots(current, regenerated))
        except ConflictError:
            log.warning(f"Window {window_id} gained reservations during the update; restoring the stored copy.")
            await self.repository.save_window(window)
            raise
        self._windows[window_id] = updated
        log.info(f"Updated availability window {window_id}: {len(regenerated)} slots, {len(removed)} removed.")

        await self._reject_orphaned_requests(removed, "slot removed by a window update")
        await self._publish(LifecycleEventEnum.WINDOW_UPDATED, window_id=window_id, removed_slots=len(removed))
        self._refresh_stats()
        return updated

    async def delete_window(self, window_id: UUID) -> None:
        window = self.get_window(window_id)
        held = [s for s in self.slots.for_window(window_id) if s.current_bookings > 0]
        if held:
            log.warning(f"Refused to delete window {window_id}: {len(held)} slot(s) hold reservations.")
            raise ConflictError(self._reservation_conflicts(held))

        await self.repository.delete_window(window_id)
        try:
            removed = self.slots.replace_window_slots(window_id, lambda current: self._carry_slots(current, []))
        except ConflictError:
            log.warning(f"Window {window_id} gained reservations during the delete; restoring the stored copy.")
            await self.repository.save_window(window)
            raise
        del self._windows[window_id]
        log.info(f"Deleted availability window {window_id} and {len(removed)} slots.")

        await self._reject_orphaned_requests(removed, "availability window deleted")
        await self._publish(LifecycleEventEnum.WINDOW_DELETED, window_id=window_id)
        self._refresh_stats()

    def export_windows(self, instructor_id: Optional[UUID] = None) -> str:
        return export_availability_data(self.list_windows(instructor_id=instructor_id))

    async def import_windows(self, csv_data: str, instructor_id: UUID) -> list[AvailabilityWindow]:
        """Creates every window in the CSV, or none if any row is invalid."""
        defaults = {
            "buffer_minutes": 0,
            "min_advance_hours": settings.DEFAULT_MIN_ADVANCE_HOURS,
            "max_advance_hours": settings.DEFAULT_MAX_ADVANCE_HOURS,
            "session_type": SessionTypeEnum.INDIVIDUAL,
            "timezone": settings.DEFAULT_TIMEZONE,
        }
        rows = import_availability_data(csv_data, instructor_id, defaults)
        created = [await self.create_window(row) for row in rows]
        log.info(f"Imported {len(created)} availability windows for instructor {instructor_id}.")
        return created

    # --- Slots ---

    def get_slot(self, slot_id: UUID) -> SlotRead:
        return self._slot_read(self.slots.get(slot_id), self.clock())

    def window_slots(self, window_id: UUID) -> list[SlotRead]:
        self.get_window(window_id)
        now = self.clock()
        return [self._slot_read(s, now) for s in self.slots.for_window(window_id)]

    def slot_capacity(self, slot_id: UUID) -> SlotCapacity:
        return slot_capacity(self.slots.get(slot_id))

    def _bookable_slots(self, instructor_id: Optional[UUID], now: datetime) -> list[TimeSlot]:
        bookable = []
        for slot in self.slots.all():
            window = self._windows.get(slot.window_id)
            if window is None or not window.is_active:
                continue
            if instructor_id is not None and slot.instructor_id != instructor_id:
                continue
            if derive_status(slot, now) == SlotStatusEnum.AVAILABLE:
                bookable.append(slot)
        return bookable

    def available_slots_for_date(self, on_date: date, instructor_id: Optional[UUID] = None) -> list[SlotRead]:
        now = self.clock()
        return [
            self._slot_read(s, now)
            for s in self._bookable_slots(instructor_id, now)
            if self._windows[s.window_id].specific_date == on_date
        ]

    def suggest_alternatives(self, slot_id: UUID, limit: int = 3) -> list[SlotRead]:
        """Nearest bookable slots of the same instructor on the same day."""
        slot = self.slots.get(slot_id)
        now = self.clock()
        day = self._windows[slot.window_id].specific_date
        candidates = [
            s for s in self._bookable_slots(slot.instructor_id, now)
            if s.id != slot.id and self._windows[s.window_id].specific_date == day
        ]
        candidates.sort(key=lambda s: (abs((s.start_time - slot.start_time).total_seconds()), s.start_time))
        return [self._slot_read(s, now) for s in candidates[:limit]]

    async def block_slot(self, slot_id: UUID, reason: Optional[str] = None) -> SlotRead:
        slot = self.slots.set_blocked(slot_id, True, reason)
        log.info(f"Blocked slot {slot_id}: {reason or 'no reason given'}")
        await self._publish(LifecycleEventEnum.SLOT_BLOCKED, slot_id=slot_id, window_id=slot.window_id, reason=reason)
        self._refresh_stats()
        return self._slot_read(slot, self.clock())

    async def unblock_slot(self, slot_id: UUID) -> SlotRead:
        slot = self.slots.set_blocked(slot_id, False)
        log.info(f"Unblocked slot {slot_id}")
        await self._publish(LifecycleEventEnum.SLOT_UNBLOCKED, slot_id=slot_id, window_id=slot.window_id)
        self._refresh_stats()
        return self._slot_read(slot, self.clock())

    def availability_stats(
        self,
        window_id: Optional[UUID] = None,
        instructor_id: Optional[UUID] = None
    ) -> AvailabilityStats:
        if window_id is not None:
            self.get_window(window_id)
            slots = self.slots.for_window(window_id)
        else:
            slots = [s for s in self.slots.all() if instructor_id is None or s.instructor_id == instructor_id]
        return compute_availability_stats(slots, self.clock())

    # --- Conflicts ---

    async def check_conflicts(
        self,
        instructor_id: UUID,
        start: datetime,
        end: datetime,
        exclude_slot_id: Optional[UUID] = None
    ) -> list[Conflict]:
        """
        Runs the detector against the session directory plus the engine's own
        accepted bookings and blocked slots for the instructor.
        Bookings on `exclude_slot_id` are left to the capacity tracker.
        """
        sessions = await self.session_directory.get_sessions(instructor_id, start, end)
        bookings = await self.session_directory.get_confirmed_bookings(instructor_id, start, end)

        instructor_slots = {s.id: s for s in self.slots.all() if s.instructor_id == instructor_id}
        for request in self._requests.values():
            slot = instructor_slots.get(request.slot_id)
            if (slot is None or slot.id == exclude_slot_id
                    or request.status != BookingStatusEnum.ACCEPTED or not request.reservation_held):
                continue
            bookings.append(ConfirmedBooking(
                id=request.id,
                instructor_id=instructor_id,
                start_time=slot.start_time,
                end_time=slot.end_time
            ))

        blocked = [s for s in instructor_slots.values() if s.is_blocked]
        return find_conflicts(start, end, sessions, bookings, blocked)

    async def _ensure_no_conflicts(self, slot: TimeSlot) -> None:
        conflicts = await self.check_conflicts(slot.instructor_id, slot.start_time, slot.end_time, exclude_slot_id=slot.id)
        if conflicts:
            log.warning(f"Slot {slot.id} has {len(conflicts)} conflict(s): {[c.reason for c in conflicts]}")
            raise ConflictError(conflicts)

    # --- Price rules ---

    def list_price_rules(self) -> list[PriceRule]:
        return [self._price_rules[t] for t in SessionTypeEnum if t in self._price_rules]

    def get_price_rule(self, session_type: SessionTypeEnum) -> PriceRule:
        rule = self._price_rules.get(session_type)
        if rule is None:
            raise PriceRuleNotFoundError(f"No price rule configured for {session_type.value} sessions.")
        return rule

    def set_price_rule(self, session_type: SessionTypeEnum, data: PriceRuleInput) -> PriceRule:
        rule = PriceRule(**data.model_dump(), session_type=session_type)
        validate_price_rule(rule)
        self._price_rules[session_type] = rule
        log.info(f"Price rule for {session_type.value} set: {rule.min_bid_price}-{rule.max_bid_price}, auto-accept at {rule.auto_accept_threshold}")
        return rule

    def evaluate_bid(self, session_type: SessionTypeEnum, offered_price: Decimal, hours_until_session: float) -> PriceEvaluation:
        rule = self.get_price_rule(session_type)
        return PriceEvaluation(
            session_type=session_type,
            offered_price=offered_price,
            hours_until_session=hours_until_session,
            decision=evaluate(offered_price, rule, hours_until_session)
        )

    # --- Booking requests: reads ---

    async def get_request(self, request_id: UUID) -> BookingRequest:
        """Reads one request, expiring it first if it is overdue."""
        request = self._get_request(request_id)
        if lifecycle.is_overdue(request, self.clock()):
            await self._expire_overdue(request_id)
        return self._with_highest_bid([self._get_request(request_id)])[0]

    async def list_requests(
        self,
        status: Optional[BookingStatusEnum] = None,
        slot_id: Optional[UUID] = None,
        requester_id: Optional[UUID] = None
    ) -> list[BookingRequest]:
        await self.sweep_expired()
        selected = [
            r for r in self._requests.values()
            if (status is None or r.status == status)
            and (slot_id is None or r.slot_id == slot_id)
            and (requester_id is None or r.requester_id == requester_id)
        ]
        return sorted(self._with_highest_bid(selected), key=lambda r: r.created_at)

    # --- Booking requests: transitions ---

    def _check_booking_window(self, window: AvailabilityWindow, slot: TimeSlot, now: datetime) -> None:
        if not window.is_active:
            raise BookingWindowError("This availability window is not accepting bookings.")
        if slot.start_time <= now:
            raise BookingWindowError("This slot has already started.")
        if slot.start_time < now + timedelta(hours=window.min_advance_hours):
            raise BookingWindowError(f"Bookings must be made at least {window.min_advance_hours} hours in advance.")
        if slot.start_time > now + timedelta(hours=window.max_advance_hours):
            raise BookingWindowError(f"Bookings cannot be made more than {window.max_advance_hours} hours in advance.")

    async def submit_request(self, data: BookingRequestCreate) -> BookingRequest:
        """
        Validates and stores a new bid. Bids the price rule marks for auto-accept
        are accepted straight away; if the slot is full they stay pending.
        """
        now = self.clock()
        slot = self.slots.get(data.slot_id)
        window = self.get_window(slot.window_id)
        rule = self.get_price_rule(slot.session_type)

        self._check_booking_window(window, slot, now)
        check_bid_range(data.offered_price, rule)
        await self._ensure_no_conflicts(slot)

        decision = evaluate(data.offered_price, rule, hours_until(slot.start_time, now))
        request = lifecycle.new_request(data, slot, rule, decision, now)
        with self.slots.lock_for(slot.id):
            self._requests[request.id] = request
        log.info(f"Booking request {request.id} submitted for slot {slot.id} at {request.offered_price} ({decision.value}).")
        await self._publish(
            LifecycleEventEnum.REQUEST_SUBMITTED,
            request_id=request.id,
            slot_id=slot.id,
            offered_price=str(request.offered_price),
            decision=decision.value
        )

        if decision == PriceDecisionEnum.AUTO_ACCEPT:
            try:
                return await self.accept_request(request.id)
            except CapacityExceededError as e:
                log.warning(f"Auto-accept of {request.id} failed, left pending: {e}")

        self._refresh_stats()
        return await self.get_request(request.id)

    async def _expire_overdue(self, request_id: UUID) -> Optional[BookingRequest]:
        request = self._get_request(request_id)
        now = self.clock()
        with self.slots.lock_for(request.slot_id):
            current = self._get_request(request_id)
            if not lifecycle.is_overdue(current, now):
                return None
            expired = lifecycle.expire(current, now)
            self._requests[request_id] = expired
        log.info(f"Booking request {request_id} expired (was open until {expired.expires_at}).")
        await self._publish(LifecycleEventEnum.REQUEST_EXPIRED, request_id=request_id, slot_id=expired.slot_id)
        self._refresh_stats()
        return expired

    async def _transition(
        self,
        request_id: UUID,
        attempted: BookingStatusEnum,
        apply: Callable[[BookingRequest, datetime], BookingRequest]
    ) -> BookingRequest:
        """
        Commits one pending-request transition under the slot lock. An overdue
        request is expired instead and the transition fails.
        """
        request = self._get_request(request_id)
        now = self.clock()
        expired = None
        with self.slots.lock_for(request.slot_id):
            current = self._get_request(request_id)
            if lifecycle.is_overdue(current, now):
                expired = lifecycle.expire(current, now)
                self._requests[request_id] = expired
            else:
                updated = apply(current, now)
                self._requests[request_id] = updated

        if expired is not None:
            log.warning(f"Booking request {request_id} expired before it could be {attempted.value}.")
            await self._publish(LifecycleEventEnum.REQUEST_EXPIRED, request_id=request_id, slot_id=expired.slot_id)
            self._refresh_stats()
            raise InvalidTransitionError(request_id, expired.status.value, attempted.value)
        return updated

    def _accept_and_reserve(self, request: BookingRequest, now: datetime) -> BookingRequest:
        accepted = lifecycle.accept(request, now)
        self.slots.reserve(request.slot_id)
        return accepted

    async def accept_request(self, request_id: UUID) -> BookingRequest:
        request = self._get_request(request_id)
        if request.status != BookingStatusEnum.PENDING:
            raise InvalidTransitionError(request_id, request.status.value, BookingStatusEnum.ACCEPTED.value)
        slot = self.slots.get(request.slot_id)
        if not lifecycle.is_overdue(request, self.clock()):
            await self._ensure_no_conflicts(slot)

        try:
            accepted = await self._transition(request_id, BookingStatusEnum.ACCEPTED, self._accept_and_reserve)
        except CapacityExceededError:
            log.warning(f"Cannot accept booking request {request_id}: slot {slot.id} is full.")
            raise
        log.info(f"Accepted booking request {request_id} for slot {slot.id}.")
        await self._publish(LifecycleEventEnum.REQUEST_ACCEPTED, request_id=request_id, slot_id=slot.id)
        await self._request_payment(accepted)
        self._refresh_stats()
        return await self.get_request(request_id)

    async def _request_payment(self, request: BookingRequest) -> None:
        try:
            await self.payment_gateway.request_payment(request.id, request.offered_price)
        except PaymentGatewayError as e:
            # The request stays awaiting; the payment timeout policy resolves it.
            log.error(f"Payment request for {request.id} failed: {e}", exc_info=True)
            return
        await self._publish(
            LifecycleEventEnum.PAYMENT_REQUESTED,
            request_id=request.id,
            slot_id=request.slot_id,
            amount=str(request.offered_price)
        )

    async def reject_request(self, request_id: UUID) -> BookingRequest:
        rejected = await self._transition(request_id, BookingStatusEnum.REJECTED, lifecycle.reject)
        log.info(f"Rejected booking request {request_id}.")
        await self._publish(LifecycleEventEnum.REQUEST_REJECTED, request_id=request_id, slot_id=rejected.slot_id)
        self._refresh_stats()
        return await self.get_request(request_id)

    async def withdraw_request(self, request_id: UUID, requester_id: UUID) -> BookingRequest:
        withdrawn = await self._transition(
            request_id,
            BookingStatusEnum.REJECTED,
            lambda current, now: lifecycle.withdraw(current, requester_id, now)
        )
        log.info(f"Booking request {request_id} withdrawn by {requester_id}.")
        await self._publish(LifecycleEventEnum.REQUEST_WITHDRAWN, request_id=request_id, slot_id=withdrawn.slot_id)
        self._refresh_stats()
        return await self.get_request(request_id)

    async def expire_request(self, request_id: UUID) -> BookingRequest:
        """Expires one request; fails unless it is pending and past its expiry."""
        request = self._get_request(request_id)
        expired = await self._expire_overdue(request_id)
        if expired is None:
            current = self._get_request(request_id)
            # Raises with the precise reason (not pending, or not yet due).
            lifecycle.expire(current, self.clock())
        return await self.get_request(request.id)

    async def sweep_expired(self) -> list[UUID]:
        """Expires every overdue pending request."""
        now = self.clock()
        overdue = [r.id for r in self._requests.values() if lifecycle.is_overdue(r, now)]
        expired = []
        for request_id in overdue:
            if await self._expire_overdue(request_id) is not None:
                expired.append(request_id)
        if expired:
            log.info(f"Expiry sweep expired {len(expired)} booking requests.")
        return expired

    async def bulk_update(self, request_ids: list[UUID], target_status: BookingStatusEnum) -> BulkUpdateResult:
        """Accepts or rejects each request on its own; failures are reported per item."""
        if target_status == BookingStatusEnum.ACCEPTED:
            operation = self.accept_request
        elif target_status == BookingStatusEnum.REJECTED:
            operation = self.reject_request
        else:
            raise ValueError(f"Bulk updates cannot target '{target_status.value}'.")

        results = []
        for request_id in request_ids:
            try:
                updated = await operation(request_id)
                results.append(BulkItemResult(request_id=request_id, success=True, status=updated.status))
            except SchedulingError as e:
                current = self._requests.get(request_id)
                results.append(BulkItemResult(
                    request_id=request_id,
                    success=False,
                    status=current.status if current else None,
                    error_kind=type(e).__name__,
                    error=str(e)
                ))
        result = BulkUpdateResult(results=results)
        log.info(f"Bulk {target_status.value}: {result.succeeded} succeeded, {result.failed} failed.")
        return result

    # --- Payments ---

    async def _payment_transition(self, request_id: UUID, target: PaymentStatusEnum) -> BookingRequest:
        request = self._get_request(request_id)
        now = self.clock()
        with self.slots.lock_for(request.slot_id):
            updated = lifecycle.advance_payment(self._get_request(request_id), target, now)
            self._requests[request_id] = updated
        log.info(f"Payment for booking request {request_id} is now {target.value}.")
        await self._publish(_PAYMENT_EVENTS[target], request_id=request_id, slot_id=updated.slot_id)
        self._refresh_stats()
        return await self.get_request(request_id)

    async def confirm_payment(self, request_id: UUID) -> BookingRequest:
        return await self._payment_transition(request_id, PaymentStatusEnum.PAID)

    async def fail_payment(self, request_id: UUID) -> BookingRequest:
        return await self._payment_transition(request_id, PaymentStatusEnum.FAILED)

    async def expire_payment(self, request_id: UUID) -> BookingRequest:
        return await self._payment_transition(request_id, PaymentStatusEnum.EXPIRED)

    async def record_payment(self, callback: PaymentCallback) -> BookingRequest:
        log.info(f"Payment callback for {callback.request_id}: {callback.outcome.value} (ref={callback.provider_reference})")
        handlers = {
            PaymentOutcomeEnum.PAID: self.confirm_payment,
            PaymentOutcomeEnum.FAILED: self.fail_payment,
            PaymentOutcomeEnum.EXPIRED: self.expire_payment,
        }
        return await handlers[callback.outcome](callback.request_id)

    async def expire_overdue_payments(self, timeout: Optional[timedelta] = None) -> list[UUID]:
        """Timeout policy: payments awaiting longer than `timeout` become expired."""
        timeout = timeout or self.payment_timeout
        now = self.clock()
        overdue = [r.id for r in self._requests.values() if lifecycle.is_payment_overdue(r, now, timeout)]
        expired = []
        for request_id in overdue:
            try:
                await self.expire_payment(request_id)
                expired.append(request_id)
            except InvalidTransitionError as e:
                # A callback settled it in the meantime.
                log.info(f"Skipped payment expiry for {request_id}: {e}")
        return expired

    async def release_reservation(self, request_id: UUID) -> BookingRequest:
        """Gives the slot spot back after a failed or expired payment."""
        request = self._get_request(request_id)
        now = self.clock()
        with self.slots.lock_for(request.slot_id):
            released = lifecycle.release_reservation(self._get_request(request_id), now)
            self.slots.release(request.slot_id)
            self._requests[request_id] = released
        log.info(f"Released reservation of booking request {request_id} on slot {request.slot_id}.")
        await self._publish(LifecycleEventEnum.RESERVATION_RELEASED, request_id=request_id, slot_id=request.slot_id)
        self._refresh_stats()
        return await self.get_request(request_id)

    async def run_sweep(self) -> SweepResult:
        """One pass of the background policies."""
        expired_requests = await self.sweep_expired()
        expired_payments = await self.expire_overdue_payments()
        return SweepResult(expired_requests=expired_requests, expired_payments=expired_payments)

    # --- Stats ---

    def session_stats(self) -> SessionStats:
        self._refresh_stats()
        return self.stats


def get_scheduling_engine(request: Request) -> SchedulingEngine:
    """FastAPI dependency: the engine built by the app lifespan."""
    return request.app.state.scheduling_engine
