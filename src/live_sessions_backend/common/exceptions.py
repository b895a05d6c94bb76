"""
This file contains custom, application-specific exceptions.
"""
from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling engine."""
    pass


# --- Validation ---

class WindowValidationError(SchedulingError):
    """Raised when an availability window is malformed. Carries every message found."""
    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class PriceRuleValidationError(SchedulingError):
    """Raised when a price rule breaks min <= base <= max or the threshold bounds."""
    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class BookingWindowError(SchedulingError):
    """Raised when a slot cannot take bids right now (inactive window, lead-time bounds)."""
    pass


class PriceOutOfRangeError(SchedulingError):
    """Raised when a bid falls outside [min_bid_price, max_bid_price]."""
    def __init__(self, offered_price: Any, min_bid_price: Any, max_bid_price: Any):
        self.offered_price = offered_price
        self.min_bid_price = min_bid_price
        self.max_bid_price = max_bid_price
        super().__init__(
            f"Offered price {offered_price} is outside the allowed range "
            f"[{min_bid_price}, {max_bid_price}]."
        )


# --- Scheduling state ---

class ConflictError(SchedulingError):
    """Raised when a candidate interval overlaps sessions, bookings or blocked slots."""
    def __init__(self, conflicts: list[Any]):
        self.conflicts = list(conflicts)
        reasons = ", ".join(c.reason for c in self.conflicts)
        super().__init__(f"{len(self.conflicts)} scheduling conflict(s): {reasons}")


class CapacityExceededError(SchedulingError):
    """Raised when reserve() is attempted on a slot already at max_bookings."""
    def __init__(self, slot_id: Any, max_bookings: int):
        self.slot_id = slot_id
        self.max_bookings = max_bookings
        super().__init__(f"Slot {slot_id} is already at its capacity of {max_bookings}.")


class InvalidTransitionError(SchedulingError):
    """Raised when a lifecycle transition is attempted from a non-eligible state."""
    def __init__(self, request_id: Any, current: str, attempted: str, reason: Optional[str] = None):
        self.request_id = request_id
        self.current = current
        self.attempted = attempted
        message = f"Booking request {request_id} cannot go to '{attempted}' from '{current}'."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class NotRequesterError(SchedulingError):
    """Raised when someone other than the submitter tries to withdraw a request."""
    def __init__(self, request_id: Any, requester_id: Any):
        self.request_id = request_id
        self.requester_id = requester_id
        super().__init__(f"User {requester_id} did not submit booking request {request_id}.")


# --- Lookups ---

class NotFoundError(SchedulingError):
    """Base for unknown identifiers."""
    pass

class WindowNotFoundError(NotFoundError):
    """Raised when an availability window ID is not known."""
    pass

class SlotNotFoundError(NotFoundError):
    """Raised when a slot ID does not belong to any stored window."""
    pass

class BookingRequestNotFoundError(NotFoundError):
    """Raised when a booking request ID is not known."""
    pass

class PriceRuleNotFoundError(NotFoundError):
    """Raised when no price rule is configured for a session type."""
    pass


# --- Collaborators ---

class PaymentGatewayError(Exception):
    """Raised when the payment collaborator cannot be reached or refuses a request."""
    pass
