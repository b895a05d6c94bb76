'''
Static enums shared by the ORM models, the pydantic models and the engine.
'''
import enum


class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member names."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class SessionTypeEnum(ListableEnum):
    INDIVIDUAL = "INDIVIDUAL"
    SMALL_GROUP = "SMALL_GROUP"
    LARGE_GROUP = "LARGE_GROUP"
    WORKSHOP = "WORKSHOP"
    MASTERCLASS = "MASTERCLASS"


class SlotStatusEnum(ListableEnum):
    AVAILABLE = "available"
    BOOKED = "booked"
    BLOCKED = "blocked"
    PAST = "past"


class BookingStatusEnum(ListableEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class PaymentStatusEnum(ListableEnum):
    NONE = "none"
    AWAITING = "awaiting"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"


class PriceDecisionEnum(ListableEnum):
    AUTO_ACCEPT = "autoAccept"
    MANUAL_REVIEW = "manualReview"
    REJECT = "reject"


class ConflictTypeEnum(ListableEnum):
    SESSION = "session"
    BOOKING = "booking"
    BLOCKED = "blocked"


class PaymentOutcomeEnum(ListableEnum):
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


class LifecycleEventEnum(ListableEnum):
    WINDOW_CREATED = "windowCreated"
    WINDOW_UPDATED = "windowUpdated"
    WINDOW_DELETED = "windowDeleted"
    SLOT_BLOCKED = "slotBlocked"
    SLOT_UNBLOCKED = "slotUnblocked"
    REQUEST_SUBMITTED = "requestSubmitted"
    REQUEST_ACCEPTED = "requestAccepted"
    REQUEST_REJECTED = "requestRejected"
    REQUEST_WITHDRAWN = "requestWithdrawn"
    REQUEST_EXPIRED = "requestExpired"
    PAYMENT_REQUESTED = "paymentRequested"
    PAYMENT_PAID = "paymentPaid"
    PAYMENT_FAILED = "paymentFailed"
    PAYMENT_EXPIRED = "paymentExpired"
    RESERVATION_RELEASED = "reservationReleased"
