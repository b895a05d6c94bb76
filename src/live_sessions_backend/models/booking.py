'''
Booking request (bid) models
'''
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from ..database.db_enums import (
    BookingStatusEnum,
    PaymentStatusEnum,
    PaymentOutcomeEnum,
    PriceDecisionEnum,
    LifecycleEventEnum
)


class BookingRequestCreate(BaseModel):
    """
    What a learner sends when bidding on a slot.
    """
    slot_id: UUID
    requester_id: UUID
    offered_price: Decimal = Field(..., ge=0)
    message: str = ""


class BookingRequest(BaseModel):
    """
    A single bid and its lifecycle state.
    Frozen: every transition returns a new record.
    """
    id: UUID
    slot_id: UUID
    requester_id: UUID
    offered_price: Decimal
    message: str = ""
    status: BookingStatusEnum = BookingStatusEnum.PENDING
    payment_status: PaymentStatusEnum = PaymentStatusEnum.NONE
    price_decision: Optional[PriceDecisionEnum] = None
    created_at: datetime
    expires_at: datetime
    responded_at: Optional[datetime] = None
    payment_updated_at: Optional[datetime] = None
    withdrawn: bool = False
    reservation_held: bool = False
    # Derived on read, never stored as truth.
    is_highest_bid: bool = False

    model_config = ConfigDict(frozen=True)


class WithdrawInput(BaseModel):
    requester_id: UUID


class BulkUpdateInput(BaseModel):
    request_ids: list[UUID] = Field(..., min_length=1)
    target_status: BookingStatusEnum

    @field_validator("target_status")
    @classmethod
    def only_manual_targets(cls, value: BookingStatusEnum) -> BookingStatusEnum:
        if value not in (BookingStatusEnum.ACCEPTED, BookingStatusEnum.REJECTED):
            raise ValueError("Bulk updates can only accept or reject requests.")
        return value


class BulkItemResult(BaseModel):
    request_id: UUID
    success: bool
    status: Optional[BookingStatusEnum] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None


class BulkUpdateResult(BaseModel):
    results: list[BulkItemResult]

    @computed_field
    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)


class SweepResult(BaseModel):
    expired_requests: list[UUID] = Field(default_factory=list)
    expired_payments: list[UUID] = Field(default_factory=list)


class PaymentCallback(BaseModel):
    """
    Signal from the payment collaborator for a request awaiting payment.
    """
    request_id: UUID
    outcome: PaymentOutcomeEnum
    provider_reference: Optional[str] = None


class LifecycleEvent(BaseModel):
    type: LifecycleEventEnum
    occurred_at: datetime
    request_id: Optional[UUID] = None
    slot_id: Optional[UUID] = None
    window_id: Optional[UUID] = None
    payload: dict[str, Any] = Field(default_factory=dict)
