'''

'''
from decimal import Decimal

from pydantic import BaseModel, Field


class SessionStats(BaseModel):
    """
    Read-only projection over the booking requests and slots.
    """
    pending_requests: int = 0
    total_earnings: Decimal = Decimal("0")
    upcoming_sessions: int = 0
    completion_rate: float = 0.0
    average_bid: Decimal = Decimal("0.00")
    popular_time_slots: list[str] = Field(default_factory=list, description="HH:MM start times, most requested first")
