'''
Price rule models and bid evaluation results
'''
from decimal import Decimal

from pydantic import BaseModel, Field

from ..database.db_enums import SessionTypeEnum, PriceDecisionEnum


class PriceRuleInput(BaseModel):
    """
    Payload for configuring the price rule of one session type.
    The session type itself comes from the URL.
    """
    base_price: Decimal = Field(..., ge=0)
    min_bid_price: Decimal = Field(..., ge=0)
    max_bid_price: Decimal = Field(..., ge=0)
    auto_accept_threshold: Decimal = Field(..., ge=0)
    lead_time_cutoff_hours: int = Field(0, ge=0)


class PriceRule(PriceRuleInput):
    session_type: SessionTypeEnum


class PriceEvaluation(BaseModel):
    session_type: SessionTypeEnum
    offered_price: Decimal
    hours_until_session: float
    decision: PriceDecisionEnum
