'''
Price rule policy for incoming bids.
'''
from datetime import datetime
from decimal import Decimal

from ..common.exceptions import PriceOutOfRangeError, PriceRuleValidationError
from ..database.db_enums import PriceDecisionEnum
from ..models.pricing import PriceRule


def validate_price_rule(rule: PriceRule) -> None:
    """Raises PriceRuleValidationError listing every broken bound."""
    errors = []
    if rule.min_bid_price > rule.max_bid_price:
        errors.append('Minimum bid price cannot exceed maximum bid price')
    if not (rule.min_bid_price <= rule.base_price <= rule.max_bid_price):
        errors.append('Base price must be between the minimum and maximum bid prices')
    if not (rule.min_bid_price <= rule.auto_accept_threshold <= rule.max_bid_price):
        errors.append('Auto-accept threshold must be between the minimum and maximum bid prices')
    if rule.lead_time_cutoff_hours < 0:
        errors.append('Lead time cutoff cannot be negative')
    if errors:
        raise PriceRuleValidationError(errors)


def hours_until(session_start: datetime, now: datetime) -> float:
    return (session_start - now).total_seconds() / 3600


def is_within_bid_range(offered_price: Decimal, rule: PriceRule) -> bool:
    return rule.min_bid_price <= offered_price <= rule.max_bid_price


def check_bid_range(offered_price: Decimal, rule: PriceRule) -> None:
    if not is_within_bid_range(offered_price, rule):
        raise PriceOutOfRangeError(offered_price, rule.min_bid_price, rule.max_bid_price)


def evaluate(offered_price: Decimal, rule: PriceRule, hours_until_session: float) -> PriceDecisionEnum:
    """
    reject: outside [min, max].
    autoAccept: at or above the threshold with at least the lead-time cutoff to go.
    manualReview: any other valid bid.
    """
    if not is_within_bid_range(offered_price, rule):
        return PriceDecisionEnum.REJECT
    if offered_price >= rule.auto_accept_threshold and hours_until_session >= rule.lead_time_cutoff_hours:
        return PriceDecisionEnum.AUTO_ACCEPT
    return PriceDecisionEnum.MANUAL_REVIEW
