'''
API endpoints for Price Rules.
'''
from decimal import Decimal
from typing import Annotated, Any, List

from fastapi import APIRouter, Depends, Query

from ..database.db_enums import SessionTypeEnum
from ..models import pricing as pricing_models
from ..services.scheduling_engine import SchedulingEngine, get_scheduling_engine


class PriceRulesAPI:
    """
    One price rule per session type.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/price-rules",
            tags=["Price Rules"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.list_rules,
                methods=["GET"],
                response_model=List[pricing_models.PriceRule])

        self.router.add_api_route(
                "/{session_type}",
                self.get_rule,
                methods=["GET"],
                response_model=pricing_models.PriceRule)

        self.router.add_api_route(
                "/{session_type}",
                self.set_rule,
                methods=["PUT"],
                response_model=pricing_models.PriceRule)

        self.router.add_api_route(
                "/{session_type}/evaluate",
                self.evaluate_bid,
                methods=["GET"],
                response_model=pricing_models.PriceEvaluation)

    async def list_rules(
        self,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> List[Any]:
        return engine.list_price_rules()

    async def get_rule(
        self,
        session_type: SessionTypeEnum,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return engine.get_price_rule(session_type)

    async def set_rule(
        self,
        session_type: SessionTypeEnum,
        rule_data: pricing_models.PriceRuleInput,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Creates or replaces the rule for a session type.
        """
        return engine.set_price_rule(session_type, rule_data)

    async def evaluate_bid(
        self,
        session_type: SessionTypeEnum,
        offered_price: Annotated[Decimal, Query(ge=0)],
        hours_until_session: Annotated[float, Query()],
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Dry run: what the rule would decide for a bid, without submitting it.
        """
        return engine.evaluate_bid(session_type, offered_price, hours_until_session)


# Instantiate the class and export its router
price_rules_api = PriceRulesAPI()
router = price_rules_api.router
