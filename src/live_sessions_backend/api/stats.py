'''
API endpoint for Session Stats.
'''
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from ..models import stats as stats_models
from ..services.scheduling_engine import SchedulingEngine, get_scheduling_engine


class StatsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/stats",
            tags=["Stats"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.get_session_stats,
                methods=["GET"],
                response_model=stats_models.SessionStats)

    async def get_session_stats(
        self,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Pending requests, earnings, average bid, upcoming sessions,
        completion rate and popular start times.
        """
        return engine.session_stats()


# Instantiate the class and export its router
stats_api = StatsAPI()
router = stats_api.router
