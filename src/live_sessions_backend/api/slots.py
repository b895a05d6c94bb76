'''
API endpoints for generated Time Slots.
'''
from datetime import date
from typing import Annotated, Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..models import availability as availability_models
from ..models import scheduling as scheduling_models
from ..services.scheduling_engine import SchedulingEngine, get_scheduling_engine


class SlotsAPI:
    """
    Slot reads, instructor blocks and conflict checks.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/slots",
            tags=["Slots"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/available",
                self.available_slots,
                methods=["GET"],
                response_model=List[availability_models.SlotRead])

        self.router.add_api_route(
                "/conflicts",
                self.check_conflicts,
                methods=["POST"],
                response_model=scheduling_models.ConflictCheckResult)

        self.router.add_api_route(
                "/{slot_id}",
                self.get_slot,
                methods=["GET"],
                response_model=availability_models.SlotRead)

        self.router.add_api_route(
                "/{slot_id}/block",
                self.block_slot,
                methods=["POST"],
                response_model=availability_models.SlotRead)

        self.router.add_api_route(
                "/{slot_id}/unblock",
                self.unblock_slot,
                methods=["POST"],
                response_model=availability_models.SlotRead)

        self.router.add_api_route(
                "/{slot_id}/capacity",
                self.slot_capacity,
                methods=["GET"],
                response_model=availability_models.SlotCapacity)

        self.router.add_api_route(
                "/{slot_id}/alternatives",
                self.alternatives,
                methods=["GET"],
                response_model=List[availability_models.SlotRead])

    async def available_slots(
        self,
        on_date: date,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)],
        instructor_id: Annotated[UUID | None, Query(description="Optional filter for Instructor ID")] = None
    ) -> List[Any]:
        """
        Bookable slots on a date, earliest first.
        """
        return engine.available_slots_for_date(on_date, instructor_id)

    async def check_conflicts(
        self,
        check_data: scheduling_models.ConflictCheckInput,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Reports every session, booking and block overlapping the interval.
        """
        conflicts = await engine.check_conflicts(check_data.instructor_id, check_data.start_time, check_data.end_time)
        return scheduling_models.ConflictCheckResult(has_conflicts=bool(conflicts), conflicts=conflicts)

    async def get_slot(
        self,
        slot_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return engine.get_slot(slot_id)

    async def block_slot(
        self,
        slot_id: UUID,
        block_data: availability_models.BlockSlotInput,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return await engine.block_slot(slot_id, block_data.reason)

    async def unblock_slot(
        self,
        slot_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return await engine.unblock_slot(slot_id)

    async def slot_capacity(
        self,
        slot_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return engine.slot_capacity(slot_id)

    async def alternatives(
        self,
        slot_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)],
        limit: Annotated[int, Query(ge=1, le=20)] = 3
    ) -> List[Any]:
        """
        Nearest bookable slots of the same instructor on the same day.
        """
        return engine.suggest_alternatives(slot_id, limit)


# Instantiate the class and export its router
slots_api = SlotsAPI()
router = slots_api.router
