'''
API endpoints for managing Availability Windows.
'''
from datetime import date
from typing import Annotated, Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import PlainTextResponse

from ..models import availability as availability_models
from ..services.scheduling_engine import SchedulingEngine, get_scheduling_engine


class AvailabilityAPI:
    """
    A class to encapsulate CRUD endpoints for Availability Windows and their slots.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/availability",
            tags=["Availability"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.list_windows,
                methods=["GET"],
                response_model=List[availability_models.AvailabilityWindow])

        self.router.add_api_route(
                "/",
                self.create_window,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=availability_models.AvailabilityWindow)

        # Static paths are registered before '/{window_id}' so they are not captured by it.
        self.router.add_api_route(
                "/upcoming",
                self.upcoming_windows,
                methods=["GET"],
                response_model=List[availability_models.AvailabilityWindow])

        self.router.add_api_route(
                "/weekly-summary",
                self.weekly_summary,
                methods=["GET"],
                response_model=List[availability_models.WeeklySummaryEntry])

        self.router.add_api_route(
                "/stats",
                self.overall_stats,
                methods=["GET"],
                response_model=availability_models.AvailabilityStats)

        self.router.add_api_route(
                "/export",
                self.export_windows,
                methods=["GET"],
                response_class=PlainTextResponse)

        self.router.add_api_route(
                "/import",
                self.import_windows,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=availability_models.AvailabilityImportResult)

        self.router.add_api_route(
                "/{window_id}",
                self.get_window,
                methods=["GET"],
                response_model=availability_models.AvailabilityWindow)

        self.router.add_api_route(
                "/{window_id}",
                self.update_window,
                methods=["PATCH"],
                response_model=availability_models.AvailabilityWindow)

        self.router.add_api_route(
                "/{window_id}",
                self.delete_window,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

        self.router.add_api_route(
                "/{window_id}/slots",
                self.list_window_slots,
                methods=["GET"],
                response_model=List[availability_models.SlotRead])

        self.router.add_api_route(
                "/{window_id}/stats",
                self.window_stats,
                methods=["GET"],
                response_model=availability_models.AvailabilityStats)

    async def list_windows(
        self,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)],
        start_date: Annotated[date | None, Query(description="Inclusive lower bound on the window date")] = None,
        end_date: Annotated[date | None, Query(description="Inclusive upper bound on the window date")] = None,
        instructor_id: Annotated[UUID | None, Query(description="Optional filter for Instructor ID")] = None
    ) -> List[Any]:
        """
        Lists windows, ordered by date and start time.
        """
        return engine.list_windows(start_date, end_date, instructor_id)

    async def create_window(
        self,
        window_data: availability_models.AvailabilityWindowCreate,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Declares a new availability window and generates its slots.
        """
        return await engine.create_window(window_data)

    async def upcoming_windows(
        self,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)],
        days: Annotated[int, Query(ge=0, le=365)] = 7,
        instructor_id: Annotated[UUID | None, Query(description="Optional filter for Instructor ID")] = None
    ) -> List[Any]:
        return engine.upcoming_windows(days, instructor_id)

    async def weekly_summary(
        self,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)],
        instructor_id: Annotated[UUID | None, Query(description="Optional filter for Instructor ID")] = None
    ) -> List[Any]:
        return engine.weekly_summary(instructor_id)

    async def overall_stats(
        self,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)],
        instructor_id: Annotated[UUID | None, Query(description="Optional filter for Instructor ID")] = None
    ) -> Any:
        return engine.availability_stats(instructor_id=instructor_id)

    async def export_windows(
        self,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)],
        instructor_id: Annotated[UUID | None, Query(description="Optional filter for Instructor ID")] = None
    ) -> PlainTextResponse:
        """
        Exports windows as CSV.
        """
        return PlainTextResponse(engine.export_windows(instructor_id), media_type="text/csv")

    async def import_windows(
        self,
        import_data: availability_models.AvailabilityImportInput,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Imports windows from CSV. Nothing is created if any row is invalid.
        """
        created = await engine.import_windows(import_data.csv_data, import_data.instructor_id)
        return availability_models.AvailabilityImportResult(created=created)

    async def get_window(
        self,
        window_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return engine.get_window(window_id)

    async def update_window(
        self,
        window_id: UUID,
        window_data: availability_models.AvailabilityWindowUpdate,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Edits a window. Slots are regenerated; bookings and blocks carry over.
        """
        return await engine.update_window(window_id, window_data)

    async def delete_window(
        self,
        window_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Response:
        await engine.delete_window(window_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    async def list_window_slots(
        self,
        window_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> List[Any]:
        return engine.window_slots(window_id)

    async def window_stats(
        self,
        window_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return engine.availability_stats(window_id=window_id)


# Create an instance of the class and export its router
availability_api = AvailabilityAPI()
router = availability_api.router
