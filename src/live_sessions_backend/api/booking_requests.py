'''
API endpoints for Booking Requests (bids).
'''
from typing import Annotated, Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ..database.db_enums import BookingStatusEnum
from ..models import booking as booking_models
from ..services.scheduling_engine import SchedulingEngine, get_scheduling_engine


class BookingRequestsAPI:
    """
    Submission, reads and lifecycle transitions of booking requests.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/booking-requests",
            tags=["Booking Requests"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.list_requests,
                methods=["GET"],
                response_model=List[booking_models.BookingRequest])

        self.router.add_api_route(
                "/",
                self.submit_request,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=booking_models.BookingRequest)

        self.router.add_api_route(
                "/bulk",
                self.bulk_update,
                methods=["POST"],
                response_model=booking_models.BulkUpdateResult)

        self.router.add_api_route(
                "/sweep",
                self.sweep,
                methods=["POST"],
                response_model=booking_models.SweepResult)

        self.router.add_api_route(
                "/{request_id}",
                self.get_request,
                methods=["GET"],
                response_model=booking_models.BookingRequest)

        self.router.add_api_route(
                "/{request_id}/accept",
                self.accept_request,
                methods=["POST"],
                response_model=booking_models.BookingRequest)

        self.router.add_api_route(
                "/{request_id}/reject",
                self.reject_request,
                methods=["POST"],
                response_model=booking_models.BookingRequest)

        self.router.add_api_route(
                "/{request_id}/withdraw",
                self.withdraw_request,
                methods=["POST"],
                response_model=booking_models.BookingRequest)

        self.router.add_api_route(
                "/{request_id}/expire",
                self.expire_request,
                methods=["POST"],
                response_model=booking_models.BookingRequest)

        self.router.add_api_route(
                "/{request_id}/release",
                self.release_reservation,
                methods=["POST"],
                response_model=booking_models.BookingRequest)

    async def list_requests(
        self,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)],
        status_filter: Annotated[BookingStatusEnum | None, Query(alias="status", description="Optional filter for status")] = None,
        slot_id: Annotated[UUID | None, Query(description="Optional filter for Slot ID")] = None,
        requester_id: Annotated[UUID | None, Query(description="Optional filter for Requester ID")] = None
    ) -> List[Any]:
        """
        Lists requests, oldest first. Overdue requests are expired before listing.
        """
        return await engine.list_requests(status_filter, slot_id, requester_id)

    async def submit_request(
        self,
        request_data: booking_models.BookingRequestCreate,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Submits a bid. It may come back already accepted if the price rule allows it.
        """
        return await engine.submit_request(request_data)

    async def bulk_update(
        self,
        bulk_data: booking_models.BulkUpdateInput,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return await engine.bulk_update(bulk_data.request_ids, bulk_data.target_status)

    async def sweep(
        self,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Runs the expiry and payment-timeout policies now.
        """
        return await engine.run_sweep()

    async def get_request(
        self,
        request_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return await engine.get_request(request_id)

    async def accept_request(
        self,
        request_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return await engine.accept_request(request_id)

    async def reject_request(
        self,
        request_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return await engine.reject_request(request_id)

    async def withdraw_request(
        self,
        request_id: UUID,
        withdraw_data: booking_models.WithdrawInput,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        The submitter cancels their own pending request.
        """
        return await engine.withdraw_request(request_id, withdraw_data.requester_id)

    async def expire_request(
        self,
        request_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        return await engine.expire_request(request_id)

    async def release_reservation(
        self,
        request_id: UUID,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Gives the slot spot back after a failed or expired payment.
        """
        return await engine.release_reservation(request_id)


# Instantiate the class and export its router
booking_requests_api = BookingRequestsAPI()
router = booking_requests_api.router
