'''
Callback endpoint for the payment collaborator.
'''
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from ..models import booking as booking_models
from ..services.scheduling_engine import SchedulingEngine, get_scheduling_engine


class PaymentsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/payments",
            tags=["Payments"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/callbacks",
                self.payment_callback,
                methods=["POST"],
                response_model=booking_models.BookingRequest)

    async def payment_callback(
        self,
        callback: booking_models.PaymentCallback,
        engine: Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
    ) -> Any:
        """
        Moves an awaiting payment to paid, failed or expired.
        """
        return await engine.record_payment(callback)


# Instantiate the class and export its router
payments_api = PaymentsAPI()
router = payments_api.router
