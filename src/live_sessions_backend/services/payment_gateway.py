'''
Payment collaborator. The engine only asks for a payment; the outcome comes
back later through the payment callback endpoint.
'''
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional
from uuid import UUID

import httpx

from ..common.config import settings
from ..common.exceptions import PaymentGatewayError
from ..common.logger import log


class PaymentGateway(ABC):

    @abstractmethod
    async def request_payment(self, request_id: UUID, amount: Decimal) -> None:
        ...


class LoggingPaymentGateway(PaymentGateway):
    """Used when no gateway URL is configured. Records the request and returns."""

    async def request_payment(self, request_id: UUID, amount: Decimal) -> None:
        log.info(f"Payment requested for booking request {request_id}: amount={amount}")


class HttpPaymentGateway(PaymentGateway):
    """
    Posts payment requests to an external provider.
    Uses httpx for async requests.
    """
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.PAYMENT_GATEWAY_URL or "").rstrip("/")
        self.timeout = timeout if timeout is not None else settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS

    async def request_payment(self, request_id: UUID, amount: Decimal) -> None:
        url = f"{self.base_url}/payments"
        payload = {"request_id": str(request_id), "amount": str(amount)}
        log.info(f"Requesting payment for booking request {request_id} from {url}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status() # Raise an exception for HTTP errors (4xx or 5xx)
        except httpx.RequestError as e:
            log.error(f"Payment gateway unreachable for booking request {request_id}: {e}", exc_info=True)
            raise PaymentGatewayError(f"Payment gateway unreachable: {e}") from e
        except httpx.HTTPStatusError as e:
            log.error(f"Payment gateway refused booking request {request_id}: {e.response.status_code} - {e.response.text}", exc_info=True)
            raise PaymentGatewayError(f"Payment gateway returned {e.response.status_code}") from e


def build_payment_gateway() -> PaymentGateway:
    if settings.PAYMENT_GATEWAY_URL:
        return HttpPaymentGateway()
    return LoggingPaymentGateway()
