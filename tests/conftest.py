'''
Pytest configuration for the scheduling engine.

This file sets up fixtures for:
1. A controllable clock, so expiry and lead-time rules are deterministic.
2. A SchedulingEngine wired to in-memory collaborators and test doubles.
3. A FastAPI TestClient whose engine dependency is overridden with that engine.
'''

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

# --- FastAPI & Testing Imports ---
from fastapi.testclient import TestClient

# --- Constant Imports ----
from tests.constants import TEST_NOW
from tests.factories import AvailabilityWindowCreateFactory, PriceRuleInputFactory

# --- Application Imports ---
from src.live_sessions_backend.main import app
from src.live_sessions_backend.common.config import settings
from src.live_sessions_backend.database.db_enums import SessionTypeEnum
from src.live_sessions_backend.models.availability import AvailabilityWindow, TimeSlot
from src.live_sessions_backend.services.availability_repository import InMemoryAvailabilityRepository
from src.live_sessions_backend.services.notifications import InMemoryNotifier
from src.live_sessions_backend.services.payment_gateway import PaymentGateway
from src.live_sessions_backend.services.scheduling_engine import SchedulingEngine, get_scheduling_engine
from src.live_sessions_backend.services.session_directory import InMemorySessionDirectory


class FakeClock:
    """Callable clock that only moves when a test says so."""
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingPaymentGateway(PaymentGateway):
    """Remembers every payment the engine asked for."""
    def __init__(self):
        self.requests: list[tuple[UUID, Decimal]] = []

    async def request_payment(self, request_id: UUID, amount: Decimal) -> None:
        self.requests.append((request_id, amount))


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio'.
    2. Promotes the scope to 'session'.
    """
    return "asyncio"


@pytest.fixture(scope="function")
def clock() -> FakeClock:
    return FakeClock(TEST_NOW)


@pytest.fixture(scope="function")
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture(scope="function")
def payment_gateway() -> RecordingPaymentGateway:
    return RecordingPaymentGateway()


@pytest.fixture(scope="function")
def session_directory() -> InMemorySessionDirectory:
    return InMemorySessionDirectory()


@pytest.fixture(scope="function")
def repository() -> InMemoryAvailabilityRepository:
    return InMemoryAvailabilityRepository()


@pytest.fixture(scope="function")
def engine(
    repository: InMemoryAvailabilityRepository,
    session_directory: InMemorySessionDirectory,
    payment_gateway: RecordingPaymentGateway,
    notifier: InMemoryNotifier,
    clock: FakeClock
) -> SchedulingEngine:
    """
    An engine with the test price rule configured for INDIVIDUAL sessions.
    """
    engine = SchedulingEngine(
        repository=repository,
        session_directory=session_directory,
        payment_gateway=payment_gateway,
        notifier=notifier,
        clock=clock
    )
    engine.set_price_rule(SessionTypeEnum.INDIVIDUAL, PriceRuleInputFactory())
    return engine


@pytest.fixture(scope="function")
async def window(engine: SchedulingEngine) -> AvailabilityWindow:
    """09:00-12:00 on the test date, three one-hour slots, one booking each."""
    return await engine.create_window(AvailabilityWindowCreateFactory())


@pytest.fixture(scope="function")
def window_slots(engine: SchedulingEngine, window: AvailabilityWindow) -> list[TimeSlot]:
    return engine.slots.for_window(window.id)


@pytest.fixture(scope="function")
def client(engine: SchedulingEngine, monkeypatch) -> TestClient:
    """
    1. Keeps the app's lifespan on in-memory storage with no background sweeper.
    2. Runs the lifespan through the TestClient context manager.
    3. Overrides the engine dependency with the test engine (fake clock included).
    """
    monkeypatch.setattr(settings, "DATABASE_URL", None)
    monkeypatch.setattr(settings, "DATABASE_URL_TEST", None)
    monkeypatch.setattr(settings, "EXPIRY_SWEEP_INTERVAL_SECONDS", 0)

    app.dependency_overrides[get_scheduling_engine] = lambda: engine

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
