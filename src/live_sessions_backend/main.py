'''

'''
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .database.engine import create_db_engine_and_session_factory, create_tables, dispose_db_engine
from .common.logger import log
from .common.config import settings
from .services.availability_repository import AvailabilityRepository, InMemoryAvailabilityRepository, SqlAlchemyAvailabilityRepository
from .services.expiry_sweeper import ExpirySweeper
from .services.notifications import LoggingNotifier
from .services.payment_gateway import build_payment_gateway
from .services.scheduling_engine import SchedulingEngine
from .api import availability, slots, booking_requests, payments, price_rules, stats
from .api.errors import register_exception_handlers

async def build_repository() -> AvailabilityRepository:
    """SQL storage when a database URL is configured, memory otherwise."""
    if not settings.database_url:
        log.info("No DATABASE_URL configured; availability windows are kept in memory.")
        return InMemoryAvailabilityRepository()
    session_factory = create_db_engine_and_session_factory()
    await create_tables()
    return SqlAlchemyAvailabilityRepository(session_factory)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")
    repository = await build_repository()
    engine = SchedulingEngine(
        repository=repository,
        payment_gateway=build_payment_gateway(),
        notifier=LoggingNotifier()
    )
    await engine.load()
    sweeper = ExpirySweeper(engine)
    sweeper.start()

    app.state.scheduling_engine = engine
    app.state.expiry_sweeper = sweeper

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    log.info("Application lifespan shutdown...")
    await sweeper.stop()
    if settings.database_url:
        await dispose_db_engine()


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan

)

# --- Add CORS Middleware ---
origins = [
    # URL of testing frontend
    "http://0.0.0.0:8080",
    "http://localhost",
    "http://localhost:3000",
]

# Extend with environment-specific origins
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    # List of origins allowed (or "*" for all)
    allow_origins=origins,
    # Allow cookies to be included
    allow_credentials=True,
    # Allow all methods (GET, POST, etc.)
    allow_methods=["*"],
    # Allow all headers
    allow_headers=["*"],)
# --- End of CORS Middleware ---

register_exception_handlers(app)

@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}

app.include_router(availability.router)
app.include_router(slots.router)
app.include_router(booking_requests.router)
app.include_router(payments.router)
app.include_router(price_rules.router)
app.include_router(stats.router)
