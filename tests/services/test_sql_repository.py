"""
Tests for the SQLAlchemy availability repository, against a throwaway SQLite file.
"""
import datetime

import pytest

from src.live_sessions_backend.database import engine as db_engine
from src.live_sessions_backend.services.availability_repository import SqlAlchemyAvailabilityRepository
from src.live_sessions_backend.services.scheduling_engine import SchedulingEngine
from tests.factories import AvailabilityWindowCreateFactory, AvailabilityWindowFactory


@pytest.fixture(scope="function")
async def sql_repository(tmp_path):
    """
    1. Creates an engine on a temporary SQLite file.
    2. Creates the tables.
    3. Disposes of the engine after the test.
    """
    session_factory = db_engine.create_db_engine_and_session_factory(f"sqlite+aiosqlite:///{tmp_path / 'availability.db'}")
    await db_engine.create_tables()
    yield SqlAlchemyAvailabilityRepository(session_factory)
    await db_engine.dispose_db_engine()


@pytest.mark.anyio
class TestSqlAlchemyAvailabilityRepository:
    """Test class for SqlAlchemyAvailabilityRepository."""

    async def test_save_and_get(self, sql_repository: SqlAlchemyAvailabilityRepository):
        print("\n--- Testing window persistence ---")
        window = AvailabilityWindowFactory(title="Evening", notes="Room 4", timezone="Europe/London")

        await sql_repository.save_window(window)
        loaded = await sql_repository.get_window(window.id)

        assert loaded == window
        assert loaded.created_at.tzinfo is not None

    async def test_save_replaces_existing_row(self, sql_repository: SqlAlchemyAvailabilityRepository):
        window = AvailabilityWindowFactory()
        await sql_repository.save_window(window)

        await sql_repository.save_window(window.model_copy(update={"end_time": datetime.time(13, 0)}))

        windows = await sql_repository.list_windows()
        assert len(windows) == 1
        assert windows[0].end_time == datetime.time(13, 0)

    async def test_list_is_ordered_and_delete(self, sql_repository: SqlAlchemyAvailabilityRepository):
        later = AvailabilityWindowFactory(specific_date=datetime.date(2024, 6, 12))
        earlier = AvailabilityWindowFactory()
        await sql_repository.save_window(later)
        await sql_repository.save_window(earlier)

        assert [w.id for w in await sql_repository.list_windows()] == [earlier.id, later.id]

        await sql_repository.delete_window(earlier.id)
        assert await sql_repository.get_window(earlier.id) is None
        assert [w.id for w in await sql_repository.list_windows()] == [later.id]

    async def test_engine_reloads_from_database(self, sql_repository: SqlAlchemyAvailabilityRepository, engine: SchedulingEngine):
        """A restarted engine regenerates the same slots from stored windows."""
        engine.repository = sql_repository
        window = await engine.create_window(AvailabilityWindowCreateFactory())
        before = [s.id for s in engine.slots.for_window(window.id)]

        restarted = SchedulingEngine(repository=sql_repository)
        await restarted.load()

        assert [s.id for s in restarted.slots.for_window(window.id)] == before
