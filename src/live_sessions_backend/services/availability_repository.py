'''
Availability persistence collaborator.

The engine never talks to storage directly; it reads and writes windows
through an AvailabilityRepository.
'''
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..common.logger import log
from ..database import models as db_models
from ..database.engine import get_db_session
from ..models.availability import AvailabilityWindow


class AvailabilityRepository(ABC):
    """Storage port for availability windows."""

    @abstractmethod
    async def list_windows(self) -> list[AvailabilityWindow]:
        ...

    @abstractmethod
    async def get_window(self, window_id: UUID) -> Optional[AvailabilityWindow]:
        ...

    @abstractmethod
    async def save_window(self, window: AvailabilityWindow) -> None:
        """Insert or replace."""
        ...

    @abstractmethod
    async def delete_window(self, window_id: UUID) -> None:
        ...


class InMemoryAvailabilityRepository(AvailabilityRepository):
    """Dict-backed store. The default when no database is configured."""

    def __init__(self, windows: Optional[list[AvailabilityWindow]] = None):
        self._windows: dict[UUID, AvailabilityWindow] = {w.id: w for w in (windows or [])}

    async def list_windows(self) -> list[AvailabilityWindow]:
        return list(self._windows.values())

    async def get_window(self, window_id: UUID) -> Optional[AvailabilityWindow]:
        return self._windows.get(window_id)

    async def save_window(self, window: AvailabilityWindow) -> None:
        self._windows[window.id] = window

    async def delete_window(self, window_id: UUID) -> None:
        self._windows.pop(window_id, None)


def _as_utc(value: datetime) -> datetime:
    # Some drivers (SQLite) hand back naive datetimes; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlAlchemyAvailabilityRepository(AvailabilityRepository):
    """
    Stores windows in the `availability_windows` table through the async
    session factory created by the app lifespan.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    def _to_model(row: db_models.AvailabilityWindows) -> AvailabilityWindow:
        window = AvailabilityWindow.model_validate(row)
        return window.model_copy(update={
            "created_at": _as_utc(row.created_at),
            "updated_at": _as_utc(row.updated_at),
        })

    async def list_windows(self) -> list[AvailabilityWindow]:
        async with get_db_session(self.session_factory) as session:
            stmt = select(db_models.AvailabilityWindows).order_by(
                db_models.AvailabilityWindows.specific_date,
                db_models.AvailabilityWindows.start_time
            )
            result = await session.execute(stmt)
            return [self._to_model(row) for row in result.scalars().all()]

    async def get_window(self, window_id: UUID) -> Optional[AvailabilityWindow]:
        async with get_db_session(self.session_factory) as session:
            row = await session.get(db_models.AvailabilityWindows, window_id)
            return self._to_model(row) if row else None

    async def save_window(self, window: AvailabilityWindow) -> None:
        values = window.model_dump()
        values["session_type"] = window.session_type.value
        values["created_at"] = _as_utc(window.created_at)
        values["updated_at"] = _as_utc(window.updated_at)

        async with get_db_session(self.session_factory) as session:
            row = await session.get(db_models.AvailabilityWindows, window.id)
            if row is None:
                session.add(db_models.AvailabilityWindows(**values))
            else:
                for key, value in values.items():
                    setattr(row, key, value)
        log.info(f"Persisted availability window {window.id}.")

    async def delete_window(self, window_id: UUID) -> None:
        async with get_db_session(self.session_factory) as session:
            await session.execute(
                delete(db_models.AvailabilityWindows).where(db_models.AvailabilityWindows.id == window_id)
            )
        log.info(f"Deleted availability window {window_id} from storage.")
