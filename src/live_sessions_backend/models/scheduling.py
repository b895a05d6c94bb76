'''
Records consumed by the conflict detector.
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import ConflictTypeEnum


class ScheduledSession(BaseModel):
    """A live session already on the instructor's calendar."""
    id: UUID
    instructor_id: UUID
    title: Optional[str] = None
    start_time: datetime
    end_time: datetime

    model_config = ConfigDict(frozen=True)


class ConfirmedBooking(BaseModel):
    """A booking confirmed outside this engine (e.g. by the sessions service)."""
    id: UUID
    instructor_id: UUID
    learner_name: Optional[str] = None
    start_time: datetime
    end_time: datetime

    model_config = ConfigDict(frozen=True)


class Conflict(BaseModel):
    type: ConflictTypeEnum
    start_time: datetime
    end_time: datetime
    reason: str


class ConflictCheckInput(BaseModel):
    instructor_id: UUID
    start_time: datetime
    end_time: datetime


class ConflictCheckResult(BaseModel):
    has_conflicts: bool
    conflicts: list[Conflict] = Field(default_factory=list)
