from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Enum, Index, Integer, PrimaryKeyConstraint, String, Text, Time, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import datetime
import uuid

from .db_enums import SessionTypeEnum

class Base(DeclarativeBase):
    pass



class AvailabilityWindows(Base):
    __tablename__ = 'availability_windows'
    __table_args__ = (
        CheckConstraint('start_time < end_time', name='availability_windows_start_before_end'),
        CheckConstraint('slot_duration_minutes >= 15', name='availability_windows_min_duration'),
        CheckConstraint('buffer_minutes >= 0', name='availability_windows_buffer_non_negative'),
        CheckConstraint('max_bookings_per_slot >= 1', name='availability_windows_min_capacity'),
        CheckConstraint('min_advance_hours >= 1 AND max_advance_hours >= min_advance_hours', name='availability_windows_advance_bounds'),
        PrimaryKeyConstraint('id', name='availability_windows_pkey'),
        Index('idx_availability_windows_instructor_date', 'instructor_id', 'specific_date')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    instructor_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    specific_date: Mapped[datetime.date] = mapped_column(Date)
    start_time: Mapped[datetime.time] = mapped_column(Time)
    end_time: Mapped[datetime.time] = mapped_column(Time)
    slot_duration_minutes: Mapped[int] = mapped_column(Integer)
    buffer_minutes: Mapped[int] = mapped_column(Integer, server_default=text('0'))
    max_bookings_per_slot: Mapped[int] = mapped_column(Integer, server_default=text('1'))
    min_advance_hours: Mapped[int] = mapped_column(Integer, server_default=text('1'))
    max_advance_hours: Mapped[int] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=text('true'))
    session_type: Mapped[str] = mapped_column(Enum(*SessionTypeEnum.get_all_names(), name='session_type_enum'))
    timezone: Mapped[str] = mapped_column(String(64))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    title: Mapped[Optional[str]] = mapped_column(String(255))
    notes: Mapped[Optional[str]] = mapped_column(Text)
