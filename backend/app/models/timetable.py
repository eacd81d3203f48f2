from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class PersonalTimetable(Base):
    """A person's manually built timetable; clashes are stored as last computed."""

    __tablename__ = "personal_timetables"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), unique=True, index=True, nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    entries: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    clashes: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class CohortTimetable(Base):
    """Generated timetable of one cohort together with the run's diagnostics."""

    __tablename__ = "cohort_timetables"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    cohort_id: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    cohort_constraint: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    entries: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    unplaceable: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    unresolved_conflicts: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    generated_by: Mapped[str] = mapped_column(String(100), nullable=False, default="automated_system")
    last_generated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
