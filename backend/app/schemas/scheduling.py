from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from app.services.schedule_model import (
    DAY_ORDER,
    CohortConstraint,
    ConflictRecord,
    ScheduleEntry,
    SessionRequest,
    TimeWindow,
    UnplaceableSession,
    UnresolvedConflict,
    minutes_to_time,
    new_entry_id,
    normalize_day,
)
from app.services.timetable_generator import COHORT_PRESETS, WEEKDAYS, GenerationResult, preset_constraint

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

SessionTypeValue = Literal["lecture", "lab", "tutorial", "seminar"]


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def validate_day_value(value: str) -> str:
    day = normalize_day(value)
    if day not in DAY_ORDER:
        raise ValueError("Invalid day value")
    return day


class TimeWindowPayload(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    def to_window(self) -> TimeWindow:
        return TimeWindow(parse_time_to_minutes(self.start), parse_time_to_minutes(self.end))

    @classmethod
    def from_window(cls, window: TimeWindow) -> "TimeWindowPayload":
        return cls(start=minutes_to_time(window.start), end=minutes_to_time(window.end))


class CohortConstraintPayload(BaseModel):
    # Window ordering is checked by the grid builder so that it reports the
    # offending field as an InvalidConstraintError.
    cohort_id: str = Field(alias="cohortId", min_length=1, max_length=100)
    preset: str | None = None
    department: str | None = Field(default=None, max_length=50)
    daily_window: TimeWindowPayload | None = Field(default=None, alias="dailyWindow")
    break_windows: list[TimeWindowPayload] = Field(default_factory=list, alias="breakWindows", max_length=20)
    slot_duration_minutes: int = Field(default=60, alias="slotDurationMinutes")
    working_days: list[str] = Field(default_factory=lambda: list(WEEKDAYS), alias="workingDays", max_length=7)

    model_config = {
        "populate_by_name": True,
    }

    @field_validator("working_days")
    @classmethod
    def normalize_days(cls, value: list[str]) -> list[str]:
        return [normalize_day(day) for day in value]

    @model_validator(mode="after")
    def validate_source(self) -> "CohortConstraintPayload":
        if self.preset is None and self.daily_window is None:
            raise ValueError("Either preset or dailyWindow is required")
        if self.preset is not None and self.preset not in COHORT_PRESETS:
            raise ValueError(f"Unknown preset {self.preset!r}; expected one of {', '.join(sorted(COHORT_PRESETS))}")
        return self

    def to_constraint(self) -> CohortConstraint:
        if self.preset is not None:
            return preset_constraint(self.preset, self.cohort_id, self.department)
        return CohortConstraint(
            cohort_id=self.cohort_id,
            daily_window=self.daily_window.to_window(),
            break_windows=tuple(item.to_window() for item in self.break_windows),
            slot_duration_minutes=self.slot_duration_minutes,
            working_days=tuple(self.working_days),
            department=self.department,
        )

    @classmethod
    def from_constraint(cls, constraint: CohortConstraint) -> "CohortConstraintPayload":
        return cls(
            cohort_id=constraint.cohort_id,
            department=constraint.department,
            daily_window=TimeWindowPayload.from_window(constraint.daily_window),
            break_windows=[TimeWindowPayload.from_window(item) for item in constraint.break_windows],
            slot_duration_minutes=constraint.slot_duration_minutes,
            working_days=list(constraint.working_days),
        )


class SessionRequestPayload(BaseModel):
    course_id: str = Field(alias="courseId", min_length=1, max_length=100)
    cohort_id: str = Field(alias="cohortId", min_length=1, max_length=100)
    faculty_candidates: list[str] = Field(default_factory=list, alias="facultyCandidates", max_length=20)
    duration_slots: int = Field(default=1, alias="durationSlots", ge=1, le=8)
    room_id: str | None = Field(default=None, alias="roomId", min_length=1, max_length=100)
    session_type: SessionTypeValue = Field(default="lecture", alias="sessionType")

    model_config = {
        "populate_by_name": True,
    }

    def to_request(self) -> SessionRequest:
        return SessionRequest(
            course_id=self.course_id,
            cohort_id=self.cohort_id,
            faculty_candidates=tuple(self.faculty_candidates),
            duration_slots=self.duration_slots,
            room_id=self.room_id,
            session_type=self.session_type,
        )


class ScheduleEntryPayload(BaseModel):
    id: str = Field(default_factory=new_entry_id, min_length=1, max_length=36)
    day: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    course_id: str = Field(alias="courseId", min_length=1, max_length=100)
    faculty_id: str | None = Field(default=None, alias="facultyId", max_length=100)
    room_id: str = Field(alias="roomId", min_length=1, max_length=100)
    cohort_id: str | None = Field(default=None, alias="cohortId", max_length=100)
    session_type: SessionTypeValue = Field(default="lecture", alias="sessionType")

    model_config = {
        "populate_by_name": True,
    }

    @field_validator("day")
    @classmethod
    def validate_day(cls, value: str) -> str:
        return validate_day_value(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_time_order(self) -> "ScheduleEntryPayload":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("End time must be after start time")
        return self

    def to_entry(self) -> ScheduleEntry:
        return ScheduleEntry(
            day=self.day,
            start=parse_time_to_minutes(self.start_time),
            end=parse_time_to_minutes(self.end_time),
            course_id=self.course_id,
            faculty_id=self.faculty_id,
            room_id=self.room_id,
            cohort_id=self.cohort_id,
            session_type=self.session_type,
            entry_id=self.id,
        )

    @classmethod
    def from_entry(cls, entry: ScheduleEntry) -> "ScheduleEntryPayload":
        return cls(
            id=entry.entry_id,
            day=entry.day,
            start_time=minutes_to_time(entry.start),
            end_time=minutes_to_time(entry.end),
            course_id=entry.course_id,
            faculty_id=entry.faculty_id,
            room_id=entry.room_id,
            cohort_id=entry.cohort_id,
            session_type=entry.session_type,
        )


class ConflictRecordOut(BaseModel):
    entry_a: ScheduleEntryPayload = Field(alias="entryA")
    entry_b: ScheduleEntryPayload = Field(alias="entryB")
    kind: Literal["faculty", "room", "self-overlap"]
    detected_at: datetime = Field(alias="detectedAt")

    model_config = {
        "populate_by_name": True,
    }

    @classmethod
    def from_record(cls, record: ConflictRecord) -> "ConflictRecordOut":
        return cls(
            entry_a=ScheduleEntryPayload.from_entry(record.entry_a),
            entry_b=ScheduleEntryPayload.from_entry(record.entry_b),
            kind=record.kind,
            detected_at=record.detected_at,
        )


class UnplaceableSessionOut(BaseModel):
    course_id: str = Field(alias="courseId")
    cohort_id: str = Field(alias="cohortId")
    faculty_id: str | None = Field(default=None, alias="facultyId")
    room_id: str | None = Field(default=None, alias="roomId")
    reason: str

    model_config = {
        "populate_by_name": True,
    }

    @classmethod
    def from_unplaceable(cls, item: UnplaceableSession) -> "UnplaceableSessionOut":
        return cls(
            course_id=item.request.course_id,
            cohort_id=item.request.cohort_id,
            faculty_id=item.faculty_id,
            room_id=item.room_id,
            reason=item.reason,
        )


class UnresolvedConflictOut(BaseModel):
    conflict: ConflictRecordOut
    advice: list[str] = Field(default_factory=list)

    @classmethod
    def from_unresolved(cls, item: UnresolvedConflict) -> "UnresolvedConflictOut":
        return cls(conflict=ConflictRecordOut.from_record(item.conflict), advice=list(item.advice))


class GenerateTimetableRequest(BaseModel):
    cohorts: list[CohortConstraintPayload] = Field(min_length=1, max_length=50)
    requests: list[SessionRequestPayload] = Field(default_factory=list, max_length=2000)
    semester: int = Field(default=1, ge=1, le=20)
    seed: int | None = Field(default=None, ge=0, le=2_000_000_000)

    @model_validator(mode="after")
    def validate_cohort_references(self) -> "GenerateTimetableRequest":
        cohort_ids = [item.cohort_id for item in self.cohorts]
        duplicates = sorted({cohort_id for cohort_id in cohort_ids if cohort_ids.count(cohort_id) > 1})
        if duplicates:
            raise ValueError(f"Duplicate cohort id(s): {', '.join(duplicates)}")
        unknown = sorted({item.cohort_id for item in self.requests} - set(cohort_ids))
        if unknown:
            raise ValueError(f"Session request(s) reference unknown cohort id(s): {', '.join(unknown)}")
        return self


class CohortTimetableRequest(BaseModel):
    constraint: CohortConstraintPayload
    requests: list[SessionRequestPayload] = Field(default_factory=list, max_length=2000)
    semester: int = Field(default=1, ge=1, le=20)
    seed: int | None = Field(default=None, ge=0, le=2_000_000_000)


class GenerationSummaryOut(BaseModel):
    stage: str
    entries: list[ScheduleEntryPayload] = Field(default_factory=list)
    unplaceable: list[UnplaceableSessionOut] = Field(default_factory=list)
    unresolved_conflicts: list[UnresolvedConflictOut] = Field(default_factory=list, alias="unresolvedConflicts")
    relocated_count: int = Field(default=0, alias="relocatedCount")

    model_config = {
        "populate_by_name": True,
    }

    @classmethod
    def from_result(cls, result: GenerationResult) -> "GenerationSummaryOut":
        return cls(
            stage=result.stage.value,
            entries=[ScheduleEntryPayload.from_entry(entry) for entry in result.entries],
            unplaceable=[UnplaceableSessionOut.from_unplaceable(item) for item in result.unplaceable],
            unresolved_conflicts=[UnresolvedConflictOut.from_unresolved(item) for item in result.unresolved_conflicts],
            relocated_count=len(result.relocated),
        )


class CohortTimetableOut(BaseModel):
    cohort_id: str = Field(alias="cohortId")
    semester: int
    constraint: CohortConstraintPayload | None = None
    entries: list[ScheduleEntryPayload] = Field(default_factory=list)
    unplaceable: list[UnplaceableSessionOut] = Field(default_factory=list)
    unresolved_conflicts: list[UnresolvedConflictOut] = Field(default_factory=list, alias="unresolvedConflicts")
    generated_by: str = Field(alias="generatedBy")
    last_generated: datetime | None = Field(default=None, alias="lastGenerated")

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
    }


class CohortPresetOut(BaseModel):
    name: str
    constraint: CohortConstraintPayload
