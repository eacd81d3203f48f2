from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

DAY_ORDER = {
    "Monday": 0,
    "Tuesday": 1,
    "Wednesday": 2,
    "Thursday": 3,
    "Friday": 4,
    "Saturday": 5,
    "Sunday": 6,
}

DAY_SHORT_MAP = {
    "Mon": "Monday",
    "Tue": "Tuesday",
    "Wed": "Wednesday",
    "Thu": "Thursday",
    "Fri": "Friday",
    "Sat": "Saturday",
    "Sun": "Sunday",
}

SessionType = Literal["lecture", "lab", "tutorial", "seminar"]
ConflictKind = Literal["faculty", "room", "self-overlap"]


def normalize_day(value: str) -> str:
    day = value.strip()
    return DAY_SHORT_MAP.get(day, day)


def minutes_to_time(value: int) -> str:
    hours = value // 60
    minutes = value % 60
    return f"{hours:02d}:{minutes:02d}"


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Half-open intervals: touching endpoints do not overlap.
    return start_a < end_b and end_a > start_b


def new_entry_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TimeWindow:
    start: int
    end: int

    def intersects(self, start: int, end: int) -> bool:
        return intervals_overlap(self.start, self.end, start, end)


@dataclass(frozen=True)
class CohortConstraint:
    cohort_id: str
    daily_window: TimeWindow
    break_windows: tuple[TimeWindow, ...]
    slot_duration_minutes: int
    working_days: tuple[str, ...]
    department: str | None = None


@dataclass(frozen=True)
class TimeSlot:
    day: str
    start: int
    end: int


@dataclass(frozen=True)
class SessionRequest:
    course_id: str
    cohort_id: str
    faculty_candidates: tuple[str, ...]
    duration_slots: int = 1
    room_id: str | None = None
    session_type: SessionType = "lecture"


@dataclass
class ScheduleEntry:
    day: str
    start: int
    end: int
    course_id: str
    faculty_id: str | None
    room_id: str
    cohort_id: str | None = None
    session_type: SessionType = "lecture"
    entry_id: str = field(default_factory=new_entry_id)

    def overlaps(self, other: "ScheduleEntry") -> bool:
        return self.day == other.day and intervals_overlap(self.start, self.end, other.start, other.end)


@dataclass(frozen=True, eq=False)
class ConflictRecord:
    entry_a: ScheduleEntry
    entry_b: ScheduleEntry
    kind: ConflictKind
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> tuple[str, frozenset[str]]:
        return self.kind, frozenset((self.entry_a.entry_id, self.entry_b.entry_id))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConflictRecord):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


@dataclass(frozen=True)
class UnplaceableSession:
    request: SessionRequest
    faculty_id: str | None
    room_id: str | None
    reason: str


@dataclass(frozen=True)
class UnresolvedConflict:
    conflict: ConflictRecord
    advice: tuple[str, ...]
