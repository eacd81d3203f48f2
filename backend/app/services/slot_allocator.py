from __future__ import annotations

import logging
import random
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from app.services.schedule_model import (
    CohortConstraint,
    ScheduleEntry,
    SessionRequest,
    TimeSlot,
    UnplaceableSession,
    intervals_overlap,
)
from app.services.time_grid import contiguous_runs

logger = logging.getLogger(__name__)

DEPARTMENT_ROOMS = {
    "CSE": "C101",
    "ECE": "E201",
    "MECH": "M301",
    "CIVIL": "V401",
    "EEE": "EE501",
}
DEFAULT_ROOM = "G101"

RoomResolver = Callable[[SessionRequest], str]


def department_room_resolver(constraints: Mapping[str, CohortConstraint]) -> RoomResolver:
    """Pinned room first, then the cohort department's room, then the general room."""

    def resolve(request: SessionRequest) -> str:
        if request.room_id:
            return request.room_id
        constraint = constraints.get(request.cohort_id)
        department = (constraint.department or "").strip().upper() if constraint else ""
        return DEPARTMENT_ROOMS.get(department, DEFAULT_ROOM)

    return resolve


class OccupancyLedger:
    """Busy intervals per (axis, identity, day) for cohorts, faculty and rooms."""

    def __init__(self) -> None:
        self._busy: dict[tuple[str, str, str], list[tuple[int, int]]] = defaultdict(list)

    @classmethod
    def from_entries(cls, entries: Iterable[ScheduleEntry], *, include_cohort: bool = True) -> "OccupancyLedger":
        ledger = cls()
        for entry in entries:
            ledger.occupy(entry, include_cohort=include_cohort)
        return ledger

    def is_free(self, axis: str, identity: str | None, day: str, start: int, end: int) -> bool:
        if identity is None:
            return True
        return not any(
            intervals_overlap(start, end, busy_start, busy_end)
            for busy_start, busy_end in self._busy.get((axis, identity, day), ())
        )

    def placement_free(
        self,
        *,
        cohort_id: str | None,
        faculty_id: str | None,
        room_id: str | None,
        day: str,
        start: int,
        end: int,
    ) -> bool:
        return (
            self.is_free("cohort", cohort_id, day, start, end)
            and self.is_free("faculty", faculty_id, day, start, end)
            and self.is_free("room", room_id, day, start, end)
        )

    def occupy(self, entry: ScheduleEntry, *, include_cohort: bool = True) -> None:
        span = (entry.start, entry.end)
        if include_cohort and entry.cohort_id is not None:
            self._busy[("cohort", entry.cohort_id, entry.day)].append(span)
        if entry.faculty_id is not None:
            self._busy[("faculty", entry.faculty_id, entry.day)].append(span)
        self._busy[("room", entry.room_id, entry.day)].append(span)


@dataclass
class AllocationResult:
    entries: list[ScheduleEntry] = field(default_factory=list)
    unplaceable: list[UnplaceableSession] = field(default_factory=list)


class SlotAllocator:
    """First-fit placement of session requests onto cohort time grids.

    Requests are taken in the order given, which is their priority. For each
    one the cohort grid is scanned in emission order and the first placement
    where the cohort, a faculty candidate and the mapped room are all free
    wins. Passing ``seed`` shuffles the scan order reproducibly instead.
    """

    def __init__(
        self,
        grids: Mapping[str, list[TimeSlot]],
        *,
        room_resolver: RoomResolver | None = None,
        seed: int | None = None,
        reserved_entries: Iterable[ScheduleEntry] = (),
    ) -> None:
        self.grids = grids
        self.room_resolver = room_resolver or department_room_resolver({})
        self.random = random.Random(seed) if seed is not None else None
        # Other cohorts' stored entries hold faculty and room time only.
        self.ledger = OccupancyLedger.from_entries(reserved_entries, include_cohort=False)

    def _placements(self, request: SessionRequest) -> list[tuple[TimeSlot, ...]]:
        placements = contiguous_runs(self.grids.get(request.cohort_id, []), request.duration_slots)
        if self.random is not None:
            self.random.shuffle(placements)
        return placements

    def allocate(self, requests: Iterable[SessionRequest]) -> AllocationResult:
        result = AllocationResult()
        for request in requests:
            entry, unplaceable = self._place(request)
            if entry is not None:
                self.ledger.occupy(entry)
                result.entries.append(entry)
            else:
                logger.warning(
                    "Unplaceable session course=%s cohort=%s: %s",
                    request.course_id,
                    request.cohort_id,
                    unplaceable.reason,
                )
                result.unplaceable.append(unplaceable)

        logger.info(
            "Allocated %d session(s), %d unplaceable",
            len(result.entries),
            len(result.unplaceable),
        )
        return result

    def _place(self, request: SessionRequest) -> tuple[ScheduleEntry | None, UnplaceableSession | None]:
        room_id = self.room_resolver(request)

        if not request.faculty_candidates:
            return None, UnplaceableSession(request, None, room_id, "no faculty candidates")
        if request.cohort_id not in self.grids:
            return None, UnplaceableSession(request, None, room_id, f"no time grid for cohort {request.cohort_id}")

        placements = self._placements(request)
        if not placements:
            return None, UnplaceableSession(
                request,
                request.faculty_candidates[-1],
                room_id,
                f"cohort grid has no run of {request.duration_slots} contiguous slot(s)",
            )

        last_faculty: str | None = None
        for run in placements:
            day, start, end = run[0].day, run[0].start, run[-1].end
            if not self.ledger.is_free("cohort", request.cohort_id, day, start, end):
                continue
            if not self.ledger.is_free("room", room_id, day, start, end):
                continue
            for faculty_id in request.faculty_candidates:
                last_faculty = faculty_id
                if self.ledger.is_free("faculty", faculty_id, day, start, end):
                    entry = ScheduleEntry(
                        day=day,
                        start=start,
                        end=end,
                        course_id=request.course_id,
                        faculty_id=faculty_id,
                        room_id=room_id,
                        cohort_id=request.cohort_id,
                        session_type=request.session_type,
                    )
                    return entry, None

        return None, UnplaceableSession(
            request,
            last_faculty or request.faculty_candidates[-1],
            room_id,
            "no slot with cohort, faculty and room all free",
        )
