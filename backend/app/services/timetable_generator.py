from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from time import perf_counter

from app.core.exceptions import InvalidConstraintError
from app.services.conflict_resolver import ConflictResolver
from app.services.conflict_service import detect_conflicts
from app.services.schedule_model import (
    CohortConstraint,
    ScheduleEntry,
    SessionRequest,
    TimeSlot,
    TimeWindow,
    UnplaceableSession,
    UnresolvedConflict,
)
from app.services.slot_allocator import RoomResolver, SlotAllocator, department_room_resolver
from app.services.time_grid import build_time_grid

logger = logging.getLogger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

# Operating hours used by the campus: years one to three share a window,
# final year starts later.
COHORT_PRESETS: dict[str, dict] = {
    "year1to3": {
        "daily_window": TimeWindow(8 * 60 + 15, 16 * 60),
        "break_windows": (
            TimeWindow(10 * 60 + 15, 10 * 60 + 30),
            TimeWindow(12 * 60 + 30, 13 * 60 + 30),
        ),
        "slot_duration_minutes": 60,
        "working_days": WEEKDAYS,
    },
    "finalYear": {
        "daily_window": TimeWindow(10 * 60, 16 * 60 + 10),
        "break_windows": (
            TimeWindow(11 * 60 + 30, 11 * 60 + 45),
            TimeWindow(13 * 60 + 15, 14 * 60 + 15),
        ),
        "slot_duration_minutes": 60,
        "working_days": WEEKDAYS,
    },
}


def preset_constraint(preset: str, cohort_id: str, department: str | None = None) -> CohortConstraint:
    if preset not in COHORT_PRESETS:
        raise InvalidConstraintError("preset", f"unknown preset {preset!r}", cohort_id)
    return CohortConstraint(cohort_id=cohort_id, department=department, **COHORT_PRESETS[preset])


class GenerationStage(str, Enum):
    building_grid = "building-grid"
    allocating = "allocating"
    detecting = "detecting"
    resolving = "resolving"
    done = "done"


@dataclass
class GenerationResult:
    entries: list[ScheduleEntry] = field(default_factory=list)
    unplaceable: list[UnplaceableSession] = field(default_factory=list)
    unresolved_conflicts: list[UnresolvedConflict] = field(default_factory=list)
    relocated: list[ScheduleEntry] = field(default_factory=list)
    stage: GenerationStage = GenerationStage.done

    def entries_by_cohort(self) -> dict[str, list[ScheduleEntry]]:
        grouped: dict[str, list[ScheduleEntry]] = defaultdict(list)
        for entry in self.entries:
            grouped[entry.cohort_id or ""].append(entry)
        return dict(grouped)


class TimetableGenerator:
    """One generation run: grid, allocate, detect, resolve.

    ``reserved_entries`` are entries already stored for cohorts outside this
    run. They block faculty and room time, take part in detection, and are
    never moved or returned.
    """

    def __init__(
        self,
        constraints: Iterable[CohortConstraint],
        *,
        room_resolver: RoomResolver | None = None,
        seed: int | None = None,
        reserved_entries: Iterable[ScheduleEntry] = (),
    ) -> None:
        self.constraints = {}
        for constraint in constraints:
            if constraint.cohort_id in self.constraints:
                raise InvalidConstraintError("cohort_id", f"duplicate cohort {constraint.cohort_id}", constraint.cohort_id)
            self.constraints[constraint.cohort_id] = constraint
        self.room_resolver = room_resolver or department_room_resolver(self.constraints)
        self.seed = seed
        self.reserved_entries = [
            entry for entry in reserved_entries if entry.cohort_id not in self.constraints
        ]
        self.stage: GenerationStage | None = None

    def _advance(self, stage: GenerationStage) -> None:
        logger.debug("Generation stage %s -> %s", self.stage.value if self.stage else "start", stage.value)
        self.stage = stage

    def build_grids(self) -> dict[str, list[TimeSlot]]:
        self._advance(GenerationStage.building_grid)
        return {cohort_id: build_time_grid(constraint) for cohort_id, constraint in self.constraints.items()}

    def run(self, requests: Iterable[SessionRequest]) -> GenerationResult:
        started_at = perf_counter()
        grids = self.build_grids()

        self._advance(GenerationStage.allocating)
        allocator = SlotAllocator(
            grids,
            room_resolver=self.room_resolver,
            seed=self.seed,
            reserved_entries=self.reserved_entries,
        )
        allocation = allocator.allocate(requests)

        self._advance(GenerationStage.detecting)
        # Reserved entries go first so a new entry is always the side that moves.
        combined = [*self.reserved_entries, *allocation.entries]
        conflicts = detect_conflicts(combined)

        self._advance(GenerationStage.resolving)
        resolver = ConflictResolver(grids, immovable_ids=[entry.entry_id for entry in self.reserved_entries])
        resolution = resolver.resolve(combined, conflicts)

        self._advance(GenerationStage.done)
        result = GenerationResult(
            entries=allocation.entries,
            unplaceable=allocation.unplaceable,
            unresolved_conflicts=resolution.unresolved,
            relocated=resolution.relocated,
            stage=self.stage,
        )
        logger.info(
            "Timetable generation finished for %d cohort(s): entries=%d unplaceable=%d conflicts=%d unresolved=%d in %.3fs",
            len(self.constraints),
            len(result.entries),
            len(result.unplaceable),
            len(conflicts),
            len(result.unresolved_conflicts),
            perf_counter() - started_at,
        )
        return result
