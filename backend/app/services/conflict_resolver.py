from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from app.services.conflict_service import Matcher, detect_conflicts, match_shared_resource
from app.services.schedule_model import (
    ConflictRecord,
    ScheduleEntry,
    TimeSlot,
    UnresolvedConflict,
    minutes_to_time,
)
from app.services.slot_allocator import OccupancyLedger
from app.services.time_grid import contiguous_runs

logger = logging.getLogger(__name__)


def remediation_advice(conflict: ConflictRecord) -> tuple[str, ...]:
    entry = conflict.entry_b
    cohort = entry.cohort_id or "this timetable"
    advice: list[str] = []
    if conflict.kind == "room":
        advice.append(f"Add rooms or pin course {entry.course_id} to a room other than {entry.room_id}")
    elif conflict.kind == "faculty":
        advice.append(f"Reduce concurrent load for faculty {entry.faculty_id} or add faculty candidates for {entry.course_id}")
    else:
        advice.append(f"Drop or move one of the overlapping entries on {entry.day}")
    advice.append(f"Extend operating hours or working days for cohort {cohort}")
    advice.append("Reduce the number of concurrent sessions and rerun generation")
    return tuple(advice)


@dataclass
class ResolutionResult:
    entries: list[ScheduleEntry] = field(default_factory=list)
    relocated: list[ScheduleEntry] = field(default_factory=list)
    unresolved: list[UnresolvedConflict] = field(default_factory=list)


class ConflictResolver:
    """Moves one side of each conflict to a slot that is free on every axis.

    Faculty, room and cohort of a moved entry never change; only its day and
    times do. The occupancy ledger is rebuilt from the complete current entry
    list before each move, so a later move cannot undo an earlier fix.
    Nothing is relaxed: a conflict with no free alternative is reported.
    """

    def __init__(
        self,
        grids: Mapping[str, list[TimeSlot]],
        *,
        matcher: Matcher = match_shared_resource,
        immovable_ids: Iterable[str] = (),
    ) -> None:
        self.grids = grids
        self.matcher = matcher
        self.immovable_ids = set(immovable_ids)

    def resolve(self, entries: Iterable[ScheduleEntry], conflicts: Iterable[ConflictRecord]) -> ResolutionResult:
        working = list(entries)
        result = ResolutionResult(entries=working)

        for conflict in conflicts:
            first, second = conflict.entry_a, conflict.entry_b
            if not first.overlaps(second) or self.matcher(first, second) is None:
                continue

            target = second if second.entry_id not in self.immovable_ids else first
            if target.entry_id in self.immovable_ids:
                continue

            ledger = OccupancyLedger.from_entries(entry for entry in working if entry.entry_id != target.entry_id)
            placement = self._free_placement(target, ledger)
            if placement is None:
                logger.warning(
                    "No free slot to relocate course=%s cohort=%s (%s conflict)",
                    target.course_id,
                    target.cohort_id,
                    conflict.kind,
                )
                continue

            day, start, end = placement
            logger.info(
                "Relocated course=%s cohort=%s from %s %s to %s %s",
                target.course_id,
                target.cohort_id,
                target.day,
                minutes_to_time(target.start),
                day,
                minutes_to_time(start),
            )
            target.day, target.start, target.end = day, start, end
            result.relocated.append(target)

        for remaining in detect_conflicts(working, self.matcher):
            if remaining.entry_a.entry_id in self.immovable_ids and remaining.entry_b.entry_id in self.immovable_ids:
                continue
            result.unresolved.append(UnresolvedConflict(remaining, remediation_advice(remaining)))
        return result

    def _free_placement(self, entry: ScheduleEntry, ledger: OccupancyLedger) -> tuple[str, int, int] | None:
        grid = self.grids.get(entry.cohort_id or "", [])
        if not grid:
            return None
        slot_length = grid[0].end - grid[0].start
        span = entry.end - entry.start
        if span <= 0 or span % slot_length:
            return None

        for run in contiguous_runs(grid, span // slot_length):
            day, start, end = run[0].day, run[0].start, run[-1].end
            if (day, start) == (entry.day, entry.start):
                continue
            if ledger.placement_free(
                cohort_id=entry.cohort_id,
                faculty_id=entry.faculty_id,
                room_id=entry.room_id,
                day=day,
                start=start,
                end=end,
            ):
                return day, start, end
        return None
