from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from app.services.schedule_model import ConflictKind, ConflictRecord, ScheduleEntry

Matcher = Callable[[ScheduleEntry, ScheduleEntry], ConflictKind | None]


def match_shared_resource(first: ScheduleEntry, second: ScheduleEntry) -> ConflictKind | None:
    if first.faculty_id is not None and first.faculty_id == second.faculty_id:
        return "faculty"
    if first.room_id == second.room_id:
        return "room"
    return None


def match_same_owner(first: ScheduleEntry, second: ScheduleEntry) -> ConflictKind | None:
    # Every entry in one timetable belongs to the same person or cohort.
    return "self-overlap"


def detect_conflicts(
    entries: Iterable[ScheduleEntry],
    matcher: Matcher = match_shared_resource,
    *,
    detected_at: datetime | None = None,
) -> list[ConflictRecord]:
    """Pairwise overlap scan over ``entries`` under the identity rule ``matcher``.

    Entries are bucketed by day and compared as half-open intervals. Records
    come out ordered by (i, j) positions in the input, i < j, so ``entry_b``
    is always the later of the two entries.
    """
    timestamp = detected_at or datetime.now(timezone.utc)

    # O(N^2) per day is fine for one term's catalogue.
    by_day: dict[str, list[tuple[int, ScheduleEntry]]] = defaultdict(list)
    for position, entry in enumerate(entries):
        by_day[entry.day].append((position, entry))

    found: list[tuple[int, int, ConflictRecord]] = []
    for day_entries in by_day.values():
        for index, (position_a, first) in enumerate(day_entries):
            for position_b, second in day_entries[index + 1:]:
                if not first.overlaps(second):
                    continue
                kind = matcher(first, second)
                if kind is None:
                    continue
                found.append((position_a, position_b, ConflictRecord(first, second, kind, timestamp)))

    found.sort(key=lambda item: (item[0], item[1]))
    return [record for _, _, record in found]


def detect_clashes(entries: Iterable[ScheduleEntry], *, detected_at: datetime | None = None) -> list[ConflictRecord]:
    """Self-overlap check for one timetable: nobody attends two things at once."""
    return detect_conflicts(entries, match_same_owner, detected_at=detected_at)


class Timetable:
    """One cohort's or person's entries for a term; clashes are always recomputed."""

    def __init__(self, entries: Iterable[ScheduleEntry] = ()) -> None:
        self.entries: list[ScheduleEntry] = list(entries)

    @property
    def clashes(self) -> list[ConflictRecord]:
        return detect_clashes(self.entries)

    def replace_entries(self, entries: Iterable[ScheduleEntry]) -> list[ConflictRecord]:
        self.entries = list(entries)
        return self.clashes

    def add_entry(self, entry: ScheduleEntry) -> list[ConflictRecord]:
        self.entries.append(entry)
        return self.clashes

    def remove_entry(self, entry_id: str) -> ScheduleEntry | None:
        for index, entry in enumerate(self.entries):
            if entry.entry_id == entry_id:
                return self.entries.pop(index)
        return None
