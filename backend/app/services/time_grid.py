from __future__ import annotations

from app.core.exceptions import InvalidConstraintError
from app.services.schedule_model import DAY_ORDER, CohortConstraint, TimeSlot


def validate_constraint(constraint: CohortConstraint) -> None:
    cohort_id = constraint.cohort_id
    window = constraint.daily_window
    if window.start >= window.end:
        raise InvalidConstraintError("daily_window", "start must be before end", cohort_id)
    for break_window in constraint.break_windows:
        if break_window.start >= break_window.end:
            raise InvalidConstraintError("break_windows", "each break must start before it ends", cohort_id)
    if constraint.slot_duration_minutes <= 0:
        raise InvalidConstraintError("slot_duration_minutes", "duration must be positive", cohort_id)
    if not constraint.working_days:
        raise InvalidConstraintError("working_days", "at least one working day is required", cohort_id)
    unknown = [day for day in constraint.working_days if day not in DAY_ORDER]
    if unknown:
        raise InvalidConstraintError("working_days", f"unknown day(s): {', '.join(unknown)}", cohort_id)
    if len(set(constraint.working_days)) != len(constraint.working_days):
        raise InvalidConstraintError("working_days", "days must not repeat", cohort_id)


def build_time_grid(constraint: CohortConstraint) -> list[TimeSlot]:
    """Expand one cohort's operating hours into its ordered assignable slots.

    Slots are emitted day-major in ``working_days`` order, then chronologically.
    A candidate that intersects any break window, even partially, is dropped
    whole and stepping resumes at the end of the break it ran into.
    """
    validate_constraint(constraint)

    duration = constraint.slot_duration_minutes
    day_start = constraint.daily_window.start
    day_end = constraint.daily_window.end

    slots: list[TimeSlot] = []
    for day in constraint.working_days:
        cursor = day_start
        while cursor + duration <= day_end:
            slot_end = cursor + duration
            blocking = [item for item in constraint.break_windows if item.intersects(cursor, slot_end)]
            if blocking:
                cursor = max(item.end for item in blocking)
                continue
            slots.append(TimeSlot(day=day, start=cursor, end=slot_end))
            cursor = slot_end
    return slots


def contiguous_runs(grid: list[TimeSlot], length: int) -> list[tuple[TimeSlot, ...]]:
    """Every run of ``length`` back-to-back slots on one day, in grid order."""
    if length < 1:
        return []
    runs: list[tuple[TimeSlot, ...]] = []
    for index in range(len(grid) - length + 1):
        window = grid[index:index + length]
        if all(
            current.day == previous.day and current.start == previous.end
            for previous, current in zip(window, window[1:])
        ):
            runs.append(tuple(window))
    return runs
