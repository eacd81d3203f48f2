from itertools import combinations

import pytest

from app.core.exceptions import InvalidConstraintError
from app.services.schedule_model import (
    CohortConstraint,
    ScheduleEntry,
    SessionRequest,
    TimeWindow,
    minutes_to_time,
)
from app.services.time_grid import build_time_grid
from app.services.timetable_generator import (
    COHORT_PRESETS,
    GenerationStage,
    TimetableGenerator,
    preset_constraint,
)


def hm(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def test_year_one_to_three_preset_grid():
    grid = build_time_grid(preset_constraint("year1to3", "cse-2a"))
    monday = [minutes_to_time(slot.start) for slot in grid if slot.day == "Monday"]

    assert monday == ["08:15", "09:15", "10:30", "11:30", "13:30", "14:30"]
    assert len(grid) == 30


def test_final_year_preset_grid():
    grid = build_time_grid(preset_constraint("finalYear", "cse-4a"))
    monday = [minutes_to_time(slot.start) for slot in grid if slot.day == "Monday"]

    assert monday == ["10:00", "11:45", "14:15"]
    assert set(COHORT_PRESETS) == {"year1to3", "finalYear"}


def test_unknown_preset_is_invalid():
    with pytest.raises(InvalidConstraintError) as exc_info:
        preset_constraint("summer", "cse-2a")
    assert exc_info.value.field == "preset"


def test_run_walks_every_stage_and_returns_partial_results():
    constraints = [
        preset_constraint("year1to3", "cse-2a", department="CSE"),
        preset_constraint("finalYear", "cse-4a", department="CSE"),
    ]
    requests = [SessionRequest(f"cs{index}", "cse-2a", ("f1", "f2")) for index in range(8)]
    requests += [SessionRequest(f"cs4{index}", "cse-4a", ("f1",)) for index in range(20)]

    generator = TimetableGenerator(constraints)
    result = generator.run(requests)

    assert result.stage is GenerationStage.done
    assert generator.stage is GenerationStage.done
    # Final year has 15 slots; f1 and room C101 are already busy for the four
    # of them that overlap the second-year sessions on Monday and Tuesday.
    assert len(result.unplaceable) == 9
    assert len(result.entries) == 19
    assert all(item.faculty_id == "f1" for item in result.unplaceable)
    assert result.unresolved_conflicts == []
    for first, second in combinations(result.entries, 2):
        if first.overlaps(second):
            assert first.faculty_id != second.faculty_id
            assert first.room_id != second.room_id
            assert first.cohort_id != second.cohort_id
    assert {entry.room_id for entry in result.entries} == {"C101"}


def test_entries_stay_inside_daily_window():
    constraint = preset_constraint("finalYear", "ece-4a", department="ECE")
    result = TimetableGenerator([constraint]).run(
        [SessionRequest(f"ec{index}", "ece-4a", (f"f{index}",)) for index in range(6)]
    )

    for entry in result.entries:
        assert constraint.daily_window.start <= entry.start < entry.end <= constraint.daily_window.end


def test_invalid_constraint_aborts_before_allocation():
    broken = CohortConstraint(
        cohort_id="bad",
        daily_window=TimeWindow(hm("16:00"), hm("08:00")),
        break_windows=(),
        slot_duration_minutes=60,
        working_days=("Monday",),
    )
    generator = TimetableGenerator([broken])

    with pytest.raises(InvalidConstraintError) as exc_info:
        generator.run([SessionRequest("x", "bad", ("f1",))])

    assert exc_info.value.field == "daily_window"
    assert generator.stage is GenerationStage.building_grid


def test_duplicate_cohorts_are_rejected():
    constraint = preset_constraint("year1to3", "cse-2a")
    with pytest.raises(InvalidConstraintError):
        TimetableGenerator([constraint, constraint])


def test_reserved_entries_are_respected_and_not_returned():
    reserved = ScheduleEntry(
        day="Monday",
        start=hm("08:15"),
        end=hm("09:15"),
        course_id="stored",
        faculty_id="f1",
        room_id="X1",
        cohort_id="cse-3a",
    )
    generator = TimetableGenerator([preset_constraint("year1to3", "cse-2a")], reserved_entries=[reserved])

    result = generator.run([SessionRequest("math", "cse-2a", ("f1",))])

    assert [entry.course_id for entry in result.entries] == ["math"]
    assert minutes_to_time(result.entries[0].start) == "09:15"
    assert result.entries_by_cohort() == {"cse-2a": result.entries}
