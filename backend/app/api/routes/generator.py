from collections import defaultdict
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core.config import get_settings
from app.core.exceptions import ResourceNotFoundError
from app.models.timetable import CohortTimetable
from app.schemas.scheduling import (
    CohortConstraintPayload,
    CohortPresetOut,
    CohortTimetableOut,
    CohortTimetableRequest,
    ConflictRecordOut,
    GenerateTimetableRequest,
    GenerationSummaryOut,
    ScheduleEntryPayload,
    SessionRequestPayload,
    UnplaceableSessionOut,
    UnresolvedConflictOut,
)
from app.services.conflict_service import detect_conflicts
from app.services.schedule_model import CohortConstraint, ScheduleEntry
from app.services.timetable_generator import COHORT_PRESETS, GenerationResult, TimetableGenerator, preset_constraint

router = APIRouter()
logger = logging.getLogger(__name__)

settings = get_settings()


def _load_entries(raw_entries: list[dict]) -> list[ScheduleEntry]:
    return [ScheduleEntryPayload.model_validate(item).to_entry() for item in raw_entries]


def _reserved_entries(db: Session, excluded_cohorts: set[str]) -> list[ScheduleEntry]:
    reserved: list[ScheduleEntry] = []
    for record in db.execute(select(CohortTimetable).order_by(CohortTimetable.cohort_id)).scalars():
        if record.cohort_id in excluded_cohorts:
            continue
        reserved.extend(_load_entries(record.entries or []))
    return reserved


def _run_generation(
    db: Session,
    constraints: list[CohortConstraint],
    requests: list[SessionRequestPayload],
    seed: int | None,
) -> GenerationResult:
    cohort_ids = {constraint.cohort_id for constraint in constraints}
    generator = TimetableGenerator(
        constraints,
        seed=seed if seed is not None else settings.scheduler_random_seed,
        reserved_entries=_reserved_entries(db, cohort_ids),
    )
    return generator.run(item.to_request() for item in requests)


def _persist_result(
    db: Session,
    constraints: list[CohortConstraint],
    result: GenerationResult,
    semester: int,
) -> None:
    entries_by_cohort = result.entries_by_cohort()
    unplaceable_by_cohort: dict[str, list[dict]] = defaultdict(list)
    for item in result.unplaceable:
        unplaceable_by_cohort[item.request.cohort_id].append(
            UnplaceableSessionOut.from_unplaceable(item).model_dump(mode="json", by_alias=True)
        )
    unresolved_by_cohort: dict[str, list[dict]] = defaultdict(list)
    for item in result.unresolved_conflicts:
        unresolved_by_cohort[item.conflict.entry_b.cohort_id or ""].append(
            UnresolvedConflictOut.from_unresolved(item).model_dump(mode="json", by_alias=True)
        )

    generated_at = datetime.now(timezone.utc)
    for constraint in constraints:
        record = db.execute(
            select(CohortTimetable).where(CohortTimetable.cohort_id == constraint.cohort_id).with_for_update()
        ).scalar_one_or_none()
        if record is None:
            record = CohortTimetable(cohort_id=constraint.cohort_id)
        record.semester = semester
        record.cohort_constraint = CohortConstraintPayload.from_constraint(constraint).model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
        record.entries = [
            ScheduleEntryPayload.from_entry(entry).model_dump(mode="json", by_alias=True)
            for entry in entries_by_cohort.get(constraint.cohort_id, [])
        ]
        record.unplaceable = unplaceable_by_cohort.get(constraint.cohort_id, [])
        record.unresolved_conflicts = unresolved_by_cohort.get(constraint.cohort_id, [])
        record.generated_by = settings.default_generated_by
        record.last_generated = generated_at
        db.add(record)
    db.commit()


def _cohort_out(record: CohortTimetable) -> CohortTimetableOut:
    constraint = CohortConstraintPayload.model_validate(record.cohort_constraint) if record.cohort_constraint else None
    return CohortTimetableOut(
        cohort_id=record.cohort_id,
        semester=record.semester,
        constraint=constraint,
        entries=[ScheduleEntryPayload.model_validate(item) for item in record.entries],
        unplaceable=[UnplaceableSessionOut.model_validate(item) for item in record.unplaceable],
        unresolved_conflicts=[UnresolvedConflictOut.model_validate(item) for item in record.unresolved_conflicts],
        generated_by=record.generated_by,
        last_generated=record.last_generated,
    )


@router.get("/presets", response_model=list[CohortPresetOut])
def list_presets() -> list[CohortPresetOut]:
    return [
        CohortPresetOut(name=name, constraint=CohortConstraintPayload.from_constraint(preset_constraint(name, name)))
        for name in COHORT_PRESETS
    ]


@router.post("/generate", response_model=GenerationSummaryOut)
def generate_timetables(
    payload: GenerateTimetableRequest,
    db: Session = Depends(get_db),
) -> GenerationSummaryOut:
    constraints = [item.to_constraint() for item in payload.cohorts]
    logger.info(
        "Generating timetables for %d cohort(s) with %d session request(s)",
        len(constraints),
        len(payload.requests),
    )
    result = _run_generation(db, constraints, payload.requests, payload.seed)
    _persist_result(db, constraints, result, payload.semester)
    return GenerationSummaryOut.from_result(result)


@router.put("/cohorts/{cohort_id}", response_model=GenerationSummaryOut)
def replace_cohort_timetable(
    cohort_id: str,
    payload: CohortTimetableRequest,
    db: Session = Depends(get_db),
) -> GenerationSummaryOut:
    if payload.constraint.cohort_id != cohort_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Constraint cohortId must match the cohort in the path",
        )
    foreign = sorted({item.cohort_id for item in payload.requests if item.cohort_id != cohort_id})
    if foreign:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Session requests reference other cohort(s): {', '.join(foreign)}",
        )

    constraints = [payload.constraint.to_constraint()]
    logger.info("Regenerating timetable for cohort %s with %d session request(s)", cohort_id, len(payload.requests))
    result = _run_generation(db, constraints, payload.requests, payload.seed)
    _persist_result(db, constraints, result, payload.semester)
    return GenerationSummaryOut.from_result(result)


@router.get("/cohorts/{cohort_id}", response_model=CohortTimetableOut)
def get_cohort_timetable(cohort_id: str, db: Session = Depends(get_db)) -> CohortTimetableOut:
    record = db.execute(select(CohortTimetable).where(CohortTimetable.cohort_id == cohort_id)).scalar_one_or_none()
    if record is None:
        raise ResourceNotFoundError("Cohort timetable", cohort_id)
    return _cohort_out(record)


@router.get("/cohorts/{cohort_id}/clashes", response_model=list[ConflictRecordOut])
def list_cohort_clashes(cohort_id: str, db: Session = Depends(get_db)) -> list[ConflictRecordOut]:
    record = db.execute(select(CohortTimetable).where(CohortTimetable.cohort_id == cohort_id)).scalar_one_or_none()
    if record is None:
        raise ResourceNotFoundError("Cohort timetable", cohort_id)

    own_entries = _load_entries(record.entries or [])
    own_ids = {entry.entry_id for entry in own_entries}
    combined = [*_reserved_entries(db, {cohort_id}), *own_entries]
    return [
        ConflictRecordOut.from_record(conflict)
        for conflict in detect_conflicts(combined)
        if conflict.entry_a.entry_id in own_ids or conflict.entry_b.entry_id in own_ids
    ]
