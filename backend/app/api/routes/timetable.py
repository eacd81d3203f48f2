from datetime import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_db
from app.models.timetable import PersonalTimetable
from app.schemas.scheduling import ConflictRecordOut, ScheduleEntryPayload
from app.schemas.timetable import ClashListOut, TimetableEnvelope, TimetableOut, TimetableUpsert
from app.services.conflict_service import Timetable
from app.services.schedule_model import ConflictRecord, ScheduleEntry

router = APIRouter()
logger = logging.getLogger(__name__)


def current_semester(now: datetime | None = None) -> int:
    # July to December is the first semester, January to June the second.
    moment = now or datetime.now()
    return 1 if moment.month >= 7 else 2


def load_entries(raw_entries: list[dict]) -> list[ScheduleEntry]:
    return [ScheduleEntryPayload.model_validate(item).to_entry() for item in raw_entries]


def dump_entries(entries: list[ScheduleEntry]) -> list[dict]:
    return [ScheduleEntryPayload.from_entry(entry).model_dump(mode="json", by_alias=True) for entry in entries]


def dump_clashes(clashes: list[ConflictRecord]) -> list[dict]:
    return [ConflictRecordOut.from_record(record).model_dump(mode="json", by_alias=True) for record in clashes]


def _load_for_update(db: Session, user_id: str) -> PersonalTimetable | None:
    return db.execute(
        select(PersonalTimetable).where(PersonalTimetable.user_id == user_id).with_for_update()
    ).scalar_one_or_none()


def _timetable_out(record: PersonalTimetable) -> TimetableOut:
    return TimetableOut(
        user_id=record.user_id,
        semester=record.semester,
        year=record.year,
        entries=[ScheduleEntryPayload.model_validate(item) for item in record.entries],
        clashes=[ConflictRecordOut.model_validate(item) for item in record.clashes],
        updated_at=record.updated_at,
    )


def _store(db: Session, record: PersonalTimetable, timetable: Timetable) -> list[ConflictRecord]:
    # Clashes are computed from the post-mutation entry list inside the same transaction.
    clashes = timetable.clashes
    record.entries = dump_entries(timetable.entries)
    record.clashes = dump_clashes(clashes)
    db.add(record)
    db.commit()
    db.refresh(record)
    if clashes:
        logger.info("Timetable for user %s has %d clash(es)", record.user_id, len(clashes))
    return clashes


def _clash_payload(clashes: list[ConflictRecord]) -> list[ConflictRecordOut] | None:
    return [ConflictRecordOut.from_record(record) for record in clashes] or None


@router.get("", response_model=TimetableEnvelope)
def get_timetable(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TimetableEnvelope:
    record = db.execute(select(PersonalTimetable).where(PersonalTimetable.user_id == user_id)).scalar_one_or_none()
    if record is None:
        return TimetableEnvelope(message="No timetable found", timetable=None)
    return TimetableEnvelope(message="Timetable loaded", timetable=_timetable_out(record))


@router.post("", response_model=TimetableEnvelope)
def save_timetable(
    payload: TimetableUpsert,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TimetableEnvelope:
    record = _load_for_update(db, user_id)
    if record is None:
        record = PersonalTimetable(user_id=user_id, semester=payload.semester, year=payload.year)
    else:
        record.semester = payload.semester
        record.year = payload.year

    timetable = Timetable(entry.to_entry() for entry in payload.entries)
    clashes = _store(db, record, timetable)
    return TimetableEnvelope(
        message="Timetable saved successfully",
        timetable=_timetable_out(record),
        clashes=_clash_payload(clashes),
    )


@router.post("/entry", response_model=TimetableEnvelope)
def add_entry(
    payload: ScheduleEntryPayload,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TimetableEnvelope:
    record = _load_for_update(db, user_id)
    if record is None:
        now = datetime.now()
        record = PersonalTimetable(user_id=user_id, semester=current_semester(now), year=now.year, entries=[])

    timetable = Timetable(load_entries(record.entries or []))
    if any(entry.entry_id == payload.id for entry in timetable.entries):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Entry {payload.id} already exists")
    timetable.add_entry(payload.to_entry())
    clashes = _store(db, record, timetable)
    return TimetableEnvelope(
        message="Entry added successfully",
        timetable=_timetable_out(record),
        clashes=_clash_payload(clashes),
    )


@router.delete("/entry/{entry_id}", response_model=TimetableEnvelope)
def delete_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TimetableEnvelope:
    record = _load_for_update(db, user_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timetable not found")

    timetable = Timetable(load_entries(record.entries or []))
    if timetable.remove_entry(entry_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timetable entry not found")
    clashes = _store(db, record, timetable)
    return TimetableEnvelope(
        message="Entry deleted successfully",
        timetable=_timetable_out(record),
        clashes=_clash_payload(clashes),
    )


@router.get("/clashes", response_model=ClashListOut)
def list_clashes(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> ClashListOut:
    record = db.execute(select(PersonalTimetable).where(PersonalTimetable.user_id == user_id)).scalar_one_or_none()
    if record is None:
        return ClashListOut(clashes=[])
    timetable = Timetable(load_entries(record.entries or []))
    return ClashListOut(clashes=[ConflictRecordOut.from_record(clash) for clash in timetable.clashes])
