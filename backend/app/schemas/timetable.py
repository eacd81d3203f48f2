from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from app.schemas.scheduling import ConflictRecordOut, ScheduleEntryPayload


class TimetableUpsert(BaseModel):
    semester: int = Field(ge=1, le=20)
    year: int = Field(ge=2000, le=2100)
    entries: list[ScheduleEntryPayload] = Field(default_factory=list, max_length=500)

    @model_validator(mode="after")
    def validate_unique_entries(self) -> "TimetableUpsert":
        seen: set[str] = set()
        duplicates: set[str] = set()
        for entry in self.entries:
            if entry.id in seen:
                duplicates.add(entry.id)
            else:
                seen.add(entry.id)
        if duplicates:
            raise ValueError(f"Duplicate entry id(s): {', '.join(sorted(duplicates))}")
        return self


class TimetableOut(BaseModel):
    user_id: str = Field(alias="userId")
    semester: int
    year: int
    entries: list[ScheduleEntryPayload] = Field(default_factory=list)
    clashes: list[ConflictRecordOut] = Field(default_factory=list)
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
    }


class TimetableEnvelope(BaseModel):
    message: str
    timetable: TimetableOut | None = None
    clashes: list[ConflictRecordOut] | None = None


class ClashListOut(BaseModel):
    clashes: list[ConflictRecordOut] = Field(default_factory=list)
