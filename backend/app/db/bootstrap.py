from __future__ import annotations

import logging

from sqlalchemy import inspect

from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "personal_timetables": {"id", "user_id", "semester", "year", "entries", "clashes"},
    "cohort_timetables": {"id", "cohort_id", "semester", "cohort_constraint", "entries", "unplaceable", "unresolved_conflicts"},
}


def missing_schema_items() -> tuple[list[str], dict[str, list[str]]]:
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        for table_name, columns in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                missing_tables.append(table_name)
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing = sorted(columns - existing)
            if missing:
                missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema_compatibility() -> None:
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    missing_tables, missing_columns = missing_schema_items()
    if missing_tables or missing_columns:
        logger.error(
            "Database schema is behind the models: missing tables=%s columns=%s",
            missing_tables,
            missing_columns,
        )
        raise RuntimeError("Runtime schema compatibility bootstrap failed; run the Alembic migrations")
