import os
import tempfile

# Point the application engine at a throwaway SQLite file before app modules import settings.
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+pysqlite:///" + os.path.join(tempfile.gettempdir(), "campus_timetable_test.db"),
)

import pytest
from fastapi.testclient import TestClient #fake http client that calls the FastAPI routes without a real server.
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.db.base import Base
from app.main import app


@pytest.fixture() #test client
def client(): #fake http client
    engine = create_engine( #create isolated DB
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine) #tables for every model, inside the in-memory db

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def user_headers():
    return {"X-User-Id": "student-1"}
