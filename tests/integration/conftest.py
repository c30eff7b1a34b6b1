"""
Integration test fixtures. Overrides get_db with an in-memory DB and get_llm with a scripted collaborator.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


@pytest.fixture
def override_get_db():
    """Create in-memory engine and session factory for API tests."""
    from api.config import Base
    import api.models  # noqa: F401  registers the tables on Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def fake_llm(scripted_llm):
    """Scripted collaborator shared by the app for one test; tests fill .script as needed."""
    return scripted_llm()


@pytest.fixture
def api_client(override_get_db, fake_llm):
    """FastAPI TestClient with in-memory DB and scripted generation."""
    from fastapi.testclient import TestClient
    from api.api import app
    from api.bootstrap import get_llm
    from api.config import get_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm] = lambda: fake_llm
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
