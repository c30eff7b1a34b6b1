"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides common fixtures for unit and integration tests.
"""
import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root and src to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Never touch a developer database or a hosted API from tests.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GENERATION_PROVIDER", "perplexity")
os.environ.setdefault("PERPLEXITY_API_KEY", "test-key")
os.environ.setdefault("NO_COLOR", "1")


# ----- In-memory DB (for tests that need DB without touching real DB) -----
@pytest.fixture
def in_memory_engine():
    """Create an in-memory SQLite engine shared across threads for tests."""
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture
def db_session(in_memory_engine):
    """Create an in-memory database session. Uses api.models.Base for schema."""
    from api.models.models import Base
    Base.metadata.create_all(in_memory_engine)
    SessionLocal = sessionmaker(bind=in_memory_engine)
    session = SessionLocal()
    yield session
    session.close()


# ----- Scripted generation collaborator -----
class ScriptedLLM:
    """
    Deterministic stand-in for the generation collaborator. Answers by request purpose.

    A script value may be: a str (returned as-is), a dict/list (returned as JSON),
    an exception instance (raised), a callable taking the request, or a tuple of
    any of these consumed one per call (the last entry repeats).
    Purposes without a script raise UpstreamProtocolError, like an unreachable API.
    """

    def __init__(self, script=None):
        self.script = dict(script or {})
        self.calls = []

    def purposes(self):
        return [r.purpose for r in self.calls]

    def calls_for(self, purpose):
        return [r for r in self.calls if r.purpose == purpose]

    async def complete(self, request):
        import json

        from agents.core.errors import UpstreamProtocolError
        from agents.core.llm import GenerationResult

        self.calls.append(request)
        if request.purpose not in self.script:
            raise UpstreamProtocolError(f"no script for purpose={request.purpose}", status_code=503)
        value = self.script[request.purpose]
        if isinstance(value, tuple):
            index = min(len(self.calls_for(request.purpose)) - 1, len(value) - 1)
            value = value[index]
        if callable(value) and not isinstance(value, BaseException):
            value = value(request)
        if isinstance(value, BaseException):
            raise value
        if not isinstance(value, str):
            value = json.dumps(value)
        return GenerationResult(text=value, model="scripted")

    async def aclose(self):
        return None


@pytest.fixture
def scripted_llm():
    """Factory: scripted_llm({"discover": {...}, "fetch": "..."}) -> ScriptedLLM."""
    return ScriptedLLM


def user_prompt(request) -> str:
    return request.messages[-1].content


@pytest.fixture
def by_url():
    """Factory for a script callable that answers based on which URL the prompt mentions."""
    def make(mapping, default=""):
        def answer(request):
            text = user_prompt(request)
            for url, value in mapping.items():
                if url in text:
                    return value
            return default
        return answer
    return make
