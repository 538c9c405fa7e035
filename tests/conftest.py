"""Shared fixtures.

Environment variables are set before any ``app`` module is imported so the
cached settings pick them up.
"""

import json
import os
import tempfile
from datetime import date, timedelta
from types import SimpleNamespace

_TEST_DIR = tempfile.mkdtemp(prefix="mathflow-tests-")

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/api.db"
os.environ["ENABLE_METRICS"] = "false"
os.environ["LOG_FORMAT"] = "plain"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["CONTENT_GENERATOR_URL"] = "http://generator.test"

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.clients.content_generator import ContentGeneratorClient
from app.core.database import Base
from app.services.progression import ProgressionService


class FixedClock:
    """Callable date source the tests can move forward."""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> date:
        self.today += timedelta(days=days)
        return self.today


class FakeGenerator:
    """Canned content generator behind ``httpx.MockTransport``."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.body = None

    def handle(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append((request.url.path, payload))

        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "generator failed"})
        if self.body is not None:
            return httpx.Response(200, json=self.body)

        if request.url.path == "/api/problems/immersion":
            return httpx.Response(200, json={
                "success": True,
                "problem": {
                    "content": f"Investigate {payload.get('topic') or 'patterns'} in depth",
                    "hints": ["Start small", "Look for structure"],
                    "solution": "A worked solution",
                    "topic": payload.get("topic") or "algebra",
                    "estimatedTime": "1 hour",
                },
                "difficulty": payload["difficulty"],
                "grade": payload["grade"],
            })

        return httpx.Response(200, json={
            "problem": {
                "content": f"A {payload['topic']} problem",
                "options": ["1", "2", "3", "4"],
                "correct_answer": "2",
                "topic": payload["topic"],
                "irt": {"a": 1.0, "b": payload["theta"] - 0.85, "c": 0.2},
            },
            "estimated_difficulty": payload["theta"] - 0.85,
            "probability_correct": 0.7,
        })


@pytest.fixture
def clock():
    return FixedClock(date(2024, 3, 1))


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def content_client(generator):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(generator.handle))
    yield ContentGeneratorClient(http_client, base_url="http://generator.test")
    await http_client.aclose()


@pytest.fixture
def service(session_factory, content_client, clock):
    return ProgressionService(
        session_factory=session_factory,
        content_client=content_client,
        clock=clock,
    )


@pytest.fixture(scope="module")
def api():
    """Application client wired to a fake generator and a fixed clock."""
    from fastapi.testclient import TestClient

    from app.core.dependencies import get_progression_service
    from app.main import app

    generator = FakeGenerator()
    clock = FixedClock(date(2024, 3, 1))
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(generator.handle))
    service = ProgressionService(
        content_client=ContentGeneratorClient(http_client, base_url="http://generator.test"),
        clock=clock,
    )

    app.dependency_overrides[get_progression_service] = lambda: service
    with TestClient(app) as client:
        yield SimpleNamespace(client=client, generator=generator, clock=clock)
    app.dependency_overrides.clear()
