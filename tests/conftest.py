"""Shared test fixtures."""

import os


# Must be set before settings are first read
os.environ.setdefault("ENVIRONMENT", "testing")

from collections.abc import Callable, Iterator
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from studyhub.analytics.service import AnalyticsService
from studyhub.auth.permissions import UserRole
from studyhub.auth.security import create_access_token
from studyhub.main import app
from studyhub.progress.service import ProgressService

from .fakes import FakeContentService, FakeProgressRepository


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client without lifespan (no Cassandra or Redis)."""
    yield TestClient(app)


@pytest.fixture
def content() -> FakeContentService:
    return FakeContentService()


@pytest.fixture
def repository() -> FakeProgressRepository:
    return FakeProgressRepository()


@pytest.fixture
def progress_service(
    repository: FakeProgressRepository, content: FakeContentService
) -> ProgressService:
    return ProgressService(repository=repository, content=content)


@pytest.fixture
def analytics_service(
    repository: FakeProgressRepository, content: FakeContentService
) -> AnalyticsService:
    return AnalyticsService(progress=repository, content=content)


@pytest.fixture
def wired_app(
    progress_service: ProgressService, analytics_service: AnalyticsService
) -> Iterator[None]:
    """Install fake-backed services on app state for router tests."""
    app.state.progress_service = progress_service
    app.state.analytics_service = analytics_service
    yield
    app.state.progress_service = None
    app.state.analytics_service = None


@pytest.fixture
def auth_headers() -> Callable[[UUID, UserRole], dict[str, str]]:
    """Build an Authorization header for a user id and role."""

    def _headers(user_id: UUID, role: UserRole = UserRole.STUDENT) -> dict[str, str]:
        token = create_access_token({"sub": str(user_id), "role": role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def teacher_id() -> UUID:
    return uuid4()


@pytest.fixture
def student_id() -> UUID:
    return uuid4()
