"""Tests for teacher analytics endpoints."""

from collections.abc import Callable
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from studyhub.auth.permissions import UserRole

from ..fakes import FakeContentService


Headers = Callable[..., dict[str, str]]


@pytest.mark.usefixtures("wired_app")
class TestAnalyticsAccess:
    """Role and scope checks."""

    def test_student_forbidden(
        self, client: TestClient, auth_headers: Headers, student_id: UUID
    ) -> None:
        response = client.get("/v1/analytics/lessons", headers=auth_headers(student_id))
        assert response.status_code == 403

    def test_teacher_reads_own(
        self,
        client: TestClient,
        auth_headers: Headers,
        content: FakeContentService,
        teacher_id: UUID,
    ) -> None:
        content.add_lesson(teacher_id, title="Intro")
        response = client.get(
            "/v1/analytics/lessons",
            headers=auth_headers(teacher_id, UserRole.TEACHER),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["lessons"][0]["title"] == "Intro"
        assert data["pagination"]["limit"] == 20

    def test_teacher_cannot_read_other_teacher(
        self, client: TestClient, auth_headers: Headers, teacher_id: UUID
    ) -> None:
        response = client.get(
            "/v1/analytics/quizzes",
            params={"teacher_id": str(uuid4())},
            headers=auth_headers(teacher_id, UserRole.TEACHER),
        )
        assert response.status_code == 403

    def test_admin_reads_other_teacher(
        self,
        client: TestClient,
        auth_headers: Headers,
        content: FakeContentService,
        teacher_id: UUID,
    ) -> None:
        content.add_quiz(teacher_id, title="Final")
        response = client.get(
            "/v1/analytics/quizzes",
            params={"teacher_id": str(teacher_id)},
            headers=auth_headers(uuid4(), UserRole.ADMIN),
        )
        assert response.status_code == 200
        quizzes = response.json()["quizzes"]
        assert quizzes[0]["title"] == "Final"
        assert quizzes[0]["average_score"] is None


@pytest.mark.usefixtures("wired_app")
class TestAnalyticsEndpoints:
    """Endpoint behaviour."""

    def test_dropoff_unknown_lesson(
        self, client: TestClient, auth_headers: Headers, teacher_id: UUID
    ) -> None:
        response = client.get(
            f"/v1/analytics/lessons/{uuid4()}/dropoff",
            headers=auth_headers(teacher_id, UserRole.TEACHER),
        )
        assert response.status_code == 404

    def test_dropoff_foreign_lesson(
        self,
        client: TestClient,
        auth_headers: Headers,
        content: FakeContentService,
        teacher_id: UUID,
    ) -> None:
        lesson = content.add_lesson(uuid4())
        response = client.get(
            f"/v1/analytics/lessons/{lesson.id}/dropoff",
            headers=auth_headers(teacher_id, UserRole.TEACHER),
        )
        assert response.status_code == 403

    def test_weekly_active_default_weeks(
        self, client: TestClient, auth_headers: Headers, teacher_id: UUID
    ) -> None:
        response = client.get(
            "/v1/analytics/students/active",
            headers=auth_headers(teacher_id, UserRole.TEACHER),
        )
        assert response.status_code == 200
        assert len(response.json()["weekly_active"]) == 8

    @pytest.mark.parametrize("weeks", [0, 53])
    def test_weekly_active_weeks_bounds(
        self, client: TestClient, auth_headers: Headers, teacher_id: UUID, weeks: int
    ) -> None:
        response = client.get(
            "/v1/analytics/students/active",
            params={"weeks": weeks},
            headers=auth_headers(teacher_id, UserRole.TEACHER),
        )
        assert response.status_code == 422

    def test_invalidate_cache_without_redis(
        self, client: TestClient, auth_headers: Headers, teacher_id: UUID
    ) -> None:
        response = client.delete(
            "/v1/analytics/cache",
            headers=auth_headers(teacher_id, UserRole.TEACHER),
        )
        assert response.status_code == 200
        assert response.json() == {"teacher_id": str(teacher_id), "keys_deleted": 0}
