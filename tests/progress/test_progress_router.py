"""API tests for enrollment, progress and admin progress endpoints."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from brandcoach.main import create_app

from conftest import ADMIN_EMAIL, STUDENT_EMAIL, InMemoryProgressRepository


class TestEnrollmentEndpoints:
    """Tests for /v1/enrollments."""

    def test_requires_token(self, client: TestClient) -> None:
        """Missing bearer token should yield the 401 error envelope."""
        response = client.get("/v1/enrollments/my")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] is True
        assert body["status_code"] == 401
        assert "request_id" in body
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_enroll_own_email(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        course_id: UUID,
    ) -> None:
        response = client.post(
            "/v1/enrollments",
            json={
                "course_id": str(course_id),
                "student_name": "Ana Souza",
                "email": "Ana@Example.com",
            },
            headers=student_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == STUDENT_EMAIL
        assert data["completed_at"] is None

    def test_duplicate_enrollment_conflict(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        course_id: UUID,
    ) -> None:
        payload = {
            "course_id": str(course_id),
            "student_name": "Ana Souza",
            "email": STUDENT_EMAIL,
        }
        client.post("/v1/enrollments", json=payload, headers=student_headers)

        response = client.post("/v1/enrollments", json=payload, headers=student_headers)

        assert response.status_code == 409
        assert response.json()["message"] == "Email already enrolled in this course"

    def test_student_cannot_enroll_other_email(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        course_id: UUID,
    ) -> None:
        response = client.post(
            "/v1/enrollments",
            json={
                "course_id": str(course_id),
                "student_name": "Bruno",
                "email": "bruno@example.com",
            },
            headers=student_headers,
        )

        assert response.status_code == 403

    def test_admin_can_enroll_anyone(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        course_id: UUID,
    ) -> None:
        response = client.post(
            "/v1/enrollments",
            json={
                "course_id": str(course_id),
                "student_name": "Bruno",
                "email": "bruno@example.com",
            },
            headers=admin_headers,
        )

        assert response.status_code == 201

    def test_invalid_email_is_validation_error(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        course_id: UUID,
    ) -> None:
        response = client.post(
            "/v1/enrollments",
            json={
                "course_id": str(course_id),
                "student_name": "Ana",
                "email": "not-an-email",
            },
            headers=student_headers,
        )

        assert response.status_code == 422
        body = response.json()
        assert body["message"] == "Validation error"
        assert any(d["field"] == "body.email" for d in body["details"])

    def test_my_enrollments(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        progress_repository.add_enrollment(course_id)
        progress_repository.add_enrollment(uuid4())
        progress_repository.add_enrollment(course_id, email="other@example.com")

        response = client.get("/v1/enrollments/my", headers=student_headers)

        assert response.status_code == 200
        assert response.json()["total"] == 2

    def test_other_learners_enrollment_forbidden(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        enrollment = progress_repository.add_enrollment(
            course_id, email="other@example.com"
        )

        response = client.get(
            f"/v1/enrollments/{enrollment.id}", headers=student_headers
        )

        assert response.status_code == 403

    def test_unknown_enrollment_not_found(
        self, client: TestClient, student_headers: dict[str, str]
    ) -> None:
        response = client.get(f"/v1/enrollments/{uuid4()}", headers=student_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Enrollment not found"


class TestProgressEndpoints:
    """Tests for /v1/progress."""

    def test_course_progress(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        """Lessons 1,2,3 with lesson 2 done resumes at lesson 3."""
        progress_repository.add_lessons(course_id, (1, 1), (2, 2), (3, 3))
        enrollment = progress_repository.add_enrollment(course_id)
        progress_repository.add_progress(enrollment.id, 2)

        response = client.get(f"/v1/progress/{enrollment.id}", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["resume_lesson"]["lesson_id"] == 3
        assert data["completed_count"] == 1
        assert data["total_lessons"] == 3
        assert data["progress_percentage"] == 33
        assert data["completed_lesson_ids"] == [2]
        assert [lesson["state"] for lesson in data["lessons"]] == [
            "available",
            "completed",
            "available",
        ]
        assert data["status"] == "active"

    def test_complete_lesson_advances(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        progress_repository.add_lessons(course_id, (1, 1), (2, 2))
        enrollment = progress_repository.add_enrollment(course_id)

        response = client.post(
            f"/v1/progress/{enrollment.id}/lessons/1/complete",
            headers=student_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["newly_completed"] is True
        assert data["next_lesson_id"] == 2
        assert data["progress_percentage"] == 50
        assert data["enrollment_completed"] is False

    def test_complete_last_lesson_completes_course(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        progress_repository.add_lessons(course_id, (1, 1))
        enrollment = progress_repository.add_enrollment(course_id)

        response = client.post(
            f"/v1/progress/{enrollment.id}/lessons/1/complete",
            headers=student_headers,
        )

        data = response.json()
        assert data["next_lesson_id"] is None
        assert data["enrollment_completed"] is True
        assert progress_repository.enrollments[enrollment.id].completed_at is not None

    def test_complete_unknown_lesson(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        progress_repository.add_lessons(course_id, (1, 1))
        enrollment = progress_repository.add_enrollment(course_id)

        response = client.post(
            f"/v1/progress/{enrollment.id}/lessons/42/complete",
            headers=student_headers,
        )

        assert response.status_code == 404

    def test_cannot_complete_for_someone_else(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        progress_repository.add_lessons(course_id, (1, 1))
        enrollment = progress_repository.add_enrollment(
            course_id, email="other@example.com"
        )

        response = client.post(
            f"/v1/progress/{enrollment.id}/lessons/1/complete",
            headers=student_headers,
        )

        assert response.status_code == 403
        assert progress_repository.progress[enrollment.id] == []

    def test_dashboard(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        progress_repository.add_lessons(course_id, (1, 1), (2, 2))
        enrollment = progress_repository.add_enrollment(course_id)
        progress_repository.add_progress(enrollment.id, 1)

        response = client.get("/v1/progress/dashboard/me", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == STUDENT_EMAIL
        assert data["total_courses"] == 1
        assert data["average_progress"] == 50
        assert data["courses"][0]["resume_lesson_id"] == 2
        assert data["courses"][0]["can_review"] is False

    def test_complete_enrollment_requires_admin(
        self,
        client: TestClient,
        student_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        enrollment = progress_repository.add_enrollment(course_id)

        response = client.post(
            f"/v1/progress/{enrollment.id}/complete", headers=student_headers
        )

        assert response.status_code == 403

    def test_admin_completes_enrollment(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        enrollment = progress_repository.add_enrollment(course_id)

        response = client.post(
            f"/v1/progress/{enrollment.id}/complete", headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["completed_at"] is not None


class TestAdminProgressEndpoints:
    """Tests for /v1/admin/progress."""

    def test_overview_requires_admin(
        self, client: TestClient, student_headers: dict[str, str], course_id: UUID
    ) -> None:
        response = client.get(
            f"/v1/admin/progress/courses/{course_id}", headers=student_headers
        )

        assert response.status_code == 403

    def test_overview(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        progress_repository.add_lessons(course_id, (1, 1), (2, 2), (3, 3))
        recent = progress_repository.add_enrollment(course_id)
        progress_repository.add_progress(recent.id, 1)
        progress_repository.add_enrollment(
            course_id,
            email="idle@example.com",
            enrolled_at=datetime.now(UTC) - timedelta(days=20),
        )
        progress_repository.add_enrollment(
            course_id,
            email="done@example.com",
            enrolled_at=datetime.now(UTC) - timedelta(days=30),
            completed_at=datetime.now(UTC) - timedelta(days=2),
        )

        response = client.get(
            f"/v1/admin/progress/courses/{course_id}", headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert [row["email"] for row in data["students"]] == [
            STUDENT_EMAIL,
            "idle@example.com",
            "done@example.com",
        ]
        assert data["summary"] == {
            "total_students": 3,
            "active": 1,
            "completed": 1,
            "inactive": 1,
            "average_progress": 11,
        }

    def test_lesson_breakdown(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        progress_repository: InMemoryProgressRepository,
        course_id: UUID,
    ) -> None:
        progress_repository.add_lessons(course_id, (1, 1), (2, 2))
        enrollment = progress_repository.add_enrollment(course_id)
        progress_repository.add_progress(enrollment.id, 1)

        response = client.get(
            f"/v1/admin/progress/enrollments/{enrollment.id}/lessons",
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["enrollment"]["email"] == STUDENT_EMAIL
        assert [item["status"] for item in data["lessons"]] == [
            "completed",
            "not_started",
        ]
        assert data["lessons"][1]["completed_at"] is None


class TestServiceUnavailable:
    """Requests before the database is initialized."""

    def test_returns_503(self, make_token: Callable[..., str]) -> None:
        client = TestClient(create_app())
        headers = {"Authorization": f"Bearer {make_token(ADMIN_EMAIL, 'admin')}"}

        response = client.get(f"/v1/admin/progress/courses/{uuid4()}", headers=headers)

        assert response.status_code == 503
