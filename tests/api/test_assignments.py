"""Tests for the submission and grading endpoints."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from portal.models.course import Assignment
from portal.models.enrollment import Enrollment
from portal.services.container import Services
from tests.conftest import World, auth, mint_token


def _grade(client: TestClient, token: str | None, submission_id, grade, **extra):
    body = {"submissionId": str(submission_id), "grade": grade, **extra}
    return client.put("/assignments/grade", json=body, headers=auth(token))


# ---- 200: graded ----


def test_owner_lecturer_grades(
    client: TestClient, services: Services, world: World
) -> None:
    sub = world.submissions[0]
    resp = _grade(client, world.token(world.lecturer), sub.id, 95, feedback="Great")

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == str(sub.id)
    assert body["grade"] == 95
    assert body["feedback"] == "Great"
    assert body["status"] == "graded"
    assert body["gradedAt"] is not None
    assert body["studentId"] == str(world.student.id)

    stored = asyncio.run(services.submissions.get_by_id(sub.id))
    assert stored.grade == 95


def test_admin_grades_any_course(client: TestClient, world: World) -> None:
    resp = _grade(client, world.token(world.admin), world.submissions[2].id, 60)
    assert resp.status_code == 200


# ---- 400: out of range ----


@pytest.mark.parametrize("grade", [-5, 100.5, 1000])
def test_out_of_range_grade(client: TestClient, world: World, grade: float) -> None:
    resp = _grade(client, world.token(world.lecturer), world.submissions[0].id, grade)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Grade must be between 0 and 100"


def test_malformed_body_is_unprocessable(client: TestClient, world: World) -> None:
    resp = client.put(
        "/assignments/grade",
        json={"submissionId": "not-a-uuid", "grade": 50},
        headers=auth(world.token(world.lecturer)),
    )
    assert resp.status_code == 422


# ---- 403: not allowed ----


def test_non_owner_lecturer_is_forbidden(
    client: TestClient, services: Services, world: World
) -> None:
    sub = world.submissions[0]
    resp = _grade(client, world.token(world.other_lecturer), sub.id, 50)

    assert resp.status_code == 403
    assert resp.json()["detail"] == "not course owner"
    stored = asyncio.run(services.submissions.get_by_id(sub.id))
    assert stored.grade is None


def test_student_is_forbidden(client: TestClient, world: World) -> None:
    resp = _grade(client, world.token(world.student), world.submissions[0].id, 100)
    assert resp.status_code == 403


def test_non_uuid_subject_is_forbidden(client: TestClient, world: World) -> None:
    token = mint_token("not-a-uuid", "lecturer")
    resp = _grade(client, token, world.submissions[0].id, 50)
    assert resp.status_code == 403


# ---- 404 / 401 ----


def test_unknown_submission(client: TestClient, world: World) -> None:
    resp = _grade(client, world.token(world.lecturer), uuid4(), 50)
    assert resp.status_code == 404


def test_missing_token(client: TestClient, world: World) -> None:
    resp = _grade(client, None, world.submissions[0].id, 50)
    assert resp.status_code == 401


def test_invalid_token(client: TestClient, world: World) -> None:
    resp = _grade(client, "garbage", world.submissions[0].id, 50)
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


# ---- submissions ----


def _submit(client: TestClient, token: str | None, assignment_id, **extra):
    body = {"assignmentId": str(assignment_id), **extra}
    return client.post("/assignments/submit", json=body, headers=auth(token))


def _enroll(services: Services, world: World) -> None:
    asyncio.run(
        services.enrollments.add(
            Enrollment.new(student_id=world.student.id, course_id=world.course.id)
        )
    )


def test_student_resubmits_and_grade_is_cleared(
    client: TestClient, services: Services, world: World
) -> None:
    _enroll(services, world)
    sub = world.submissions[0]
    assert _grade(client, world.token(world.lecturer), sub.id, 90).status_code == 200

    resp = _submit(
        client,
        world.token(world.student),
        sub.assignment_id,
        submissionText="v2",
        fileUrl="https://files.example/v2.pdf",
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == str(sub.id)
    assert body["status"] == "submitted"
    assert body["grade"] is None
    assert body["submissionText"] == "v2"
    assert body["fileUrl"] == "https://files.example/v2.pdf"


def test_first_submission_is_created(
    client: TestClient, services: Services, world: World
) -> None:
    _enroll(services, world)
    lab = Assignment.new(
        course_id=world.course.id,
        title="Lab",
        weight=10,
        due_date=datetime(2030, 6, 1, tzinfo=UTC),
    )
    asyncio.run(services.assignments.add(lab))

    resp = _submit(client, world.token(world.student), lab.id, submissionText="hi")

    assert resp.status_code == 201
    body = resp.json()
    assert body["assignmentId"] == str(lab.id)
    assert body["studentId"] == str(world.student.id)
    assert body["submissionText"] == "hi"
    assert body["fileUrl"] is None
    stored = asyncio.run(services.submissions.list_by_assignment(lab.id))
    assert [str(s.id) for s in stored] == [body["id"]]


def test_submit_requires_enrollment(client: TestClient, world: World) -> None:
    resp = _submit(client, world.token(world.student), world.assignments[0].id)
    assert resp.status_code == 403
    assert resp.json()["detail"] == (
        "You must be enrolled in the course to submit assignments"
    )


def test_submit_unknown_assignment(
    client: TestClient, services: Services, world: World
) -> None:
    _enroll(services, world)
    resp = _submit(client, world.token(world.student), uuid4())
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Assignment not found"


@pytest.mark.parametrize("role", ["lecturer", "admin"])
def test_submit_is_student_only(client: TestClient, world: World, role: str) -> None:
    resp = _submit(client, world.token(getattr(world, role)), world.assignments[0].id)
    assert resp.status_code == 403


def test_submit_requires_token(client: TestClient, world: World) -> None:
    assert _submit(client, None, world.assignments[0].id).status_code == 401


def _list(client: TestClient, token: str | None, **params):
    return client.get("/assignments/submissions", params=params, headers=auth(token))


def test_student_lists_own_submissions(client: TestClient, world: World) -> None:
    resp = _list(client, world.token(world.student))
    assert resp.status_code == 200
    assert {s["id"] for s in resp.json()} == {str(s.id) for s in world.submissions}

    stranger = mint_token(str(uuid4()), "student")
    assert _list(client, stranger).json() == []


def test_lecturer_sees_only_taught_courses(client: TestClient, world: World) -> None:
    owner = _list(client, world.token(world.lecturer)).json()
    other = _list(client, world.token(world.other_lecturer)).json()

    assert len(owner) == len(world.submissions)
    assert other == []


def test_list_filters_by_assignment(client: TestClient, world: World) -> None:
    essay = world.assignments[0]
    resp = _list(client, world.token(world.admin), assignmentId=str(essay.id))
    assert [s["id"] for s in resp.json()] == [str(world.submissions[0].id)]

    resp = _list(client, world.token(world.admin), courseId=str(uuid4()))
    assert resp.json() == []


def test_list_requires_token(client: TestClient) -> None:
    assert _list(client, None).status_code == 401
