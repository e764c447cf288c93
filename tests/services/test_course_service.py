from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from portal.models.enrollment import Enrollment
from portal.models.notification import EnrollmentUpdate
from portal.models.user import Role, User
from portal.repos.enrollment_repo import InMemoryEnrollmentRepo
from portal.services.container import Services
from portal.services.course_service import CourseService
from portal.services.errors import ConflictError, ForbiddenError, NotFoundError
from portal.services.notification_service import NotificationService
from tests.conftest import FailingGateway, RecordingGateway, World


def _service(services: Services, gateway, enrollments=None) -> CourseService:
    return CourseService(
        users=services.users,
        courses=services.courses,
        enrollments=enrollments or services.enrollments,
        notifications=NotificationService(gateway),
    )


def test_enroll_student(services: Services, world: World) -> None:
    gateway = RecordingGateway()
    svc = _service(services, gateway)

    enrollment = asyncio.run(svc.enroll_student(world.student.id, world.course.id))

    assert enrollment.student_id == world.student.id
    assert enrollment.course_id == world.course.id
    assert asyncio.run(services.enrollments.list_by_course(world.course.id)) == [
        enrollment
    ]
    assert len(gateway.events) == 1
    event = gateway.events[0]
    assert isinstance(event, EnrollmentUpdate)
    assert event.action == "enrolled"
    assert event.course_name == "Distributed Systems"
    assert event.student_id == str(world.student.id)
    assert event.course_id == str(world.course.id)


def test_second_enrollment_conflicts_and_keeps_one_row(
    services: Services, world: World
) -> None:
    gateway = RecordingGateway()
    svc = _service(services, gateway)
    asyncio.run(svc.enroll_student(world.student.id, world.course.id))

    with pytest.raises(ConflictError):
        asyncio.run(svc.enroll_student(world.student.id, world.course.id))

    assert len(asyncio.run(services.enrollments.list_by_course(world.course.id))) == 1
    assert len(gateway.events) == 1


def test_concurrent_duplicate_is_caught_by_storage_guard(
    services: Services, world: World
) -> None:
    class RacingRepo(InMemoryEnrollmentRepo):
        """Existence check always misses, as if another request is mid-insert."""

        async def get(self, student_id, course_id):
            return None

    repo = RacingRepo()
    svc = _service(services, RecordingGateway(), enrollments=repo)

    async def _race() -> list:
        return await asyncio.gather(
            svc.enroll_student(world.student.id, world.course.id),
            svc.enroll_student(world.student.id, world.course.id),
            return_exceptions=True,
        )

    results = asyncio.run(_race())

    assert sum(isinstance(r, Enrollment) for r in results) == 1
    assert sum(isinstance(r, ConflictError) for r in results) == 1
    assert len(asyncio.run(repo.list_by_course(world.course.id))) == 1


def test_unknown_student_is_not_found(services: Services, world: World) -> None:
    svc = _service(services, RecordingGateway())
    with pytest.raises(NotFoundError, match="Student"):
        asyncio.run(svc.enroll_student(uuid4(), world.course.id))


def test_unknown_course_is_not_found(services: Services, world: World) -> None:
    svc = _service(services, RecordingGateway())
    with pytest.raises(NotFoundError, match="Course"):
        asyncio.run(svc.enroll_student(world.student.id, uuid4()))


@pytest.mark.parametrize("role", [Role.LECTURER, Role.ADMIN])
def test_non_student_cannot_be_enrolled(
    services: Services, world: World, role: Role
) -> None:
    user = User.new(email=f"{role}-x@test.example", name="X", role=role)
    asyncio.run(services.users.add(user))
    svc = _service(services, RecordingGateway())

    with pytest.raises(ForbiddenError, match="user must have student role"):
        asyncio.run(svc.enroll_student(user.id, world.course.id))


def test_enrollment_succeeds_when_notification_fails(
    services: Services, world: World
) -> None:
    svc = _service(services, FailingGateway())
    enrollment = asyncio.run(svc.enroll_student(world.student.id, world.course.id))
    stored = asyncio.run(services.enrollments.get(world.student.id, world.course.id))
    assert stored == enrollment


# ---- reads ----


def test_list_and_get_courses(services: Services, world: World) -> None:
    svc = _service(services, RecordingGateway())
    assert asyncio.run(svc.list_courses()) == [world.course]
    assert asyncio.run(svc.get_course(world.course.id)) == world.course
    with pytest.raises(NotFoundError):
        asyncio.run(svc.get_course(uuid4()))


def test_list_enrollments_for_unknown_course(services: Services) -> None:
    svc = _service(services, RecordingGateway())
    with pytest.raises(NotFoundError):
        asyncio.run(svc.list_enrollments(uuid4()))
