from __future__ import annotations

import logging
from uuid import UUID

from portal.core.metrics import ENROLLMENTS_CREATED, NOTIFICATION_FAILURES
from portal.models.course import Course
from portal.models.enrollment import Enrollment
from portal.models.notification import NotificationKind
from portal.repos.course_repo import CourseRepo
from portal.repos.enrollment_repo import DuplicateEnrollmentError, EnrollmentRepo
from portal.repos.user_repo import UserRepo
from portal.services.access_policy import authorize_enrollment
from portal.services.errors import ConflictError, ForbiddenError, NotFoundError
from portal.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(
        self,
        *,
        users: UserRepo,
        courses: CourseRepo,
        enrollments: EnrollmentRepo,
        notifications: NotificationService,
    ) -> None:
        self._users = users
        self._courses = courses
        self._enrollments = enrollments
        self._notifications = notifications

    async def list_courses(self) -> list[Course]:
        return await self._courses.list_all()

    async def get_course(self, course_id: UUID) -> Course:
        course = await self._courses.get_by_id(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        return course

    async def list_enrollments(self, course_id: UUID) -> list[Enrollment]:
        await self.get_course(course_id)
        return await self._enrollments.list_by_course(course_id)

    async def enroll_student(self, student_id: UUID, course_id: UUID) -> Enrollment:
        student = await self._users.get_by_id(student_id)
        if student is None:
            raise NotFoundError("Student not found")

        course = await self.get_course(course_id)

        decision = authorize_enrollment(student.role)
        if not decision.allowed:
            logger.warning(
                "Enrollment denied: user=%s course=%s reason=%s",
                student_id,
                course_id,
                decision.reason,
            )
            raise ForbiddenError(decision.reason or "forbidden")

        # Fast path for the common case; the repo's own uniqueness guard
        # below settles races between concurrent requests.
        if await self._enrollments.get(student_id, course_id) is not None:
            raise ConflictError("Student is already enrolled in this course")

        enrollment = Enrollment.new(student_id=student_id, course_id=course_id)
        try:
            await self._enrollments.add(enrollment)
        except DuplicateEnrollmentError:
            logger.warning(
                "Concurrent duplicate enrollment: user=%s course=%s",
                student_id,
                course_id,
            )
            raise ConflictError("Student is already enrolled in this course") from None

        ENROLLMENTS_CREATED.inc()
        logger.info("Enrolled student=%s in course=%s", student_id, course_id)

        try:
            await self._notifications.send_enrollment_update(
                student_id=str(student_id),
                course_id=str(course_id),
                course_name=course.title,
                action="enrolled",
            )
        except Exception:
            NOTIFICATION_FAILURES.labels(
                kind=NotificationKind.ENROLLMENT_UPDATE.value
            ).inc()
            logger.exception(
                "Failed to send enrollment update notification for student=%s",
                student_id,
            )

        return enrollment
