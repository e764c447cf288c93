from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from portal.models.notification import (
    EnrollmentAction,
    EnrollmentUpdate,
    GradeUpdate,
    iso_timestamp,
)

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def emit_grade_update(self, event: GradeUpdate) -> None: ...
    async def emit_enrollment_update(self, event: EnrollmentUpdate) -> None: ...
    def get_connection_stats(self) -> dict[str, object]: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationService:
    """Build typed notification events from domain data and hand them to the gateway.

    Errors from the gateway propagate; callers that must not fail because
    of a notification catch them.
    """

    def __init__(
        self, gateway: NotificationSink, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._gateway = gateway
        self._clock = clock

    async def send_grade_update(
        self,
        *,
        student_id: str,
        assignment_id: str,
        assignment_title: str,
        course_name: str,
        grade: float,
    ) -> GradeUpdate:
        event = GradeUpdate(
            student_id=student_id,
            assignment_id=assignment_id,
            assignment_title=assignment_title,
            course_name=course_name,
            grade=grade,
            timestamp=iso_timestamp(self._clock()),
        )
        await self._gateway.emit_grade_update(event)
        logger.info("Grade update notification sent for student %s", student_id)
        return event

    async def send_enrollment_update(
        self,
        *,
        student_id: str,
        course_id: str,
        course_name: str,
        action: EnrollmentAction,
    ) -> EnrollmentUpdate:
        event = EnrollmentUpdate(
            student_id=student_id,
            course_id=course_id,
            course_name=course_name,
            action=action,
            timestamp=iso_timestamp(self._clock()),
        )
        await self._gateway.emit_enrollment_update(event)
        logger.info("Enrollment update notification sent for student %s", student_id)
        return event

    async def send_test_notifications(self, student_id: str = "test-student-id") -> None:
        """Push one sample event of each kind, for checking client wiring."""
        await self.send_grade_update(
            student_id=student_id,
            assignment_id="test-assignment-id",
            assignment_title="Programming Assignment 1",
            course_name="Introduction to Computer Science",
            grade=92,
        )
        await self.send_enrollment_update(
            student_id=student_id,
            course_id="test-course-id",
            course_name="Advanced Mathematics",
            action="enrolled",
        )

    def get_connection_stats(self) -> dict[str, object]:
        return self._gateway.get_connection_stats()
