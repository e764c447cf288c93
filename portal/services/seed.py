"""Sample data for local development (SEED_DEMO_DATA=true)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from portal.models.course import Assignment, Course
from portal.models.enrollment import Enrollment
from portal.models.submission import AssignmentSubmission
from portal.models.user import Role, User
from portal.services.container import Services

logger = logging.getLogger(__name__)


async def seed_demo_data(services: Services) -> None:
    if await services.courses.list_all():
        return

    admin = User.new(email="admin@portal.example", name="Ada Admin", role=Role.ADMIN)
    lecturer = User.new(
        email="lecturer@portal.example", name="Lin Lecturer", role=Role.LECTURER
    )
    student = User.new(email="student@portal.example", name="Sam Student")
    for user in (admin, lecturer, student):
        await services.users.add(user)

    course = Course.new(
        title="Introduction to Computer Science",
        lecturer_id=lecturer.id,
        credits=6,
        syllabus="Algorithms, data structures and programming fundamentals.",
    )
    await services.courses.add(course)

    now = datetime.now(UTC)
    plan = [
        ("Programming Assignment 1", 20.0, 7),
        ("Midterm Project", 30.0, 35),
        ("Final Exam", 50.0, 70),
    ]
    for title, weight, days in plan:
        assignment = Assignment.new(
            course_id=course.id,
            title=title,
            weight=weight,
            due_date=now + timedelta(days=days),
        )
        await services.assignments.add(assignment)
        await services.submissions.add(
            AssignmentSubmission.new(assignment_id=assignment.id, student_id=student.id)
        )

    await services.enrollments.add(
        Enrollment.new(student_id=student.id, course_id=course.id)
    )

    logger.info(
        "Seeded demo data: admin=%s lecturer=%s student=%s course=%s",
        admin.id,
        lecturer.id,
        student.id,
        course.id,
    )
