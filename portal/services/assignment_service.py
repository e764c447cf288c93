"""Submissions, grading and grade reports.

Submission sequence:
  check the submitter is a student
  -> resolve the assignment
  -> check the student is enrolled in its course
  -> insert, or overwrite the earlier submission and clear its grade

Grading sequence:
  resolve submission -> assignment -> course
  -> check grader against the course owner
  -> validate the grade range
  -> persist
  -> notify the student (best-effort)

The notification is sent only after the grade is saved, so it always
carries the committed value. A failing notification never undoes or fails
the grading itself.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import UUID

from portal.core.metrics import (
    GRADES_POSTED,
    NOTIFICATION_FAILURES,
    SUBMISSIONS_RECEIVED,
)
from portal.models.notification import NotificationKind
from portal.models.submission import AssignmentSubmission
from portal.models.user import Role
from portal.repos.course_repo import AssignmentRepo, CourseRepo
from portal.repos.enrollment_repo import EnrollmentRepo
from portal.repos.submission_repo import SubmissionRepo
from portal.repos.user_repo import UserRepo
from portal.services.access_policy import authorize_grading, authorize_submission
from portal.services.errors import ForbiddenError, InvalidArgumentError, NotFoundError
from portal.services.grade_aggregator import AssignmentGrade, compute_course_grade
from portal.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssignmentGradeLine:
    id: UUID
    title: str
    weight: float
    grade: float | None  # as entered, on the assignment's own scale
    percent: float | None  # normalized to 0-100
    due_date: datetime


@dataclass(frozen=True, slots=True)
class GradeReport:
    student_id: UUID
    course_id: UUID
    assignments: list[AssignmentGradeLine]
    final_grade: float | None
    total_weight: float
    graded_weight: float


@dataclass(frozen=True, slots=True)
class SubmitResult:
    submission: AssignmentSubmission
    created: bool  # False when an earlier submission was overwritten


class AssignmentService:
    def __init__(
        self,
        *,
        users: UserRepo,
        courses: CourseRepo,
        assignments: AssignmentRepo,
        submissions: SubmissionRepo,
        enrollments: EnrollmentRepo,
        notifications: NotificationService,
    ) -> None:
        self._users = users
        self._courses = courses
        self._assignments = assignments
        self._submissions = submissions
        self._enrollments = enrollments
        self._notifications = notifications

    async def grade_assignment(
        self,
        submission_id: UUID,
        grade: float,
        acting_user_id: UUID,
        feedback: str | None = None,
    ) -> AssignmentSubmission:
        submission = await self._submissions.get_by_id(submission_id)
        if submission is None:
            raise NotFoundError("Assignment submission not found")

        assignment = await self._assignments.get_by_id(submission.assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")

        course = await self._courses.get_by_id(assignment.course_id)
        if course is None:
            raise NotFoundError("Course not found")

        grader = await self._users.get_by_id(acting_user_id)
        decision = authorize_grading(
            grader.role if grader is not None else None,
            str(acting_user_id),
            str(course.lecturer_id),
        )
        if not decision.allowed:
            logger.warning(
                "Grading denied: user=%s submission=%s reason=%s",
                acting_user_id,
                submission_id,
                decision.reason,
            )
            raise ForbiddenError(decision.reason or "forbidden")

        ceiling = assignment.grade_ceiling
        if not math.isfinite(grade) or grade < 0 or grade > ceiling:
            raise InvalidArgumentError(f"Grade must be between 0 and {ceiling:g}")

        updated = await self._submissions.save(
            replace(
                submission,
                grade=grade,
                feedback=feedback,
                status="graded",
                graded_at=datetime.now(UTC),
            )
        )
        GRADES_POSTED.inc()
        logger.info(
            "Graded submission=%s grade=%s by user=%s",
            updated.id,
            grade,
            acting_user_id,
        )

        try:
            await self._notifications.send_grade_update(
                student_id=str(updated.student_id),
                assignment_id=str(assignment.id),
                assignment_title=assignment.title,
                course_name=course.title,
                grade=grade,
            )
        except Exception:
            NOTIFICATION_FAILURES.labels(kind=NotificationKind.GRADE_UPDATE.value).inc()
            logger.exception(
                "Failed to send grade update notification for submission=%s",
                updated.id,
            )

        return updated

    async def submit_assignment(
        self,
        assignment_id: UUID,
        student_id: UUID,
        *,
        submission_text: str | None = None,
        file_url: str | None = None,
    ) -> SubmitResult:
        """Record a student's work for ``assignment_id``.

        A student holds at most one submission per assignment. Submitting
        again overwrites the earlier text and file, moves ``submitted_at``
        forward and clears any grade, so the work goes back to ungraded.
        """
        student = await self._users.get_by_id(student_id)
        decision = authorize_submission(student.role if student is not None else None)
        if not decision.allowed:
            logger.warning(
                "Submission denied: user=%s assignment=%s reason=%s",
                student_id,
                assignment_id,
                decision.reason,
            )
            raise ForbiddenError(decision.reason or "forbidden")

        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")

        if await self._enrollments.get(student_id, assignment.course_id) is None:
            raise ForbiddenError(
                "You must be enrolled in the course to submit assignments"
            )

        now = datetime.now(UTC)
        existing = await self._submissions.get_for_student(assignment_id, student_id)
        if existing is None:
            submission = AssignmentSubmission.new(
                assignment_id=assignment_id,
                student_id=student_id,
                submitted_at=now,
                submission_text=submission_text,
                file_url=file_url,
            )
            await self._submissions.add(submission)
        else:
            submission = await self._submissions.save(
                replace(
                    existing,
                    submission_text=submission_text,
                    file_url=file_url,
                    submitted_at=now,
                    status="submitted",
                    grade=None,
                    feedback=None,
                    graded_at=None,
                )
            )

        created = existing is None
        SUBMISSIONS_RECEIVED.labels(kind="new" if created else "resubmission").inc()
        logger.info(
            "Submission=%s for assignment=%s by student=%s (%s)",
            submission.id,
            assignment_id,
            student_id,
            "new" if created else "resubmitted",
        )
        return SubmitResult(submission=submission, created=created)

    async def list_submissions(
        self,
        viewer_id: UUID,
        viewer_role: Role,
        *,
        assignment_id: UUID | None = None,
        course_id: UUID | None = None,
    ) -> list[AssignmentSubmission]:
        """Submissions visible to the viewer, newest first.

        Students see their own, lecturers those for courses they teach,
        admins everything. ``assignment_id`` and ``course_id`` narrow the
        result further.
        """
        if viewer_role == Role.STUDENT:
            found = await self._submissions.list_by_student(viewer_id)
        elif assignment_id is not None:
            found = await self._submissions.list_by_assignment(assignment_id)
        else:
            found = await self._submissions.list_all()

        taught: set[UUID] | None = None
        if viewer_role == Role.LECTURER:
            taught = {
                c.id for c in await self._courses.list_all() if c.lecturer_id == viewer_id
            }

        course_of: dict[UUID, UUID | None] = {}
        visible: list[AssignmentSubmission] = []
        for sub in found:
            if assignment_id is not None and sub.assignment_id != assignment_id:
                continue
            if sub.assignment_id not in course_of:
                assignment = await self._assignments.get_by_id(sub.assignment_id)
                course_of[sub.assignment_id] = (
                    assignment.course_id if assignment is not None else None
                )
            owner_course = course_of[sub.assignment_id]
            if course_id is not None and owner_course != course_id:
                continue
            if taught is not None and owner_course not in taught:
                continue
            visible.append(sub)

        return sorted(visible, key=lambda s: s.submitted_at, reverse=True)

    async def calculate_student_grade(
        self, student_id: UUID, course_id: UUID
    ) -> GradeReport:
        course = await self._courses.get_by_id(course_id)
        if course is None:
            raise NotFoundError("Course not found")

        assignments = await self._assignments.list_by_course(course_id)
        assignment_ids = {a.id for a in assignments}

        # Latest submission wins when a student has resubmitted.
        latest: dict[UUID, AssignmentSubmission] = {}
        for sub in await self._submissions.list_by_student(student_id):
            if sub.assignment_id not in assignment_ids:
                continue
            current = latest.get(sub.assignment_id)
            if current is None or sub.submitted_at >= current.submitted_at:
                latest[sub.assignment_id] = sub

        lines: list[AssignmentGradeLine] = []
        inputs: list[AssignmentGrade] = []
        for assignment in assignments:
            sub = latest.get(assignment.id)
            grade = sub.grade if sub is not None else None
            percent = None if grade is None else grade / assignment.grade_ceiling * 100
            inputs.append(AssignmentGrade(weight=assignment.weight, grade=percent))
            lines.append(
                AssignmentGradeLine(
                    id=assignment.id,
                    title=assignment.title,
                    weight=assignment.weight,
                    grade=grade,
                    percent=percent,
                    due_date=assignment.due_date,
                )
            )

        result = compute_course_grade(inputs)
        return GradeReport(
            student_id=student_id,
            course_id=course_id,
            assignments=lines,
            final_grade=result.final_grade,
            total_weight=result.total_weight,
            graded_weight=result.graded_weight,
        )
