"""Assignment submission and grading endpoints.

  Student -> POST /assignments/submit {assignmentId, submissionText?, fileUrl?}
  -> enrollment check
  -> 201 new submission, or 200 when an earlier one was overwritten

  Caller  -> GET /assignments/submissions?assignmentId=&courseId=
  -> scoped by role: own (student), taught courses (lecturer), all (admin)

  Client -> PUT /assignments/grade {submissionId, grade, feedback?}
  -> ownership check (lecturer owns the course, or admin)
  -> persist grade
  -> gradeUpdate pushed to the student, lecturers and admins
  -> 200 updated submission
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from portal.api.dependencies import (
    get_services,
    principal_uuid,
    require_any_role,
    require_role,
    require_user,
    to_http_error,
)
from portal.models.principal import Principal
from portal.models.submission import AssignmentSubmission
from portal.models.user import Role
from portal.services.container import Services
from portal.services.errors import PortalError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assignments", tags=["assignments"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubmitAssignmentIn(_CamelModel):
    assignment_id: UUID
    submission_text: str | None = None
    file_url: str | None = None


class GradeAssignmentIn(_CamelModel):
    submission_id: UUID
    grade: float
    feedback: str | None = None


class SubmissionOut(_CamelModel):
    id: UUID
    assignment_id: UUID
    student_id: UUID
    submitted_at: datetime
    grade: float | None
    feedback: str | None
    status: str
    graded_at: datetime | None
    submission_text: str | None = None
    file_url: str | None = None

    @staticmethod
    def from_model(s: AssignmentSubmission) -> SubmissionOut:
        return SubmissionOut(
            id=s.id,
            assignment_id=s.assignment_id,
            student_id=s.student_id,
            submitted_at=s.submitted_at,
            grade=s.grade,
            feedback=s.feedback,
            status=s.status,
            graded_at=s.graded_at,
            submission_text=s.submission_text,
            file_url=s.file_url,
        )


@router.put("/grade", response_model=SubmissionOut)
async def grade_assignment(
    body: GradeAssignmentIn,
    principal: Annotated[
        Principal, Depends(require_any_role({Role.ADMIN, Role.LECTURER}))
    ],
    services: Annotated[Services, Depends(get_services)],
) -> SubmissionOut:
    try:
        updated = await services.assignment_service.grade_assignment(
            body.submission_id,
            body.grade,
            principal_uuid(principal),
            feedback=body.feedback,
        )
    except PortalError as e:
        raise to_http_error(e) from None
    return SubmissionOut.from_model(updated)


@router.post(
    "/submit", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED
)
async def submit_assignment(
    body: SubmitAssignmentIn,
    response: Response,
    principal: Annotated[Principal, Depends(require_role(Role.STUDENT))],
    services: Annotated[Services, Depends(get_services)],
) -> SubmissionOut:
    try:
        result = await services.assignment_service.submit_assignment(
            body.assignment_id,
            principal_uuid(principal),
            submission_text=body.submission_text,
            file_url=body.file_url,
        )
    except PortalError as e:
        raise to_http_error(e) from None
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return SubmissionOut.from_model(result.submission)


@router.get("/submissions", response_model=list[SubmissionOut])
async def list_submissions(
    principal: Annotated[Principal, Depends(require_user)],
    services: Annotated[Services, Depends(get_services)],
    assignment_id: Annotated[UUID | None, Query(alias="assignmentId")] = None,
    course_id: Annotated[UUID | None, Query(alias="courseId")] = None,
) -> list[SubmissionOut]:
    found = await services.assignment_service.list_submissions(
        principal_uuid(principal),
        principal.role,
        assignment_id=assignment_id,
        course_id=course_id,
    )
    return [SubmissionOut.from_model(s) for s in found]
