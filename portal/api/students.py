from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from portal.api.dependencies import (
    get_services,
    principal_uuid,
    require_user,
    to_http_error,
)
from portal.models.principal import Principal
from portal.models.user import Role
from portal.services.access_policy import authorize_grade_view
from portal.services.container import Services
from portal.services.errors import PortalError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/students", tags=["students"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssignmentGradeOut(_CamelModel):
    id: UUID
    title: str
    weight: float
    grade: float | None
    percent: float | None
    due_date: datetime


class GradeReportOut(_CamelModel):
    student_id: UUID
    course_id: UUID
    assignments: list[AssignmentGradeOut]
    final_grade: float | None
    total_weight: float
    graded_weight: float


@router.get(
    "/{student_id}/courses/{course_id}/grade",
    response_model=GradeReportOut,
)
async def get_student_grade(
    student_id: UUID,
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    services: Annotated[Services, Depends(get_services)],
) -> GradeReportOut:
    actor_id = principal.user_id
    if principal.role == Role.STUDENT:
        actor_id = str(principal_uuid(principal))
    decision = authorize_grade_view(principal.role, actor_id, str(student_id))
    if not decision.allowed:
        logger.warning(
            "Grade report denied: user=%s student=%s reason=%s",
            principal.user_id,
            student_id,
            decision.reason,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=decision.reason,
        )

    try:
        report = await services.assignment_service.calculate_student_grade(
            student_id, course_id
        )
    except PortalError as e:
        raise to_http_error(e) from None

    return GradeReportOut(
        student_id=report.student_id,
        course_id=report.course_id,
        assignments=[
            AssignmentGradeOut(
                id=line.id,
                title=line.title,
                weight=line.weight,
                grade=line.grade,
                percent=line.percent,
                due_date=line.due_date,
            )
            for line in report.assignments
        ],
        final_grade=report.final_grade,
        total_weight=report.total_weight,
        graded_weight=report.graded_weight,
    )
