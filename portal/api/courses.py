"""Course listing and enrollment endpoints.

  Client -> POST /courses/enroll {studentId, courseId}
  -> student exists and has the student role
  -> no existing enrollment for the pair
  -> persist enrollment
  -> enrollmentUpdate pushed to the student, lecturers and admins
  -> 201 Enrolled
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from portal.api.dependencies import (
    get_services,
    require_any_role,
    require_user,
    to_http_error,
)
from portal.models.course import Course
from portal.models.enrollment import Enrollment
from portal.models.principal import Principal
from portal.models.user import Role
from portal.services.container import Services
from portal.services.errors import PortalError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["courses"])

_STAFF = {Role.ADMIN, Role.LECTURER}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CourseOut(_CamelModel):
    id: UUID
    title: str
    lecturer_id: UUID
    credits: int
    syllabus: str

    @staticmethod
    def from_model(c: Course) -> CourseOut:
        return CourseOut(
            id=c.id,
            title=c.title,
            lecturer_id=c.lecturer_id,
            credits=c.credits,
            syllabus=c.syllabus,
        )


class EnrollStudentIn(_CamelModel):
    student_id: UUID
    course_id: UUID


class EnrollmentOut(_CamelModel):
    id: UUID
    student_id: UUID
    course_id: UUID
    enrolled_at: datetime

    @staticmethod
    def from_model(e: Enrollment) -> EnrollmentOut:
        return EnrollmentOut(
            id=e.id,
            student_id=e.student_id,
            course_id=e.course_id,
            enrolled_at=e.enrolled_at,
        )


@router.get("", response_model=list[CourseOut])
async def list_courses(
    _principal: Annotated[Principal, Depends(require_user)],
    services: Annotated[Services, Depends(get_services)],
) -> list[CourseOut]:
    courses = await services.course_service.list_courses()
    return [CourseOut.from_model(c) for c in courses]


@router.post(
    "/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_student(
    body: EnrollStudentIn,
    principal: Annotated[Principal, Depends(require_any_role(_STAFF))],
    services: Annotated[Services, Depends(get_services)],
) -> EnrollmentOut:
    logger.info(
        "Enrollment of student=%s in course=%s requested by user=%s",
        body.student_id,
        body.course_id,
        principal.user_id,
    )
    try:
        enrollment = await services.course_service.enroll_student(
            body.student_id, body.course_id
        )
    except PortalError as e:
        raise to_http_error(e) from None
    return EnrollmentOut.from_model(enrollment)


@router.get("/{course_id}", response_model=CourseOut)
async def get_course(
    course_id: UUID,
    _principal: Annotated[Principal, Depends(require_user)],
    services: Annotated[Services, Depends(get_services)],
) -> CourseOut:
    try:
        course = await services.course_service.get_course(course_id)
    except PortalError as e:
        raise to_http_error(e) from None
    return CourseOut.from_model(course)


@router.get("/{course_id}/enrollments", response_model=list[EnrollmentOut])
async def list_course_enrollments(
    course_id: UUID,
    _principal: Annotated[Principal, Depends(require_any_role(_STAFF))],
    services: Annotated[Services, Depends(get_services)],
) -> list[EnrollmentOut]:
    try:
        enrollments = await services.course_service.list_enrollments(course_id)
    except PortalError as e:
        raise to_http_error(e) from None
    return [EnrollmentOut.from_model(e) for e in enrollments]
