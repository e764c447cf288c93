from __future__ import annotations

from typing import Protocol
from uuid import UUID

from portal.models.enrollment import Enrollment


class DuplicateEnrollmentError(ValueError):
    """Raised by ``add`` when (student_id, course_id) is already enrolled.

    Storage-level uniqueness is the authoritative guard; a service-level
    existence check can race with a concurrent insert.
    """


class EnrollmentRepo(Protocol):
    async def get(self, student_id: UUID, course_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def list_by_course(self, course_id: UUID) -> list[Enrollment]: ...
    async def list_by_student(self, student_id: UUID) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Enrollment] = {}

    async def get(self, student_id: UUID, course_id: UUID) -> Enrollment | None:
        return self._store.get((student_id, course_id))

    async def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.student_id, enrollment.course_id)
        if key in self._store:
            raise DuplicateEnrollmentError("enrollment already exists")
        self._store[key] = enrollment

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        return [e for e in self._store.values() if e.course_id == course_id]

    async def list_by_student(self, student_id: UUID) -> list[Enrollment]:
        return [e for e in self._store.values() if e.student_id == student_id]
