from __future__ import annotations

from typing import Protocol
from uuid import UUID

from portal.models.course import Assignment, Course


class CourseRepo(Protocol):
    async def get_by_id(self, course_id: UUID) -> Course | None: ...
    async def list_all(self) -> list[Course]: ...
    async def add(self, course: Course) -> None: ...


class AssignmentRepo(Protocol):
    async def get_by_id(self, assignment_id: UUID) -> Assignment | None: ...
    async def list_by_course(self, course_id: UUID) -> list[Assignment]: ...
    async def add(self, assignment: Assignment) -> None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    async def get_by_id(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def list_all(self) -> list[Course]:
        return sorted(self._by_id.values(), key=lambda c: c.title)

    async def add(self, course: Course) -> None:
        if course.id in self._by_id:
            raise ValueError("course already exists")
        self._by_id[course.id] = course


class InMemoryAssignmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Assignment] = {}

    async def get_by_id(self, assignment_id: UUID) -> Assignment | None:
        return self._by_id.get(assignment_id)

    async def list_by_course(self, course_id: UUID) -> list[Assignment]:
        found = [a for a in self._by_id.values() if a.course_id == course_id]
        return sorted(found, key=lambda a: a.due_date)

    async def add(self, assignment: Assignment) -> None:
        if assignment.id in self._by_id:
            raise ValueError("assignment already exists")
        self._by_id[assignment.id] = assignment
