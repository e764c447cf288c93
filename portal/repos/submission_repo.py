from __future__ import annotations

from typing import Protocol
from uuid import UUID

from portal.models.submission import AssignmentSubmission


class SubmissionRepo(Protocol):
    async def get_by_id(self, submission_id: UUID) -> AssignmentSubmission | None: ...
    async def get_for_student(
        self, assignment_id: UUID, student_id: UUID
    ) -> AssignmentSubmission | None: ...
    async def list_by_student(self, student_id: UUID) -> list[AssignmentSubmission]: ...
    async def list_by_assignment(self, assignment_id: UUID) -> list[AssignmentSubmission]: ...
    async def list_all(self) -> list[AssignmentSubmission]: ...
    async def add(self, submission: AssignmentSubmission) -> None: ...
    async def save(self, submission: AssignmentSubmission) -> AssignmentSubmission: ...


class InMemorySubmissionRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, AssignmentSubmission] = {}

    async def get_by_id(self, submission_id: UUID) -> AssignmentSubmission | None:
        return self._by_id.get(submission_id)

    async def get_for_student(
        self, assignment_id: UUID, student_id: UUID
    ) -> AssignmentSubmission | None:
        """Most recent submission by ``student_id`` for ``assignment_id``."""
        found = [
            s
            for s in self._by_id.values()
            if s.assignment_id == assignment_id and s.student_id == student_id
        ]
        return max(found, key=lambda s: s.submitted_at, default=None)

    async def list_by_student(self, student_id: UUID) -> list[AssignmentSubmission]:
        return [s for s in self._by_id.values() if s.student_id == student_id]

    async def list_by_assignment(self, assignment_id: UUID) -> list[AssignmentSubmission]:
        return [s for s in self._by_id.values() if s.assignment_id == assignment_id]

    async def list_all(self) -> list[AssignmentSubmission]:
        return list(self._by_id.values())

    async def add(self, submission: AssignmentSubmission) -> None:
        if submission.id in self._by_id:
            raise ValueError("submission already exists")
        self._by_id[submission.id] = submission

    async def save(self, submission: AssignmentSubmission) -> AssignmentSubmission:
        if submission.id not in self._by_id:
            raise KeyError("submission not found")
        self._by_id[submission.id] = submission
        return submission
