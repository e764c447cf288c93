from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class AssignmentSubmission:
    id: UUID
    assignment_id: UUID
    student_id: UUID
    submitted_at: datetime
    grade: float | None = None  # None until graded
    feedback: str | None = None
    status: str = "submitted"  # submitted|graded
    graded_at: datetime | None = None
    submission_text: str | None = None
    file_url: str | None = None

    @staticmethod
    def new(
        *,
        assignment_id: UUID,
        student_id: UUID,
        submitted_at: datetime | None = None,
        submission_text: str | None = None,
        file_url: str | None = None,
    ) -> AssignmentSubmission:
        return AssignmentSubmission(
            id=uuid4(),
            assignment_id=assignment_id,
            student_id=student_id,
            submitted_at=submitted_at or datetime.now(UTC),
            submission_text=submission_text,
            file_url=file_url,
        )

    @property
    def is_graded(self) -> bool:
        return self.grade is not None
