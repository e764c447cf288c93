from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One student in one course. Unique per (student_id, course_id)."""

    id: UUID
    student_id: UUID
    course_id: UUID
    enrolled_at: datetime

    @staticmethod
    def new(*, student_id: UUID, course_id: UUID) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            student_id=student_id,
            course_id=course_id,
            enrolled_at=datetime.now(UTC),
        )
