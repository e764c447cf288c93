from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    lecturer_id: UUID  # exactly one owning lecturer
    credits: int = 0
    syllabus: str = ""

    @staticmethod
    def new(
        *, title: str, lecturer_id: UUID, credits: int = 0, syllabus: str = ""
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            lecturer_id=lecturer_id,
            credits=credits,
            syllabus=syllabus,
        )


@dataclass(frozen=True, slots=True)
class Assignment:
    """A graded piece of coursework.

    ``weight`` is the percentage of the final grade (0-100). Weights across
    a course are not required to sum to 100. When ``max_points`` is set,
    grades are entered on a 0..max_points scale instead of 0..100.
    """

    id: UUID
    course_id: UUID
    title: str
    weight: float
    due_date: datetime
    description: str = ""
    max_points: float | None = None

    @staticmethod
    def new(
        *,
        course_id: UUID,
        title: str,
        weight: float,
        due_date: datetime,
        description: str = "",
        max_points: float | None = None,
    ) -> Assignment:
        return Assignment(
            id=uuid4(),
            course_id=course_id,
            title=title,
            weight=weight,
            due_date=due_date,
            description=description,
            max_points=max_points,
        )

    @property
    def grade_ceiling(self) -> float:
        return self.max_points if self.max_points is not None else 100.0
