"""Realtime notification events and room naming.

Events are a closed set: every notification the gateway can fan out is one
of the dataclasses below, tagged by ``NotificationKind``. ``to_payload()``
produces the wire shape browsers already consume, so key names and the
timestamp format must not change.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal

EnrollmentAction = Literal["enrolled", "unenrolled"]


class NotificationKind(StrEnum):
    GRADE_UPDATE = "gradeUpdate"
    ENROLLMENT_UPDATE = "enrollmentUpdate"


# Event rooms a client may opt into with a ``subscribe`` message.
SUBSCRIBABLE_EVENTS: frozenset[str] = frozenset(k.value for k in NotificationKind)


def iso_timestamp(moment: datetime | None = None) -> str:
    """UTC timestamp with millisecond precision and a ``Z`` suffix.

    >>> iso_timestamp(datetime(2024, 1, 2, 3, 4, 5, 678900, tzinfo=UTC))
    '2024-01-02T03:04:05.678Z'
    """
    moment = (moment or datetime.now(UTC)).astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def role_room(role: str) -> str:
    return f"role:{role}"


def event_room(kind: NotificationKind | str) -> str:
    return f"event:{NotificationKind(kind).value}"


@dataclass(frozen=True, slots=True)
class GradeUpdate:
    student_id: str
    assignment_id: str
    assignment_title: str
    course_name: str
    grade: float
    timestamp: str

    kind = NotificationKind.GRADE_UPDATE

    def to_payload(self) -> dict[str, object]:
        return {
            "type": self.kind.value,
            "studentId": self.student_id,
            "assignmentId": self.assignment_id,
            "assignmentTitle": self.assignment_title,
            "courseName": self.course_name,
            "grade": self.grade,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class EnrollmentUpdate:
    student_id: str
    course_id: str
    course_name: str
    action: EnrollmentAction
    timestamp: str

    kind = NotificationKind.ENROLLMENT_UPDATE

    def to_payload(self) -> dict[str, object]:
        return {
            "type": self.kind.value,
            "studentId": self.student_id,
            "courseId": self.course_id,
            "courseName": self.course_name,
            "action": self.action,
            "timestamp": self.timestamp,
        }


NotificationEvent = GradeUpdate | EnrollmentUpdate
