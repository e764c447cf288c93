"""Weighted course grade aggregation.

Partial weighting is allowed: assignment weights need not sum to 100, and
the final grade is normalized against the weight of the assignments that
have been graded so far. A student who scored 80 on a 20% assignment and
90 on a 30% assignment has a running grade of (80*20 + 90*30) / 50 = 86.0,
regardless of the ungraded 50% still outstanding.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from portal.services.errors import InvalidArgumentError

_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class AssignmentGrade:
    weight: float
    grade: float | None  # percentage 0-100, None when ungraded


@dataclass(frozen=True, slots=True)
class AssignmentScore:
    weight: float
    grade: float | None
    contribution: float | None  # grade * weight / 100


@dataclass(frozen=True, slots=True)
class CourseGrade:
    final_grade: float | None
    total_weight: float
    graded_weight: float
    per_assignment: list[AssignmentScore]


def round_grade(value: float) -> float:
    """Round half-up to 2 decimal places (86.005 -> 86.01)."""
    # str() first so binary float noise does not decide the tie.
    return float(Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def compute_course_grade(assignments: Iterable[AssignmentGrade]) -> CourseGrade:
    total_weight = 0.0
    graded_weight = 0.0
    weighted_score_sum = 0.0
    per_assignment: list[AssignmentScore] = []

    for item in assignments:
        if item.weight < 0:
            raise InvalidArgumentError(
                f"assignment weight must be non-negative (got {item.weight})"
            )
        total_weight += item.weight

        if item.grade is None:
            per_assignment.append(AssignmentScore(item.weight, None, None))
            continue

        contribution = item.grade * item.weight / 100
        weighted_score_sum += contribution
        graded_weight += item.weight
        per_assignment.append(AssignmentScore(item.weight, item.grade, contribution))

    if graded_weight == 0:
        final_grade = None
    else:
        final_grade = round_grade(weighted_score_sum / graded_weight * 100)

    return CourseGrade(
        final_grade=final_grade,
        total_weight=total_weight,
        graded_weight=graded_weight,
        per_assignment=per_assignment,
    )
