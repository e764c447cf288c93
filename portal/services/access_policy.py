"""Role and ownership checks gating grading and enrollment mutations.

Pure functions of their inputs. Callers turn a denied decision into a
ForbiddenError carrying ``reason``.
"""

from __future__ import annotations

from dataclasses import dataclass

from portal.models.user import Role


@dataclass(frozen=True, slots=True)
class AccessDecision:
    allowed: bool
    reason: str | None = None

    @staticmethod
    def allow() -> AccessDecision:
        return AccessDecision(allowed=True)

    @staticmethod
    def deny(reason: str) -> AccessDecision:
        return AccessDecision(allowed=False, reason=reason)


def authorize_grading(
    actor_role: Role | str | None,
    actor_id: str,
    course_owner_lecturer_id: str,
) -> AccessDecision:
    if actor_role == Role.ADMIN:
        return AccessDecision.allow()
    if actor_role == Role.LECTURER:
        if actor_id == course_owner_lecturer_id:
            return AccessDecision.allow()
        return AccessDecision.deny("not course owner")
    return AccessDecision.deny("insufficient role")


def authorize_enrollment(target_student_role: Role | str | None) -> AccessDecision:
    # Who may *initiate* an enrollment is checked by the route guard.
    if target_student_role != Role.STUDENT:
        return AccessDecision.deny("user must have student role")
    return AccessDecision.allow()


def authorize_grade_view(
    actor_role: Role | str | None, actor_id: str, student_id: str
) -> AccessDecision:
    if actor_role in (Role.ADMIN, Role.LECTURER):
        return AccessDecision.allow()
    if actor_role == Role.STUDENT and actor_id == student_id:
        return AccessDecision.allow()
    if actor_role == Role.STUDENT:
        return AccessDecision.deny("not your grade report")
    return AccessDecision.deny("insufficient role")


def authorize_submission(actor_role: Role | str | None) -> AccessDecision:
    if actor_role != Role.STUDENT:
        return AccessDecision.deny("Only students can submit assignments")
    return AccessDecision.allow()
