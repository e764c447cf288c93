"""Wiring for one server process.

Everything stateful (repositories, the connection registry, room
membership) hangs off a single ``Services`` instance. The API builds one at
import time; tests build a fresh one per test.
"""

from __future__ import annotations

from dataclasses import dataclass

from portal.realtime.gateway import NotificationGateway
from portal.realtime.registry import ConnectionRegistry
from portal.realtime.transport import RoomServer
from portal.repos.course_repo import InMemoryAssignmentRepo, InMemoryCourseRepo
from portal.repos.enrollment_repo import InMemoryEnrollmentRepo
from portal.repos.submission_repo import InMemorySubmissionRepo
from portal.repos.user_repo import InMemoryUserRepo
from portal.services.assignment_service import AssignmentService
from portal.services.course_service import CourseService
from portal.services.notification_service import NotificationService
from portal.services.token_service import CredentialVerifier, credential_verifier


@dataclass
class Services:
    users: InMemoryUserRepo
    courses: InMemoryCourseRepo
    assignments: InMemoryAssignmentRepo
    submissions: InMemorySubmissionRepo
    enrollments: InMemoryEnrollmentRepo
    registry: ConnectionRegistry
    rooms: RoomServer
    gateway: NotificationGateway
    notifications: NotificationService
    assignment_service: AssignmentService
    course_service: CourseService


def build_services(verifier: CredentialVerifier = credential_verifier) -> Services:
    users = InMemoryUserRepo()
    courses = InMemoryCourseRepo()
    assignments = InMemoryAssignmentRepo()
    submissions = InMemorySubmissionRepo()
    enrollments = InMemoryEnrollmentRepo()

    registry = ConnectionRegistry()
    rooms = RoomServer()
    gateway = NotificationGateway(registry, rooms, verifier)
    notifications = NotificationService(gateway)

    return Services(
        users=users,
        courses=courses,
        assignments=assignments,
        submissions=submissions,
        enrollments=enrollments,
        registry=registry,
        rooms=rooms,
        gateway=gateway,
        notifications=notifications,
        assignment_service=AssignmentService(
            users=users,
            courses=courses,
            assignments=assignments,
            submissions=submissions,
            enrollments=enrollments,
            notifications=notifications,
        ),
        course_service=CourseService(
            users=users,
            courses=courses,
            enrollments=enrollments,
            notifications=notifications,
        ),
    )
