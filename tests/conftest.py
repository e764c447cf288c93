from __future__ import annotations

import asyncio
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient

from portal.api.dependencies import get_services
from portal.main import app
from portal.models.course import Assignment, Course
from portal.models.principal import Principal
from portal.models.submission import AssignmentSubmission
from portal.models.user import Role, User
from portal.services import token_service
from portal.services.container import Services, build_services


@pytest.fixture
def services() -> Iterator[Services]:
    """A fresh container (repos, registry, rooms) wired into the app."""
    fresh = build_services()
    app.dependency_overrides[get_services] = lambda: fresh
    yield fresh
    app.dependency_overrides.pop(get_services, None)


@pytest.fixture
def client(services: Services) -> TestClient:
    return TestClient(app)


@pytest.fixture
def live_client(services: Services) -> Iterator[TestClient]:
    """Client whose HTTP calls and WebSockets share one event loop."""
    with TestClient(app) as c:
        yield c


def mint_token(user_id: str = "test-user", role: Role | str = Role.STUDENT) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=str(user_id), role=role)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Seeded coursework
# ---------------------------------------------------------------------------


@dataclass
class World:
    admin: User
    lecturer: User
    other_lecturer: User
    student: User
    course: Course
    assignments: list[Assignment]
    submissions: list[AssignmentSubmission]

    def token(self, user: User) -> str:
        return mint_token(str(user.id), user.role)


async def build_world(services: Services) -> World:
    admin = User.new(email="admin@test.example", name="Admin", role=Role.ADMIN)
    lecturer = User.new(email="l1@test.example", name="L1", role=Role.LECTURER)
    other = User.new(email="l2@test.example", name="L2", role=Role.LECTURER)
    student = User.new(email="s1@test.example", name="S1")
    for u in (admin, lecturer, other, student):
        await services.users.add(u)

    course = Course.new(title="Distributed Systems", lecturer_id=lecturer.id)
    await services.courses.add(course)

    due = datetime(2030, 1, 1, tzinfo=UTC)
    assignments = [
        Assignment.new(course_id=course.id, title="Essay", weight=20, due_date=due),
        Assignment.new(
            course_id=course.id,
            title="Project",
            weight=30,
            due_date=due + timedelta(days=30),
        ),
        Assignment.new(
            course_id=course.id,
            title="Exam",
            weight=50,
            due_date=due + timedelta(days=60),
        ),
    ]
    submissions = []
    for a in assignments:
        await services.assignments.add(a)
        sub = AssignmentSubmission.new(assignment_id=a.id, student_id=student.id)
        await services.submissions.add(sub)
        submissions.append(sub)

    return World(
        admin=admin,
        lecturer=lecturer,
        other_lecturer=other,
        student=student,
        course=course,
        assignments=assignments,
        submissions=submissions,
    )


@pytest.fixture
def world(services: Services) -> World:
    return asyncio.run(build_world(services))


# ---------------------------------------------------------------------------
# Realtime fakes
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class FakeSession:
    """Transport session that records what the gateway did to it."""

    id: str = "fake-1"
    token: str | None = None
    principal: Principal | None = None
    joined: list[str] = field(default_factory=list)
    sent: list[tuple[str, Any]] = field(default_factory=list)
    closed_with: int | None = None

    def credential(self) -> str | None:
        return self.token

    async def join(self, room: str) -> None:
        self.joined.append(room)

    async def emit(self, event: str, payload: Any) -> None:
        self.sent.append((event, payload))

    async def disconnect(self, code: int = 1000) -> None:
        self.closed_with = code

    def events(self) -> list[str]:
        return [name for name, _ in self.sent]


class RecordingBroadcaster:
    """Broadcaster that records every room emission instead of sending."""

    def __init__(self) -> None:
        self.emitted: list[tuple[str, str, Any]] = []

    def to_room(self, room: str) -> _RecordingTarget:
        return _RecordingTarget(self, room)

    async def emit_all(self, event: str, payload: Any) -> None:
        self.emitted.append(("*", event, payload))

    def rooms(self) -> list[str]:
        return [room for room, _, _ in self.emitted]


class _RecordingTarget:
    def __init__(self, parent: RecordingBroadcaster, room: str) -> None:
        self._parent = parent
        self._room = room

    async def emit(self, event: str, payload: Any) -> None:
        self._parent.emitted.append((self._room, event, payload))


class FailingGateway:
    """Notification sink whose every emission raises."""

    async def emit_grade_update(self, event: Any) -> None:
        raise RuntimeError("realtime backend down")

    async def emit_enrollment_update(self, event: Any) -> None:
        raise RuntimeError("realtime backend down")

    def get_connection_stats(self) -> dict[str, object]:
        return {"connectedUsers": 0}


class RecordingGateway:
    """Notification sink that keeps the typed events it was handed."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    async def emit_grade_update(self, event: Any) -> None:
        self.events.append(event)

    async def emit_enrollment_update(self, event: Any) -> None:
        self.events.append(event)

    def get_connection_stats(self) -> dict[str, object]:
        return {"connectedUsers": 0}
