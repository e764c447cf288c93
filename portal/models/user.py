from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


class Role(StrEnum):
    STUDENT = "student"
    LECTURER = "lecturer"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    name: str
    role: Role = Role.STUDENT

    @staticmethod
    def new(*, email: str, name: str, role: Role = Role.STUDENT) -> User:
        return User(id=uuid4(), email=email.strip().lower(), name=name, role=role)
