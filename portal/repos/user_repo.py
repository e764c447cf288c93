from __future__ import annotations

from typing import Protocol
from uuid import UUID

from portal.models.user import Role, User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def list_by_role(self, role: Role) -> list[User]: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def add(self, user: User) -> None:
        if user.email in self._by_email:
            raise ValueError("email already exists")
        self._by_email[user.email] = user
        self._by_id[user.id] = user

    async def list_by_role(self, role: Role) -> list[User]:
        return [u for u in self._by_id.values() if u.role == role]
