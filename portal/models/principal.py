from __future__ import annotations

from dataclasses import dataclass

from portal.models.user import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated bearer token.

    Carried through HTTP requests via FastAPI's dependency system and
    through realtime sessions by the notification gateway.

        user_id: subject from the token
        role: the single portal role the token was issued for
    """

    user_id: str
    role: Role

    def has_any_role(self, roles: set[Role]) -> bool:
        return self.role in roles
