from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Routers receive this from require_user and pass user_id explicitly into
    every engine call; nothing downstream reads identity from ambient state.

        user_id: subject claim of the token
        roles: platform roles (admin, user)
    """

    user_id: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)
