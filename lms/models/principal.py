from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    user_id: subject claim (the user's UUID as a string)
    roles: student|teacher|admin|manager|assistant
    """

    user_id: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    def is_staff(self) -> bool:
        return self.has_any_role({"admin", "manager", "teacher", "assistant"})
