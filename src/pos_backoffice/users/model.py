from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Back-office login belonging to a person.

    Plain data object; no database access here.
    """

    id: str
    username: str
    password_hash: str
    full_name: str
    role: Role
    branch_id: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class Branch:
    """Store location. A branch also has its own login."""

    id: str
    name: str
    username: str
    password_hash: str
    location: Optional[str] = None
    is_active: bool = True

    def to_public_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "location": self.location, "isActive": self.is_active}
