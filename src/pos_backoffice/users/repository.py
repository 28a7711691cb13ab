from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Branch, User


class UserRepository(Protocol):
    """Repository interface for users; services depend on this, not on MySQL."""

    def get_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError


class BranchRepository(Protocol):
    def get_by_id(self, branch_id: str) -> Optional[Branch]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[Branch]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Branch]:
        raise NotImplementedError
