from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.enums import Role, UserType
from ..core.exceptions import AuthenticationError
from .model import Branch
from .repository import BranchRepository, UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: str
    username: str
    role: Role
    branch_id: Optional[str]
    user_type: UserType

    def to_session(self) -> dict:
        return {
            "userId": self.user_id,
            "username": self.username,
            "role": self.role.value,
            "branchId": self.branch_id,
            "userType": self.user_type.value,
        }


def _password_ok(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except ValueError:
        # placeholder or corrupted hashes
        return False


class AuthService:
    """Use case: authenticate a person or a branch login."""

    def __init__(self, users: UserRepository, branches: BranchRepository):
        self._users = users
        self._branches = branches

    def authenticate(self, username: str, password: str) -> SessionUser:
        username = require_non_empty(username, "Username")
        if not password:
            raise AuthenticationError("Invalid username or password")

        user = self._users.get_by_username(username)
        if user and user.is_active and _password_ok(user.password_hash, password):
            logger.info("User %s logged in", username)
            return SessionUser(
                user_id=user.id,
                username=user.username,
                role=user.role,
                branch_id=user.branch_id,
                user_type=UserType.USER,
            )

        branch = self._branches.get_by_username(username)
        if branch and branch.is_active and _password_ok(branch.password_hash, password):
            logger.info("Branch %s logged in", branch.name)
            return SessionUser(
                user_id=branch.id,
                username=branch.username,
                role=Role.MANAGER,
                branch_id=branch.id,
                user_type=UserType.BRANCH,
            )

        logger.warning("Failed login for %s", username)
        raise AuthenticationError("Invalid username or password")

    def list_branches(self) -> Sequence[Branch]:
        return self._branches.list_all()
