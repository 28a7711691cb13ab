from __future__ import annotations

from typing import Any, Mapping, Optional

from ..core.enums import UserType


def with_branch_id(path: str, branch_id: Optional[str]) -> str:
    """Append the branchId query parameter to an API path.

    The path is returned unchanged when no branch is selected.
    """
    if not branch_id:
        return path
    sep = "&" if "?" in path else "?"
    return f"{path}{sep}branchId={branch_id}"


def resolve_branch_id(args: Mapping[str, Any], session: Mapping[str, Any]) -> Optional[str]:
    """Branch scope for a request.

    An explicit ``branchId`` argument wins; a branch login is otherwise
    scoped to its own branch; user logins see every branch.
    """
    explicit = str(args.get("branchId") or "").strip()
    if explicit and explicit != "all":
        return explicit
    if session.get("userType") == UserType.BRANCH.value and session.get("branchId"):
        return str(session["branchId"])
    return None
