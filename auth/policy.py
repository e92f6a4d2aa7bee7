"""auth/policy.py -- Role gate used by the role-gated API dependencies."""

from __future__ import annotations

from auth.errors import Forbidden, Unauthenticated
from auth.models import Role, User


def authorize(user: User | None, required_role: Role) -> User:
    """Return user if it holds required_role.

    Raises Unauthenticated when there is no identity and Forbidden when the
    identity's role differs (an unset role never satisfies a gate).
    """
    if user is None:
        raise Unauthenticated("authentication required")
    if user.role != required_role:
        raise Forbidden(required_role.value, user.role.value)
    return user
