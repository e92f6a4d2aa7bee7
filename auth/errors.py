"""
auth/errors.py -- Exception taxonomy for identity resolution and authorization.

  StoreFailure      the record store is unreachable, errored, or rejected a write.
  DuplicateRecord   a create lost a unique-constraint race (subclass of
                    StoreFailure, so callers that do not retry still see a
                    store failure).
  Unauthenticated   a role-gated operation was invoked without an identity.
  Forbidden         the identity is present but holds the wrong role.

"No matching record" is never an exception: lookups return None.

The API layer maps these to 503 / 401 / 403. No error text is parsed.
"""

from __future__ import annotations


class StoreFailure(Exception):
    """The underlying record store could not complete an operation."""


class DuplicateRecord(StoreFailure):
    """An insert was rejected by a unique constraint."""


class AuthorizationError(Exception):
    """Base class for role-gate rejections."""


class Unauthenticated(AuthorizationError):
    """No resolved identity."""


class Forbidden(AuthorizationError):
    """Resolved identity does not hold the required role."""

    def __init__(self, required_role: str, actual_role: str) -> None:
        super().__init__(f"role {required_role!r} required, identity has {actual_role!r}")
        self.required_role = required_role
        self.actual_role = actual_role
