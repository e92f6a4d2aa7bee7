"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two identity sources are checked in priority order:
  1. Session cookie -- set by the Google login callback (auth/sessions.py).
  2. Authorization: Bearer <token> header -- API clients using JWTs.

Both converge on a User loaded fresh from the store.

try_get_current_user() is the soft variant (returns None when anonymous).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.
require_role(role) builds a dependency that raises HTTP 401 / HTTP 403 via
auth.policy.authorize().

StoreFailure is NOT swallowed here: a store outage is not "anonymous". It
propagates to the exception handler in api/main.py (HTTP 503).

These are plain `def` functions, so FastAPI runs them in its threadpool and a
slow store never blocks the event loop.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.errors import Forbidden, Unauthenticated
from auth.models import Role, User
from auth.policy import authorize
from auth.sessions import current_session_user
from auth.store import UserStore
from auth.tokens import decode_access_token


def try_get_current_user(request: Request) -> User | None:
    """Resolve the request's identity from the session cookie or a Bearer JWT."""
    user_store: UserStore = request.app.state.user_store

    # 1. Session cookie (browser)
    user = current_session_user(request, user_store)
    if user is not None:
        return user

    # 2. Authorization: Bearer header (API clients)
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        payload = decode_access_token(auth_header[7:])
        if payload:
            return user_store.get_by_id(payload["user_id"])

    return None


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user


def require_role(role: Role):
    """Build a dependency that admits only users holding role.

    Use as a FastAPI dependency:
        @router.post("/products")
        def route(user: User = Depends(require_role(Role.merchant))): ...
    """

    def dependency(request: Request) -> User:
        try:
            return authorize(try_get_current_user(request), role)
        except Unauthenticated as exc:
            raise HTTPException(
                status_code=401,
                detail={"code": "unauthorized", "message": "Authentication required."},
            ) from exc
        except Forbidden as exc:
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": f"{role.value.capitalize()} role required."},
            ) from exc

    dependency.__name__ = f"require_{role.value}"
    return dependency


require_merchant = require_role(Role.merchant)
