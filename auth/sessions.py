"""
auth/sessions.py -- What goes into the session cookie and how it comes back out.

The cookie itself is Starlette's SessionMiddleware (itsdangerous-signed,
client-held). This module only decides its contents: the user's record id,
nothing else. Role and email are re-read from the store on every request, so
a role chosen after login takes effect immediately and the cookie stays small.

unpack_session() returning None means "session invalid, continue as
anonymous". Store outages raise StoreFailure instead, so the two are never
confused.
"""

from __future__ import annotations

from starlette.requests import Request

from auth.models import User
from auth.store import UserStore

SESSION_KEY = "uid"


def pack_session(user: User) -> str:
    return str(user.id)


def unpack_session(store: UserStore, token) -> User | None:
    try:
        user_id = int(token)
    except (TypeError, ValueError):
        return None
    return store.get_by_id(user_id)


def login(request: Request, user: User) -> None:
    """Bind user to the request's session.

    Everything else in the session (OAuth state, a previous identity) is
    dropped first.
    """
    request.session.clear()
    request.session[SESSION_KEY] = pack_session(user)


def logout(request: Request) -> None:
    request.session.clear()


def current_session_user(request: Request, store: UserStore) -> User | None:
    """Restore the session identity, clearing a session whose record is gone."""
    token = request.session.get(SESSION_KEY)
    if token is None:
        return None
    user = unpack_session(store, token)
    if user is None:
        request.session.pop(SESSION_KEY, None)
    return user
