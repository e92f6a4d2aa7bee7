"""Unit tests for auth/sessions.py -- session contents and restoration.

Covers:
- the session carries only the record id
- unpacking a missing record or a malformed value yields None (anonymous)
- a store outage during unpack raises StoreFailure instead of returning None
- current_session_user() drops a stale id from the session
- login() replaces whatever the session held before
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from auth.errors import StoreFailure
from auth.models import Role, User
from auth.sessions import SESSION_KEY, current_session_user, login, logout, pack_session, unpack_session
from auth.store import UserStore


def _request(session: dict | None = None):
    return SimpleNamespace(session={} if session is None else session)


class TestPackUnpack:
    def test_pack_is_record_id_only(self):
        user = User(id=42, display_name="Ann", email="ann@example.com", role=Role.merchant)
        assert pack_session(user) == "42"

    def test_unpack_returns_current_record(self, user_store: UserStore):
        user = user_store.create_user(User(display_name="Ann", email="ann@example.com"))
        token = pack_session(user)
        user_store.assign_role(user.id, Role.client)

        restored = unpack_session(user_store, token)

        assert restored.id == user.id
        assert restored.role is Role.client

    def test_unpack_missing_record_is_none(self, user_store: UserStore):
        assert unpack_session(user_store, "9999") is None

    @pytest.mark.parametrize("token", ["", "abc", "1.5", None, ["1"]])
    def test_unpack_malformed_is_none(self, user_store: UserStore, token):
        assert unpack_session(user_store, token) is None

    def test_unpack_store_outage_raises(self):
        store = MagicMock(spec=UserStore)
        store.get_by_id.side_effect = StoreFailure("unreachable")
        with pytest.raises(StoreFailure):
            unpack_session(store, "1")


class TestRequestSession:
    def test_login_replaces_previous_contents(self):
        request = _request({"_state_google_abc": {"data": 1}, SESSION_KEY: "1"})
        login(request, User(id=5, display_name="Bea"))
        assert request.session == {SESSION_KEY: "5"}

    def test_logout_clears(self):
        request = _request({SESSION_KEY: "5", "next": "/x"})
        logout(request)
        assert request.session == {}

    def test_current_user_anonymous_without_key(self, user_store: UserStore):
        assert current_session_user(_request(), user_store) is None

    def test_current_user_restored(self, user_store: UserStore):
        user = user_store.create_user(User(display_name="Cal"))
        request = _request({SESSION_KEY: pack_session(user)})
        assert current_session_user(request, user_store).id == user.id
        assert request.session[SESSION_KEY] == str(user.id)

    def test_stale_id_is_dropped(self, user_store: UserStore):
        request = _request({SESSION_KEY: "31337", "next": "/shop"})
        assert current_session_user(request, user_store) is None
        assert request.session == {"next": "/shop"}
