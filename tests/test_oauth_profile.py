"""Unit tests for auth/oauth.py -- Google client construction and claim extraction.

Covers:
- sub/email/name are mapped onto ExternalProfile
- an unverified email is dropped, a withheld one stays None
- missing userinfo or sub is rejected with ValueError
- build_google_client() returns None without credentials
- each built client has its own registry
"""

import pytest

from auth.models import ExternalProfile
from auth.oauth import GOOGLE_SCOPES, build_google_client, profile_from_token


class TestProfileFromToken:
    def test_full_profile(self):
        token = {
            "access_token": "t",
            "userinfo": {"sub": "1234", "email": "A@X.com", "email_verified": True, "name": "Ann"},
        }
        assert profile_from_token(token) == ExternalProfile(external_id="1234", email="A@X.com", display_name="Ann")

    def test_email_withheld(self):
        profile = profile_from_token({"userinfo": {"sub": "1234"}})
        assert profile.email is None
        assert profile.display_name is None

    def test_unverified_email_is_dropped(self):
        profile = profile_from_token({"userinfo": {"sub": "1234", "email": "a@x.com", "email_verified": False}})
        assert profile.email is None

    def test_email_without_verified_claim_is_dropped(self):
        profile = profile_from_token({"userinfo": {"sub": "1234", "email": "a@x.com"}})
        assert profile.email is None

    def test_blank_name_is_none(self):
        assert profile_from_token({"userinfo": {"sub": "1", "name": ""}}).display_name is None

    def test_numeric_sub_is_stringified(self):
        assert profile_from_token({"userinfo": {"sub": 987}}).external_id == "987"

    @pytest.mark.parametrize(
        "token",
        [
            {},
            {"userinfo": None},
            {"userinfo": {}},
            {"userinfo": {"email": "a@x.com", "email_verified": True}},
            {"userinfo": {"sub": ""}},
        ],
    )
    def test_unusable_token_rejected(self, token):
        with pytest.raises(ValueError):
            profile_from_token(token)


class TestBuildGoogleClient:
    @pytest.mark.parametrize("client_id, client_secret", [("", ""), ("cid", ""), ("", "secret")])
    def test_missing_credentials_disable_provider(self, client_id, client_secret):
        assert build_google_client(client_id, client_secret) is None

    def test_configured_client(self):
        client = build_google_client("cid", "secret", "https://idp.example.com/.well-known/openid-configuration")
        assert client is not None
        assert client.name == "google"
        assert client.client_id == "cid"
        assert client.client_kwargs["scope"] == GOOGLE_SCOPES

    def test_clients_do_not_share_configuration(self):
        first = build_google_client("cid-1", "secret-1")
        second = build_google_client("cid-2", "secret-2")
        assert first is not second
        assert first.client_id == "cid-1"
        assert second.client_id == "cid-2"
