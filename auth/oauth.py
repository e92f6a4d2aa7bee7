"""
auth/oauth.py -- Authlib client construction and profile extraction for Google.

There is no module-level registry. build_google_client() is called once by
create_resolver() during application startup and the resulting client lives
on the IdentityResolver. Nothing is configured as an import side effect.

Security notes:
  [H1] An email is only used when the provider marks it verified. An
       unverified address is dropped (treated as withheld) rather than
       rejected: email is optional for login, but an unverified email must
       never be used to link into an existing account.

  The OAuth state parameter (CSRF protection) is handled by authlib via the
  Starlette SessionMiddleware. The session stores the state between the
  authorization redirect and the callback.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging
from typing import Any

from authlib.integrations.starlette_client import OAuth

from auth.models import ExternalProfile
from core.config import GOOGLE_DISCOVERY_URL

logger = logging.getLogger("storefront.auth.oauth")

GOOGLE_SCOPES = "openid email profile"


def build_google_client(
    client_id: str,
    client_secret: str,
    server_metadata_url: str = GOOGLE_DISCOVERY_URL,
):
    """Return an authlib Starlette client for Google, or None if not configured.

    Each call creates its own OAuth registry, so two applications in the same
    process (e.g. in tests) never share provider configuration.
    """
    if not (client_id and client_secret):
        logger.warning(
            "Google OAuth credentials are missing. Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET; "
            "login via /api/v1/auth/google is disabled until then."
        )
        return None
    registry = OAuth()
    registry.register(
        name="google",
        client_id=client_id,
        client_secret=client_secret,
        server_metadata_url=server_metadata_url,
        client_kwargs={"scope": GOOGLE_SCOPES},
    )
    logger.info("Google OAuth provider registered")
    return registry.create_client("google")


def profile_from_token(token: dict[str, Any]) -> ExternalProfile:
    """Convert an authlib token response into an ExternalProfile.

    Google returns the parsed id_token claims under token["userinfo"]. sub is
    mandatory; email and name are optional.

    Raises:
        ValueError: If the token carries no userinfo or no sub claim. The
            caller treats this as an authentication failure.
    """
    userinfo = token.get("userinfo")
    if not userinfo:
        raise ValueError("google OAuth: no userinfo in token response")

    subject = userinfo.get("sub")
    if not subject:
        raise ValueError("google OAuth: missing sub claim in userinfo")

    email = userinfo.get("email") or None
    if email and not userinfo.get("email_verified", False):  # [H1]
        logger.warning("Discarding unverified email from google profile %s", subject)
        email = None

    return ExternalProfile(
        external_id=str(subject),
        email=email,
        display_name=userinfo.get("name") or None,
    )
