"""
api/routes/v1/auth.py -- Google login, session, and role selection endpoints.

Routes:
  GET  /api/v1/auth/providers         -- list enabled OAuth providers (public)
  GET  /api/v1/auth/google            -- redirect to Google; ?next= is remembered
  GET  /api/v1/auth/google/callback   -- resolve identity, start session, redirect
  GET  /api/v1/auth/me                -- current user (requires auth)
  POST /api/v1/auth/role              -- choose merchant/client once (requires auth)
  POST /api/v1/auth/token             -- issue a Bearer JWT (requires auth)
  POST /api/v1/auth/logout            -- clear the session

Security:
  [H2] The two login endpoints are rate-limited per IP.
  [C2] ?next= is only honoured for relative paths (open-redirect guard).
  [M5] Cache-Control: no-store on responses that set credentials.

The callback is async because authlib's code exchange is. The store work in
resolve() is blocking, so it is pushed to the threadpool; the remaining
handlers are plain `def` and run there already.
"""

from __future__ import annotations

import logging
from typing import Optional

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from api.limiter import limiter
from api.models import OAuthProviderInfo, RoleSelect, TokenResponse, UserResponse
from auth.dependencies import get_current_user
from auth.models import Role, User
from auth.resolver import IdentityResolver
from auth.sessions import login, logout
from auth.store import UserStore
from auth.tokens import create_access_token
from core.config import get_settings

logger = logging.getLogger("storefront.api.auth")

_settings = get_settings()

# Auth policy:
# - GET  /auth/providers, /auth/google, /auth/google/callback: public
# - POST /auth/logout: public -- clearing a session needs no prior auth
# - GET  /auth/me, POST /auth/role, POST /auth/token: get_current_user
router = APIRouter()

_NEXT_KEY = "next"


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths. [C2]"""
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/"


def _oauth_failed() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "oauth_failed", "message": "Google authentication failed. Please try again."},
    )


def _require_provider(request: Request) -> IdentityResolver:
    resolver: IdentityResolver = request.app.state.resolver
    if not resolver.enabled:
        raise HTTPException(
            status_code=404,
            detail={"code": "provider_not_configured", "message": "Google login is not configured."},
        )
    return resolver


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/providers", response_model=list[OAuthProviderInfo])
async def list_providers(request: Request) -> list[OAuthProviderInfo]:
    """Return the configured OAuth providers. Empty when Google is not configured."""
    if not request.app.state.resolver.enabled:
        return []
    return [OAuthProviderInfo(name="google", label="Google", login_url=str(request.url_for("google_login")))]


@limiter.limit(_settings.login_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.get("/auth/google", name="google_login")
async def google_login(request: Request):
    """Redirect the browser to Google's consent page.

    Scopes (openid email profile) are fixed on the client. The validated
    ?next= target is parked in the session for the callback.
    """
    resolver = _require_provider(request)
    request.session[_NEXT_KEY] = _safe_next(request.query_params.get("next"))
    redirect_uri = _settings.google_callback_url or str(request.url_for("google_callback"))
    return await resolver.client.authorize_redirect(request, redirect_uri)


@limiter.limit(_settings.login_rate_limit)  # [H2]
@router.get("/auth/google/callback", name="google_callback")
async def google_callback(request: Request) -> RedirectResponse:
    """Handle Google's redirect back to us.

    Flow:
      1. Exchange the authorization code (authlib checks the state parameter).
      2. Extract (sub, email, name) from the id_token claims.
      3. Find, link, or create the local user record (IdentityResolver.resolve).
      4. Store the record id in the session cookie and redirect to ?next or /.

    StoreFailure from step 3 is not caught: the 503 handler answers it and no
    session is written.
    """
    resolver = _require_provider(request)

    try:
        profile = await resolver.fetch_profile(request)
    except OAuthError as exc:
        logger.exception("Google token exchange failed")
        raise _oauth_failed() from exc
    except ValueError as exc:
        logger.warning("Google login rejected: unusable profile", exc_info=True)
        raise _oauth_failed() from exc

    user = await run_in_threadpool(resolver.resolve, profile)

    next_url = _safe_next(request.session.get(_NEXT_KEY))
    login(request, user)
    logger.info("User %s signed in (role=%s)", user.id, user.role.value)

    resp = RedirectResponse(next_url, status_code=302)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/logout")
def logout_route(request: Request) -> JSONResponse:
    """Clear the session cookie."""
    logout(request)
    return JSONResponse(content={"message": "Logged out."})


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the signed-in user. needs_role=true means the client should ask for one."""
    return UserResponse.from_user(current_user)


@router.post("/auth/role", response_model=UserResponse)
def select_role(
    request: Request,
    body: RoleSelect,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Choose merchant or client. Allowed exactly once per user."""
    user_store: UserStore = request.app.state.user_store
    if not user_store.assign_role(current_user.id, Role(body.role.value)):
        raise HTTPException(
            status_code=409,
            detail={"code": "role_already_set", "message": "A role has already been chosen for this account."},
        )
    logger.info("User %s chose role %s", current_user.id, body.role.value)
    updated = user_store.get_by_id(current_user.id)
    if updated is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return UserResponse.from_user(updated)


@router.post("/auth/token", response_model=TokenResponse)
def issue_token(current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Issue a Bearer JWT for the signed-in user, for scripts and API clients."""
    token = create_access_token(current_user.id)
    resp = JSONResponse(
        content=TokenResponse(
            access_token=token,
            expires_in=_settings.token_expire_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp
