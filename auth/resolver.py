"""
auth/resolver.py -- Turns an external provider profile into a local user record.

resolve() is ordered, first match wins:
  1. Record with this external_id exists      -> return it (no writes).
  2. Record with this (normalized) email      -> link external_id, return it.
  3. Otherwise                                -> create with role unset.

Concurrent first logins are not serialized in-process: the store may be shared
by several worker processes, so a lock here would not help. The store's UNIQUE
constraints decide the winner instead. A write that loses the race raises
DuplicateRecord and is retried once as a lookup; if the lookup still comes up
empty the error propagates.

Roles are never assigned here. New records start as Role.unset and the user
chooses later (POST /api/v1/auth/role).

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging

from starlette.requests import Request

from auth.errors import DuplicateRecord
from auth.models import ExternalProfile, Role, User
from auth.oauth import build_google_client, profile_from_token
from auth.store import UserStore, normalize_email
from core.config import GOOGLE_DISCOVERY_URL

logger = logging.getLogger("storefront.auth.resolver")


class IdentityResolver:
    """Finds, links, or creates the local record for an external identity.

    client is the authlib client used for the redirect and code exchange. It
    is None when provider credentials are not configured; resolve() still
    works without it.
    """

    def __init__(self, store: UserStore, client=None) -> None:
        self.store = store
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def fetch_profile(self, request: Request) -> ExternalProfile:
        """Exchange the callback's authorization code and extract the profile.

        Raises authlib's OAuthError on a failed exchange and ValueError on an
        unusable profile.
        """
        token = await self.client.authorize_access_token(request)
        return profile_from_token(token)

    def resolve(self, profile: ExternalProfile) -> User:
        user = self.store.find_by_external_id(profile.external_id)
        if user is not None:
            return user

        email = normalize_email(profile.email)
        try:
            if email is not None:
                user = self.store.find_by_email(email)
                if user is not None:
                    linked = self.store.link_external_id(user.id, profile.external_id)
                    if linked is not None:
                        logger.info("Linked external identity to existing user %s", linked.id)
                        return linked

            user = self.store.create_user(
                User(
                    external_id=profile.external_id,
                    email=email,
                    display_name=profile.display_name,
                    role=Role.unset,
                )
            )
            logger.info("Created user %s for new external identity", user.id)
            return user
        except DuplicateRecord:
            winner = self.store.find_by_external_id(profile.external_id)
            if winner is None:
                raise
            logger.info("Concurrent login for user %s resolved by re-reading", winner.id)
            return winner


def create_resolver(
    store: UserStore,
    *,
    client_id: str,
    client_secret: str,
    server_metadata_url: str = GOOGLE_DISCOVERY_URL,
) -> IdentityResolver:
    """Build the resolver once at startup from provider credentials and a store."""
    client = build_google_client(client_id, client_secret, server_metadata_url)
    return IdentityResolver(store, client=client)
