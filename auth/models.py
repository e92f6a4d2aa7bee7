"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own the
domain shape; the store and the resolver do the work.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Application role chosen by the user after the first login.

    unset is an explicit member rather than a NULL column so every consumer
    has to handle the "not chosen yet" case.
    """

    merchant = "merchant"
    client = "client"
    unset = "unset"


@dataclass
class User:
    """A local identity record linked to an external identity provider.

    external_id is the provider's stable subject. It is None for records
    seeded locally by email that have not logged in through the provider yet;
    the first provider login links them.

    email is None when the provider withheld it. When present it is stored
    lowercased and trimmed, and is unique across all records that have one.

    id is None before the record is written to the database.
    """

    display_name: str
    role: Role = Role.unset
    id: int | None = None
    external_id: str | None = None
    email: str | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert
    updated_at: str | None = None  # ISO 8601, refreshed by store on every write


@dataclass(frozen=True)
class ExternalProfile:
    """The part of a provider profile the resolution flow consumes."""

    external_id: str
    email: str | None = None
    display_name: str | None = None
