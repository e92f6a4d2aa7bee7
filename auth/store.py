"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_user is the mapper. Route, resolver,
and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Uniqueness:
  external_id and email are both nullable UNIQUE columns. SQL treats NULLs as
  distinct in UNIQUE constraints (SQLite and PostgreSQL alike), which gives
  exactly the "sparse" semantics the user table needs: any number of records
  may lack an email or an external id, but no two may share a present value.
  These constraints are the tie-breaker when two first logins race; the
  loser's insert raises DuplicateRecord and the resolver re-reads.

Errors:
  Every method converts SQLAlchemyError into StoreFailure (IntegrityError
  into DuplicateRecord) so callers depend on auth.errors, not on SQLAlchemy.
  Lookups that match nothing return None.

DB path: data/storefront_auth.db by default (Settings.database_url).

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateRecord, StoreFailure
from auth.models import Role, User
from core.config import get_settings
from core.db import create_store_engine

logger = logging.getLogger("storefront.auth.store")

FALLBACK_DISPLAY_NAME = "Google User"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("external_id", String(255), unique=True),  # provider subject; NULL until linked
    Column("email", String(320), unique=True),  # lowercased + trimmed; NULL if withheld
    Column("display_name", Text, nullable=False),
    Column("role", String(20), nullable=False, server_default=Role.unset.value),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str | None) -> str | None:
    """Lowercase and trim an email. Blank values normalize to None."""
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def normalize_display_name(name: str | None) -> str:
    name = (name or "").strip()
    return name or FALLBACK_DISPLAY_NAME


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy errors raised inside the block into auth.errors types."""
    try:
        yield
    except IntegrityError as exc:
        logger.warning("User store %s rejected by unique constraint", operation)
        raise DuplicateRecord(f"user store {operation}: unique constraint violated") from exc
    except SQLAlchemyError as exc:
        logger.exception("User store %s failed", operation)
        raise StoreFailure(f"user store {operation} failed") from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        user = store.create_user(User(display_name="Ada", email="ada@example.com"))
        same = store.find_by_email("ADA@example.com ")
        store.close()
    """

    def __init__(self, db_url: str | None = None, timeout: float | None = None) -> None:
        settings = get_settings()
        self.engine: Engine = create_store_engine(
            db_url or settings.database_url,
            timeout=timeout if timeout is not None else settings.store_timeout_seconds,
        )
        with _store_errors("schema setup"):
            _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with _store_errors("get_by_id"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_external_id(self, external_id: str) -> User | None:
        """Look up a user by the provider's stable subject. Returns None if not linked."""
        with _store_errors("find_by_external_id"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.external_id == external_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_email(self, email: str | None) -> User | None:
        """Look up a user by email. The argument is normalized before matching."""
        email = normalize_email(email)
        if email is None:
            return None
        with _store_errors("find_by_email"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by id."""
        with _store_errors("list_users"), self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return it with id and timestamps filled in.

        email and display_name are normalized on the way in. Raises
        DuplicateRecord if external_id or email already belongs to another
        record -- the resolver treats that as "a concurrent login won".
        """
        now = _now_iso()
        record = replace(
            user,
            email=normalize_email(user.email),
            display_name=normalize_display_name(user.display_name),
            created_at=now,
            updated_at=now,
        )
        with _store_errors("create_user"), self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    external_id=record.external_id,
                    email=record.email,
                    display_name=record.display_name,
                    role=record.role.value,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return replace(record, id=result.inserted_primary_key[0])

    def link_external_id(self, user_id: int, external_id: str) -> User | None:
        """Associate a provider identity with an existing (email-matched) record.

        Only external_id and updated_at change. Returns the refreshed record,
        or None if user_id no longer exists. Raises DuplicateRecord if the
        external_id is already linked to a different record.
        """
        with _store_errors("link_external_id"), self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(external_id=external_id, updated_at=_now_iso())
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_by_id(user_id)

    def assign_role(self, user_id: int, role: Role) -> bool:
        """Set the role of a user whose role is still unset.

        The WHERE clause carries the unset check, so the transition happens
        at most once even under concurrent requests. Returns True if the row
        was updated, False if the user is missing or already has a role.
        """
        if role is Role.unset:
            raise ValueError("assign_role requires merchant or client")
        with _store_errors("assign_role"), self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.role == Role.unset.value))
                .values(role=role.value, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("User store ping failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        external_id=row.external_id,
        email=row.email,
        display_name=row.display_name,
        role=Role(row.role),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
