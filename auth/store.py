"""
auth/store.py -- SQLAlchemy Core persistence layer for principals.

Pattern: Repository + Data Mapper.
CredentialStore is the repository; _row_to_principal is the mapper.
Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  The plaintext secret passed to register() is hashed before it reaches any
  SQL statement and is never logged.

Uniqueness:
  UNIQUE(identifier) is enforced by the database, not by a read-then-write
  check. Two concurrent registrations for the same identifier cannot both
  succeed: the loser gets an IntegrityError, surfaced as DuplicateIdentifier.

DB path: auth/mailgate_auth.db by default (Settings.database_url).

Layer rule: no imports from api/ or messaging/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import Principal
from auth.passwords import hash_password
from core.errors import DuplicateIdentifier, InternalFailure

logger = logging.getLogger("mailgate.auth.store")

# SQLite caps bound parameters per statement (999 on older builds). Batched
# lookups are split into chunks below that limit.
_IN_CLAUSE_CHUNK = 500

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_principals = Table(
    "principals",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("identifier", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for Principal records.

    Usage:
        store = CredentialStore("sqlite:///mailgate.db")
        store.register("alice@example.com", "pw123")
        principal = store.find_by_identifier("alice@example.com")
        store.close()
    """

    def __init__(self, db_url: str, bcrypt_rounds: int | None = None) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        self._bcrypt_rounds = bcrypt_rounds
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register(self, identifier: str, secret: str) -> Principal:
        """Create a principal with a bcrypt hash of secret.

        Raises DuplicateIdentifier if the identifier is already registered.
        Raises InternalFailure if the database is unavailable.
        """
        hashed = hash_password(secret, rounds=self._bcrypt_rounds)
        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _principals.insert().values(
                        identifier=identifier,
                        hashed_password=hashed,
                        created_at=created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateIdentifier() from exc
        except SQLAlchemyError as exc:
            logger.error("Credential store write failed: %s", exc.__class__.__name__)
            raise InternalFailure() from exc
        return Principal(
            id=result.inserted_primary_key[0],
            identifier=identifier,
            hashed_password=hashed,
            created_at=created_at,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_identifier(self, identifier: str) -> Principal | None:
        """Look up a principal by exact identifier (case-sensitive). None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_principals.select().where(_principals.c.identifier == identifier)).fetchone()
        except SQLAlchemyError as exc:
            raise InternalFailure() from exc
        return _row_to_principal(row) if row is not None else None

    def find_many_by_identifiers(self, identifiers: Iterable[str]) -> list[Principal]:
        """Return the principals whose identifiers appear in identifiers.

        Unknown identifiers are simply absent from the result. Result order is
        unspecified -- RecipientResolver restores the caller's order.
        """
        wanted = list(dict.fromkeys(identifiers))
        if not wanted:
            return []
        found: list[Principal] = []
        try:
            with self.engine.connect() as conn:
                for start in range(0, len(wanted), _IN_CLAUSE_CHUNK):
                    chunk = wanted[start : start + _IN_CLAUSE_CHUNK]
                    rows = conn.execute(_principals.select().where(_principals.c.identifier.in_(chunk))).fetchall()
                    found.extend(_row_to_principal(r) for r in rows)
        except SQLAlchemyError as exc:
            raise InternalFailure() from exc
        return found

    def count(self) -> int:
        """Return the number of registered principals.

        Also serves as the health check probe: it fails with InternalFailure
        when the database is unreachable.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(select(func.count()).select_from(_principals)).scalar()
        except SQLAlchemyError as exc:
            raise InternalFailure() from exc
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_principal(row) -> Principal:
    return Principal(
        id=row.id,
        identifier=row.identifier,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )
