"""
auth/store.py -- SQLAlchemy Core persistence for users and apps.

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_user / _row_to_app are the mappers. It satisfies the UserSaver,
UserProvider and AppProvider protocols in auth/ports.py.

Every method is a single statement on its own connection, so no multi-step
transactions are needed. The engine's connection pool is the only shared
state and is safe to use from the API's worker threads.

Errors:
  Missing rows raise UserNotFound / AppNotFound. A duplicate email raises
  UserAlreadyExists -- the UNIQUE index on users.email is what arbitrates two
  concurrent registrations of the same address. Any other SQLAlchemyError is
  wrapped in StoreFault.

Email policy:
  Emails are stored and matched exactly as given. SQLite compares TEXT with
  the BINARY collation, so lookups and the uniqueness check are
  case-sensitive: "A@x.com" and "a@x.com" are two different users.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import AppAlreadyExists, AppNotFound, StoreFault, UserAlreadyExists, UserNotFound
from auth.models import App, User

logger = logging.getLogger("ssoauth.store")

_DEFAULT_DB_URL = "sqlite:///sso_auth.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(320), nullable=False),
    Column("pass_hash", LargeBinary, nullable=False),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
    UniqueConstraint("email", name="uq_users_email"),
)

_apps = Table(
    "apps",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("secret", String(512), nullable=False),
    UniqueConstraint("name", name="uq_apps_name"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind a writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _violates(exc: IntegrityError, table: str, column: str, constraint: str) -> bool:
    """Return True if exc comes from the given unique constraint.

    SQLite reports "UNIQUE constraint failed: users.email"; PostgreSQL names
    the constraint. Checking both keeps the store portable.
    """
    message = str(exc.orig).lower() if exc.orig is not None else ""
    return constraint in message or f"{table}.{column}" in message


@contextmanager
def _faults(op: str) -> Iterator[None]:
    """Wrap any unclassified SQLAlchemy error raised inside the block in StoreFault."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("%s failed: %s", op, exc)
        raise StoreFault(op, cause=exc) from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for User and App records.

    Usage:
        store = CredentialStore("sqlite:///sso_auth.db")
        app_id = store.create_app("billing", "a-long-random-secret")
        uid = store.save_user("a@x.com", hasher.hash("pw"))
        user = store.find_user_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        with _faults("store.init"):
            _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # UserSaver
    # ------------------------------------------------------------------

    def save_user(self, email: str, pass_hash: bytes) -> int:
        """Insert a new user and return its assigned id.

        Raises UserAlreadyExists if the email is taken. The insert is a single
        statement, so a failure leaves no partial row behind.
        """
        op = "store.save_user"
        with _faults(op):
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(_users.insert().values(email=email, pass_hash=pass_hash))
                    conn.commit()
            except IntegrityError as exc:
                if _violates(exc, "users", "email", "uq_users_email"):
                    raise UserAlreadyExists(op, cause=exc) from exc
                raise
        return result.inserted_primary_key[0]

    # ------------------------------------------------------------------
    # UserProvider
    # ------------------------------------------------------------------

    def find_user_by_email(self, email: str) -> User:
        """Look up a user by exact (case-sensitive) email."""
        with _faults("store.find_user_by_email"):
            with self.engine.connect() as conn:
                row = conn.execute(select(_users).where(_users.c.email == email)).fetchone()
        if row is None:
            raise UserNotFound("store.find_user_by_email")
        return _row_to_user(row)

    def is_admin(self, user_id: int) -> bool:
        with _faults("store.is_admin"):
            with self.engine.connect() as conn:
                flag = conn.execute(select(_users.c.is_admin).where(_users.c.id == user_id)).scalar_one_or_none()
        if flag is None:
            raise UserNotFound("store.is_admin")
        return bool(flag)

    # ------------------------------------------------------------------
    # AppProvider
    # ------------------------------------------------------------------

    def find_app(self, app_id: int) -> App:
        with _faults("store.find_app"):
            with self.engine.connect() as conn:
                row = conn.execute(select(_apps).where(_apps.c.id == app_id)).fetchone()
        if row is None:
            raise AppNotFound("store.find_app")
        return _row_to_app(row)

    # ------------------------------------------------------------------
    # Provisioning (admin CLI only -- AuthService never writes these)
    # ------------------------------------------------------------------

    def create_app(self, name: str, secret: str) -> int:
        """Register a client application and return its id.

        Raises AppAlreadyExists if the name is taken.
        """
        op = "store.create_app"
        with _faults(op):
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(_apps.insert().values(name=name, secret=secret))
                    conn.commit()
            except IntegrityError as exc:
                if _violates(exc, "apps", "name", "uq_apps_name"):
                    raise AppAlreadyExists(op, cause=exc) from exc
                raise
        return result.inserted_primary_key[0]

    def set_admin(self, user_id: int, is_admin: bool = True) -> None:
        """Grant or revoke the admin flag. Raises UserNotFound for an unknown id."""
        with _faults("store.set_admin"):
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(is_admin=is_admin))
                conn.commit()
        if result.rowcount == 0:
            raise UserNotFound("store.set_admin")

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        pass_hash=bytes(row.pass_hash),
        is_admin=bool(row.is_admin),
    )


def _row_to_app(row) -> App:
    return App(id=row.id, name=row.name, secret=row.secret)
