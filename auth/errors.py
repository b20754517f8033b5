"""
auth/errors.py -- Error taxonomy shared by the store, the service and the API.

Every error carries:
  op     -- the logical operation that failed (e.g. "auth.login",
            "store.save_user"), for diagnostics.
  cause  -- the underlying exception, if any. Also chained as __cause__ when
            raised with "raise ... from exc".

Callers branch on the class (isinstance / except clauses), never on the
message text. The transport layer maps classes to status codes in one place
(api/main.py).

Kinds that leave AuthService:
  InvalidCredentials, UserAlreadyExists, UserNotFound, AppNotFound, InternalError

Component faults that AuthService classifies and never re-raises as-is:
  StoreFault (and AppAlreadyExists), CryptoFault

Layer rule: stdlib only.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error raised by the auth core."""

    code: str = "auth_error"
    message: str = "authentication error"

    def __init__(self, op: str, message: str | None = None, cause: BaseException | None = None) -> None:
        if message is not None:
            self.message = message
        self.op = op
        self.cause = cause
        super().__init__(f"{op}: {self.message}")


# ---------------------------------------------------------------------------
# Client-facing kinds
# ---------------------------------------------------------------------------


class InvalidCredentials(AuthError):
    """Unknown email or wrong password. Both cases are reported identically."""

    code = "invalid_credentials"
    message = "invalid credentials"


class UserAlreadyExists(AuthError):
    code = "user_exists"
    message = "user already exists"


class UserNotFound(AuthError):
    code = "user_not_found"
    message = "user not found"


class AppNotFound(AuthError):
    code = "app_not_found"
    message = "app not found"


class InternalError(AuthError):
    """Anything the client cannot act on. Its message is never sent over the wire."""

    code = "internal_error"
    message = "internal error"


# ---------------------------------------------------------------------------
# Component faults
# ---------------------------------------------------------------------------


class StoreFault(AuthError):
    """Unclassified persistence failure (connection, SQL, schema)."""

    code = "store_fault"
    message = "storage failure"


class AppAlreadyExists(StoreFault):
    code = "app_exists"
    message = "app already exists"


class CryptoFault(AuthError):
    """Hashing or signing failed. Signals an environment problem, not bad input."""

    code = "crypto_fault"
    message = "cryptographic operation failed"
