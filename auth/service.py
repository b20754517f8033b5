"""
auth/service.py -- Login, registration and admin checks.

AuthService owns no state. Every call is a function of its arguments and the
answers of its collaborators:

  UserSaver / UserProvider / AppProvider  -- storage capabilities (auth/ports.py)
  PasswordHasher                          -- bcrypt hashing (auth/passwords.py)
  TokenIssuer                             -- JWT signing (auth/tokens.py)

Error classification happens here. Whatever a collaborator raises is turned
into one of InvalidCredentials, UserAlreadyExists, UserNotFound, AppNotFound
or InternalError, tagged with this service's operation name and chained to
the original exception. Nothing is retried.

Layer rule: no imports from api/ or core/. Configuration (TTL, logger) is
passed in by whoever constructs the service.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from auth.errors import (
    AppNotFound,
    CryptoFault,
    InternalError,
    InvalidCredentials,
    StoreFault,
    UserAlreadyExists,
    UserNotFound,
)
from auth.passwords import PasswordHasher
from auth.ports import AppProvider, UserProvider, UserSaver
from auth.tokens import TokenIssuer

if TYPE_CHECKING:
    from auth.store import CredentialStore


class AuthService:
    """Authentication decisions for every client app sharing the identity store.

    Usage:
        store = CredentialStore(db_url)
        service = AuthService(
            user_saver=store,
            user_provider=store,
            app_provider=store,
            hasher=PasswordHasher(),
            issuer=TokenIssuer(),
            token_ttl=timedelta(hours=1),
        )
        token = service.login("a@x.com", "pw", app_id=1)
    """

    def __init__(
        self,
        *,
        user_saver: UserSaver,
        user_provider: UserProvider,
        app_provider: AppProvider,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        token_ttl: timedelta,
        logger: logging.Logger | None = None,
    ) -> None:
        if token_ttl.total_seconds() < 1 or token_ttl % timedelta(seconds=1):
            raise ValueError("token_ttl must be a whole number of seconds, at least one")
        self.user_saver = user_saver
        self.user_provider = user_provider
        self.app_provider = app_provider
        self.hasher = hasher
        self.issuer = issuer
        self.token_ttl = token_ttl
        self.log = logger or logging.getLogger("ssoauth.auth")

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, email: str, password: str, app_id: int) -> str:
        """Verify credentials and return a token scoped to app_id.

        An unknown email and a wrong password both raise InvalidCredentials,
        and both cost one bcrypt verification, so neither the error nor the
        response time tells a caller whether the account exists.

        :raises InvalidCredentials: unknown email or wrong password.
        :raises AppNotFound: app_id does not resolve to an app.
        :raises InternalError: store, hashing or signing fault.
        """
        op = "auth.login"
        self.log.info("%s: attempting login email=%s app_id=%s", op, email, app_id)

        try:
            user = self.user_provider.find_user_by_email(email)
        except UserNotFound as exc:
            self.hasher.dummy_verify(password)
            self.log.warning("%s: user not found email=%s", op, email)
            raise InvalidCredentials(op, cause=exc) from exc
        except StoreFault as exc:
            self.log.error("%s: failed to load user: %s", op, exc)
            raise InternalError(op, cause=exc) from exc

        if not self.hasher.verify(password, user.pass_hash):
            self.log.warning("%s: invalid credentials email=%s", op, email)
            raise InvalidCredentials(op)

        try:
            app = self.app_provider.find_app(app_id)
        except AppNotFound as exc:
            self.log.warning("%s: app not found app_id=%s", op, app_id)
            raise AppNotFound(op, cause=exc) from exc
        except StoreFault as exc:
            self.log.error("%s: failed to load app: %s", op, exc)
            raise InternalError(op, cause=exc) from exc

        try:
            token = self.issuer.issue(user, app, self.token_ttl)
        except CryptoFault as exc:
            self.log.error("%s: failed to sign token for app_id=%s: %s", op, app_id, exc)
            raise InternalError(op, cause=exc) from exc

        self.log.info("%s: user logged in user_id=%s app_id=%s", op, user.id, app_id)
        return token

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register_new_user(self, email: str, password: str) -> int:
        """Hash password, persist the user and return the new user id.

        :raises UserAlreadyExists: the email is already registered.
        :raises InternalError: hashing or store fault.
        """
        op = "auth.register_new_user"
        self.log.info("%s: registering user email=%s", op, email)

        try:
            pass_hash = self.hasher.hash(password)
        except CryptoFault as exc:
            self.log.error("%s: failed to hash password: %s", op, exc)
            raise InternalError(op, cause=exc) from exc

        try:
            user_id = self.user_saver.save_user(email, pass_hash)
        except UserAlreadyExists as exc:
            self.log.warning("%s: user already exists email=%s", op, email)
            raise UserAlreadyExists(op, cause=exc) from exc
        except StoreFault as exc:
            self.log.error("%s: failed to save user: %s", op, exc)
            raise InternalError(op, cause=exc) from exc

        self.log.info("%s: user registered user_id=%s", op, user_id)
        return user_id

    # ------------------------------------------------------------------ #
    # Authorization
    # ------------------------------------------------------------------ #

    def is_admin(self, user_id: int) -> bool:
        """Return the admin flag of user_id.

        :raises UserNotFound: no user has this id (including 0 and negatives).
        :raises InternalError: store fault.
        """
        op = "auth.is_admin"
        self.log.info("%s: checking admin flag user_id=%s", op, user_id)

        try:
            admin = self.user_provider.is_admin(user_id)
        except UserNotFound as exc:
            self.log.warning("%s: user not found user_id=%s", op, user_id)
            raise UserNotFound(op, cause=exc) from exc
        except StoreFault as exc:
            self.log.error("%s: failed to read admin flag: %s", op, exc)
            raise InternalError(op, cause=exc) from exc

        self.log.info("%s: user_id=%s is_admin=%s", op, user_id, admin)
        return admin


def build_auth_service(
    store: CredentialStore,
    *,
    token_ttl_seconds: int,
    bcrypt_rounds: int,
) -> AuthService:
    """Wire an AuthService around a store that provides all three capabilities.

    Shared by the API lifespan and the admin CLI.
    """
    return AuthService(
        user_saver=store,
        user_provider=store,
        app_provider=store,
        hasher=PasswordHasher(rounds=bcrypt_rounds),
        issuer=TokenIssuer(),
        token_ttl=timedelta(seconds=token_ttl_seconds),
        logger=logging.getLogger("ssoauth.auth"),
    )
