"""
auth/ports.py -- Storage capabilities AuthService depends on.

Three narrow protocols instead of one storage type, so each can be replaced or
mocked independently. auth.store.CredentialStore satisfies all three.

Implementations must be safe to call from several request threads at once.
"""

from __future__ import annotations

from typing import Protocol

from auth.models import App, User


class UserSaver(Protocol):
    def save_user(self, email: str, pass_hash: bytes) -> int:
        """Persist a new user and return its id.

        Raises UserAlreadyExists if the email is taken, StoreFault otherwise.
        """
        ...


class UserProvider(Protocol):
    def find_user_by_email(self, email: str) -> User:
        """Raises UserNotFound if no user has this email."""
        ...

    def is_admin(self, user_id: int) -> bool:
        """Raises UserNotFound if user_id is unknown."""
        ...


class AppProvider(Protocol):
    def find_app(self, app_id: int) -> App:
        """Raises AppNotFound if app_id is unknown."""
        ...
