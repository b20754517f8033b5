"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, zero logic). Stores build these from
rows; the service and token issuer read them.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An identity in the shared store.

    pass_hash is the raw bcrypt output (salt and cost embedded). It is opaque
    to everything except PasswordHasher.verify().
    """

    email: str
    pass_hash: bytes
    id: int | None = None
    is_admin: bool = False


@dataclass
class App:
    """A client application (tenant) that tokens are issued for.

    secret is the HS256 signing key for this app's tokens. Provisioned out of
    band (see main.py add-app); the service only reads it.
    """

    id: int
    name: str
    secret: str
