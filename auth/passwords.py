"""
auth/passwords.py -- One-way password hashing with bcrypt.

Using bcrypt directly rather than passlib: no wrapper, no compatibility shim,
and bcrypt 4.x+ rejects some inputs passlib's bug detection generates.

Hashes are the raw bcrypt bytes ($2b$<cost>$<salt><digest>). The salt is
generated per call and the cost is embedded, so verify() needs nothing but
the stored value. Changing the configured rounds affects new hashes only.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.errors import CryptoFault

logger = logging.getLogger("ssoauth.auth")

DEFAULT_ROUNDS = 12
# bcrypt reads at most 72 bytes of input; bcrypt 5 raises on anything longer.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted bcrypt hashing with a work factor fixed per instance.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("hunter2")
        hasher.verify("hunter2", stored)   # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds
        # Verified against when the email is unknown, so a miss costs one
        # bcrypt round trip just like a wrong password does.
        self._dummy_hash = self.hash("ssoauth-timing-dummy")

    def hash(self, password: str) -> bytes:
        """Return a freshly salted bcrypt hash of password.

        Raises CryptoFault if bcrypt rejects the input (e.g. bcrypt 5 refuses
        passwords longer than 72 bytes).
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise CryptoFault("passwords.hash", f"password exceeds {MAX_PASSWORD_BYTES} bytes")
        try:
            return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds))
        except (ValueError, TypeError) as exc:
            raise CryptoFault("passwords.hash", cause=exc) from exc

    def verify(self, password: str, pass_hash: bytes) -> bool:
        """Return True if password matches pass_hash.

        bcrypt.checkpw compares digests in constant time. A malformed stored
        hash is reported as a mismatch, not an error. A password longer than
        bcrypt accepts can never match a stored hash.
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, pass_hash)
        except (ValueError, TypeError):
            logger.warning("Stored password hash could not be parsed; treating as mismatch")
            return False

    def dummy_verify(self, password: str) -> None:
        self.verify(password, self._dummy_hash)
