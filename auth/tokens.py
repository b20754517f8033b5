"""
auth/tokens.py -- Access token issuance.

JWT: python-jose with HS256. Each token is signed with the secret of the app
it is issued for, so a token minted for app 1 does not verify under app 2's
secret. The core only issues; verification is the job of whichever service
receives the token.

Claims:
  sub     -- user id as a string (RFC 7519 requires a string subject;
             python-jose rejects non-string sub on decode)
  uid     -- user id as an integer, for consumers that want it typed
  email   -- user email
  app_id  -- id of the app the token is scoped to
  iat     -- issue time, Unix seconds
  exp     -- iat + ttl, Unix seconds

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from auth.errors import CryptoFault
from auth.models import App, User

ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Builds and signs app-scoped access tokens.

    clock is injectable so tests can pin iat/exp.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock

    def claims_for(self, user: User, app: App, ttl: timedelta) -> dict[str, Any]:
        issued_at = int(self._clock().timestamp())
        return {
            "sub": str(user.id),
            "uid": user.id,
            "email": user.email,
            "app_id": app.id,
            "iat": issued_at,
            "exp": issued_at + int(ttl.total_seconds()),
        }

    def issue(self, user: User, app: App, ttl: timedelta) -> str:
        """Return a signed JWT for user, scoped to app and valid for ttl.

        Raises CryptoFault if the app has no usable secret or signing fails.
        """
        if ttl.total_seconds() < 1 or ttl % timedelta(seconds=1):
            raise ValueError("token ttl must be a whole number of seconds, at least one")
        if not app.secret:
            raise CryptoFault("tokens.issue", f"app {app.id} has an empty signing secret")
        try:
            return jwt.encode(self.claims_for(user, app, ttl), app.secret, algorithm=ALGORITHM)
        except (JWTError, TypeError, ValueError) as exc:
            raise CryptoFault("tokens.issue", cause=exc) from exc
