"""
auth/tokens.py -- Login, JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       only the identifier (sub), issued-at and expiry. They are stateless:
       validity is signature + expiry, with no server-side session or
       revocation list.

  Login: bcrypt runs exactly once per attempt whether or not the identifier
       exists. Unknown identifiers are checked against _DUMMY_HASH so response
       time does not reveal which identifiers are registered [C1]. Both failure
       paths raise the same InvalidCredentials with the same message.

  Verification: missing token -> Unauthenticated (401). Expired but correctly
       signed -> TokenExpired (403). Anything else wrong -> Forbidden (403).

The Authenticator is constructed explicitly (store, key, window) in the app
lifespan and stored on app.state. Nothing here reads ambient globals at
import time except the dummy hash.

Layer rule: no imports from api/ or messaging/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import Claims, IssuedToken
from auth.passwords import hash_password, verify_password
from core.errors import Forbidden, InvalidCredentials, TokenExpired, Unauthenticated

if TYPE_CHECKING:
    from auth.store import CredentialStore

logger = logging.getLogger("mailgate.auth")

_ALGORITHM = "HS256"

# Timing equalization dummy hash [C1].
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("mailgate_timing_dummy")


class Authenticator:
    """Validates credentials and issues/verifies signed, time-limited tokens.

    Usage:
        authenticator = Authenticator(store, settings.secret_key, 3600)
        issued = authenticator.login("alice@example.com", "pw123")
        claims = authenticator.verify(issued.token)
    """

    def __init__(self, store: CredentialStore, secret_key: str, token_expire_seconds: int = 3600) -> None:
        if token_expire_seconds <= 0:
            raise ValueError("token_expire_seconds must be positive")
        self._store = store
        self._secret_key = secret_key
        self._expire_seconds = token_expire_seconds

    # ------------------------------------------------------------------
    # Login (constant-time) [C1]
    # ------------------------------------------------------------------

    def login(self, identifier: str, secret: str) -> IssuedToken:
        """Check identifier/secret against the store and issue a token.

        Raises InvalidCredentials for an unknown identifier and for a wrong
        secret alike. Do NOT return early before bcrypt runs.
        """
        principal = self._store.find_by_identifier(identifier)
        if principal is None:
            verify_password(secret, _DUMMY_HASH)
            raise InvalidCredentials()
        if not verify_password(secret, principal.hashed_password):
            raise InvalidCredentials()
        logger.info("Login succeeded for %s", principal.identifier)
        return self.issue(principal.identifier)

    # ------------------------------------------------------------------
    # JWT encode / decode
    # ------------------------------------------------------------------

    def issue(self, identifier: str, now: datetime | None = None) -> IssuedToken:
        """Sign a token for identifier that expires one window after now."""
        issued_at = now or datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(seconds=self._expire_seconds)
        payload = {
            "sub": identifier,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)
        return IssuedToken(
            token=token,
            identifier=identifier,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            expires_in=self._expire_seconds,
        )

    def verify(self, token: str | None) -> Claims:
        """Verify signature and expiry and return the embedded identity.

        This is the gate in front of every protected operation. It is pure:
        no store lookup, no locking.
        """
        if not token:
            raise Unauthenticated()
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise Forbidden() from exc

        identifier = payload.get("sub")
        exp = payload.get("exp")
        if not isinstance(identifier, str) or not identifier or exp is None:
            raise Forbidden()
        return Claims(
            identifier=identifier,
            expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc),
        )
