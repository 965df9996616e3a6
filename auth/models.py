"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in messaging/models.py -- dataclasses own domain shape; stores and services
do the work.

Layer rule: no imports from api/ or messaging/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Principal:
    """A registered identity that can log in and receive mail.

    identifier is the login email. It is unique and compared case-sensitively,
    exactly as submitted at registration.

    hashed_password is a bcrypt hash. The plaintext secret is never stored.
    There is no update or delete path in this service -- a Principal is
    written once by registration and only read afterwards.
    """

    identifier: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Claims:
    """The verified identity carried by a bearer token.

    Only Authenticator.verify() constructs these. Code downstream of the gate
    (the Dispatcher in particular) takes Claims rather than a bare string so
    an unverified identifier cannot be passed in by mistake.
    """

    identifier: str
    expires_at: datetime


@dataclass(frozen=True)
class IssuedToken:
    """A freshly signed access token plus the metadata the login response needs."""

    token: str
    identifier: str
    expires_at: datetime
    expires_in: int
