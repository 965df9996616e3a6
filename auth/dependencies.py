"""
auth/dependencies.py -- FastAPI Depends() helpers for the bearer-token gate.

Only one auth method exists: an "Authorization: Bearer <token>" header
carrying a JWT issued by POST /api/v1/auth/login.

get_bearer_token() extracts the raw token (None when absent or not Bearer).
get_current_claims() runs it through Authenticator.verify():
  - no token                   -> Unauthenticated (401)
  - bad signature / malformed  -> Forbidden (403)
  - expired                    -> TokenExpired (403)

The errors are GatewayError subclasses; api/main.py renders them.

Layer rule: no imports from api/ or messaging/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import Claims
from auth.tokens import Authenticator


def get_bearer_token(request: Request) -> str | None:
    """Return the token from the Authorization header, or None if absent."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_claims(request: Request) -> Claims:
    """Require a valid bearer token. Raises Unauthenticated or Forbidden otherwise.

    Use as a FastAPI dependency:
        @router.post("/protected")
        async def route(claims: Claims = Depends(get_current_claims)): ...
    """
    authenticator: Authenticator = request.app.state.authenticator
    return authenticator.verify(get_bearer_token(request))
