"""
api/routes/v1/auth.py -- Registration, login and token introspection endpoints.

Routes:
  POST /api/v1/auth/register   -- create a principal; 201
  POST /api/v1/auth/login      -- password login; returns a bearer token
  GET  /api/v1/auth/me         -- identity behind the presented token (requires auth)

Security:
  [H2] POST /login is rate-limited per IP (Settings.login_rate_limit).
  [C1] Authenticator.login() provides timing equalization -- use it, never
       inline find_by_identifier() + verify_password().
  [M5] Cache-Control: no-store on login responses.
  Registration errors and login errors use fixed generic messages.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit
from api.models import LoginRequest, LoginResponse, MeResponse, RegisterRequest, RegisterResponse
from auth.dependencies import get_current_claims
from auth.models import Claims
from auth.store import CredentialStore
from auth.tokens import Authenticator

logger = logging.getLogger("mailgate.api.auth")

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/me:       requires a valid bearer token (get_current_claims)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Register a new principal.

    A duplicate email raises DuplicateIdentifier (400). The plaintext password
    is hashed inside the store and never logged.
    """
    store: CredentialStore = request.app.state.credential_store
    principal = store.register(body.email, body.password)
    logger.info("Registered principal %s", principal.identifier)
    return RegisterResponse(identifier=principal.identifier)


@limiter.limit(login_limit)  # [H2] brute-force mitigation -- must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a bearer token.

    Unknown email and wrong password both raise InvalidCredentials with the
    same body.
    """
    authenticator: Authenticator = request.app.state.authenticator
    issued = authenticator.login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=issued.token,
            expires_in=issued.expires_in,
            identifier=issued.identifier,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
async def me(claims: Claims = Depends(get_current_claims)) -> MeResponse:
    """Return the identity and expiry of the presented token."""
    return MeResponse(identifier=claims.identifier, expires_at=claims.expires_at)
