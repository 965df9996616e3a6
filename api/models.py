"""
API request and response models for Mailgate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
messaging/models.py, which own the internal domain representation. Route
handlers map between the two.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from auth.passwords import MAX_PASSWORD_BYTES, password_too_long
from messaging.models import DispatchReceipt

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Shape check only (one @, no whitespace). Deliverability is the relay's job,
# and no normalization is applied so identifiers stay exactly as submitted.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Header values (Subject) must fit on one line.
SINGLE_LINE_PATTERN = r"^[^\r\n]*$"


def _fits_bcrypt(v: str) -> str:
    if password_too_long(v):
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return v


# Length is capped in UTF-8 bytes; a 40-character non-ASCII password can
# already exceed what bcrypt accepts.
Password = Annotated[str, Field(min_length=1, max_length=MAX_PASSWORD_BYTES), AfterValidator(_fits_bcrypt)]

# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    The email is kept exactly as submitted -- identifiers are case-sensitive,
    so no normalization is applied.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: Password


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    email is a plain str here: login must fail with the generic credentials
    error, not a validation error that reveals format rules.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)
    password: Password


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "User registered successfully"
    identifier: str


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    identifier: str
    message: str = "Login successful"


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    expires_at: datetime


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class ReceiptResponse(BaseModel):
    """Delivery acknowledgment for one dispatch."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    recipients: list[str]
    rejected: list[str] = Field(default_factory=list)
    response: str = ""
    attachments: list[str] = Field(default_factory=list)

    @classmethod
    def from_receipt(cls, receipt: DispatchReceipt) -> "ReceiptResponse":
        return cls(
            message_id=receipt.message_id,
            recipients=list(receipt.recipients),
            rejected=list(receipt.rejected),
            response=receipt.response,
            attachments=list(receipt.attachments),
        )


class SendResponse(BaseModel):
    """Response body for POST /api/v1/messages."""

    model_config = ConfigDict(frozen=True)

    message: str = "Email sent successfully"
    receipt: ReceiptResponse


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
