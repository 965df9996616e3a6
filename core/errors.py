"""
core/errors.py -- Error taxonomy shared by auth/, messaging/ and api/.

Every failure a caller can observe is a GatewayError carrying a stable
machine-readable code, a human-readable message, and the HTTP status the API
layer maps it to. api/main.py renders all of them through one exception
handler into the ErrorResponse envelope.

Credential and token errors use fixed generic messages. They must not reveal
whether an identifier exists or which half of a credential pair was wrong.

Layer rule: core/ is the kernel. No imports from api/, auth/, or messaging/.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all expected Mailgate failures."""

    code = "gateway_error"
    status_code = 500
    default_message = "Request failed."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


# ---------------------------------------------------------------------------
# Credential lifecycle
# ---------------------------------------------------------------------------


class DuplicateIdentifier(GatewayError):
    code = "duplicate_identifier"
    status_code = 400
    default_message = "An account with that email already exists."


class InvalidCredentials(GatewayError):
    """Unknown identifier and wrong password share this one error on purpose."""

    code = "invalid_credentials"
    status_code = 400
    default_message = "Invalid email or password."


# ---------------------------------------------------------------------------
# Token gate
# ---------------------------------------------------------------------------


class Unauthenticated(GatewayError):
    """No credential was presented."""

    code = "unauthenticated"
    status_code = 401
    default_message = "Authentication required."


class Forbidden(GatewayError):
    """A credential was presented but is malformed or its signature is invalid."""

    code = "invalid_token"
    status_code = 403
    default_message = "Invalid authentication token."


class TokenExpired(Forbidden):
    code = "token_expired"
    default_message = "Authentication token has expired."


class SenderMismatch(Forbidden):
    code = "sender_mismatch"
    default_message = "Sender does not match the authenticated identity."


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class InvalidMessage(GatewayError):
    """The message cannot be rendered as email, e.g. a header value spans lines."""

    code = "invalid_message"
    status_code = 422
    default_message = "Message cannot be sent as email."


class StorageFailure(GatewayError):
    code = "storage_failure"
    status_code = 500
    default_message = "Failed to store attachment."


class TransportFailure(GatewayError):
    code = "message_send_failed"
    status_code = 502
    default_message = "Failed to send email."


class InternalFailure(GatewayError):
    code = "internal_error"
    status_code = 500
    default_message = "An unexpected error occurred."
