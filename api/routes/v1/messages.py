"""
api/routes/v1/messages.py -- Mail dispatch endpoint.

Routes:
  POST /api/v1/messages   -- send a message with attachments (requires auth)

Request (multipart/form-data):
  to           -- recipient email; repeat the field or comma-separate values
  subject      -- subject line; CR or LF is a 422
  body         -- plain-text body
  sender       -- optional; must equal the token's identity when given
  attachments  -- zero or more files

The sender is always the authenticated identity. Recipients that are not
registered principals are dropped silently. Attachments are size- and
count-capped here, before anything touches storage.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from api.limiter import dispatch_limit, limiter
from api.models import SINGLE_LINE_PATTERN, ErrorDetail, ReceiptResponse, SendResponse
from auth.dependencies import get_current_claims
from auth.models import Claims
from core.config import get_settings
from core.errors import SenderMismatch
from messaging.dispatcher import Dispatcher

router = APIRouter()


def _split_recipients(values: list[str]) -> list[str]:
    """Flatten repeated and comma-separated 'to' values, dropping blanks."""
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


async def _read_uploads(files: list[UploadFile], max_files: int, max_bytes: int) -> list[tuple[str, bytes]]:
    if len(files) > max_files:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="too_many_attachments",
                message=f"At most {max_files} attachments per message.",
            ).model_dump(),
        )
    raw: list[tuple[str, bytes]] = []
    for upload in files:
        # Size guard -- read up to the limit + 1 byte; reject if over
        data = await upload.read(max_bytes + 1)
        if len(data) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=ErrorDetail(
                    code="attachment_too_large",
                    message=f"Each attachment must be {max_bytes} bytes or smaller.",
                ).model_dump(),
            )
        raw.append((upload.filename or "attachment", data))
    return raw


@limiter.limit(dispatch_limit)
@router.post("/messages", response_model=SendResponse)
async def send_message(
    request: Request,
    to: list[str] = Form(...),
    subject: str = Form(..., max_length=998, pattern=SINGLE_LINE_PATTERN),
    body: str = Form(...),
    sender: Optional[str] = Form(None),
    attachments: Optional[list[UploadFile]] = File(None),
    claims: Claims = Depends(get_current_claims),
) -> SendResponse:
    """Dispatch one message through the SMTP relay.

    Not idempotent: repeating the request sends the message again.
    """
    if sender and sender != claims.identifier:
        raise SenderMismatch()

    settings = get_settings()
    raw = await _read_uploads(attachments or [], settings.max_attachments, settings.max_attachment_bytes)

    dispatcher: Dispatcher = request.app.state.dispatcher
    receipt = await dispatcher.dispatch(
        sender=claims,
        requested_recipients=_split_recipients(to),
        subject=subject,
        body=body,
        raw_attachments=raw,
    )
    return SendResponse(receipt=ReceiptResponse.from_receipt(receipt))
