"""
messaging/dispatcher.py -- Compose a message and hand it to the transport.

Order of operations per dispatch:
  1. sender must be Claims from Authenticator.verify()
     and the subject must be a single line (InvalidMessage otherwise)
  2. store attachments   (StorageFailure aborts, transport untouched)
  3. resolve recipients  (unknown identifiers dropped)
  4. relay once          (TransportFailure on any relay error)

Attachment storage and recipient lookup are blocking file and database work;
both run in the threadpool so the event loop keeps serving other requests.

Not idempotent: every call is one send attempt. There is no dedup and no
retry.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from starlette.concurrency import run_in_threadpool

from auth.models import Claims
from core.errors import InvalidMessage, Unauthenticated
from messaging.attachments import AttachmentReceiver
from messaging.models import DispatchReceipt, Message
from messaging.recipients import RecipientResolver

logger = logging.getLogger("mailgate.messaging")


class Transport(Protocol):
    async def relay(self, message: Message) -> DispatchReceipt: ...


class Dispatcher:
    def __init__(self, receiver: AttachmentReceiver, resolver: RecipientResolver, transport: Transport) -> None:
        self._receiver = receiver
        self._resolver = resolver
        self._transport = transport

    async def dispatch(
        self,
        sender: Claims,
        requested_recipients: Sequence[str],
        subject: str,
        body: str,
        raw_attachments: Sequence[tuple[str, bytes]] = (),
    ) -> DispatchReceipt:
        if not isinstance(sender, Claims):
            raise Unauthenticated()
        if "\r" in subject or "\n" in subject:
            raise InvalidMessage(detail="subject must be a single line")

        attachments = await run_in_threadpool(self._receiver.receive, raw_attachments)
        principals = await run_in_threadpool(self._resolver.resolve, requested_recipients)

        message = Message(
            sender=sender.identifier,
            recipients=[p.identifier for p in principals],
            subject=subject,
            body=body,
            attachments=attachments,
        )
        receipt = await self._transport.relay(message)
        logger.info(
            "Dispatched %s from %s to %d of %d requested recipient(s), %d attachment(s)",
            receipt.message_id,
            sender.identifier,
            len(message.recipients),
            len(requested_recipients),
            len(attachments),
        )
        return receipt
