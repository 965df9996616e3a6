"""
messaging/transport.py -- SMTP relay client (aiosmtplib).

SmtpTransport turns a Message into an email.message.EmailMessage and hands it
to the configured relay in a single attempt. There is no queue and no retry:
any relay, network or timeout error becomes TransportFailure and the caller
decides whether to resubmit the whole request.

Timeouts:
  aiosmtplib's own timeout applies per SMTP command. The whole send is also
  wrapped in asyncio.wait_for so a slow relay cannot hold a request open
  longer than Settings.smtp_timeout_seconds (plus connection setup).

Lifecycle:
  start() runs at process start and optionally probes the relay with a
  connect/quit round trip (SMTP_VERIFY_ON_STARTUP). A failed probe is logged,
  not fatal -- the relay may come up later. close() runs at shutdown; relay()
  after close() fails fast.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

import aiosmtplib

from core.errors import InvalidMessage, TransportFailure
from messaging.attachments import BlobStore
from messaging.models import DispatchReceipt, Message

logger = logging.getLogger("mailgate.messaging.transport")


def build_email(message: Message, blobs: BlobStore, from_override: str = "") -> EmailMessage:
    """Assemble the MIME message for message.

    Attachments are read back from the blob store by storage name and carry
    the client's original filename. MIME type is guessed from that filename,
    falling back to application/octet-stream.
    """
    msg = EmailMessage()
    msg["From"] = from_override or message.sender
    if from_override and from_override != message.sender:
        msg["Reply-To"] = message.sender
    msg["To"] = ", ".join(message.recipients)
    msg["Subject"] = message.subject
    msg["Date"] = formatdate(localtime=False)
    domain = message.sender.rpartition("@")[2] or None
    msg["Message-ID"] = make_msgid(domain=domain)
    msg.set_content(message.body)

    for attachment in message.attachments:
        content = blobs.read(attachment.storage_name)
        mime_type, _ = mimetypes.guess_type(attachment.filename)
        maintype, _, subtype = (mime_type or "application/octet-stream").partition("/")
        msg.add_attachment(content, maintype=maintype, subtype=subtype, filename=attachment.filename)
    return msg


class SmtpTransport:
    def __init__(
        self,
        blobs: BlobStore,
        hostname: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = False,
        start_tls: bool = True,
        timeout: float = 30.0,
        from_override: str = "",
    ) -> None:
        self._blobs = blobs
        self.hostname = hostname
        self.port = port
        self._username = username or None
        self._password = password or None
        self._use_tls = use_tls
        self._start_tls = start_tls and not use_tls
        self._timeout = timeout
        self._from_override = from_override
        self._closed = False

    async def start(self, verify: bool = False) -> None:
        self._closed = False
        if not verify:
            return
        smtp = aiosmtplib.SMTP(
            hostname=self.hostname,
            port=self.port,
            use_tls=self._use_tls,
            start_tls=self._start_tls,
            timeout=self._timeout,
        )
        try:
            await smtp.connect()
            await smtp.quit()
            logger.info("SMTP relay %s:%d reachable", self.hostname, self.port)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            logger.warning("SMTP relay %s:%d unreachable at startup: %s", self.hostname, self.port, exc)

    async def close(self) -> None:
        self._closed = True

    async def relay(self, message: Message) -> DispatchReceipt:
        """Send message once.

        Raises InvalidMessage if a header cannot be encoded and TransportFailure
        on any relay error.
        """
        if self._closed:
            raise TransportFailure(detail="transport is closed")

        try:
            email_msg = build_email(message, self._blobs, self._from_override)
        except ValueError as exc:
            # email.policy refuses header values containing CR or LF.
            raise InvalidMessage(detail=str(exc)) from exc
        message_id = email_msg["Message-ID"]
        storage_names = [a.storage_name for a in message.attachments]

        if not message.recipients:
            # SMTP needs at least one RCPT TO. Nothing is relayed; the request
            # still succeeds with an empty recipient list.
            logger.warning("Message %s has no resolved recipients; nothing relayed", message_id)
            return DispatchReceipt(
                message_id=message_id,
                recipients=[],
                response="no recipients",
                attachments=storage_names,
            )

        try:
            errors, response = await asyncio.wait_for(
                aiosmtplib.send(
                    email_msg,
                    sender=self._from_override or message.sender,
                    recipients=message.recipients,
                    hostname=self.hostname,
                    port=self.port,
                    username=self._username,
                    password=self._password,
                    use_tls=self._use_tls,
                    start_tls=self._start_tls,
                    timeout=self._timeout,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("SMTP relay timed out after %.1fs for %s", self._timeout, message_id)
            raise TransportFailure(detail="relay timed out") from exc
        except aiosmtplib.SMTPException as exc:
            code = getattr(exc, "code", None)
            logger.error("SMTP relay rejected %s: %s", message_id, exc)
            raise TransportFailure(detail=f"relay error {code}" if code else "relay error") from exc
        except OSError as exc:
            logger.error("SMTP relay unreachable for %s: %s", message_id, exc)
            raise TransportFailure(detail="relay unreachable") from exc

        rejected = sorted(errors) if errors else []
        return DispatchReceipt(
            message_id=message_id,
            recipients=[r for r in message.recipients if r not in rejected],
            rejected=rejected,
            response=str(response),
            attachments=storage_names,
        )
