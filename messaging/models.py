"""
messaging/models.py -- Domain dataclasses for message dispatch.

Pattern: Data class (pure data container, zero logic). Messages are built per
dispatch request and never persisted; only the attachment blobs outlive the
request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Attachment:
    filename: str  # original client-supplied name, used in the MIME part
    storage_name: str  # collision-resistant name inside the blob root
    path: Path
    size: int


@dataclass
class Message:
    """A composed message ready for the transport.

    recipients holds resolved identifiers only, in request order. It may be
    empty -- that is a valid, if useless, message at this layer.
    """

    sender: str
    recipients: list[str]
    subject: str
    body: str
    attachments: list[Attachment] = field(default_factory=list)


@dataclass
class DispatchReceipt:
    message_id: str
    recipients: list[str]
    rejected: list[str] = field(default_factory=list)
    response: str = ""
    attachments: list[str] = field(default_factory=list)  # storage names
