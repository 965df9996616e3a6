"""
messaging/attachments.py -- Durable attachment storage.

BlobStore is a flat directory of named blobs. AttachmentReceiver turns the
(filename, bytes) pairs of one dispatch request into stored Attachments.

Naming:
  <epoch-ms>-<uuid4 hex>-<sanitized filename>
  The millisecond prefix keeps a directory listing roughly chronological (and
  matches what the retention sweep reads); the uuid makes two uploads of the
  same filename in the same millisecond distinct. No cross-request locking is
  needed.

Safety:
  Client filenames are sanitized to [A-Za-z0-9_.-] and capped in length, and
  BlobStore refuses any name that would resolve outside its root.

All-or-nothing:
  If any write in a receive() call fails, blobs already written by that call
  are removed and StorageFailure is raised. The dispatch is aborted before the
  transport is contacted.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import Sequence
from pathlib import Path

from core.errors import StorageFailure
from messaging.models import Attachment

logger = logging.getLogger("mailgate.messaging.attachments")

_UNSAFE_CHARS = re.compile(r"[^\w\-.]")
_MAX_NAME_LEN = 100
# Control characters (CR and LF above all) cannot appear in a MIME filename param.
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_filename(filename: str) -> str:
    """Reduce a client-supplied filename to a safe single path component."""
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE_CHARS.sub("_", base).lstrip(".")
    return cleaned[-_MAX_NAME_LEN:] or "attachment"


def display_filename(filename: str) -> str:
    """Client filename as shown to recipients, with control characters removed."""
    return _CONTROL_CHARS.sub("", filename).strip() or "attachment"


class BlobStore:
    """Filesystem blob store rooted at a single directory.

    Usage:
        blobs = BlobStore(Path("uploads"))
        blobs.ensure_root()          # once, at startup
        blobs.write("123-abc-a.txt", b"...")
        data = blobs.read("123-abc-a.txt")
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        """Return the absolute path for name, refusing anything outside the root."""
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise StorageFailure(detail="invalid blob name")
        return self.root / name

    def write(self, name: str, data: bytes) -> Path:
        path = self.path_for(name)
        try:
            # "xb" refuses to overwrite an existing blob.
            with open(path, "xb") as fh:
                fh.write(data)
        except OSError as exc:
            raise StorageFailure(detail=exc.__class__.__name__) from exc
        return path

    def read(self, name: str) -> bytes:
        try:
            return self.path_for(name).read_bytes()
        except OSError as exc:
            raise StorageFailure(detail=exc.__class__.__name__) from exc

    def delete(self, name: str) -> None:
        self.path_for(name).unlink(missing_ok=True)

    def purge_older_than(self, max_age_seconds: int) -> int:
        """Delete blobs whose modification time is older than max_age_seconds.

        Returns the number of files removed. Files that vanish or cannot be
        removed mid-sweep are skipped and logged.
        """
        cutoff = time.time() - max_age_seconds
        removed = 0
        for path in self.root.iterdir():
            if not path.is_file():
                continue
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except OSError as exc:
                logger.warning("Could not purge %s: %s", path.name, exc)
        return removed


class AttachmentReceiver:
    """Persists the attachments of one dispatch request."""

    def __init__(self, blobs: BlobStore) -> None:
        self._blobs = blobs

    def receive(self, raw_files: Sequence[tuple[str, bytes]]) -> list[Attachment]:
        stored: list[Attachment] = []
        try:
            for filename, data in raw_files:
                name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex}-{sanitize_filename(filename)}"
                path = self._blobs.write(name, data)
                stored.append(
                    Attachment(filename=display_filename(filename), storage_name=name, path=path, size=len(data))
                )
        except StorageFailure:
            logger.error("Attachment write failed after %d of %d files; rolling back", len(stored), len(raw_files))
            for attachment in stored:
                try:
                    self._blobs.delete(attachment.storage_name)
                except OSError as exc:
                    logger.warning("Rollback could not remove %s: %s", attachment.storage_name, exc)
            raise
        return stored
