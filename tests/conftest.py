"""
tests/conftest.py -- Shared test fixtures for Mailgate.

This module provides:
  - RecordingTransport: in-process stand-in for the SMTP relay
  - store / authenticator / blobs: unit-level fixtures on in-memory SQLite
  - api_client: TestClient wired to isolated stores through a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format shares one in-memory instance across all
connections in the same process.

DEBUG must be set before any auth/core import so get_settings() can
auto-generate SECRET_KEY in dev mode instead of raising ValueError. The rate
limits are raised so the suite never trips them; BCRYPT_ROUNDS is lowered to
keep hashing fast.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from pathlib import Path

# CRITICAL: Set env before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("DISPATCH_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.store import CredentialStore
from auth.tokens import Authenticator
from core.errors import TransportFailure
from messaging.attachments import AttachmentReceiver, BlobStore
from messaging.dispatcher import Dispatcher
from messaging.models import DispatchReceipt, Message
from messaging.recipients import RecipientResolver

TEST_SECRET_KEY = "test-secret-key-that-is-at-least-32-chars"


class RecordingTransport:
    """Transport double that records every relayed Message.

    Set fail=True to make relay() raise TransportFailure.
    """

    def __init__(self) -> None:
        self.sent: list[Message] = []
        self.fail = False

    async def relay(self, message: Message) -> DispatchReceipt:
        if self.fail:
            raise TransportFailure(detail="relay unreachable")
        self.sent.append(message)
        return DispatchReceipt(
            message_id=f"<{uuid.uuid4().hex}@test>",
            recipients=list(message.recipients),
            response="250 OK",
            attachments=[a.storage_name for a in message.attachments],
        )

    async def close(self) -> None:
        pass


def _memory_db_url(name: str) -> str:
    return f"sqlite:///file:{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def secret_key() -> str:
    return TEST_SECRET_KEY


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    s = CredentialStore(_memory_db_url("unit"), bcrypt_rounds=4)
    yield s
    s.close()


@pytest.fixture
def authenticator(store: CredentialStore) -> Authenticator:
    return Authenticator(store, TEST_SECRET_KEY, token_expire_seconds=3600)


@pytest.fixture
def blobs(tmp_path: Path) -> BlobStore:
    b = BlobStore(tmp_path / "uploads")
    b.ensure_root()
    return b


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


# ---------------------------------------------------------------------------
# Integration fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(store: CredentialStore, blobs: BlobStore, transport: RecordingTransport):
    """Return an async context manager that replaces the real lifespan.

    Wires test collaborators into app.state so routes see isolated stores and
    no SMTP connection is ever attempted.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.credential_store = store
        app.state.authenticator = Authenticator(store, TEST_SECRET_KEY, token_expire_seconds=3600)
        app.state.blobs = blobs
        app.state.transport = transport
        app.state.dispatcher = Dispatcher(AttachmentReceiver(blobs), RecipientResolver(store), transport)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(tmp_path_factory) -> Generator[tuple[TestClient, RecordingTransport, BlobStore], None, None]:
    """Yield (client, transport, blobs) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, dependencies and exception handlers.
    """
    store = CredentialStore(_memory_db_url("api"), bcrypt_rounds=4)
    blobs = BlobStore(tmp_path_factory.mktemp("uploads"))
    blobs.ensure_root()
    transport = RecordingTransport()

    app.router.lifespan_context = _patch_lifespan(store, blobs, transport)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, transport, blobs

    store.close()
