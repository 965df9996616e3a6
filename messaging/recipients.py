"""
messaging/recipients.py -- Map requested recipient identifiers to known principals.

Unknown identifiers are dropped without error. Mail only goes to registered
principals; everything else is ignored rather than rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from auth.models import Principal
from auth.store import CredentialStore

logger = logging.getLogger("mailgate.messaging.recipients")


class RecipientResolver:
    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    def resolve(self, requested: Sequence[str]) -> list[Principal]:
        """Return registered principals for requested, in first-seen order, deduplicated.

        One batched store query regardless of list length.
        """
        ordered = list(dict.fromkeys(requested))
        by_identifier = {p.identifier: p for p in self._store.find_many_by_identifiers(ordered)}
        resolved = [by_identifier[i] for i in ordered if i in by_identifier]
        dropped = len(ordered) - len(resolved)
        if dropped:
            # Count only -- the dropped identifiers are not echoed anywhere.
            logger.debug("Dropped %d unknown recipient(s)", dropped)
        return resolved
