"""Unit tests for messaging/recipients.py -- RecipientResolver."""

from unittest.mock import MagicMock

from auth.models import Principal
from messaging.recipients import RecipientResolver


def test_unknown_recipients_dropped_in_order(store):
    store.register("a@x.io", "pw")
    store.register("b@x.io", "pw")
    resolved = RecipientResolver(store).resolve(["a@x.io", "b@x.io", "ghost@x.io"])
    assert [p.identifier for p in resolved] == ["a@x.io", "b@x.io"]


def test_input_order_preserved_not_store_order(store):
    store.register("a@x.io", "pw")
    store.register("b@x.io", "pw")
    resolved = RecipientResolver(store).resolve(["b@x.io", "a@x.io"])
    assert [p.identifier for p in resolved] == ["b@x.io", "a@x.io"]


def test_duplicates_collapsed_to_first_occurrence(store):
    store.register("a@x.io", "pw")
    store.register("b@x.io", "pw")
    resolved = RecipientResolver(store).resolve(["b@x.io", "a@x.io", "b@x.io"])
    assert [p.identifier for p in resolved] == ["b@x.io", "a@x.io"]


def test_all_unknown_yields_empty_list(store):
    assert RecipientResolver(store).resolve(["ghost@x.io", "nobody@x.io"]) == []


def test_single_batched_lookup():
    fake_store = MagicMock()
    fake_store.find_many_by_identifiers.return_value = [Principal(identifier="a@x.io", hashed_password="h")]
    resolved = RecipientResolver(fake_store).resolve(["a@x.io", "b@x.io", "c@x.io"])
    fake_store.find_many_by_identifiers.assert_called_once_with(["a@x.io", "b@x.io", "c@x.io"])
    assert [p.identifier for p in resolved] == ["a@x.io"]
