"""
Tests for the signature store.

Feature: clabot
"""

import asyncio
from datetime import datetime, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from clabot.signatures import (
    DuplicateSignatureError,
    InMemorySignatureStore,
    SignatureStore,
    resolve,
)
from clabot.testing import create_contact

SIGNED_ON = datetime(2026, 1, 5, tzinfo=timezone.utc)


def test_record_signature() -> None:
    store = InMemorySignatureStore(clock=lambda: SIGNED_ON)

    signature = store.record_signature(create_contact("bob", "Bob Builder"), "1.0")

    assert signature.github_username == "bob"
    assert signature.signed_on == SIGNED_ON
    assert signature.cla_version == "1.0"
    assert store.get("BOB") is signature
    assert len(store) == 1


def test_duplicate_signature_is_rejected() -> None:
    store = InMemorySignatureStore()
    store.sign("bob")

    with pytest.raises(DuplicateSignatureError) as exc_info:
        store.record_signature(create_contact("Bob"), "2.0")

    assert exc_info.value.code == "DUPLICATE_SIGNATURE"
    assert exc_info.value.github_username == "Bob"


def test_lookup_returns_signed_subset_as_given() -> None:
    store = InMemorySignatureStore()
    store.sign("bob", "Carol")

    assert store.lookup_signatures({"BOB", "carol", "dave"}) == {"BOB", "carol"}


def test_store_seeded_from_signatures() -> None:
    first = InMemorySignatureStore()
    first.sign("bob")

    second = InMemorySignatureStore([first.get("bob")])

    assert "bob" in second
    assert 42 not in second


def test_in_memory_store_satisfies_protocol() -> None:
    assert isinstance(InMemorySignatureStore(), SignatureStore)


def test_resolve_accepts_values_and_awaitables() -> None:
    async def later() -> set[str]:
        return {"bob"}

    async def run():
        return await resolve({"alice"}), await resolve(later())

    assert asyncio.run(run()) == ({"alice"}, {"bob"})


@given(
    signed=st.sets(st.from_regex(r"[a-z][a-z0-9-]{0,8}", fullmatch=True), max_size=10),
    asked=st.sets(st.from_regex(r"[a-zA-Z][a-zA-Z0-9-]{0,8}", fullmatch=True), max_size=10),
)
@settings(max_examples=100)
def test_property_lookup_is_case_insensitive_subset(signed: set[str], asked: set[str]) -> None:
    """
    Property: Lookup returns exactly the signed subset

    For any signed and asked usernames, lookup SHALL return the asked names
    whose lowercase form has signed, spelled as asked.
    """
    store = InMemorySignatureStore()
    store.sign(*signed)

    result = store.lookup_signatures(asked)

    assert result <= asked
    assert result == {name for name in asked if name.lower() in signed}
