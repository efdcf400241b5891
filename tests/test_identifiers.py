from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from repositories.base import InvalidIdentifierError, ensure_internal_id
from services.identifiers import IdentifierResolver, looks_external


def make_resolver(external=None, internal=None):
    by_external = AsyncMock(return_value=external)
    by_internal = AsyncMock(return_value=internal)
    return IdentifierResolver(by_external, by_internal), by_external, by_internal


async def test_external_match_wins():
    record = SimpleNamespace(id="a" * 32)
    resolver, by_external, by_internal = make_resolver(external=record)

    assert await resolver.resolve("b3e1c2d4-1111-4222-8333-44445555aaaa") == record.id
    by_internal.assert_not_awaited()


async def test_hyphenated_id_never_tries_internal_lookup():
    resolver, by_external, by_internal = make_resolver(internal=SimpleNamespace(id="x"))

    assert await resolver.resolve_record("b3e1c2d4-1111-4222-8333-44445555aaaa") is None
    by_external.assert_awaited_once()
    by_internal.assert_not_awaited()


async def test_plain_id_falls_back_to_internal_lookup():
    record = SimpleNamespace(id="0123456789abcdef0123456789abcdef")
    resolver, _, by_internal = make_resolver(internal=record)

    assert await resolver.resolve(record.id) == record.id
    by_internal.assert_awaited_once_with(record.id)


@pytest.mark.parametrize("error", [InvalidIdentifierError("bad"), OperationalError("select", {}, Exception("boom"))])
async def test_internal_lookup_errors_mean_not_found(error):
    resolver, _, by_internal = make_resolver()
    by_internal.side_effect = error

    assert await resolver.resolve("notahexid") is None


async def test_missing_id_is_not_found_on_every_call():
    resolver, by_external, by_internal = make_resolver()

    results = [await resolver.resolve("doc1") for _ in range(3)]

    assert results == [None, None, None]
    assert by_external.await_count == 3
    assert by_internal.await_count == 3


async def test_empty_id_skips_lookups():
    resolver, by_external, _ = make_resolver()
    assert await resolver.resolve("") is None
    by_external.assert_not_awaited()


def test_looks_external():
    assert looks_external("b3e1-4d2a")
    assert not looks_external("0123456789abcdef0123456789abcdef")


def test_ensure_internal_id_rejects_malformed_values():
    assert ensure_internal_id("0123456789abcdef0123456789abcdef")
    with pytest.raises(InvalidIdentifierError):
        ensure_internal_id("doc1")
