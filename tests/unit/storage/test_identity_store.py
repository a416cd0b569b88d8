"""Unit tests for the SQLite identity store."""

from __future__ import annotations

import sqlite3

import pytest

from mezastar_helper.core.errors import DuplicateIdentity, StoreError, ValidationError
from mezastar_helper.storage import IdentityStore, TrainerIdentity


# =============================================================================
# add()
# =============================================================================


@pytest.mark.asyncio
async def test_add_trims_inputs(store):
    identity = await store.add(" abc ", " Name ")

    assert identity.trainer_id == "abc"
    assert identity.alias == "Name"
    assert identity.id > 0
    assert await store.list() == [identity]


@pytest.mark.asyncio
async def test_add_sets_creation_time_in_milliseconds(store, clock):
    expected = int(clock.now * 1000)
    identity = await store.add("abc", "Name")
    assert identity.created_at == expected


@pytest.mark.asyncio
async def test_duplicate_trainer_id_is_rejected(store):
    first = await store.add("TOKEN", "First")

    with pytest.raises(DuplicateIdentity) as excinfo:
        await store.add("TOKEN", "Second")

    assert str(excinfo.value) == "This trainer ID already exists"
    assert await store.list() == [first]


@pytest.mark.asyncio
async def test_duplicate_check_uses_trimmed_token(store):
    await store.add("TOKEN", "First")
    with pytest.raises(DuplicateIdentity):
        await store.add("  TOKEN\n", "Second")


@pytest.mark.asyncio
async def test_token_match_is_case_sensitive(store):
    await store.add("token", "Lower")
    await store.add("TOKEN", "Upper")
    assert len(await store.list()) == 2


@pytest.mark.asyncio
async def test_alias_need_not_be_unique(store):
    await store.add("one", "Same")
    await store.add("two", "Same")
    assert [i.alias for i in await store.list()] == ["Same", "Same"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "trainer_id, alias",
    [("", "Name"), ("abc", ""), ("   ", "Name"), ("abc", " \t ")],
)
async def test_blank_fields_raise_validation_error(store, trainer_id, alias):
    with pytest.raises(ValidationError) as excinfo:
        await store.add(trainer_id, alias)

    assert str(excinfo.value) == "Both trainer ID and alias are required"
    assert await store.list() == []


# =============================================================================
# list() / lookup() / get()
# =============================================================================


@pytest.mark.asyncio
async def test_list_returns_insertion_order(store):
    for token in ("c", "a", "b"):
        await store.add(token, token.upper())

    assert [i.trainer_id for i in await store.list()] == ["c", "a", "b"]


@pytest.mark.asyncio
async def test_list_returns_fresh_snapshot(store):
    snapshot = await store.list()
    await store.add("abc", "Name")

    assert snapshot == []
    assert len(await store.list()) == 1


@pytest.mark.asyncio
async def test_lookup_exact_match(store):
    identity = await store.add("abc", "Name")

    assert await store.lookup("abc") == identity
    assert await store.lookup("ab") is None
    assert await store.lookup("ABC") is None


@pytest.mark.asyncio
async def test_get_by_surrogate_key(store):
    identity = await store.add("abc", "Name")
    assert await store.get(identity.id) == identity
    assert await store.get(identity.id + 100) is None


# =============================================================================
# delete()
# =============================================================================


@pytest.mark.asyncio
async def test_delete_removes_record(store):
    keep = await store.add("keep", "Keep")
    drop = await store.add("drop", "Drop")

    await store.delete(drop.id)

    assert await store.list() == [keep]


@pytest.mark.asyncio
async def test_delete_missing_key_is_noop(store):
    identity = await store.add("abc", "Name")
    await store.delete(identity.id + 1)
    assert await store.list() == [identity]


@pytest.mark.asyncio
async def test_surrogate_keys_are_not_reused(store):
    first = await store.add("one", "One")
    await store.delete(first.id)
    second = await store.add("two", "Two")
    assert second.id > first.id


# =============================================================================
# Storage failures
# =============================================================================


@pytest.mark.asyncio
async def test_operations_on_closed_store_raise_store_error():
    closed = IdentityStore()
    with pytest.raises(StoreError):
        await closed.list()
    with pytest.raises(StoreError):
        await closed.delete(1)


@pytest.mark.asyncio
async def test_sqlite_errors_surface_as_store_error(store):
    def broken(conn):
        raise sqlite3.OperationalError("disk I/O error")

    with pytest.raises(StoreError):
        await store._run(broken)


def test_open_unwritable_path_raises_store_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(StoreError):
        IdentityStore(blocker / "db.sqlite3").open()


@pytest.mark.asyncio
async def test_file_store_persists_between_sessions(tmp_path):
    path = tmp_path / "state" / "ids.sqlite3"

    async with IdentityStore(path) as first:
        await first.add("abc", "Name")

    async with IdentityStore(path) as second:
        identities = await second.list()

    assert [(i.trainer_id, i.alias) for i in identities] == [("abc", "Name")]


def test_short_token_shows_first_sixteen_characters():
    identity = TrainerIdentity(id=1, trainer_id="0123456789abcdefXYZ", alias="Name", created_at=0)
    assert identity.short_token == "0123456789abcdef..."
