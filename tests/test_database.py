"""Tests for the store handle lifecycle and raw accessors."""

from datetime import datetime

import pytest

from callboard.config import Settings
from callboard.errors import StoreConfigError
from callboard.storage import repository as repo
from callboard.storage.database import Database
from callboard.storage.models import Sighting


def test_missing_url_is_fatal():
    with pytest.raises(StoreConfigError):
        Database("")
    with pytest.raises(StoreConfigError):
        Database.from_settings(Settings(database_url=""))


async def test_connect_and_close():
    db = Database("sqlite+aiosqlite:///:memory:")
    assert not db.is_connected

    async with db:
        assert db.is_connected
        async with db.session() as session:
            assert await repo.list_sightings(session) == []

    assert not db.is_connected
    await db.close()  # idempotent


async def test_session_requires_connection():
    db = Database("sqlite+aiosqlite:///:memory:")
    with pytest.raises(RuntimeError):
        async with db.session():
            pass


async def test_distinct_channel_names_first_seen(session, add_sighting):
    await add_sighting(channel="b")
    await add_sighting(channel="B")
    await add_sighting(channel="a")
    await add_sighting(channel="b")

    assert await repo.distinct_channel_names(session) == ["b", "B", "a"]


async def test_multi_channel_contracts_pipeline(session, add_sighting):
    await add_sighting(channel="A", contract="0x1")
    await add_sighting(channel="B", contract="0x1")
    await add_sighting(channel="A", contract="0x2")
    await add_sighting(channel="A", contract="0x2")

    rows = await repo.sightings_in_multi_channel_contracts(session, 2)

    assert {r.contract for r in rows} == {"0x1"}
    assert len(rows) == 2


async def test_set_favorite_by_contract_counts_rows(session, add_sighting):
    await add_sighting(contract="0x1")
    await add_sighting(contract="0x1", channel="Other")

    assert await repo.set_favorite_by_contract(session, "0x1", True) == 2
    assert await repo.set_favorite_by_contract(session, "0xnone", True) == 0


async def test_external_id_generated_on_insert(session):
    s = await repo.insert_sighting(
        session, Sighting(channel="A", contract="0x1", date=datetime(2025, 1, 1))
    )
    assert s.external_id is not None
    assert len(s.external_id) == 24
    assert s.is_favorite is False


def test_repr_tolerates_unset_contract():
    assert "Sighting" in repr(Sighting(symbol="FOO"))
