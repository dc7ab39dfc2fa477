"""Pytest configuration and fixtures."""

from datetime import datetime

import httpx
import pytest

from callboard.config import Settings
from callboard.delivery.web.app import create_app
from callboard.storage.database import Database
from callboard.storage.models import Sighting
from callboard.tokens.service import TokenService

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def oid(n: int) -> str:
    """Object-id shaped external id whose surrogate id is *n*."""
    return f"{n:024x}"


@pytest.fixture
async def database():
    """Connected in-memory store, closed after the test."""
    async with Database(MEMORY_URL) as db:
        yield db


@pytest.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
def service(session) -> TokenService:
    return TokenService(session)


@pytest.fixture
def add_sighting(session):
    """Insert a sighting row; keyword arguments override the defaults."""
    counter = {"n": 0}

    async def _add(**fields) -> Sighting:
        counter["n"] += 1
        values = {
            "external_id": oid(counter["n"]),
            "channel": "Alpha Calls",
            "contract": f"0xcontract{counter['n']}",
            "name": "Foo Token",
            "symbol": "FOO",
            "market_cap": 150000.0,
            "market_cap_call": 50000.0,
            "date": datetime(2025, 1, 1, 12, 0, 0),
            "updated_at": datetime(2025, 1, 1, 12, 0, 0),
            "is_favorite": False,
        }
        values.update(fields)
        sighting = Sighting(**values)
        session.add(sighting)
        await session.commit()
        await session.refresh(sighting)
        return sighting

    return _add


@pytest.fixture
def app_settings() -> Settings:
    return Settings(database_url=MEMORY_URL)


@pytest.fixture
async def client(database, app_settings):
    app = create_app(database, app_settings)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
