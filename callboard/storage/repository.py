"""Thin async accessors over the ``tokens`` collection.

No business rules live here: the token layer decides what to read and how
to reshape it.  Every function takes the caller's session.
"""

from sqlalchemy import delete, distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from callboard.storage.models import Sighting


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _has_channel():
    return (Sighting.channel.is_not(None)) & (Sighting.channel != "")


async def list_sightings(session: AsyncSession) -> list[Sighting]:
    stmt = select(Sighting).order_by(Sighting.id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_identity_keys(session: AsyncSession) -> list[tuple[int, str | None]]:
    """(row id, external id) for every sighting, in storage order."""
    stmt = select(Sighting.id, Sighting.external_id).order_by(Sighting.id)
    result = await session.execute(stmt)
    return [(row.id, row.external_id) for row in result]


async def get_sighting(session: AsyncSession, row_id: int) -> Sighting | None:
    return await session.get(Sighting, row_id)


async def distinct_channel_names(session: AsyncSession) -> list[str]:
    """Non-empty channel names in first-seen order."""
    first_seen = func.min(Sighting.id).label("first_seen")
    stmt = (
        select(Sighting.channel, first_seen)
        .where(_has_channel())
        .group_by(Sighting.channel)
        .order_by(first_seen)
    )
    result = await session.execute(stmt)
    return [row.channel for row in result]


async def find_first_by_contract(session: AsyncSession, contract: str) -> Sighting | None:
    stmt = (
        select(Sighting)
        .where(Sighting.contract == contract)
        .order_by(Sighting.id)
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def find_by_contract(session: AsyncSession, contract: str) -> list[Sighting]:
    stmt = select(Sighting).where(Sighting.contract == contract).order_by(Sighting.id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def find_by_contract_and_channel(
    session: AsyncSession, contract: str, channel: str | None = None
) -> Sighting | None:
    """Both must match exactly; no *channel* matches channel-less sightings only."""
    channel_clause = (
        Sighting.channel.is_(None) if channel is None else Sighting.channel == channel
    )
    stmt = select(Sighting).where(Sighting.contract == contract, channel_clause)
    result = await session.execute(stmt.order_by(Sighting.id).limit(1))
    return result.scalar_one_or_none()


async def find_by_channel(session: AsyncSession, channel: str) -> list[Sighting]:
    stmt = select(Sighting).where(Sighting.channel == channel).order_by(Sighting.id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def search_sightings(
    session: AsyncSession, query: str, channel: str | None = None
) -> list[Sighting]:
    """Case-insensitive substring match over symbol, name and contract."""
    pattern = f"%{_escape_like(query)}%"
    stmt = select(Sighting).where(
        Sighting.symbol.ilike(pattern, escape="\\")
        | Sighting.name.ilike(pattern, escape="\\")
        | Sighting.contract.ilike(pattern, escape="\\")
    )
    if channel is not None:
        stmt = stmt.where(Sighting.channel == channel)
    result = await session.execute(stmt.order_by(Sighting.id))
    return list(result.scalars().all())


async def sightings_in_multi_channel_contracts(
    session: AsyncSession, min_channels: int, favorites_only: bool = False
) -> list[Sighting]:
    """All sightings whose contract was called in >= *min_channels* channels.

    Grouping happens in the store (GROUP BY contract HAVING COUNT(DISTINCT
    channel)), so only candidate rows come back over the wire.
    """
    grouped = select(Sighting.contract).where(_has_channel())
    if favorites_only:
        grouped = grouped.where(Sighting.is_favorite.is_(True))
    grouped = grouped.group_by(Sighting.contract).having(
        func.count(distinct(Sighting.channel)) >= min_channels
    )

    stmt = select(Sighting).where(Sighting.contract.in_(grouped))
    if favorites_only:
        stmt = stmt.where(Sighting.is_favorite.is_(True))
    result = await session.execute(stmt.order_by(Sighting.id))
    return list(result.scalars().all())


async def insert_sighting(session: AsyncSession, sighting: Sighting) -> Sighting:
    session.add(sighting)
    await session.commit()
    await session.refresh(sighting)
    return sighting


async def save_sighting(session: AsyncSession, sighting: Sighting) -> Sighting:
    await session.commit()
    await session.refresh(sighting)
    return sighting


async def delete_sighting(session: AsyncSession, row_id: int) -> bool:
    result = await session.execute(delete(Sighting).where(Sighting.id == row_id))
    await session.commit()
    return result.rowcount > 0


async def set_favorite_by_contract(
    session: AsyncSession, contract: str, favorite: bool
) -> int:
    """Write *favorite* to every sighting of *contract* in one statement."""
    stmt = (
        update(Sighting)
        .where(Sighting.contract == contract)
        .values(is_favorite=favorite)
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount
