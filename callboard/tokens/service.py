"""Read/write operations behind the HTTP API.

Everything returned here is derived on the spot from the current sightings:
nothing (tokens, channels, groupings) is cached between calls.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from callboard.errors import (
    ChannelDerivedError,
    ChannelNotFoundError,
    TokenNotFoundError,
)
from callboard.storage import repository as repo
from callboard.storage.models import Sighting
from callboard.tokens.aggregation import aggregate
from callboard.tokens.channels import (
    derive_channels,
    find_channel,
    find_channel_by_slug,
)
from callboard.tokens.identity import surrogate_id
from callboard.tokens.mapper import naive_timestamp, to_token
from callboard.tokens.schemas import (
    Channel,
    ChannelToken,
    ChannelTokenLink,
    ChannelWithTokens,
    DiscoveredChannel,
    Token,
    TokenCreate,
    TokenUpdate,
    TokenWithChannels,
)

logger = logging.getLogger(__name__)

# TokenCreate/TokenUpdate field -> Sighting column
_COLUMN_FOR = {
    "symbol": "symbol",
    "name": "name",
    "address": "contract",
    "marketcap": "market_cap",
    "marketcap_call": "market_cap_call",
    "ath": "ath",
    "low": "low",
    "ath_at": "ath_at",
    "low_at": "low_at",
    "is_favorite": "is_favorite",
}

_NUMERIC = {"marketcap", "marketcap_call", "ath", "low"}

# Largest threshold bound into SQL; SQLite integers are 64-bit.
MAX_MIN_CHANNELS = 2**31 - 1


def _clamp_min_channels(n: int) -> int:
    return min(max(1, n), MAX_MIN_CHANNELS)


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field, value in fields.items():
        if field not in _COLUMN_FOR:
            continue
        if field in _NUMERIC and value is not None:
            value = float(value)
        elif field in ("ath_at", "low_at"):
            value = naive_timestamp(value)
        values[_COLUMN_FOR[field]] = value
    return values


def _with_discovered_at(sighting: Sighting) -> ChannelToken:
    return ChannelToken(
        **to_token(sighting).model_dump(),
        discovered_at=naive_timestamp(sighting.date) or datetime.utcnow(),
    )


class TokenService:
    def __init__(self, session: AsyncSession, api_channel_name: str = "API") -> None:
        self.session = session
        self.api_channel_name = api_channel_name

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    async def list_channels(self) -> list[Channel]:
        names = await repo.distinct_channel_names(self.session)
        return derive_channels(names)

    async def get_channel(self, channel_id: int) -> Channel | None:
        return find_channel(await self.list_channels(), channel_id)

    async def create_channel(self, name: str) -> Channel:
        raise ChannelDerivedError(
            f"Channels are derived from token data; cannot create {name!r}"
        )

    async def get_channel_tokens(self, channel_id: int) -> ChannelWithTokens:
        channel = await self.get_channel(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)

        sightings = await repo.find_by_channel(self.session, channel.name)
        tokens = [_with_discovered_at(s) for s in sightings]
        return ChannelWithTokens(
            **channel.model_dump(), tokens=tokens, token_count=len(tokens)
        )

    async def get_channels_with_tokens(self) -> list[ChannelWithTokens]:
        # Single read so every column comes from the same snapshot
        sightings = await repo.list_sightings(self.session)
        channels = derive_channels(s.channel for s in sightings)

        by_channel: dict[str, list[ChannelToken]] = {c.name: [] for c in channels}
        for s in sightings:
            if s.channel in by_channel:
                by_channel[s.channel].append(_with_discovered_at(s))

        return [
            ChannelWithTokens(
                **c.model_dump(),
                tokens=by_channel[c.name],
                token_count=len(by_channel[c.name]),
            )
            for c in channels
        ]

    async def add_token_to_channel(self, channel_id: int, token_id: int) -> ChannelTokenLink:
        """Reserved: sightings already carry their channel, so nothing is written."""
        if await self.get_channel(channel_id) is None:
            raise ChannelNotFoundError(channel_id)
        return ChannelTokenLink(
            channel_id=channel_id, token_id=token_id, discovered_at=datetime.utcnow()
        )

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def _find_by_token_id(self, token_id: int) -> Sighting | None:
        # Surrogate ids are not stored: derive one per row until one matches.
        # Reads the whole collection, fine at dashboard scale only.
        for row_id, external_id in await repo.list_identity_keys(self.session):
            if surrogate_id(external_id) == token_id:
                return await repo.get_sighting(self.session, row_id)
        return None

    async def list_tokens(self) -> list[Token]:
        return [to_token(s) for s in await repo.list_sightings(self.session)]

    async def get_token(self, token_id: int) -> Token | None:
        sighting = await self._find_by_token_id(token_id)
        return to_token(sighting) if sighting else None

    async def get_token_by_address(self, address: str) -> Token | None:
        sighting = await repo.find_first_by_contract(self.session, address)
        return to_token(sighting) if sighting else None

    async def get_tokens_by_address(self, address: str) -> list[Token]:
        return [to_token(s) for s in await repo.find_by_contract(self.session, address)]

    async def get_token_channels(self, token_id: int) -> TokenWithChannels:
        sighting = await self._find_by_token_id(token_id)
        if sighting is None:
            raise TokenNotFoundError(token_id)

        channel = next(
            (c for c in await self.list_channels() if c.name == sighting.channel), None
        )
        channels = []
        if channel is not None:
            channels.append(
                DiscoveredChannel(
                    **channel.model_dump(),
                    discovered_at=naive_timestamp(sighting.date) or datetime.utcnow(),
                )
            )
        return TokenWithChannels(**to_token(sighting).model_dump(), channels=channels)

    async def create_token(self, data: TokenCreate, channel: str | None = None) -> Token:
        now = datetime.utcnow()
        sighting = Sighting(
            **_column_values(data.model_dump()),
            channel=channel or self.api_channel_name,
            date=now,
            updated_at=now,
        )
        sighting = await repo.insert_sighting(self.session, sighting)
        logger.info(
            "Created token %s (%s) in channel %s",
            sighting.symbol, sighting.contract[:12], sighting.channel,
        )
        return to_token(sighting)

    async def _apply_update(self, sighting: Sighting, data: TokenUpdate) -> Token:
        for column, value in _column_values(data.changes()).items():
            setattr(sighting, column, value)
        sighting.updated_at = datetime.utcnow()
        sighting = await repo.save_sighting(self.session, sighting)
        return to_token(sighting)

    async def update_token(self, token_id: int, data: TokenUpdate) -> Token | None:
        sighting = await self._find_by_token_id(token_id)
        if sighting is None:
            return None
        token = await self._apply_update(sighting, data)
        logger.info("Updated token #%d (%s)", token_id, sorted(data.changes()))
        return token

    async def delete_token(self, token_id: int) -> bool:
        sighting = await self._find_by_token_id(token_id)
        if sighting is None:
            return False
        deleted = await repo.delete_sighting(self.session, sighting.id)
        if deleted:
            logger.info("Deleted token #%d (%s)", token_id, sighting.contract[:12])
        return deleted

    # ------------------------------------------------------------------
    # Aggregated views
    # ------------------------------------------------------------------

    async def get_common_tokens(self, min_channels: int = 2) -> list[TokenWithChannels]:
        min_channels = _clamp_min_channels(min_channels)
        sightings = await repo.sightings_in_multi_channel_contracts(
            self.session, min_channels
        )
        return aggregate(sightings, await self.list_channels(), min_channels=min_channels)

    async def get_favorite_tokens(self, min_channels: int = 1) -> list[TokenWithChannels]:
        min_channels = _clamp_min_channels(min_channels)
        sightings = await repo.sightings_in_multi_channel_contracts(
            self.session, min_channels, favorites_only=True
        )
        return aggregate(
            sightings,
            await self.list_channels(),
            min_channels=min_channels,
            favorites_only=True,
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_tokens(self, query: str, channel_id: int | None = None) -> list[Token]:
        channel_name = None
        if channel_id is not None:
            channel = await self.get_channel(channel_id)
            if channel is not None:
                channel_name = channel.name
        sightings = await repo.search_sightings(self.session, query, channel_name)
        return [to_token(s) for s in sightings]

    async def search_tokens_by_contract(
        self, contract: str, channel_name: str | None = None
    ) -> list[Token]:
        """The one sighting of *contract* in *channel_name*, never a merge."""
        if not contract:
            raise ValueError("Query parameter 'contract' is required")
        sighting = await repo.find_by_contract_and_channel(
            self.session, contract, channel_name
        )
        return [to_token(sighting)] if sighting else []

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    async def get_favorite_status(self, address: str) -> bool | None:
        """Flag of the first sighting of *address*; None if there is none."""
        sighting = await repo.find_first_by_contract(self.session, address)
        return bool(sighting.is_favorite) if sighting else None

    async def toggle_favorite(self, address: str) -> bool:
        """Flip the flag for every sighting of *address*; returns the new value.

        Two toggles racing on the same address can both read the same flag;
        the last write wins.
        """
        current = await self.get_favorite_status(address)
        if current is None:
            raise TokenNotFoundError(address)

        favorite = not current
        matched = await repo.set_favorite_by_contract(self.session, address, favorite)
        if matched == 0:
            raise TokenNotFoundError(address)
        logger.info(
            "Favorite for %s set to %s on %d sighting(s)", address, favorite, matched
        )
        return favorite

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    async def ingest_sighting(self, channel_slug: str, token_data: dict[str, Any]) -> Token:
        """Record a token call pushed by a channel scraper.

        The channel must already be known (matched by its ``telegramId``
        slug).  An existing sighting of the same address in that channel is
        updated in place; otherwise a new sighting is created there.
        Raises pydantic ``ValidationError`` on a bad ``token_data``.
        """
        channel = find_channel_by_slug(await self.list_channels(), channel_slug)
        if channel is None:
            raise ChannelNotFoundError(channel_slug)

        address = token_data.get("address") if isinstance(token_data, dict) else None
        existing = None
        if address:
            existing = await repo.find_by_contract_and_channel(
                self.session, str(address), channel.name
            )

        if existing is None:
            return await self.create_token(
                TokenCreate.model_validate(token_data), channel=channel.name
            )

        token = await self._apply_update(existing, TokenUpdate.model_validate(token_data))
        logger.info("Refreshed %s in channel %s", existing.contract[:12], channel.name)
        return token
