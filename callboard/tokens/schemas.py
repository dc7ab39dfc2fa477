"""View models served to the dashboard and the payloads it sends back.

JSON keys are camelCase (``marketcapCall``, ``isFavorite``...) because that
is what the UI reads; Python code uses the snake_case attribute names.
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Derived entities
# ---------------------------------------------------------------------------


class Token(CamelModel):
    id: int
    symbol: str
    name: str
    address: str
    marketcap: str | None = None
    marketcap_call: str | None = None
    ath: str | None = None
    low: str | None = None
    ath_at: datetime | None = None
    low_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_favorite: bool = False

    # Provenance of the sighting this token was mapped from
    channel: str | None = None
    message_id: str | None = None


class Channel(CamelModel):
    id: int
    name: str
    telegram_id: str
    color: str
    is_active: bool = True


class DiscoveredChannel(Channel):
    discovered_at: datetime | None = None


class ChannelToken(Token):
    discovered_at: datetime | None = None


class TokenWithChannels(Token):
    channels: list[DiscoveredChannel] = Field(default_factory=list)


class ChannelWithTokens(Channel):
    tokens: list[ChannelToken] = Field(default_factory=list)
    token_count: int = 0


class ChannelTokenLink(CamelModel):
    channel_id: int
    token_id: int
    discovered_at: datetime


class FavoriteStatus(CamelModel):
    address: str
    favorite: bool


# ---------------------------------------------------------------------------
# Write payloads
# ---------------------------------------------------------------------------


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TokenUpdate(CamelModel):
    """Partial update: only fields present in the payload are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    symbol: str | None = Field(default=None, min_length=1)
    name: str | None = Field(default=None, min_length=1)
    address: str | None = Field(default=None, min_length=1)
    marketcap: Decimal | None = None
    marketcap_call: Decimal | None = None
    ath: Decimal | None = None
    low: Decimal | None = None
    ath_at: datetime | None = None
    low_at: datetime | None = None
    is_favorite: bool | None = None

    @field_validator("marketcap", "marketcap_call", "ath", "low", mode="before")
    @classmethod
    def blank_decimal_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("marketcap", "marketcap_call", "ath", "low")
    @classmethod
    def finite_decimal(cls, value: Decimal | None) -> Decimal | None:
        if value is not None and not math.isfinite(float(value)):
            raise ValueError("must be a finite number")
        return value

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually sent, minus explicit nulls."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class TokenCreate(TokenUpdate):
    symbol: str = Field(min_length=1)
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    is_favorite: bool = False
