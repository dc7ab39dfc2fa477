"""Sighting row -> Token view model."""

from datetime import datetime, timezone
from decimal import Decimal

from callboard.storage.models import Sighting
from callboard.tokens.identity import surrogate_id
from callboard.tokens.schemas import Token


def decimal_text(value: float | Decimal | None) -> str | None:
    """Canonical text for a stored number: ``1500000.0`` -> ``"1500000"``."""
    if value is None:
        return None
    number = value if isinstance(value, Decimal) else Decimal(repr(float(value)))
    if not number.is_finite():
        return None
    text = format(number.normalize(), "f")
    return "0" if text in ("-0", "0") else text


def naive_timestamp(value: datetime | str | None) -> datetime | None:
    """Parse to a timezone-naive UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_token(sighting: Sighting) -> Token:
    return Token(
        id=surrogate_id(sighting.external_id),
        symbol=sighting.symbol or "",
        name=sighting.name or "",
        address=sighting.contract or "",
        marketcap=decimal_text(sighting.market_cap),
        marketcap_call=decimal_text(sighting.market_cap_call),
        ath=decimal_text(sighting.ath),
        low=decimal_text(sighting.low),
        ath_at=naive_timestamp(sighting.ath_at),
        low_at=naive_timestamp(sighting.low_at),
        created_at=naive_timestamp(sighting.date),
        updated_at=naive_timestamp(sighting.updated_at),
        is_favorite=bool(sighting.is_favorite),
        channel=sighting.channel,
        message_id=sighting.message_id,
    )
