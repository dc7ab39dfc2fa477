"""Channels are not stored: they are computed from the distinct channel
names seen in sightings.

A channel's id and color come from its position among those names, so they
are display handles only.  If a new name sorts in ahead of existing ones,
later channels shift.
"""

import re
from collections.abc import Iterable

from callboard.tokens.schemas import Channel

PALETTE = (
    "#00C853", "#FF9800", "#F44336", "#9C27B0",
    "#3F51B5", "#E91E63", "#009688", "#795548",
)

_WHITESPACE = re.compile(r"\s+")


def channel_slug(name: str) -> str:
    return _WHITESPACE.sub("_", name.lower())


def make_channel(name: str, position: int) -> Channel:
    """Channel for the *position*-th distinct name (0-based)."""
    return Channel(
        id=position + 1,
        name=name,
        telegram_id=channel_slug(name),
        color=PALETTE[position % len(PALETTE)],
        is_active=True,
    )


def unique_names(names: Iterable[str | None]) -> list[str]:
    """First-seen order, case-sensitive, empty names dropped."""
    seen: dict[str, None] = {}
    for name in names:
        if name and name not in seen:
            seen[name] = None
    return list(seen)


def derive_channels(names: Iterable[str | None]) -> list[Channel]:
    return [make_channel(name, i) for i, name in enumerate(unique_names(names))]


def find_channel(channels: Iterable[Channel], channel_id: int) -> Channel | None:
    return next((c for c in channels if c.id == channel_id), None)


def find_channel_by_slug(channels: Iterable[Channel], slug: str) -> Channel | None:
    return next((c for c in channels if c.telegram_id == slug), None)
