"""Group sightings by contract address across channels.

Used by both the common-tokens view (contracts called in >= N channels) and
the favorites view (favorited contracts, any spread).  Contract addresses
are compared as-is: ``0xAbC`` and ``0xabc`` are different tokens here.
Sightings without a channel name never count, so a favorited contract seen
only in such sightings is absent from the favorites view.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from callboard.storage.models import Sighting
from callboard.tokens.channels import unique_names
from callboard.tokens.mapper import naive_timestamp, to_token
from callboard.tokens.schemas import Channel, DiscoveredChannel, TokenWithChannels

logger = logging.getLogger(__name__)


def group_by_contract(sightings: Iterable[Sighting]) -> dict[str, list[Sighting]]:
    """contract -> sightings, both in first-seen order."""
    groups: dict[str, list[Sighting]] = {}
    for s in sightings:
        groups.setdefault(s.contract, []).append(s)
    return groups


def _recency(sighting: Sighting) -> datetime:
    stamps = [
        ts for ts in (naive_timestamp(sighting.updated_at), naive_timestamp(sighting.date))
        if ts is not None
    ]
    return max(stamps) if stamps else datetime.min


def pick_representative(group: list[Sighting]) -> Sighting:
    """Most recently touched sighting; ties go to the first one seen."""
    return max(group, key=_recency)


def aggregate(
    sightings: Iterable[Sighting],
    channels: Iterable[Channel],
    min_channels: int = 1,
    favorites_only: bool = False,
) -> list[TokenWithChannels]:
    """One TokenWithChannels per contract seen in >= *min_channels* channels.

    Market fields come from the representative sighting.  Every attached
    channel gets the representative's ``date`` as ``discoveredAt``; per-channel
    first-seen times are not tracked.
    """
    by_name = {c.name: c for c in channels}
    if favorites_only:
        sightings = [s for s in sightings if s.is_favorite]

    results: list[TokenWithChannels] = []
    for contract, group in group_by_contract(sightings).items():
        names = unique_names(s.channel for s in group)
        if len(names) < min_channels:
            continue

        latest = pick_representative(group)
        discovered_at = naive_timestamp(latest.date)
        token_channels = [
            DiscoveredChannel(**by_name[name].model_dump(), discovered_at=discovered_at)
            for name in names
            if name in by_name
        ]
        if len(token_channels) < len(names):
            logger.debug(
                "Contract %s: %d channel(s) missing from derived list",
                contract[:12], len(names) - len(token_channels),
            )

        results.append(
            TokenWithChannels(**to_token(latest).model_dump(), channels=token_channels)
        )

    return results
