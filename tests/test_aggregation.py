"""Tests for cross-channel grouping by contract."""

from datetime import datetime

from callboard.storage.models import Sighting
from callboard.tokens.aggregation import aggregate, group_by_contract, pick_representative
from callboard.tokens.channels import derive_channels


def _s(n: int, channel: str, contract: str, **fields) -> Sighting:
    values = {
        "external_id": f"{n:024x}",
        "channel": channel,
        "contract": contract,
        "symbol": "FOO",
        "name": "Foo",
        "date": datetime(2025, 1, 1),
    }
    values.update(fields)
    return Sighting(**values)


def _run(sightings, **kwargs):
    channels = derive_channels(s.channel for s in sightings)
    return aggregate(sightings, channels, **kwargs)


def test_two_channel_scenario_uses_latest_market_data():
    t1, t2 = datetime(2025, 1, 1, 10), datetime(2025, 1, 1, 11)
    sightings = [
        _s(1, "A", "0x1", date=t1, market_cap=100.0),
        _s(2, "B", "0x1", date=t2, market_cap=250.0),
    ]

    result = _run(sightings, min_channels=2)

    assert len(result) == 1
    token = result[0]
    assert token.address == "0x1"
    assert [c.name for c in token.channels] == ["A", "B"]
    assert token.marketcap == "250"
    assert token.id == 2
    assert all(c.discovered_at == t2 for c in token.channels)


def test_threshold_filters_by_distinct_channels():
    sightings = [
        _s(1, "A", "0x1"),
        _s(2, "A", "0x1"),  # re-mention in the same channel
        _s(3, "A", "0x2"),
        _s(4, "B", "0x2"),
        _s(5, "C", "0x2"),
    ]

    assert {t.address for t in _run(sightings, min_channels=2)} == {"0x2"}
    assert {t.address for t in _run(sightings, min_channels=3)} == {"0x2"}
    assert _run(sightings, min_channels=4) == []


def test_higher_thresholds_give_subsets():
    sightings = [
        _s(1, "A", "0x1"),
        _s(2, "A", "0x2"), _s(3, "B", "0x2"),
        _s(4, "A", "0x3"), _s(5, "B", "0x3"), _s(6, "C", "0x3"),
    ]
    by_n = {n: {t.address for t in _run(sightings, min_channels=n)} for n in (1, 2, 3)}

    assert by_n[1] >= by_n[2] >= by_n[3]
    assert by_n[1] == {"0x1", "0x2", "0x3"}
    for n in (1, 2, 3):
        assert all(len(t.channels) >= n for t in _run(sightings, min_channels=n))


def test_representative_prefers_update_time_over_creation():
    older_but_updated = _s(1, "A", "0x1", date=datetime(2025, 1, 1), updated_at=datetime(2025, 2, 1))
    newer = _s(2, "B", "0x1", date=datetime(2025, 1, 15), updated_at=datetime(2025, 1, 15))

    assert pick_representative([older_but_updated, newer]) is older_but_updated


def test_representative_tie_goes_to_first_seen():
    first = _s(1, "A", "0x1")
    second = _s(2, "B", "0x1")
    assert pick_representative([first, second]) is first


def test_representative_without_timestamps():
    undated = _s(1, "A", "0x1", date=None)
    dated = _s(2, "B", "0x1")
    assert pick_representative([undated, dated]) is dated


def test_address_grouping_is_case_sensitive():
    sightings = [_s(1, "A", "0xAbC"), _s(2, "B", "0xabc")]
    groups = group_by_contract(sightings)

    assert list(groups) == ["0xAbC", "0xabc"]
    assert _run(sightings, min_channels=2) == []


def test_favorites_only_keeps_favorited_sightings():
    sightings = [
        _s(1, "A", "0x1", is_favorite=True),
        _s(2, "B", "0x1", is_favorite=True),
        _s(3, "A", "0x2", is_favorite=False),
        _s(4, "C", "0x3", is_favorite=True),
    ]

    result = _run(sightings, min_channels=1, favorites_only=True)

    assert {t.address for t in result} == {"0x1", "0x3"}
    assert all(t.is_favorite for t in result)
    by_address = {t.address: t for t in result}
    assert [c.name for c in by_address["0x1"].channels] == ["A", "B"]


def test_empty_input():
    assert aggregate([], [], min_channels=2) == []
    assert aggregate([], [], favorites_only=True) == []


def test_channel_metadata_comes_from_derived_list():
    sightings = [_s(1, "Gems", "0x1"), _s(2, "Whale Alerts", "0x1")]
    token = _run(sightings, min_channels=2)[0]

    whale = token.channels[1]
    assert whale.id == 2
    assert whale.telegram_id == "whale_alerts"
