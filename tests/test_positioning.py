from __future__ import annotations

import asyncio

import pytest

from parcel_demarcate.errors import PositionUnavailable
from parcel_demarcate.models import Fix
from parcel_demarcate.positioning import (
    ReplayPositionProvider,
    StaticPositionProvider,
    UnavailablePositionProvider,
    acquire_fix,
)


class _BrokenDevice:
    async def get_current_position(self) -> Fix:
        raise OSError("GPS hardware not found")


def test_static_provider():
    fix = Fix(1.0, 2.0, 3.0)
    assert asyncio.run(acquire_fix(StaticPositionProvider(fix))) == fix


def test_unavailable_provider():
    with pytest.raises(PositionUnavailable, match="denied"):
        asyncio.run(acquire_fix(UnavailablePositionProvider("permission denied")))


def test_os_errors_become_position_unavailable():
    with pytest.raises(PositionUnavailable, match="hardware"):
        asyncio.run(acquire_fix(_BrokenDevice()))


def test_timeout_becomes_position_unavailable(slow_provider_cls):
    with pytest.raises(PositionUnavailable):
        asyncio.run(acquire_fix(slow_provider_cls(1.0), timeout_seconds=0.01))


def test_replay_in_time_order_then_exhausted(track_csv):
    provider = ReplayPositionProvider.from_track_csv(track_csv)
    assert provider.remaining == 4

    async def run() -> list[Fix]:
        return [await acquire_fix(provider) for _ in range(4)]

    fixes = asyncio.run(run())
    assert [(f.latitude, f.longitude) for f in fixes][:2] == [(0.0, 0.0), (0.0, 0.001)]
    # -1 means unknown accuracy in the export
    assert fixes[2].accuracy_m == 0.0
    assert fixes[3].accuracy_m == 15.0

    with pytest.raises(PositionUnavailable, match="exhausted"):
        asyncio.run(acquire_fix(provider))


def test_peek_does_not_consume(track_csv):
    provider = ReplayPositionProvider.from_track_csv(track_csv)
    first = provider.peek()
    assert (first.latitude, first.longitude) == (0.0, 0.0)
    assert provider.remaining == 4

    fix = asyncio.run(acquire_fix(provider))
    assert fix == first
    assert provider.peek() != first
    assert ReplayPositionProvider([]).peek() is None
