from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import pytest

from parcel_demarcate.models import Fix
from parcel_demarcate.notify import CollectingNotifier


@dataclass
class ManualTask:
    interval_s: float
    callback: Callable[[], Awaitable[Any]]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Timer whose ticks are fired by the test."""

    tasks: list[ManualTask] = field(default_factory=list)

    def call_every(self, interval_s: float, callback: Callable[[], Awaitable[Any]]) -> ManualTask:
        task = ManualTask(interval_s, callback)
        self.tasks.append(task)
        return task

    async def tick(self) -> None:
        for task in list(self.tasks):
            if not task.cancelled:
                await task.callback()

    @property
    def active(self) -> list[ManualTask]:
        return [t for t in self.tasks if not t.cancelled]


class GatedProvider:
    """Device whose fix arrives only when the test opens the gate."""

    def __init__(self, fix: Fix) -> None:
        self.fix = fix
        self.gate = asyncio.Event()
        self.calls = 0

    async def get_current_position(self) -> Fix:
        self.calls += 1
        await self.gate.wait()
        return self.fix

    async def wait_requested(self, n: int = 1) -> None:
        while self.calls < n:
            await asyncio.sleep(0)


class SlowProvider:
    def __init__(self, delay_s: float) -> None:
        self.delay_s = delay_s

    async def get_current_position(self) -> Fix:
        await asyncio.sleep(self.delay_s)
        return Fix(1.0, 1.0, 3.0)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def gated_provider_cls() -> type[GatedProvider]:
    return GatedProvider


@pytest.fixture
def slow_provider_cls() -> type[SlowProvider]:
    return SlowProvider


@pytest.fixture
def track_csv(tmp_path):
    """A recorded walk around a ~0.001 degree square near the equator."""

    path = tmp_path / "walk.csv"
    rows = [
        "geoTime,latitude,longitude,altitude,speed,horizontalAccuracy,locationType",
        "1735718400000,0.0000000,0.0000000,10.0,1.0,4.0,1",
        "1735718405000,0.0000000,0.0010000,10.0,1.0,6.0,1",
        "1735718410000,0.0010000,0.0010000,10.0,1.0,-1.0,1",
        "1735718415000,0.0010000,0.0000000,10.0,1.0,15.0,1",
        "broken,row,,,,,",
    ]
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return path
