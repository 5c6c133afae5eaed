"""Shared fixtures for link engine tests."""

from __future__ import annotations

from typing import Callable, List

import pytest

from extlinker.engine.config import LinkConfig
from extlinker.engine.types import AnchorRecord, SiteIdentity


@pytest.fixture()
def site():
    return SiteIdentity(host="mysite.com", scheme="https")


@pytest.fixture()
def link_config():
    """Default options with icons switched off for predictable markup."""

    return LinkConfig(add_icon=False)


def make_record(
    href: str = "https://other.org/page",
    *,
    rel=(),
    classes=(),
    target: str | None = None,
    has_icon: bool = False,
) -> AnchorRecord:
    return AnchorRecord(
        href=href,
        existing_rel=tuple(rel),
        existing_class=tuple(classes),
        existing_target=target,
        has_icon=has_icon,
    )


class FakeTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic scheduler: frames run on demand, timers on ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.frames: List[Callable[[], None]] = []
        self.timers: List[FakeTimer] = []

    def defer(self, callback: Callable[[], None]) -> None:
        self.frames.append(callback)

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def run_frames(self) -> int:
        ran = 0
        while self.frames:
            callback = self.frames.pop(0)
            callback()
            ran += 1
        return ran

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted(
            (timer for timer in self.timers if not timer.cancelled and timer.when <= self.now),
            key=lambda timer: timer.when,
        )
        for timer in due:
            self.timers.remove(timer)
            timer.callback()

    @property
    def active_timers(self) -> List[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled]


@pytest.fixture()
def scheduler():
    return FakeScheduler()
