"""Shared fakes for the engine's collaborators."""

from __future__ import annotations


import pytest

from focustimer.core.alarm import AlarmDispatcher
from focustimer.core.durations import DurationTable, Mode
from focustimer.core.engine import CountdownEngine
from focustimer.core.preferences import MemoryPreferenceStore
from focustimer.core.scheduler import PollingScheduler


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: int = 0) -> None:
        self.value = now

    def now(self) -> int:
        return self.value

    def advance(self, ms: int) -> None:
        self.value += ms


class FakeVisibility:
    def __init__(self) -> None:
        self.foreground = True

    def is_foreground(self) -> bool:
        return self.foreground


class FakeAudio:
    def __init__(self, visibility: FakeVisibility) -> None:
        self._visibility = visibility
        self.plays = 0
        self.stops = 0
        self.fail = False

    def play_looped(self) -> None:
        if self.fail:
            raise RuntimeError("autoplay blocked")
        self.plays += 1

    def stop(self) -> None:
        self.stops += 1

    def is_playback_allowed(self) -> bool:
        return self._visibility.is_foreground()


class FakeNotifier:
    def __init__(self) -> None:
        self.granted = True
        self.fail = False
        self.shown: list[tuple[str, str]] = []

    def request_permission(self) -> bool:
        return self.granted

    def is_granted(self) -> bool:
        return self.granted

    def show(self, title: str, body: str) -> None:
        if self.fail:
            raise RuntimeError("notification daemon gone")
        self.shown.append((title, body))


class RecordingDispatcher(AlarmDispatcher):
    """Real dispatcher that also records every call made by the engine."""

    def __init__(self, audio: FakeAudio, notifier: FakeNotifier) -> None:
        super().__init__(audio, notifier)
        self.dispatched: list[Mode] = []

    def dispatch(self, mode: Mode) -> None:
        self.dispatched.append(mode)
        super().dispatch(mode)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def visibility() -> FakeVisibility:
    return FakeVisibility()


@pytest.fixture()
def audio(visibility: FakeVisibility) -> FakeAudio:
    return FakeAudio(visibility)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def dispatcher(audio: FakeAudio, notifier: FakeNotifier) -> RecordingDispatcher:
    return RecordingDispatcher(audio, notifier)


@pytest.fixture()
def store() -> MemoryPreferenceStore:
    return MemoryPreferenceStore()


@pytest.fixture()
def scheduler(clock: FakeClock) -> PollingScheduler:
    return PollingScheduler(clock)


@pytest.fixture()
def engine(
    store: MemoryPreferenceStore,
    dispatcher: RecordingDispatcher,
    clock: FakeClock,
    visibility: FakeVisibility,
) -> CountdownEngine:
    """An engine whose ticks are driven by hand."""
    return CountdownEngine(DurationTable.load(store), dispatcher, clock=clock, visibility=visibility)
