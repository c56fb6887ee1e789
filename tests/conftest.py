from __future__ import annotations

import pytest

import little_bat
from little_bat import BatteryReadError, Tone


class FakeScreen:
    """Records what a curses window would have drawn, replays scripted keys."""

    def __init__(self, keys=(), rows: int = 24, cols: int = 80) -> None:
        self.keys = list(keys)
        self.rows = rows
        self.cols = cols
        self.frames: list[list[tuple]] = []
        self.timeouts: list[int] = []
        self._current: list[tuple] = []
        self.keypad_enabled = False

    def keypad(self, flag: bool) -> None:
        self.keypad_enabled = flag

    def erase(self) -> None:
        self._current = []

    def getmaxyx(self) -> tuple[int, int]:
        return self.rows, self.cols

    def addstr(self, y: int, x: int, text: str, attr=0) -> None:
        assert 0 <= y < self.rows
        assert 0 <= x and x + len(text) <= self.cols - 1
        self._current.append((y, x, text, attr))

    def refresh(self) -> None:
        self.frames.append(self._current)

    def timeout(self, ms: int) -> None:
        self.timeouts.append(ms)

    def getch(self) -> int:
        if not self.keys:
            raise AssertionError("loop kept running after the scripted keys")
        return self.keys.pop(0)


class FakeReader:
    """Returns scripted readings; an exception instance in the script is raised."""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls = 0

    def read(self):
        self.calls += 1
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, BatteryReadError):
            raise result
        return result


@pytest.fixture
def palette() -> dict:
    # Each tone draws with itself as the attribute so frames are easy to inspect.
    return {tone: tone for tone in Tone}


@pytest.fixture
def no_platform_state(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(little_bat.BatteryReader, "read_state", lambda self: None)
