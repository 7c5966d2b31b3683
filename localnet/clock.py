"""
clock.py - Simulated Time Source

The executor reads simulated time only through a Clock passed to it
explicitly. ClockWithOffset follows wall-clock time shifted by an adjustable
offset, which lets tests fast-forward the network.
"""

from __future__ import annotations
from typing import Callable, Protocol, runtime_checkable
import time


@runtime_checkable
class Clock(Protocol):
    """Source of simulated time in unix milliseconds."""

    @property
    def now_ms(self) -> int:
        ...


class ClockWithOffset:
    """
    Wall clock shifted by an offset.

    Args:
        offset_ms: Initial offset added to wall-clock time
        time_source: Callable returning wall-clock seconds (default: time.time)
    """

    def __init__(self, offset_ms: int = 0, time_source: Callable[[], float] = time.time):
        self.offset_ms = offset_ms
        self._time_source = time_source

    @property
    def now_ms(self) -> int:
        return int(self._time_source() * 1000) + self.offset_ms

    def update_offset(self, offset_ms: int) -> None:
        self.offset_ms = offset_ms

    def advance(self, seconds: float) -> None:
        """Move simulated time forward."""
        if seconds < 0:
            raise ValueError(f"Cannot move time backward (advance by {seconds}s)")
        self.offset_ms += int(seconds * 1000)

    def __repr__(self) -> str:
        return f"ClockWithOffset(offset_ms={self.offset_ms})"


class FixedClock:
    """Clock frozen at a given unix millisecond timestamp until advanced."""

    def __init__(self, now_ms: int):
        self._now_ms = now_ms

    @property
    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"Cannot move time backward (advance by {seconds}s)")
        self._now_ms += int(seconds * 1000)

    def __repr__(self) -> str:
        return f"FixedClock({self._now_ms})"
