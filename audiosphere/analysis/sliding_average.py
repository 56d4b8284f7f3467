"""Fixed-window running mean over a circular buffer."""

from __future__ import annotations

import math


class SlidingAverage:
    """Running mean of the last ``window_size`` pushed samples.

    Updates are O(1): the slot about to be overwritten is subtracted from
    the running sum before the new sample is added. Non-finite samples are
    ignored so a transient NaN from upstream division cannot poison the
    window.

    Args:
        window_size: Number of samples retained. Must be at least 1.
        seed: Value every slot starts with.
    """

    def __init__(self, window_size: int, seed: float = 0.0) -> None:
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.window_size = int(window_size)
        self._buffer: list[float] = [0.0] * self.window_size
        self.sum: float = 0.0
        self.cursor: int = 0
        self.value: float = 0.0
        self.reset(seed)

    def reset(self, value: float) -> None:
        """Overwrite every slot with ``value`` and recompute the mean."""
        value = float(value)
        for i in range(self.window_size):
            self._buffer[i] = value
        self.sum = value * self.window_size
        self.value = self.sum / self.window_size

    def push(self, sample: float) -> None:
        """Add a sample, evicting the oldest. Non-finite samples are a no-op."""
        try:
            sample = float(sample)
        except (TypeError, ValueError):
            return
        if not math.isfinite(sample):
            return

        self.sum -= self._buffer[self.cursor]
        self.sum += sample
        self._buffer[self.cursor] = sample
        self.cursor = (self.cursor + 1) % self.window_size
        self.value = self.sum / self.window_size

    def get_average(self) -> float:
        return self.value

    @property
    def buffer(self) -> tuple[float, ...]:
        """Snapshot of the slots in storage order."""
        return tuple(self._buffer)

    def __repr__(self) -> str:
        return f"SlidingAverage(window_size={self.window_size}, value={self.value:.4f})"
