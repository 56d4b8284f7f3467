"""Per-band relative loudness: peak tracking, normalization and smoothing.

Takes the byte-range frequency and time-domain snapshots a sample source
produces each frame and turns them into smoothed, peak-normalized loudness
values in [0, 1]. Each band tracks its own decaying peak, so the output is
largely independent of input gain: a quiet microphone and a loud file both
end up spanning the full range once their peaks settle.

Not the most rigorous analysis, but cheap and stable frame to frame.
"""

from __future__ import annotations

import logging

import numpy as np

from audiosphere.analysis.sliding_average import SlidingAverage
from audiosphere.constants import (
    BYTE_CENTER,
    BYTE_FULL_SCALE,
    DEFAULT_LEVELS_COUNT,
    DEFAULT_PEAK_DECAY_RATE,
    DEFAULT_PEAK_FLOOR,
    DEFAULT_TRANSFORM_SIZE,
    DEFAULT_WINDOW_SIZE,
)
from audiosphere.util.audio import clamp, nan_to_zero

logger = logging.getLogger(__name__)


def decay_peak(power, peak, decay_step: float, floor: float = DEFAULT_PEAK_FLOOR, ceiling: float = 1.0):
    """Advance a decaying peak tracker by one frame.

    The peak snaps up to ``power`` when it is louder, otherwise falls
    linearly by ``decay_step``; the result is clamped to ``[floor, ceiling]``.
    Works element-wise on numpy arrays and returns a float for scalars.
    A NaN ``power`` never re-triggers the peak, and a non-finite
    ``decay_step`` holds the peak where it is.
    """
    if not np.isfinite(decay_step):
        decay_step = 0.0
    if np.ndim(power) == 0 and np.ndim(peak) == 0:
        power = float(power)
        peak = float(peak)
        return clamp(power if power > peak else peak - decay_step, floor, ceiling)

    power = np.asarray(power, dtype=np.float64)
    peak = np.asarray(peak, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        louder = power > peak
    return np.clip(np.where(louder, power, peak - decay_step), floor, ceiling)


def _read_only(array: np.ndarray) -> np.ndarray:
    view = array.view()
    view.flags.writeable = False
    return view


class AudioAnalyzer:
    """Smoothed, peak-normalized per-band and total loudness.

    Call :meth:`update` once per frame with the frame's elapsed time and the
    raw byte-range buffers, then read :meth:`get_average` and
    :meth:`get_relative_total`. The buffers are only read during the call;
    no reference to them is kept.

    Args:
        levels_count: Number of frequency bands.
        transform_size: FFT size of the source; ``transform_size // 2``
            frequency bins (and time-domain samples) are expected per frame.
        window_size: Sliding-average window for every band and the total.
        peak_decay_rate: Peak fall-off per second.
        peak_floor: Lowest value a peak may decay to.
    """

    def __init__(
        self,
        levels_count: int = DEFAULT_LEVELS_COUNT,
        transform_size: int = DEFAULT_TRANSFORM_SIZE,
        window_size: int = DEFAULT_WINDOW_SIZE,
        peak_decay_rate: float = DEFAULT_PEAK_DECAY_RATE,
        peak_floor: float = DEFAULT_PEAK_FLOOR,
    ) -> None:
        if levels_count < 1:
            raise ValueError(f"levels_count must be >= 1, got {levels_count}")
        if transform_size < 2:
            raise ValueError(f"transform_size must be >= 2, got {transform_size}")
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        if not 0.0 < peak_floor <= 1.0:
            raise ValueError(f"peak_floor must be in (0, 1], got {peak_floor}")
        if peak_decay_rate < 0:
            raise ValueError(f"peak_decay_rate must be >= 0, got {peak_decay_rate}")

        self._levels_count = int(levels_count)
        self._transform_size = int(transform_size)
        self._bin_count = self._transform_size // 2
        # Trailing bins that don't fill a whole band are dropped
        self._band_width = self._bin_count // self._levels_count
        if self._band_width == 0:
            raise ValueError(
                f"{self._bin_count} bins cannot be split into {self._levels_count} bands"
            )
        self._window_size = int(window_size)
        self._peak_decay_rate = float(peak_decay_rate)
        self._peak_floor = float(peak_floor)

        # Buffers sized once; update() only writes into them
        self._waveform = np.zeros(self._bin_count, dtype=np.float64)
        self._band_bins = np.zeros(self._levels_count * self._band_width, dtype=np.float64)
        self._band_power = np.zeros(self._levels_count, dtype=np.float64)
        self._band_peak = np.full(self._levels_count, self._peak_floor, dtype=np.float64)
        self._band_relative = np.zeros(self._levels_count, dtype=np.float64)
        self._band_smoothers = [
            SlidingAverage(self._window_size, 0.0) for _ in range(self._levels_count)
        ]

        self._total_power: float = 0.0
        self._total_peak: float = self._peak_floor
        self._total_smoother = SlidingAverage(self._window_size, 0.0)
        self._total_relative: float = 0.0
        self._frame_count: int = 0

        logger.debug(
            "Analyzer: %d bands x %d bins (transform=%d, window=%d, decay=%.4f/s)",
            self._levels_count,
            self._band_width,
            self._transform_size,
            self._window_size,
            self._peak_decay_rate,
        )

    # ---------- Per-frame ----------

    def update(self, delta_time: float, frequency_data, time_domain_data) -> None:
        """Consume one frame of raw data and refresh every output.

        Args:
            delta_time: Seconds since the previous frame. Negative or non-finite
                values are treated as 0.
            frequency_data: At least ``bin_count`` magnitudes, byte range [0, 255].
            time_domain_data: At least ``bin_count`` samples, byte range, 128 = silence.
        """
        freq = np.asarray(frequency_data)
        wave = np.asarray(time_domain_data)
        if freq.shape[0] < self._bin_count:
            raise ValueError(
                f"frequency_data has {freq.shape[0]} entries, need {self._bin_count}"
            )
        if wave.shape[0] < self._bin_count:
            raise ValueError(
                f"time_domain_data has {wave.shape[0]} entries, need {self._bin_count}"
            )

        # Waveform: byte → [-1, 1]
        self._waveform[:] = wave[: self._bin_count]
        self._waveform -= BYTE_CENTER
        self._waveform /= BYTE_CENTER
        np.nan_to_num(self._waveform, copy=False, nan=0.0, posinf=0.0, neginf=0.0)

        # Band aggregation
        self._band_bins[:] = freq[: self._band_bins.shape[0]]
        np.sum(
            self._band_bins.reshape(self._levels_count, self._band_width),
            axis=1,
            out=self._band_power,
        )
        self._band_power /= self._band_width * BYTE_FULL_SCALE
        np.nan_to_num(self._band_power, copy=False, nan=0.0)
        np.clip(self._band_power, 0.0, 1.0, out=self._band_power)

        # Peaks fall at a fixed rate per second, independent of frame rate
        dt = float(delta_time)
        if not np.isfinite(dt) or dt < 0.0:
            dt = 0.0
        decay_step = self._peak_decay_rate * dt

        self._band_peak[:] = decay_peak(
            self._band_power, self._band_peak, decay_step, self._peak_floor
        )

        with np.errstate(divide="ignore", invalid="ignore"):
            np.divide(self._band_power, self._band_peak, out=self._band_relative)
        np.nan_to_num(self._band_relative, copy=False, nan=0.0)
        np.clip(self._band_relative, 0.0, 1.0, out=self._band_relative)

        for smoother, relative in zip(self._band_smoothers, self._band_relative):
            smoother.push(relative)

        # Total: smoothed before the peak is updated
        self._total_power = nan_to_zero(float(np.mean(self._band_power)))
        self._total_smoother.push(self._total_power)
        self._total_peak = decay_peak(
            self._total_power, self._total_peak, decay_step, self._peak_floor
        )
        if self._total_peak > 0.0:
            self._total_relative = nan_to_zero(
                clamp(self._total_smoother.get_average() / self._total_peak, 0.0, 1.0)
            )
        else:
            self._total_relative = 0.0

        self._frame_count += 1

    def reset(self) -> None:
        """Return to the initial state: peaks at the floor, smoothers at 0."""
        self._waveform.fill(0.0)
        self._band_power.fill(0.0)
        self._band_peak.fill(self._peak_floor)
        self._band_relative.fill(0.0)
        for smoother in self._band_smoothers:
            smoother.reset(0.0)
        self._total_power = 0.0
        self._total_peak = self._peak_floor
        self._total_smoother.reset(0.0)
        self._total_relative = 0.0
        self._frame_count = 0

    # ---------- Outputs ----------

    def get_average(self, index: int) -> float:
        """Smoothed relative loudness of band ``index``, in [0, 1]."""
        value = self._band_smoothers[index].get_average()
        return nan_to_zero(value) or 0.0

    def get_relative_total(self) -> float:
        """Smoothed total loudness relative to its decaying peak, in [0, 1]."""
        return self._total_relative

    def get_averages(self) -> list[float]:
        return [self.get_average(i) for i in range(self._levels_count)]

    @property
    def levels_count(self) -> int:
        return self._levels_count

    @property
    def transform_size(self) -> int:
        return self._transform_size

    @property
    def bin_count(self) -> int:
        return self._bin_count

    @property
    def band_width(self) -> int:
        return self._band_width

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def peak_decay_rate(self) -> float:
        return self._peak_decay_rate

    @property
    def peak_floor(self) -> float:
        return self._peak_floor

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def initialized(self) -> bool:
        """True once at least one frame has been processed."""
        return self._frame_count > 0

    @property
    def waveform(self) -> np.ndarray:
        return _read_only(self._waveform)

    @property
    def band_power(self) -> np.ndarray:
        return _read_only(self._band_power)

    @property
    def band_peak(self) -> np.ndarray:
        return _read_only(self._band_peak)

    @property
    def band_relative(self) -> np.ndarray:
        return _read_only(self._band_relative)

    @property
    def total_power(self) -> float:
        return self._total_power

    @property
    def total_peak(self) -> float:
        return self._total_peak

    def __repr__(self) -> str:
        return (
            f"AudioAnalyzer(levels_count={self._levels_count}, "
            f"transform_size={self._transform_size}, window_size={self._window_size})"
        )

