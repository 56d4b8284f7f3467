"""Byte-range spectrum and waveform snapshots from float audio samples.

Mirrors the behaviour of a browser ``AnalyserNode``: Blackman-windowed FFT,
exponential smoothing between frames, decibel scaling into [0, 255], and a
byte-quantized waveform centred on 128. The output feeds
:class:`~audiosphere.analysis.analyzer.AudioAnalyzer` directly.
"""

from __future__ import annotations

import logging

import numpy as np

from audiosphere.constants import (
    BYTE_CENTER,
    DEFAULT_MAX_DECIBELS,
    DEFAULT_MIN_DECIBELS,
    DEFAULT_SMOOTHING_TIME_CONSTANT,
    DEFAULT_TRANSFORM_SIZE,
    MAX_FFT_SIZE,
    MIN_FFT_SIZE,
)

logger = logging.getLogger(__name__)


def blackman_window(size: int, alpha: float = 0.16) -> np.ndarray:
    """Blackman window as defined for the Web Audio analyser (periodic form)."""
    a0 = 0.5 * (1.0 - alpha)
    a1 = 0.5
    a2 = 0.5 * alpha
    n = np.arange(size, dtype=np.float64) / size
    return a0 - a1 * np.cos(2.0 * np.pi * n) + a2 * np.cos(4.0 * np.pi * n)


class SpectrumAnalyser:
    """Produces per-frame byte frequency and time-domain data.

    Call :meth:`process` with the latest block of samples, then fill the
    caller's buffers with :meth:`get_byte_frequency_data` and
    :meth:`get_byte_time_domain_data`.

    Args:
        fft_size: Power of two between 32 and 32768.
        smoothing_time_constant: Weight of the previous frame's magnitude, 0..1.
        min_decibels: Level mapped to byte 0.
        max_decibels: Level mapped to byte 255.
    """

    def __init__(
        self,
        fft_size: int = DEFAULT_TRANSFORM_SIZE,
        smoothing_time_constant: float = DEFAULT_SMOOTHING_TIME_CONSTANT,
        min_decibels: float = DEFAULT_MIN_DECIBELS,
        max_decibels: float = DEFAULT_MAX_DECIBELS,
    ) -> None:
        if fft_size < MIN_FFT_SIZE or fft_size > MAX_FFT_SIZE or fft_size & (fft_size - 1):
            raise ValueError(
                f"fft_size must be a power of two in [{MIN_FFT_SIZE}, {MAX_FFT_SIZE}], got {fft_size}"
            )
        if not 0.0 <= smoothing_time_constant <= 1.0:
            raise ValueError(
                f"smoothing_time_constant must be in [0, 1], got {smoothing_time_constant}"
            )
        if min_decibels >= max_decibels:
            raise ValueError(
                f"min_decibels ({min_decibels}) must be below max_decibels ({max_decibels})"
            )

        self.fft_size = int(fft_size)
        self.smoothing_time_constant = float(smoothing_time_constant)
        self.min_decibels = float(min_decibels)
        self.max_decibels = float(max_decibels)

        self._window = blackman_window(self.fft_size)
        self._samples = np.zeros(self.fft_size, dtype=np.float64)
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)

        logger.debug(
            "Spectrum: fft=%d, smoothing=%.2f, range=[%.0f, %.0f] dB",
            self.fft_size,
            self.smoothing_time_constant,
            self.min_decibels,
            self.max_decibels,
        )

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def process(self, samples: np.ndarray) -> None:
        """Analyse the most recent ``fft_size`` samples.

        Shorter input is left-padded with silence; longer input keeps only
        its tail.
        """
        samples = np.asarray(samples, dtype=np.float64).reshape(-1)
        n = min(samples.shape[0], self.fft_size)
        self._samples[: self.fft_size - n] = 0.0
        if n:
            self._samples[self.fft_size - n:] = samples[-n:]

        spectrum = np.fft.rfft(self._samples * self._window)
        magnitude = np.abs(spectrum[: self.frequency_bin_count]) / self.fft_size

        tau = self.smoothing_time_constant
        self._smoothed *= tau
        self._smoothed += (1.0 - tau) * magnitude
        # A NaN/inf sample would otherwise stick in the smoothing state forever
        self._smoothed[~np.isfinite(self._smoothed)] = 0.0

    def get_float_frequency_data(self) -> np.ndarray:
        """Smoothed magnitudes in decibels (``-inf`` for silent bins)."""
        with np.errstate(divide="ignore"):
            return 20.0 * np.log10(self._smoothed)

    def get_byte_frequency_data(self, out: np.ndarray) -> np.ndarray:
        """Write decibel magnitudes scaled to [0, 255] into ``out``."""
        count = min(out.shape[0], self.frequency_bin_count)
        db = self.get_float_frequency_data()[:count]
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (db - self.min_decibels))
        np.clip(scaled, 0, 255, out=scaled)
        out[:count] = scaled
        return out

    def get_byte_time_domain_data(self, out: np.ndarray) -> np.ndarray:
        """Write the current window's samples as bytes centred on 128 into ``out``."""
        count = min(out.shape[0], self.fft_size)
        scaled = np.floor(BYTE_CENTER * (self._samples[:count] + 1.0))
        np.nan_to_num(scaled, copy=False, nan=BYTE_CENTER)
        np.clip(scaled, 0, 255, out=scaled)
        out[:count] = scaled
        return out
