"""Audio analysis helpers: clamping, NaN coercion, downmix."""

from __future__ import annotations

import math

import numpy as np


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a scalar into ``[low, high]``.

    NaN passes through unchanged so callers can coerce it explicitly.
    """
    return min(max(value, low), high)


def nan_to_zero(value: float) -> float:
    """Return 0.0 for NaN, the value otherwise."""
    return 0.0 if math.isnan(value) else value


def to_mono(samples: np.ndarray) -> np.ndarray:
    """Downmix a (frames, channels) block to a 1-D float32 array."""
    if samples.ndim > 1:
        samples = samples.mean(axis=1)
    return samples.astype(np.float32, copy=False)
