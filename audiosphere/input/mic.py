"""Microphone capture into a rolling sample window."""

from __future__ import annotations

import logging
import threading

import numpy as np

from audiosphere.constants import DEFAULT_CHUNK_MS, DEFAULT_SAMPLE_RATE, DEFAULT_TRANSFORM_SIZE
from audiosphere.util.audio import to_mono

logger = logging.getLogger(__name__)

# Try to import sounddevice; gracefully degrade if unavailable
try:
    import sounddevice as sd
    _HAS_SOUNDDEVICE = True
except (ImportError, OSError):
    _HAS_SOUNDDEVICE = False
    logger.warning("sounddevice not available, mic input disabled")


class MicSource:
    """Captures audio from a microphone into a ring buffer.

    Runs audio capture on a background thread via sounddevice's callback API.
    The frame loop copies the most recent ``window_size`` samples out with
    :meth:`read_window`; the callback and the reader share the buffer under
    a lock.
    """

    def __init__(
        self,
        device: str | int | None = None,
        window_size: int = DEFAULT_TRANSFORM_SIZE,
        chunk_ms: int = DEFAULT_CHUNK_MS,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
    ) -> None:
        self._device = device if device != "default" else None
        self._chunk_size = int(sample_rate * chunk_ms / 1000)
        self._sample_rate = sample_rate

        self._ring = np.zeros(window_size, dtype=np.float32)
        self._write_pos = 0
        self._stream: sd.InputStream | None = None
        self._lock = threading.Lock()

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def window_size(self) -> int:
        return self._ring.shape[0]

    @property
    def running(self) -> bool:
        return self._stream is not None and self._stream.active

    @property
    def is_playing(self) -> bool:
        """A running microphone is always considered playing."""
        return self.running

    def start(self) -> None:
        """Start capturing audio from the microphone."""
        if not _HAS_SOUNDDEVICE:
            logger.warning("Cannot start mic: sounddevice not available")
            return

        try:
            self._stream = sd.InputStream(
                device=self._device,
                channels=1,
                samplerate=self._sample_rate,
                blocksize=self._chunk_size,
                dtype="float32",
                callback=self._audio_callback,
            )
            self._stream.start()
            logger.info(
                "Mic started (device=%s, rate=%d, chunk=%d)",
                self._device or "default",
                self._sample_rate,
                self._chunk_size,
            )
        except Exception:
            logger.exception("Failed to start mic capture")
            self._stream = None

    def stop(self) -> None:
        """Stop capturing audio."""
        if self._stream:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception:
                logger.exception("Error while closing mic stream")
            self._stream = None
            logger.info("Mic stopped")

    def write(self, samples: np.ndarray) -> None:
        """Append samples to the ring, overwriting the oldest."""
        samples = to_mono(samples)
        size = self._ring.shape[0]
        if samples.shape[0] >= size:
            with self._lock:
                self._ring[:] = samples[-size:]
                self._write_pos = 0
            return

        with self._lock:
            end = self._write_pos + samples.shape[0]
            if end <= size:
                self._ring[self._write_pos:end] = samples
            else:
                split = size - self._write_pos
                self._ring[self._write_pos:] = samples[:split]
                self._ring[: end - size] = samples[split:]
            self._write_pos = end % size

    def read_window(self, out: np.ndarray) -> np.ndarray:
        """Copy the most recent ``len(out)`` samples into ``out``, oldest first.

        Requests longer than the ring are left-padded with silence.
        """
        size = self._ring.shape[0]
        count = min(out.shape[0], size)
        pad = out.shape[0] - count
        out[:pad] = 0.0
        with self._lock:
            # Oldest sample sits at the write position
            ordered = np.roll(self._ring, -self._write_pos)
        out[pad:] = ordered[size - count:]
        return out

    def _audio_callback(
        self,
        indata: np.ndarray,
        frames: int,
        time_info: object,
        status: object,
    ) -> None:
        """Called by sounddevice on the audio thread for each chunk."""
        if status:
            logger.debug("Mic status: %s", status)
        self.write(indata)

    @staticmethod
    def list_devices() -> list[dict]:
        """List available audio input devices."""
        if not _HAS_SOUNDDEVICE:
            return []
        devices = sd.query_devices()
        inputs = []
        for i, d in enumerate(devices):
            if d["max_input_channels"] > 0:
                inputs.append({"index": i, "name": d["name"], "channels": d["max_input_channels"]})
        return inputs
