"""Decoded audio-file playback with a readable play cursor."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import numpy as np

from audiosphere.assets.decoder import load_audio
from audiosphere.constants import DEFAULT_SAMPLE_RATE

logger = logging.getLogger(__name__)

try:
    import sounddevice as sd
    _HAS_SOUNDDEVICE = True
except (ImportError, OSError):
    _HAS_SOUNDDEVICE = False


class FileSource:
    """Plays a decoded sample array once, from start to end.

    Audible playback streams through a sounddevice ``OutputStream`` and the
    audio callback moves the cursor. Headless playback has no device; the
    frame loop moves the cursor with :meth:`advance` instead.

    Args:
        samples: Mono float samples.
        sample_rate: Rate of ``samples`` in Hz.
        audible: Play through the default output device when available.
        device: Output device index or name (``None`` for the default).
    """

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        audible: bool = True,
        device: str | int | None = None,
    ) -> None:
        self._samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        self._sample_rate = int(sample_rate)
        self._device = device if device != "default" else None
        self._audible = audible and _HAS_SOUNDDEVICE
        if audible and not _HAS_SOUNDDEVICE:
            logger.warning("sounddevice not available, file plays silently")

        self._cursor = 0
        self._playing = False
        self._stream: sd.OutputStream | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        audible: bool = True,
        device: str | int | None = None,
    ) -> FileSource:
        """Decode ``path`` and wrap it in a source."""
        samples, _info = load_audio(path, sample_rate=sample_rate)
        return cls(samples, sample_rate=sample_rate, audible=audible, device=device)

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def duration_s(self) -> float:
        return self._samples.shape[0] / self._sample_rate

    @property
    def position_s(self) -> float:
        return self._cursor / self._sample_rate

    @property
    def audible(self) -> bool:
        return self._audible

    @property
    def finished(self) -> bool:
        return self._cursor >= self._samples.shape[0]

    @property
    def is_playing(self) -> bool:
        return self._playing and not self.finished

    def start(self) -> None:
        """Start playback from the current cursor."""
        if self.finished:
            logger.info("File playback already at end")
            return
        self._playing = True
        if self._audible and self._stream is None:
            self._open_stream()
        logger.info("File playback started at %.2fs", self.position_s)

    def stop(self) -> None:
        """Stop playback and rewind."""
        self._playing = False
        self._close_stream()
        with self._lock:
            self._cursor = 0
        logger.info("File playback stopped")

    def pause_resume(self) -> None:
        """Toggle between paused and playing."""
        if self.is_playing:
            self._playing = False
            logger.info("File playback paused at %.2fs", self.position_s)
        else:
            self.start()

    def restart(self) -> None:
        """Rewind to the start; playback continues only if it was running."""
        with self._lock:
            self._cursor = 0
        logger.info("File playback restarted")

    def advance(self, delta_time: float) -> None:
        """Move the cursor by ``delta_time`` seconds (headless playback only)."""
        if self._stream is not None or not self.is_playing:
            return
        step = int(round(max(delta_time, 0.0) * self._sample_rate))
        with self._lock:
            self._cursor = min(self._cursor + step, self._samples.shape[0])

    def read_window(self, out: np.ndarray) -> np.ndarray:
        """Copy the ``len(out)`` samples that precede the cursor into ``out``."""
        count = out.shape[0]
        with self._lock:
            end = self._cursor
        start = end - count
        if start >= 0:
            out[:] = self._samples[start:end]
        else:
            out[:-start] = 0.0
            out[-start:] = self._samples[:end]
        return out

    # ---------- Internal ----------

    def _open_stream(self) -> None:
        try:
            self._stream = sd.OutputStream(
                device=self._device,
                channels=1,
                samplerate=self._sample_rate,
                dtype="float32",
                callback=self._output_callback,
            )
            self._stream.start()
        except Exception:
            logger.exception("Failed to open output stream, falling back to silent playback")
            self._stream = None
            self._audible = False

    def _close_stream(self) -> None:
        if self._stream:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception:
                logger.exception("Error while closing output stream")
            self._stream = None

    def _output_callback(
        self,
        outdata: np.ndarray,
        frames: int,
        time_info: object,
        status: object,
    ) -> None:
        """Called by sounddevice on the audio thread for each output block."""
        outdata.fill(0)
        if not self._playing:
            return
        with self._lock:
            start = self._cursor
            end = min(start + frames, self._samples.shape[0])
            outdata[: end - start, 0] = self._samples[start:end]
            self._cursor = end
