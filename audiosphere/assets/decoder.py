"""Audio file decoder for MP3, OGG, WAV, FLAC, M4A using PyAV."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import av
import numpy as np

from audiosphere.constants import DEFAULT_SAMPLE_RATE

logger = logging.getLogger(__name__)


@dataclass
class AudioInfo:
    """Metadata about an audio file."""

    path: Path
    sample_rate: int
    channels: int
    duration_s: float
    codec: str


class AudioDecoder:
    """Decodes audio files into mono float32 numpy arrays.

    Every format FFmpeg understands goes through the same path: decode,
    resample to ``sample_rate``, downmix to mono.
    """

    def __init__(self, path: str | Path, sample_rate: int = DEFAULT_SAMPLE_RATE) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Audio file not found: {self.path}")

        self.sample_rate = int(sample_rate)
        self._container: av.container.InputContainer | None = None
        self._stream: av.audio.stream.AudioStream | None = None
        self._info: AudioInfo | None = None

    def open(self) -> AudioInfo:
        """Open the file and probe its metadata."""
        self._container = av.open(str(self.path))
        if not self._container.streams.audio:
            self.close()
            raise ValueError(f"No audio stream in {self.path}")
        self._stream = self._container.streams.audio[0]

        stream = self._stream
        codec_ctx = stream.codec_context

        duration_s = 0.0
        if stream.duration and stream.time_base:
            duration_s = float(stream.duration * stream.time_base)
        elif self._container.duration:
            duration_s = self._container.duration / av.time_base

        self._info = AudioInfo(
            path=self.path,
            sample_rate=codec_ctx.sample_rate,
            channels=len(codec_ctx.layout.channels),
            duration_s=duration_s,
            codec=codec_ctx.name,
        )
        return self._info

    def _seek_to_start(self) -> None:
        """Seek back to the beginning of the stream."""
        if self._container:
            self._container.seek(0, stream=self._stream)

    @property
    def info(self) -> AudioInfo | None:
        return self._info

    def decode_all(self) -> np.ndarray:
        """Decode the whole stream.

        Returns:
            1-D float32 array of mono samples at ``sample_rate``.
        """
        if not self._container:
            raise RuntimeError("Decoder not opened. Call open() first.")

        self._seek_to_start()
        resampler = av.AudioResampler(format="flt", layout="mono", rate=self.sample_rate)
        chunks: list[np.ndarray] = []

        for frame in self._container.decode(audio=0):
            for out in resampler.resample(frame):
                chunks.append(out.to_ndarray().reshape(-1))
        # Drain whatever the resampler still buffers
        for out in resampler.resample(None):
            chunks.append(out.to_ndarray().reshape(-1))

        if not chunks:
            return np.zeros(0, dtype=np.float32)
        samples = np.concatenate(chunks).astype(np.float32, copy=False)
        logger.debug(
            "Decoded %s: %d samples @ %d Hz", self.path.name, samples.shape[0], self.sample_rate
        )
        return samples

    def close(self) -> None:
        """Release decoder resources."""
        if self._container:
            self._container.close()
            self._container = None
        self._stream = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def load_audio(path: str | Path, sample_rate: int = DEFAULT_SAMPLE_RATE) -> tuple[np.ndarray, AudioInfo]:
    """Decode a file in one call. Returns ``(samples, info)``."""
    path = Path(path)
    logger.info("Loading audio: %s", path)

    with AudioDecoder(path, sample_rate=sample_rate) as decoder:
        info = decoder.info
        assert info is not None
        samples = decoder.decode_all()

    if samples.size == 0:
        raise ValueError(f"No samples decoded from {path}")

    logger.info(
        "Loaded audio %s (%.1fs, %s, %d ch)",
        info.path.name,
        info.duration_s,
        info.codec,
        info.channels,
    )
    return samples, info
