"""Audio handler: owns the sample source and feeds the analyzer each frame."""

from __future__ import annotations

import logging
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from audiosphere.analysis.analyzer import AudioAnalyzer
from audiosphere.analysis.spectrum import SpectrumAnalyser
from audiosphere.constants import INPUT_FILE, INPUT_MIC
from audiosphere.input.file import FileSource
from audiosphere.input.mic import MicSource

if TYPE_CHECKING:
    from audiosphere.config import AppConfig

logger = logging.getLogger(__name__)


class InputKind(Enum):
    """Where the samples come from."""

    FILE = auto()
    MIC = auto()


def parse_input_kind(name: str) -> InputKind:
    """Map a config string to an :class:`InputKind`."""
    mapping = {INPUT_FILE: InputKind.FILE, INPUT_MIC: InputKind.MIC}
    try:
        return mapping[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown input source '{name}' (expected 'file' or 'mic')") from None


class AudioHandler:
    """Pulls a window from the source each frame and runs the analysis chain.

    The handler owns the byte buffers handed to the analyzer; they are
    refilled in place every frame and the analyzer only reads them for the
    duration of :meth:`update`.
    """

    def __init__(
        self,
        source: FileSource | MicSource,
        analyzer: AudioAnalyzer,
        spectrum: SpectrumAnalyser | None = None,
    ) -> None:
        if spectrum is None:
            spectrum = SpectrumAnalyser(fft_size=analyzer.transform_size)
        if spectrum.frequency_bin_count < analyzer.bin_count:
            raise ValueError(
                f"Spectrum yields {spectrum.frequency_bin_count} bins, "
                f"analyzer needs {analyzer.bin_count}"
            )

        self.source = source
        self.analyzer = analyzer
        self.spectrum = spectrum
        self.kind = InputKind.MIC if isinstance(source, MicSource) else InputKind.FILE

        self._window = np.zeros(spectrum.fft_size, dtype=np.float32)
        self._freq_bytes = np.zeros(analyzer.bin_count, dtype=np.uint8)
        self._time_bytes = np.full(analyzer.bin_count, 128, dtype=np.uint8)

    @classmethod
    def from_config(cls, config: AppConfig) -> AudioHandler:
        """Build source, spectrum and analyzer from an :class:`AppConfig`."""
        ac = config.analyzer
        analyzer = AudioAnalyzer(
            levels_count=ac.levels_count,
            transform_size=ac.transform_size,
            window_size=ac.window_size,
            peak_decay_rate=ac.peak_decay_rate,
            peak_floor=ac.peak_floor,
        )
        spectrum = SpectrumAnalyser(
            fft_size=ac.transform_size,
            smoothing_time_constant=ac.smoothing_time_constant,
            min_decibels=ac.min_decibels,
            max_decibels=ac.max_decibels,
        )

        ic = config.input
        kind = parse_input_kind(ic.source)
        if kind == InputKind.MIC:
            source: FileSource | MicSource = MicSource(
                device=ic.device,
                window_size=ac.transform_size,
                sample_rate=ic.sample_rate,
            )
        else:
            if not ic.file:
                raise ValueError("File input selected but no file configured")
            path = Path(ic.file)
            if not path.is_absolute() and config.config_path is not None:
                path = config.config_path.parent / path
            source = FileSource.from_path(
                path,
                sample_rate=ic.sample_rate,
                audible=ic.audible,
                device=ic.device,
            )
        return cls(source, analyzer, spectrum)

    @property
    def is_playing(self) -> bool:
        return self.source.is_playing

    @property
    def frequency_data(self) -> np.ndarray:
        """Last frame's byte frequency data."""
        return self._freq_bytes

    @property
    def time_domain_data(self) -> np.ndarray:
        """Last frame's byte time-domain data."""
        return self._time_bytes

    def start(self) -> None:
        self.source.start()

    def update(self, delta_time: float) -> None:
        """Advance the source and analyse one frame."""
        if isinstance(self.source, FileSource):
            self.source.advance(delta_time)

        self.source.read_window(self._window)
        self.spectrum.process(self._window)
        self.spectrum.get_byte_frequency_data(self._freq_bytes)
        self.spectrum.get_byte_time_domain_data(self._time_bytes)
        self.analyzer.update(delta_time, self._freq_bytes, self._time_bytes)

    def stop(self) -> None:
        self.source.stop()

    def restart(self) -> None:
        """Rewind a file source; the mic has nothing to rewind."""
        if isinstance(self.source, FileSource):
            self.source.restart()

    def pause_resume(self) -> None:
        """Toggle file playback; the mic is started or stopped instead."""
        if isinstance(self.source, FileSource):
            self.source.pause_resume()
        elif self.source.running:
            self.source.stop()
        else:
            self.source.start()
