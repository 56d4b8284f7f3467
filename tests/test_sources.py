"""Tests for audiosphere/input/file.py, audiosphere/input/mic.py and the decoder.

Covers:
- Headless file playback: start, advance, pause/resume, restart, stop, end
- Reading the window that precedes the play cursor
- Mic ring buffer writes, wrap-around and window reads (no device needed)
- Input device listing
- Decoding a WAV file through PyAV
"""

from __future__ import annotations

import wave
from pathlib import Path

import numpy as np
import pytest

from audiosphere.assets.decoder import AudioDecoder, load_audio
from audiosphere.input import mic as mic_module
from audiosphere.input.file import FileSource
from audiosphere.input.mic import MicSource

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ramp_source(length: int = 1000, rate: int = 1000) -> FileSource:
    samples = np.arange(length, dtype=np.float32) / length
    return FileSource(samples, sample_rate=rate, audible=False)


def _write_wav(path: Path, samples: np.ndarray, rate: int) -> None:
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
    with wave.open(str(path), "wb") as f:
        f.setnchannels(1)
        f.setsampwidth(2)
        f.setframerate(rate)
        f.writeframes(pcm.tobytes())


# ---------------------------------------------------------------------------
# FileSource
# ---------------------------------------------------------------------------


class TestFileSource:
    def test_not_playing_until_started(self) -> None:
        src = _ramp_source()
        assert not src.is_playing
        src.advance(0.5)
        assert src.position_s == 0.0

    def test_advance_moves_cursor(self) -> None:
        src = _ramp_source()
        src.start()
        assert src.is_playing
        src.advance(0.25)
        assert src.position_s == pytest.approx(0.25)

    def test_read_window_precedes_cursor(self) -> None:
        src = _ramp_source()
        src.start()
        src.advance(0.5)
        out = np.zeros(4, dtype=np.float32)
        src.read_window(out)
        np.testing.assert_allclose(out, np.arange(496, 500) / 1000)

    def test_read_window_pads_before_start(self) -> None:
        src = _ramp_source()
        src.start()
        src.advance(0.002)
        out = np.full(5, 9.0, dtype=np.float32)
        src.read_window(out)
        np.testing.assert_allclose(out, [0.0, 0.0, 0.0, 0.0, 0.001])

    def test_finishes_at_end(self) -> None:
        src = _ramp_source()
        src.start()
        src.advance(5.0)
        assert src.finished
        assert not src.is_playing

    def test_pause_resume(self) -> None:
        src = _ramp_source()
        src.start()
        src.advance(0.1)
        src.pause_resume()
        assert not src.is_playing
        src.advance(0.3)
        assert src.position_s == pytest.approx(0.1)
        src.pause_resume()
        assert src.is_playing

    def test_restart_and_stop_rewind(self) -> None:
        src = _ramp_source()
        src.start()
        src.advance(0.4)
        src.restart()
        assert src.position_s == 0.0
        assert src.is_playing
        src.advance(0.4)
        src.stop()
        assert src.position_s == 0.0
        assert not src.is_playing

    def test_duration(self) -> None:
        assert _ramp_source(length=2000, rate=1000).duration_s == pytest.approx(2.0)


# ---------------------------------------------------------------------------
# MicSource
# ---------------------------------------------------------------------------


class TestMicRingBuffer:
    def test_read_is_oldest_first(self) -> None:
        mic = MicSource(window_size=8)
        mic.write(np.array([1, 2, 3, 4, 5], dtype=np.float32))
        out = np.zeros(8, dtype=np.float32)
        mic.read_window(out)
        np.testing.assert_array_equal(out, [0, 0, 0, 1, 2, 3, 4, 5])

    def test_wraps_around(self) -> None:
        mic = MicSource(window_size=8)
        mic.write(np.arange(1, 6, dtype=np.float32))
        mic.write(np.arange(6, 11, dtype=np.float32))
        out = np.zeros(8, dtype=np.float32)
        mic.read_window(out)
        np.testing.assert_array_equal(out, np.arange(3, 11))

    def test_block_larger_than_ring(self) -> None:
        mic = MicSource(window_size=4)
        mic.write(np.arange(20, dtype=np.float32))
        out = np.zeros(4, dtype=np.float32)
        mic.read_window(out)
        np.testing.assert_array_equal(out, [16, 17, 18, 19])

    def test_multichannel_block_is_downmixed(self) -> None:
        mic = MicSource(window_size=2)
        mic.write(np.array([[1.0, 3.0], [0.0, -1.0]], dtype=np.float32))
        out = np.zeros(2, dtype=np.float32)
        mic.read_window(out)
        np.testing.assert_array_equal(out, [2.0, -0.5])

    def test_short_and_long_reads(self) -> None:
        mic = MicSource(window_size=4)
        mic.write(np.array([1, 2, 3, 4], dtype=np.float32))
        short = mic.read_window(np.zeros(2, dtype=np.float32))
        np.testing.assert_array_equal(short, [3, 4])
        long = mic.read_window(np.full(6, 7.0, dtype=np.float32))
        np.testing.assert_array_equal(long, [0, 0, 1, 2, 3, 4])

    def test_not_running_until_started(self) -> None:
        mic = MicSource()
        assert not mic.running
        assert not mic.is_playing

    def test_list_devices_keeps_inputs_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class _FakeSd:
            @staticmethod
            def query_devices():
                return [
                    {"name": "Speakers", "max_input_channels": 0},
                    {"name": "USB Mic", "max_input_channels": 2},
                ]

        monkeypatch.setattr(mic_module, "_HAS_SOUNDDEVICE", True)
        monkeypatch.setattr(mic_module, "sd", _FakeSd, raising=False)
        assert MicSource.list_devices() == [{"index": 1, "name": "USB Mic", "channels": 2}]

    def test_list_devices_without_sounddevice(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(mic_module, "_HAS_SOUNDDEVICE", False)
        assert MicSource.list_devices() == []


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


class TestDecoder:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            AudioDecoder(tmp_path / "nope.wav")

    def test_decode_requires_open(self, tmp_path: Path) -> None:
        path = tmp_path / "tone.wav"
        _write_wav(path, np.zeros(100), 8000)
        with pytest.raises(RuntimeError):
            AudioDecoder(path).decode_all()

    def test_load_wav(self, tmp_path: Path) -> None:
        rate = 8000
        n = np.arange(rate // 2)
        tone = 0.5 * np.sin(2 * np.pi * 440 * n / rate)
        path = tmp_path / "tone.wav"
        _write_wav(path, tone, rate)

        samples, info = load_audio(path, sample_rate=rate)
        assert info.sample_rate == rate
        assert info.channels == 1
        assert samples.dtype == np.float32
        assert abs(samples.shape[0] - tone.shape[0]) <= 64
        assert np.max(np.abs(samples)) == pytest.approx(0.5, abs=0.01)

    def test_file_source_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "tone.wav"
        _write_wav(path, np.full(4000, 0.25), 8000)
        src = FileSource.from_path(path, sample_rate=8000, audible=False)
        assert src.duration_s == pytest.approx(0.5, abs=0.01)
