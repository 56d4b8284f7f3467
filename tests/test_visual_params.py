"""Tests for audiosphere/visual/params.py."""

from __future__ import annotations

import math

import pytest

from audiosphere.analysis.analyzer import AudioAnalyzer
from audiosphere.config import PaletteConfig
from audiosphere.visual.params import VisualMapper


class TestVisualMapper:
    def test_silence(self) -> None:
        p = VisualMapper().apply([0.0] * 6, 0.0, 1 / 60)
        assert p.blob.freq == 1.0
        assert p.blob.offset == 1.0
        assert p.blob.noise_strength == pytest.approx(0.15)
        assert p.blob.brightness == (0.5, 0.5, 0.4)
        assert p.blob.contrast == pytest.approx((0.5, 0.7, 0.5))
        assert p.post.film_noise == pytest.approx(0.1)
        assert not p.post.invert and not p.post.sobel
        assert p.scene.rotate == 0.0

    def test_full_levels(self) -> None:
        p = VisualMapper().apply([1.0] * 6, 1.0, 0.5)
        assert p.blob.speed == 0.25
        assert p.blob.amp == 2.5
        assert p.blob.noise_density == 2.0
        assert p.blob.brightness == pytest.approx((0.8, 0.6, 0.5))
        assert p.blob.phase == pytest.approx((0.4, 0.5, 0.6))
        assert p.post.invert
        assert not p.post.sobel
        assert p.post.afterimage_damp == pytest.approx(0.99)
        assert p.scene.displace == 0.5
        assert p.scene.rotate == 1.0

    @pytest.mark.parametrize(
        ("total", "sobel", "invert"),
        [(0.5, False, False), (0.95, True, False), (0.98, False, False), (0.99, False, True)],
    )
    def test_effect_thresholds(self, total: float, sobel: bool, invert: bool) -> None:
        p = VisualMapper().apply([0.0] * 6, total, 0.0)
        assert p.post.sobel is sobel
        assert p.post.invert is invert

    def test_accumulators(self) -> None:
        mapper = VisualMapper()
        for _ in range(200):
            p = mapper.apply([1.0] * 6, 0.5, 0.0)
        assert 0.0 <= p.post.rgb_shift_angle < math.pi
        assert p.post.rgb_shift_angle == pytest.approx((200 * 0.02) % math.pi)
        assert p.scene.background_time == pytest.approx(200 * 0.1)

    def test_custom_palette(self) -> None:
        palette = PaletteConfig(brightness_min=(0.0, 0.0, 0.0), brightness_mult=(1.0, 1.0, 1.0), noise_max=0.5)
        p = VisualMapper(palette).apply([0.1, 0.2, 0.3, 0.4, 0.5, 0.6], 0.0, 0.0)
        assert p.blob.brightness == pytest.approx((0.4, 0.2, 0.1))
        assert p.post.film_noise == pytest.approx(0.1 + 0.4 * 0.4)

    def test_reads_analyzer(self) -> None:
        analyzer = AudioAnalyzer(levels_count=6, transform_size=64)
        p = VisualMapper().update(analyzer, 0.1)
        assert p.blob.freq == 1.0

    def test_needs_six_bands(self) -> None:
        with pytest.raises(ValueError):
            VisualMapper().update(AudioAnalyzer(levels_count=2, transform_size=64), 0.1)
