"""Maps loudness levels to blob, post-processing and scene parameters.

Runs once per frame after the analyzer. Band 0 is the lowest frequency
band; six bands are required because every band drives something.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from audiosphere.analysis.analyzer import AudioAnalyzer
from audiosphere.config import PaletteConfig, Vec3

REQUIRED_BANDS = 6

INVERT_THRESHOLD = 0.98
SOBEL_THRESHOLD = 0.9


@dataclass
class BlobParams:
    """Uniforms of the blob shader."""

    time: float = 0.0
    speed: float = 0.3
    noise_strength: float = 0.12
    noise_density: float = 1.5
    freq: float = 0.0
    amp: float = 0.0
    offset: float = 0.15
    hue: float = 0.75
    alpha: float = 1.0
    brightness: Vec3 = (0.5, 0.5, 0.4)
    contrast: Vec3 = (0.2, 0.4, 0.2)
    oscillation: Vec3 = (1.0, 0.7, 0.0)
    phase: Vec3 = (0.0, 0.10, 0.20)


@dataclass
class PostParams:
    """Post-processing pass settings."""

    invert: bool = False
    sobel: bool = False
    afterimage_damp: float = 0.02
    bloom_strength: float = 0.0
    rgb_shift_amount: float = 0.0
    rgb_shift_angle: float = 0.0
    film_noise: float = 0.1


@dataclass
class SceneParams:
    """Per-frame geometry and background motion."""

    displace: float = 0.0
    rotate: float = 0.0
    background_time: float = 0.0
    background_strength: float = 0.0


@dataclass
class VisualParams:
    blob: BlobParams = field(default_factory=BlobParams)
    post: PostParams = field(default_factory=PostParams)
    scene: SceneParams = field(default_factory=SceneParams)


def _ramp(low: Vec3, mult: Vec3, levels: Vec3) -> Vec3:
    return (
        low[0] + mult[0] * levels[0],
        low[1] + mult[1] * levels[1],
        low[2] + mult[2] * levels[2],
    )


class VisualMapper:
    """Turns analyzer outputs into :class:`VisualParams`.

    The palette is passed in explicitly; nothing here is module-level
    mutable state. Accumulating values (RGB shift angle, background time)
    persist across frames in :attr:`params`.
    """

    def __init__(self, palette: PaletteConfig | None = None) -> None:
        self.palette = palette or PaletteConfig()
        self.params = VisualParams()

    def update(self, analyzer: AudioAnalyzer, dt: float) -> VisualParams:
        """Read the analyzer once and refresh every parameter."""
        if analyzer.levels_count < REQUIRED_BANDS:
            raise ValueError(
                f"Visual mapping needs {REQUIRED_BANDS} bands, analyzer has {analyzer.levels_count}"
            )
        levels = [analyzer.get_average(i) for i in range(REQUIRED_BANDS)]
        return self.apply(levels, analyzer.get_relative_total(), dt)

    def apply(self, levels: list[float], total: float, dt: float) -> VisualParams:
        """Refresh parameters from six band levels and the relative total."""
        a0, a1, a2, a3, a4, a5 = levels[:REQUIRED_BANDS]
        s = total
        pal = self.palette

        blob = self.params.blob
        blob.time = dt
        blob.speed = a3 * 0.25
        blob.hue = 0.5 * a4
        blob.freq = 1.0 + a0 * 1.5
        blob.amp = 1.0 + a1 * 1.5
        blob.offset = 1.0 - a5
        blob.noise_strength = 0.15 + 1.5 * a2
        blob.noise_density = 2.0 * s

        blob.brightness = _ramp(pal.brightness_min, pal.brightness_mult, (a3, a1, a0))
        # Contrast sits one full multiplier above its minimum
        contrast_base = (
            pal.contrast_min[0] + pal.contrast_mult[0],
            pal.contrast_min[1] + pal.contrast_mult[1],
            pal.contrast_min[2] + pal.contrast_mult[2],
        )
        blob.contrast = _ramp(contrast_base, pal.contrast_mult, (a2, a5, a4))
        blob.oscillation = _ramp(pal.oscillation_min, pal.oscillation_mult, (a0, a3, a2))
        blob.phase = _ramp(pal.phase_min, pal.phase_mult, (a1, a0, a2))

        post = self.params.post
        post.invert = s > INVERT_THRESHOLD
        post.sobel = SOBEL_THRESHOLD < s < INVERT_THRESHOLD
        post.afterimage_damp = 0.02 + a0 * 0.97
        post.bloom_strength = a4 * 0.25
        post.rgb_shift_amount = 0.006 * a1
        post.rgb_shift_angle = (post.rgb_shift_angle + a0 * 0.02) % math.pi
        post.film_noise = 0.1 + a3 * (pal.noise_max - 0.1)

        scene = self.params.scene
        scene.displace = a5 * dt
        scene.rotate = s * dt * 2.0
        scene.background_time += s * 0.2
        scene.background_strength = 0.15 * a2

        return self.params
