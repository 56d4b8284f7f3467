"""AudioSphere: gain-independent loudness analysis for audio-reactive visuals."""

__version__ = "0.1.0"
