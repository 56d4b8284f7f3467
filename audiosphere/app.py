"""Main application loop: headless frame loop driving the audio analysis."""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path

from audiosphere.config import AppConfig, get_default_config, list_profiles, load_profile
from audiosphere.constants import DEFAULT_FPS_CAP, INPUT_FILE, INPUT_MIC
from audiosphere.input.handler import AudioHandler, InputKind
from audiosphere.input.mic import MicSource
from audiosphere.visual.params import REQUIRED_BANDS, VisualMapper, VisualParams

logger = logging.getLogger(__name__)


class App:
    """AudioSphere main application.

    Owns the audio handler and the visual mapper and ticks both once per
    frame. Rendering is left to whoever reads :attr:`params`.
    """

    def __init__(self, config: AppConfig, max_frames: int | None = None) -> None:
        self.config = config
        self.handler: AudioHandler | None = None
        self.mapper: VisualMapper | None = None
        self.params: VisualParams | None = None
        self.frame_count = 0
        self._max_frames = max_frames

        # Timing
        self._last_time: float = 0.0
        self._fps_cap = config.general.fps_cap or DEFAULT_FPS_CAP
        self._frame_time_target = 1.0 / self._fps_cap

        # Level meter for debug logging
        self._level_log_timer: float = 0.0
        self._level_log_interval = config.general.log_interval_s

    def run(self) -> None:
        """Run the main application loop."""
        try:
            self._init()
            self._main_loop()
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self._cleanup()

    def _init(self) -> None:
        """Build the audio chain and start the source."""
        self.handler = AudioHandler.from_config(self.config)
        if self.handler.analyzer.levels_count >= REQUIRED_BANDS:
            self.mapper = VisualMapper(self.config.palette)
        else:
            logger.warning(
                "Only %d bands configured, visual mapping disabled (needs %d)",
                self.handler.analyzer.levels_count,
                REQUIRED_BANDS,
            )
        self.handler.start()
        logger.info(
            "Running %s input at %d FPS",
            self.handler.kind.name.lower(),
            self._fps_cap,
        )

    def _running(self) -> bool:
        assert self.handler is not None
        if self._max_frames is not None and self.frame_count >= self._max_frames:
            return False
        if self.handler.kind == InputKind.MIC:
            # A mic that failed to open stays silent; keep the loop alive
            return True
        return self.handler.is_playing

    def _main_loop(self) -> None:
        """Fixed-rate frame loop."""
        assert self.handler is not None

        self._last_time = time.monotonic()
        while self._running():
            frame_start = time.monotonic()
            dt = frame_start - self._last_time
            self._last_time = frame_start

            self.tick(dt)

            # Frame rate limiting
            elapsed = time.monotonic() - frame_start
            sleep_time = self._frame_time_target - elapsed
            if sleep_time > 0:
                time.sleep(sleep_time)

        if self.handler.kind == InputKind.FILE and not self.handler.is_playing:
            logger.info("Playback finished after %d frames", self.frame_count)

    def tick(self, dt: float) -> None:
        """Process one frame."""
        assert self.handler is not None
        self.handler.update(dt)
        if self.mapper is not None:
            self.params = self.mapper.update(self.handler.analyzer, dt)
        self.frame_count += 1
        self._log_levels(dt)

    def _log_levels(self, dt: float) -> None:
        """Periodically log loudness levels for debugging."""
        if self._level_log_interval <= 0:
            return
        self._level_log_timer += dt
        if self._level_log_timer >= self._level_log_interval:
            self._level_log_timer = 0.0
            analyzer = self.handler.analyzer
            total = analyzer.get_relative_total()
            bar_len = int(total * 50)
            bar = "#" * bar_len + "-" * (50 - bar_len)
            bands = " ".join(f"{v:.2f}" for v in analyzer.get_averages())
            logger.debug("Lvl [%s] %.3f | Bands: %s", bar, total, bands)

    def _cleanup(self) -> None:
        """Clean up all resources."""
        if self.handler:
            self.handler.stop()
        logger.info("AudioSphere shut down")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    from audiosphere import __version__

    parser = argparse.ArgumentParser(
        prog="audiosphere",
        description="Gain-independent loudness analysis for audio-reactive visuals",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--profile", type=str, default=None,
        help="Path to a TOML profile file to load",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--file", type=str, default=None,
        help="Analyse an audio file (MP3, OGG, WAV, FLAC, ...)",
    )
    source.add_argument(
        "--mic", action="store_true", help="Analyse live microphone input",
    )
    parser.add_argument(
        "--device", type=str, default=None, help="Audio device index or name",
    )
    parser.add_argument(
        "--list-devices", action="store_true", help="List audio input devices and exit",
    )
    parser.add_argument(
        "--fps", type=int, default=None, help="FPS cap override",
    )
    parser.add_argument(
        "--frames", type=int, default=None, help="Stop after this many frames",
    )
    parser.add_argument(
        "--silent", action="store_true", help="Don't play file audio through the speakers",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AppConfig:
    """Resolve the profile to use and apply command-line overrides."""
    if args.profile:
        config = load_profile(Path(args.profile))
    else:
        profiles = list_profiles()
        if profiles and not (args.file or args.mic):
            # Load the most recently modified profile
            latest = max(profiles, key=lambda p: p.stat().st_mtime)
            logger.info("No --profile given, loading most recent: %s", latest)
            config = load_profile(latest)
        else:
            config = get_default_config()

    if args.file:
        config.input.source = INPUT_FILE
        # Relative to the working directory, not to the profile
        config.input.file = str(Path(args.file).resolve())
    elif args.mic:
        config.input.source = INPUT_MIC
    if args.device is not None:
        config.input.device = int(args.device) if args.device.isdigit() else args.device
    if args.fps:
        config.general.fps_cap = args.fps
    if args.silent:
        config.input.audible = False
    return config


def list_input_devices() -> list[dict]:
    """Log the available input devices, as passed to ``--device``."""
    devices = MicSource.list_devices()
    if not devices:
        logger.info("No input devices found")
    for d in devices:
        logger.info("[%d] %s (%dch)", d["index"], d["name"], d["channels"])
    return devices


def main(argv: list[str] | None = None) -> None:
    """Application entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.list_devices:
        list_input_devices()
        return

    config = build_config(args)
    app = App(config, max_frames=args.frames)
    app.run()
