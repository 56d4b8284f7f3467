"""Tests for audiosphere/config.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from audiosphere.config import AppConfig, get_profiles_dir, list_profiles, load_profile
from audiosphere.constants import DEFAULT_PEAK_FLOOR, DEFAULT_WINDOW_SIZE


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.analyzer.levels_count == 6
        assert config.analyzer.transform_size == 512
        assert config.analyzer.peak_floor == DEFAULT_PEAK_FLOOR
        assert config.palette.oscillation_min == (1.0, 0.7, 0.0)

    def test_save_and_load(self, tmp_path: Path) -> None:
        config = AppConfig()
        config.general.profile_name = "Club"
        config.input.source = "mic"
        config.analyzer.peak_decay_rate = 0.05
        config.palette.phase_mult = (0.1, 0.2, 0.3)
        path = tmp_path / "club.toml"
        config.to_toml(path)

        loaded = load_profile(path)
        assert loaded.config_path == path
        assert loaded.general.profile_name == "Club"
        assert loaded.input.source == "mic"
        assert loaded.analyzer.peak_decay_rate == 0.05
        assert loaded.palette.phase_mult == (0.1, 0.2, 0.3)

    def test_missing_keys_fall_back(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.toml"
        path.write_text('[analyzer]\nlevels_count = 8\n\n[palette]\nbrightness_min = [0, 0, 0]\n')
        config = AppConfig.from_toml(path)
        assert config.analyzer.levels_count == 8
        assert config.analyzer.window_size == DEFAULT_WINDOW_SIZE
        assert config.palette.brightness_min == (0.0, 0.0, 0.0)
        assert config.palette.brightness_mult == (0.3, 0.1, 0.1)
        assert config.input.source == "file"

    def test_bad_vector(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("[palette]\nphase_min = [1, 2]\n")
        with pytest.raises(ValueError):
            AppConfig.from_toml(path)


class TestProfiles:
    def test_profiles_dir_follows_xdg(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_profiles_dir() == tmp_path / "audiosphere" / "profiles"
        assert list_profiles() == []
        AppConfig().to_toml(get_profiles_dir() / "a.toml")
        assert list_profiles() == [tmp_path / "audiosphere" / "profiles" / "a.toml"]
