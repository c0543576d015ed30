# tests/test_profiles_loader.py
"""
Tests for profiles.loader / profiles.schema.

Covers:
- repository config/nav.yaml loads for both shipped profiles
- profile override, unknown profile, unknown keys
- missing file and malformed top level
- settings clamps and validation
"""

from __future__ import annotations

from pathlib import Path

import pytest

from profiles.loader import DEFAULT_CONFIG_PATH, load_nav_config, nav_config_from_mapping
from profiles.schema import (
    AcquisitionSettings,
    ActuationSettings,
    MovementSettings,
    NavConfig,
    OracleSettings,
    StuckSettings,
)


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "nav.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_repo_default_profile_loads() -> None:
    assert DEFAULT_CONFIG_PATH.exists()

    cfg = load_nav_config()

    assert isinstance(cfg, NavConfig)
    assert cfg.profile_name == "default"
    assert cfg.movement.pursuit_radius == 300.0
    assert cfg.acquisition.probe_distances == (100.0, 200.0, 350.0)
    assert cfg.oracle.mode == "ipc"
    assert cfg.oracle.port == 47800


def test_repo_sim_profile_loads() -> None:
    cfg = load_nav_config(profile="sim")

    assert cfg.profile_name == "sim"
    assert cfg.oracle.mode == "threaded"
    assert cfg.bot.max_runs == 3
    assert cfg.movement.goal_tolerance <= cfg.movement.arrival_tolerance
    # Sections the profile leaves out keep their defaults.
    assert cfg.stuck.advance_steps == StuckSettings().advance_steps


def test_unknown_profile_raises(tmp_path: Path) -> None:
    path = write_config(tmp_path, "profile: default\nprofiles:\n  default: {}\n")

    with pytest.raises(KeyError):
        load_nav_config(path, profile="nope")


def test_empty_profile_uses_defaults(tmp_path: Path) -> None:
    path = write_config(tmp_path, "profile: bare\nprofiles:\n  bare:\n")

    cfg = load_nav_config(path)

    assert cfg.profile_name == "bare"
    assert cfg.movement == MovementSettings()


def test_unknown_key_is_rejected(tmp_path: Path) -> None:
    path = write_config(
        tmp_path,
        "profile: default\nprofiles:\n  default:\n    movement:\n      pursuit_raduis: 5\n",
    )

    with pytest.raises(ValueError, match="pursuit_raduis"):
        load_nav_config(path)


def test_unknown_section_is_rejected() -> None:
    with pytest.raises(ValueError, match="camera"):
        nav_config_from_mapping({"camera": {}})


def test_missing_profile_key(tmp_path: Path) -> None:
    path = write_config(tmp_path, "profiles:\n  default: {}\n")

    with pytest.raises(ValueError):
        load_nav_config(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_nav_config(tmp_path / "absent.yaml")


def test_non_mapping_top_level(tmp_path: Path) -> None:
    path = write_config(tmp_path, "- just\n- a list\n")

    with pytest.raises(ValueError):
        load_nav_config(path)


def test_lists_become_tuples() -> None:
    cfg = nav_config_from_mapping({"acquisition": {"probe_distances": [5, 10]}}, "x")

    assert cfg.acquisition.probe_distances == (5.0, 10.0)


def test_settings_clamps() -> None:
    movement = MovementSettings(arrival_tolerance=5, goal_tolerance=50)
    acquisition = AcquisitionSettings(stability_grace_s=10, staleness_s=2)
    actuation = ActuationSettings(min_delay_s=0.5, max_delay_s=0.1)
    stuck = StuckSettings(window=0)

    assert movement.goal_tolerance == 5
    assert acquisition.staleness_s == 10
    assert actuation.max_delay_s == 0.5
    assert stuck.window == 2


def test_bad_oracle_mode() -> None:
    with pytest.raises(ValueError):
        OracleSettings(mode="carrier-pigeon")
