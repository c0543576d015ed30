# src/profiles/loader.py
"""
YAML profile loader for the navigation loop.

config/nav.yaml layout:

    profile: default
    profiles:
      default:
        bot: {...}
        oracle: {...}
        ...

Every section is optional; omitted keys fall back to the dataclass
defaults in profiles.schema. Unknown sections or keys are rejected so a
typo never silently falls back to a default.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .schema import (
    AcquisitionSettings,
    ActuationSettings,
    BotSettings,
    MovementSettings,
    NavConfig,
    OracleSettings,
    StuckSettings,
    TimingSettings,
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "nav.yaml"

_SECTIONS: Dict[str, type] = {
    "bot": BotSettings,
    "oracle": OracleSettings,
    "acquisition": AcquisitionSettings,
    "movement": MovementSettings,
    "stuck": StuckSettings,
    "timing": TimingSettings,
    "actuation": ActuationSettings,
}


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping from disk."""
    if not path.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at top of {path}, got {type(data)}")
    return data


def _select_profile(
    nav_cfg: Mapping[str, Any],
    override: Optional[str] = None,
) -> Tuple[str, Dict[str, Any]]:
    """Return (active_profile_name, active_profile_mapping)."""
    profile_name = override or nav_cfg.get("profile")
    if not profile_name:
        raise ValueError("nav.yaml must define a 'profile' key.")
    profiles = nav_cfg.get("profiles")
    if not isinstance(profiles, dict):
        raise ValueError("nav.yaml must define a 'profiles' mapping.")
    if profile_name not in profiles:
        raise KeyError(f"Profile '{profile_name}' not found in nav.yaml profiles.")
    raw = profiles[profile_name] or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Profile '{profile_name}' must be a mapping, got {type(raw)}")
    return profile_name, raw


def _build_section(section: str, cls: type, raw: Any):
    """Instantiate one settings dataclass from its raw mapping."""
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ValueError(f"Section '{section}' must be a mapping, got {type(raw)}")

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown keys in section '{section}': {', '.join(unknown)}")

    kwargs: Dict[str, Any] = {}
    for name, value in raw.items():
        # YAML gives lists; tuple-typed settings stay immutable.
        if isinstance(value, list):
            value = tuple(value)
        kwargs[name] = value
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def nav_config_from_mapping(
    raw: Mapping[str, Any],
    profile_name: str = "default",
) -> NavConfig:
    """Build a NavConfig from one profile mapping (already selected)."""
    unknown = sorted(set(raw) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(unknown)}")

    sections = {
        name: _build_section(name, cls, raw.get(name))
        for name, cls in _SECTIONS.items()
    }
    return NavConfig(profile_name=profile_name, **sections)


def load_nav_config(
    path: Optional[Path | str] = None,
    profile: Optional[str] = None,
) -> NavConfig:
    """
    Main entry point: returns the resolved NavConfig.

    Args:
        path: YAML file to read. Defaults to config/nav.yaml in the repo.
        profile: profile name overriding the file's `profile` key.
    """
    cfg_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    nav_cfg = _load_yaml(cfg_path)
    name, raw = _select_profile(nav_cfg, profile)
    return nav_config_from_mapping(raw, profile_name=name)
