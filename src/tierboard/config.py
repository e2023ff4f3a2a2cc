"""Tierboard configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (TIERBOARD_DB, TIERBOARD_STORAGE_CAPACITY)
  3. Per-project tierboard.yaml
  4. Global ~/.tierboard/config.yaml
  5. Hardcoded defaults

All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".tierboard"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "tierboard.yaml"

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["storage", "codec", "board"])

# Lossy formats Pillow can write as a data URI payload.
_LOSSY_FORMATS: dict[str, str] = {"JPEG": "image/jpeg", "WEBP": "image/webp"}

PRESET_COLORS: tuple[str, ...] = (
    "#FF7F7F",
    "#FFBF7F",
    "#FFDF80",
    "#FFFF7F",
    "#BFFF7F",
    "#7FFF7F",
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StorageCfg:
    """Item store configuration (tierboard.yaml: storage:).

    Attributes:
        path: SQLite database file holding every container record.
        capacity_bytes: Total bytes the store may hold; ``None`` = unlimited.
            The default mirrors a browser local-storage quota.
    """

    path: str = ".tierboard.db"
    capacity_bytes: int | None = 5 * 1024 * 1024


@dataclass
class CodecCfg:
    """Image normalisation configuration (tierboard.yaml: codec:).

    Output height is ``base_font_size * height_rem`` pixels, so the bound
    follows the UI's root font size rather than a fixed pixel count.
    """

    base_font_size: float = 16.0
    height_rem: float = 5.0
    format: str = "JPEG"
    quality: float = 1.0
    timeout_seconds: float | None = 10.0

    @property
    def target_height(self) -> int:
        return max(1, round(self.base_font_size * self.height_rem))

    @property
    def mime_type(self) -> str:
        return _LOSSY_FORMATS[self.format]


@dataclass
class TierSeed:
    """A tier created by ``tierboard init``."""

    name: str
    color: str


def _default_tiers() -> list[TierSeed]:
    names = ("S", "A", "B", "C", "D", "F")
    return [TierSeed(name=n, color=c) for n, c in zip(names, PRESET_COLORS)]


@dataclass
class BoardCfg:
    """Board presentation defaults (tierboard.yaml: board:)."""

    default_tiers: list[TierSeed] = field(default_factory=_default_tiers)
    open_links_in_new_tab: bool = True


@dataclass
class TierboardConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    storage: StorageCfg = field(default_factory=StorageCfg)
    codec: CodecCfg = field(default_factory=CodecCfg)
    board: BoardCfg = field(default_factory=BoardCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: TierboardConfig) -> None:
    codec = cfg.codec
    if codec.format not in _LOSSY_FORMATS:
        raise ConfigError(
            f"codec.format must be one of {', '.join(sorted(_LOSSY_FORMATS))}, "
            f"got '{codec.format}'"
        )
    if not 0.0 < codec.quality <= 1.0:
        raise ConfigError(f"codec.quality must be in (0.0, 1.0], got {codec.quality}")
    if codec.base_font_size <= 0 or codec.height_rem <= 0:
        raise ConfigError("codec.base_font_size and codec.height_rem must be positive")
    if codec.timeout_seconds is not None and codec.timeout_seconds <= 0:
        raise ConfigError("codec.timeout_seconds must be positive or null")
    capacity = cfg.storage.capacity_bytes
    if capacity is not None and capacity < 1:
        raise ConfigError(f"storage.capacity_bytes must be >= 1 or null, got {capacity}")
    seen: set[tuple[str, str]] = set()
    for seed in cfg.board.default_tiers:
        ident = (seed.color, seed.name)
        if ident in seen:
            raise ConfigError(
                f"board.default_tiers repeats color '{seed.color}' and name '{seed.name}'"
            )
        seen.add(ident)


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _cfg_from_dict(data: dict[str, Any]) -> TierboardConfig:
    """Build a *TierboardConfig* from a merged raw YAML dict."""
    cfg = TierboardConfig()

    try:
        if "storage" in data:
            s = data["storage"]
            cfg.storage = StorageCfg(
                path=str(s.get("path", cfg.storage.path)),
                capacity_bytes=_optional_int(
                    s.get("capacity_bytes", cfg.storage.capacity_bytes)
                ),
            )

        if "codec" in data:
            c = data["codec"]
            cfg.codec = CodecCfg(
                base_font_size=float(c.get("base_font_size", cfg.codec.base_font_size)),
                height_rem=float(c.get("height_rem", cfg.codec.height_rem)),
                format=str(c.get("format", cfg.codec.format)).upper(),
                quality=float(c.get("quality", cfg.codec.quality)),
                timeout_seconds=_optional_float(
                    c.get("timeout_seconds", cfg.codec.timeout_seconds)
                ),
            )

        if "board" in data:
            b = data["board"]
            tiers = cfg.board.default_tiers
            if "default_tiers" in b:
                tiers = [
                    TierSeed(name=str(t["name"]), color=str(t["color"]))
                    for t in b["default_tiers"] or []
                ]
            cfg.board = BoardCfg(
                default_tiers=tiers,
                open_links_in_new_tab=bool(
                    b.get("open_links_in_new_tab", cfg.board.open_links_in_new_tab)
                ),
            )
    except (TypeError, ValueError, KeyError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: TierboardConfig) -> TierboardConfig:
    """Apply TIERBOARD_* environment variable overrides."""
    if path := os.environ.get("TIERBOARD_DB"):
        cfg.storage.path = path
    if capacity := os.environ.get("TIERBOARD_STORAGE_CAPACITY"):
        if capacity.lower() in ("none", "unlimited"):
            cfg.storage.capacity_bytes = None
        else:
            try:
                cfg.storage.capacity_bytes = int(capacity)
            except ValueError as exc:
                raise ConfigError(
                    f"TIERBOARD_STORAGE_CAPACITY must be an integer or 'none', got '{capacity}'"
                ) from exc
    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping at the top level")
    return data


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> TierboardConfig:
    """Load and return a merged *TierboardConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *tierboard.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file holds a malformed or out-of-range value.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg
