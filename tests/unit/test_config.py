"""Tests for the tierboard config loader."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest
import yaml

from tierboard.config import (
    PRESET_COLORS,
    CodecCfg,
    ConfigError,
    TierboardConfig,
    load_config,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("TIERBOARD_DB", raising=False)
    monkeypatch.delenv("TIERBOARD_STORAGE_CAPACITY", raising=False)


@pytest.fixture
def no_global(tmp_path: Path) -> Path:
    return tmp_path / "nonexistent" / "config.yaml"


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path, no_global: Path) -> None:
    """No config files → hardcoded defaults."""
    cfg = load_config(project_dir=tmp_path, global_config_path=no_global)

    assert cfg.storage.path == ".tierboard.db"
    assert cfg.storage.capacity_bytes == 5 * 1024 * 1024
    assert cfg.codec.target_height == 80
    assert cfg.codec.format == "JPEG"
    assert cfg.codec.mime_type == "image/jpeg"
    assert cfg.codec.quality == 1.0
    assert [t.name for t in cfg.board.default_tiers] == ["S", "A", "B", "C", "D", "F"]
    assert [t.color for t in cfg.board.default_tiers] == list(PRESET_COLORS)
    assert cfg.board.open_links_in_new_tab is True


def test_target_height_never_below_one() -> None:
    assert CodecCfg(base_font_size=0.1, height_rem=1).target_height == 1


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_global_overrides_defaults(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"codec": {"base_font_size": 20}})

    cfg = load_config(project_dir=tmp_path, global_config_path=global_cfg)
    assert cfg.codec.target_height == 100
    assert cfg.codec.format == "JPEG"


def test_project_overrides_global(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"codec": {"base_font_size": 20, "quality": 0.8}})
    _write_yaml(tmp_path / "tierboard.yaml", {"codec": {"base_font_size": 10}})

    cfg = load_config(project_dir=tmp_path, global_config_path=global_cfg)
    assert cfg.codec.base_font_size == 10
    assert cfg.codec.quality == 0.8


def test_empty_file_is_defaults(tmp_path: Path, no_global: Path) -> None:
    (tmp_path / "tierboard.yaml").write_text("", encoding="utf-8")
    cfg = load_config(project_dir=tmp_path, global_config_path=no_global)
    assert cfg == TierboardConfig()


def test_format_is_upper_cased(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(tmp_path / "tierboard.yaml", {"codec": {"format": "webp"}})
    cfg = load_config(project_dir=tmp_path, global_config_path=no_global)
    assert cfg.codec.mime_type == "image/webp"


def test_custom_default_tiers(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(
        tmp_path / "tierboard.yaml",
        {"board": {"default_tiers": [{"name": "Yes", "color": "#7FFF7F"}], "open_links_in_new_tab": False}},
    )
    cfg = load_config(project_dir=tmp_path, global_config_path=no_global)
    assert [(t.name, t.color) for t in cfg.board.default_tiers] == [("Yes", "#7FFF7F")]
    assert cfg.board.open_links_in_new_tab is False


def test_unknown_section_warns(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(tmp_path / "tierboard.yaml", {"themes": {"dark": True}})
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        load_config(project_dir=tmp_path, global_config_path=no_global)
    assert any("themes" in str(w.message) for w in caught)


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def test_env_overrides_db_path(tmp_path: Path, no_global: Path, monkeypatch) -> None:
    _write_yaml(tmp_path / "tierboard.yaml", {"storage": {"path": "from-yaml.db"}})
    monkeypatch.setenv("TIERBOARD_DB", "from-env.db")
    cfg = load_config(project_dir=tmp_path, global_config_path=no_global)
    assert cfg.storage.path == "from-env.db"


@pytest.mark.parametrize("value,expected", [("1024", 1024), ("none", None), ("Unlimited", None)])
def test_env_overrides_capacity(tmp_path: Path, no_global: Path, monkeypatch, value, expected) -> None:
    monkeypatch.setenv("TIERBOARD_STORAGE_CAPACITY", value)
    cfg = load_config(project_dir=tmp_path, global_config_path=no_global)
    assert cfg.storage.capacity_bytes == expected


def test_env_capacity_not_a_number(tmp_path: Path, no_global: Path, monkeypatch) -> None:
    monkeypatch.setenv("TIERBOARD_STORAGE_CAPACITY", "lots")
    with pytest.raises(ConfigError, match="TIERBOARD_STORAGE_CAPACITY"):
        load_config(project_dir=tmp_path, global_config_path=no_global)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "data",
    [
        {"codec": {"format": "PNG"}},
        {"codec": {"quality": 0}},
        {"codec": {"quality": 1.5}},
        {"codec": {"height_rem": -1}},
        {"codec": {"timeout_seconds": 0}},
        {"storage": {"capacity_bytes": 0}},
        {"codec": {"quality": "high"}},
        {"board": {"default_tiers": [{"name": "S"}]}},
        {
            "board": {
                "default_tiers": [
                    {"name": "S", "color": "#FF7F7F"},
                    {"name": "S", "color": "#FF7F7F"},
                ]
            }
        },
    ],
)
def test_invalid_values_raise(tmp_path: Path, no_global: Path, data: dict) -> None:
    _write_yaml(tmp_path / "tierboard.yaml", data)
    with pytest.raises(ConfigError):
        load_config(project_dir=tmp_path, global_config_path=no_global)


def test_non_mapping_file_raises(tmp_path: Path, no_global: Path) -> None:
    (tmp_path / "tierboard.yaml").write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(project_dir=tmp_path, global_config_path=no_global)


def test_null_timeout_disables_limit(tmp_path: Path, no_global: Path) -> None:
    _write_yaml(tmp_path / "tierboard.yaml", {"codec": {"timeout_seconds": None}, "storage": {"capacity_bytes": None}})
    cfg = load_config(project_dir=tmp_path, global_config_path=no_global)
    assert cfg.codec.timeout_seconds is None
    assert cfg.storage.capacity_bytes is None
