"""Tests for engine configuration loading."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from sceneweaver.config import (
    CONFIG_FILENAME,
    AssetConfig,
    EngineConfig,
    EngineConfigError,
    load_config,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_defaults() -> None:
    config = load_config()

    assert config.layout.splice_offset_x == 300
    assert config.layout.splice_offset_y == -100
    assert config.assets.default_sprite_id == "normal"
    assert config.generation.max_concurrency == 2
    assert config.generation.dialogue_timeout == 60.0


def test_missing_file_uses_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path / "nope.yaml") == EngineConfig()


def test_loads_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "custom.yaml"
    path.write_text(
        "layout:\n"
        "  splice_offset_x: 400\n"
        "assets:\n"
        "  sprite_url_template: 'sprites/{character_id}.png'\n"
        "generation:\n"
        "  max_concurrency: 5\n"
    )
    config = load_config(path)

    assert config.layout.splice_offset_x == 400
    assert config.layout.splice_step_x == 50
    assert config.assets.sprite_url("hero") == "sprites/hero.png"
    assert config.generation.max_concurrency == 5


def test_directory_lookup(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("generation:\n  dialogue_timeout: 5\n")
    assert load_config(tmp_path).generation.dialogue_timeout == 5.0


def test_env_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("generation:\n  max_concurrency: 5\n")
    monkeypatch.setenv("SW_MAX_CONCURRENCY", "9")
    monkeypatch.setenv("SW_DIALOGUE_TIMEOUT", "1.5")

    config = load_config(tmp_path)

    assert config.generation.max_concurrency == 9
    assert config.generation.dialogue_timeout == 1.5


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    path = tmp_path / CONFIG_FILENAME
    path.write_text("layout: [unclosed\n")

    with pytest.raises(EngineConfigError) as exc_info:
        load_config(path)
    assert exc_info.value.path == path


def test_asset_urls() -> None:
    assets = AssetConfig()
    assert assets.background_url("s1") == "https://picsum.photos/seed/bg-s1/1920/1080"
    assert assets.sprite_url("hero") == "https://picsum.photos/seed/hero/600/800"
