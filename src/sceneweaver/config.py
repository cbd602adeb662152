"""Engine configuration loading.

Values here are cosmetic or operational (canvas offsets, placeholder
asset URLs, generation concurrency). None of them affect graph
invariants.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from ruamel.yaml import YAML

CONFIG_FILENAME = "sceneweaver.yaml"

DEFAULT_SPRITE_URL = "https://picsum.photos/seed/{character_id}/600/800"
DEFAULT_BACKGROUND_URL = "https://picsum.photos/seed/bg-{scene_id}/1920/1080"


@dataclass
class LayoutConfig:
    """Canvas offsets for scenes created by the engine.

    Spliced scenes fan out from the attachment scene: each one sits
    ``splice_offset_x + i * splice_step_x`` to the right and
    ``i * splice_step_y + splice_offset_y`` below it.
    Planned stories lay scenes on a row, staggering every other one.
    Imported stories lay scenes on a square grid.
    """

    splice_offset_x: float = 300
    splice_offset_y: float = -100
    splice_step_x: float = 50
    splice_step_y: float = 150
    plan_origin_x: float = 50
    plan_origin_y: float = 100
    plan_step_x: float = 300
    plan_stagger_y: float = 150
    import_step_x: float = 350
    import_step_y: float = 200

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LayoutConfig:
        defaults = cls()
        return cls(
            **{name: float(data.get(name, getattr(defaults, name))) for name in vars(defaults)}
        )


@dataclass
class AssetConfig:
    """Placeholder assets for characters and scenes the engine creates."""

    default_sprite_id: str = "normal"
    sprite_url_template: str = DEFAULT_SPRITE_URL
    background_url_template: str = DEFAULT_BACKGROUND_URL

    def sprite_url(self, character_id: str) -> str:
        return self.sprite_url_template.format(character_id=character_id)

    def background_url(self, scene_id: str) -> str:
        return self.background_url_template.format(scene_id=scene_id)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssetConfig:
        return cls(
            default_sprite_id=data.get("default_sprite_id", "normal"),
            sprite_url_template=data.get("sprite_url_template", DEFAULT_SPRITE_URL),
            background_url_template=data.get("background_url_template", DEFAULT_BACKGROUND_URL),
        )


@dataclass
class GenerationConfig:
    """Limits for calls to the content-generation service.

    Resolution order: environment variable (SW_MAX_CONCURRENCY,
    SW_DIALOGUE_TIMEOUT), then config file, then defaults.

    Attributes:
        max_concurrency: Dialogue generations allowed in flight at once.
        dialogue_timeout: Seconds before a single scene's dialogue call
            is abandoned and the scene falls back to its description.
    """

    max_concurrency: int = 2
    dialogue_timeout: float = 60.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationConfig:
        concurrency = os.getenv("SW_MAX_CONCURRENCY") or data.get("max_concurrency", 2)
        timeout = os.getenv("SW_DIALOGUE_TIMEOUT") or data.get("dialogue_timeout", 60.0)
        return cls(max_concurrency=int(concurrency), dialogue_timeout=float(timeout))


@dataclass
class EngineConfig:
    """Configuration for the SceneWeaver engine."""

    layout: LayoutConfig = field(default_factory=LayoutConfig)
    assets: AssetConfig = field(default_factory=AssetConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        return cls(
            layout=LayoutConfig.from_dict(data.get("layout", {})),
            assets=AssetConfig.from_dict(data.get("assets", {})),
            generation=GenerationConfig.from_dict(data.get("generation", {})),
        )


class EngineConfigError(Exception):
    """Raised when the engine configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load config at {path}: {reason}")


def load_config(path: Path | None = None) -> EngineConfig:
    """Load configuration from a YAML file.

    Args:
        path: Config file, or a directory containing ``sceneweaver.yaml``.
            When None or when the file does not exist, defaults are used
            (environment overrides still apply).

    Returns:
        EngineConfig instance.

    Raises:
        EngineConfigError: If the file exists but cannot be parsed.
    """
    if path is None:
        return EngineConfig.from_dict({})

    config_path = path / CONFIG_FILENAME if path.is_dir() else path
    if not config_path.exists():
        return EngineConfig.from_dict({})

    yaml = YAML()
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
        return EngineConfig.from_dict(dict(data or {}))
    except Exception as e:
        raise EngineConfigError(config_path, str(e)) from e
