"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from sceneweaver.models import (
    Character,
    ChoiceLine,
    ChoiceOption,
    EndStory,
    Project,
    Scene,
    SceneCharacter,
    Sprite,
    Story,
    TextLine,
    Transition,
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep generation overrides from the caller's shell out of tests."""
    monkeypatch.delenv("SW_MAX_CONCURRENCY", raising=False)
    monkeypatch.delenv("SW_DIALOGUE_TIMEOUT", raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def hero() -> Character:
    return Character(
        id="hero",
        name="Hero",
        appearance="Tall, red scarf",
        talking_style="Blunt",
        sprites=[Sprite(id="normal", url="hero.png"), Sprite(id="happy", url="hero_happy.png")],
    )


@pytest.fixture
def branching_story() -> Story:
    """Three scenes: ``a`` chooses between ``b`` and ``c``; ``b`` leads to ``c``."""
    a = Scene(
        id="a",
        name="Gate",
        description="The city gate at dusk",
        background="gate.png",
        characters=[SceneCharacter(character_id="hero", position="left")],
        dialogue=[
            TextLine(text="Rain falls."),
            TextLine(character_id="hero", text="We go in."),
            ChoiceLine(
                choices=[
                    ChoiceOption(text="Sneak", next_scene_id="b"),
                    ChoiceOption(text="Walk in", next_scene_id="c"),
                ]
            ),
        ],
    )
    b = Scene(
        id="b",
        name="Alley",
        dialogue=[TextLine(text="Quiet."), Transition(next_scene_id="c")],
    )
    c = Scene(id="c", name="Square", dialogue=[TextLine(text="The end."), EndStory()])
    return Story(id="s1", name="Night", scenes={"a": a, "b": b, "c": c}, start_scene_id="a")


@pytest.fixture
def project(hero: Character, branching_story: Story) -> Project:
    return Project(
        id="p1",
        name="Demo",
        characters={hero.id: hero},
        stories={branching_story.id: branching_story},
    )
