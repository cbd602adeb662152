"""Tests for the generation planner: shape checks, plan build and dialogue fill."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from sceneweaver.config import EngineConfig, GenerationConfig
from sceneweaver.generation import (
    build_story_from_plan,
    fill_dialogue,
    generate_and_splice,
    parse_dialogue,
    parse_scene_fragment,
    parse_story_plan,
    plan_story,
)
from sceneweaver.graph import GenerationShapeError
from sceneweaver.models import (
    Character,
    ChoiceLine,
    EndStory,
    ImageLine,
    LayoutPosition,
    Scene,
    Story,
    TextLine,
    Transition,
)

RAW_PLAN: dict[str, Any] = {
    "characters": [
        {"id": "mira", "name": "Mira", "appearance": "Silver hair", "talkingStyle": "Dry"},
        {"id": "tom", "name": "Tom", "gender": "male"},
    ],
    "scenes": [
        {
            "id": "s1",
            "name": "Arrival",
            "summary": "Mira arrives at the station.",
            "characterIds": ["mira", "tom", "nobody"],
            "outcome": {"type": "transition", "nextSceneId": "s2"},
        },
        {
            "id": "s2",
            "name": "Platform",
            "summary": "Tom offers help.",
            "characterIds": ["tom"],
            "outcome": {
                "type": "choice",
                "choices": [
                    {"text": "Accept", "nextSceneId": "s3"},
                    {"text": "Refuse", "nextSceneId": "s99"},
                ],
            },
        },
        {
            "id": "s3",
            "name": "Train",
            "summary": "They leave.",
            "outcome": {"type": "end_story"},
        },
    ],
}


class FakeGenerator:
    """Scripted content generator."""

    def __init__(
        self,
        *,
        dialogue: dict[str, Any] | None = None,
        delay: dict[str, float] | None = None,
        structure: dict[str, Any] | None = None,
    ) -> None:
        self.dialogue = dialogue or {}
        self.delay = delay or {}
        self.structure = structure
        self.dialogue_calls: list[str] = []
        self.structure_calls = 0

    async def generate_plan(self, prompt: str, length_hint: str, structure_hint: str) -> dict[str, Any]:
        return RAW_PLAN

    async def generate_dialogue(
        self,
        scene: Scene,
        story_context: list[Scene],
        characters: dict[str, Character],
        length_hint: str,
        use_continuity: bool,
        desired_outcome: str,
        freeform_prompt: str,
    ) -> list[dict[str, Any]]:
        self.dialogue_calls.append(scene.id)
        await asyncio.sleep(self.delay.get(scene.id, 0))
        response = self.dialogue.get(scene.id)
        if isinstance(response, Exception):
            raise response
        if response is None:
            return [{"type": "text", "characterId": None, "text": f"Lines for {scene.id}"}]
        return response

    async def generate_structure(
        self,
        attachment: Scene,
        story_context: list[Scene],
        characters: dict[str, Character],
        prompt: str,
        structure_type: str,
    ) -> dict[str, Any]:
        self.structure_calls += 1
        assert self.structure is not None
        return self.structure


class TestShapeChecks:
    def test_plan_ok(self) -> None:
        plan = parse_story_plan(RAW_PLAN)
        assert [s.id for s in plan.scenes] == ["s1", "s2", "s3"]
        assert plan.characters[0].talking_style == "Dry"

    def test_plan_missing_outcome(self) -> None:
        raw = {"scenes": [{"id": "s1"}]}
        with pytest.raises(GenerationShapeError) as exc_info:
            parse_story_plan(raw)
        assert exc_info.value.kind == "plan"
        assert any("outcome" in e for e in exc_info.value.errors)

    def test_plan_without_scenes(self) -> None:
        with pytest.raises(GenerationShapeError):
            parse_story_plan({"characters": [], "scenes": []})

    def test_plan_wrong_type(self) -> None:
        with pytest.raises(GenerationShapeError):
            parse_story_plan(["not", "a", "plan"])

    def test_plan_rejects_character_id_with_spaces(self) -> None:
        raw = {
            "characters": [{"id": "old man", "name": "Old Man"}],
            "scenes": [
                {"id": "s1", "characterIds": ["old man"], "outcome": {"type": "end_story"}}
            ],
        }
        with pytest.raises(GenerationShapeError) as exc_info:
            parse_story_plan(raw)
        assert any(e.startswith("characters.0.id") for e in exc_info.value.errors)
        assert any(e.startswith("scenes.0.characterIds.0") for e in exc_info.value.errors)

    def test_dialogue_rejects_speaker_id_with_spaces(self) -> None:
        with pytest.raises(GenerationShapeError):
            parse_dialogue([{"type": "text", "characterId": "old man", "text": "Hi"}])

    def test_dialogue_ok(self) -> None:
        lines = parse_dialogue(
            [
                {"type": "text", "characterId": "tom", "text": "Hi"},
                {"type": "image", "url": "i.png"},
            ]
        )
        assert lines == [TextLine(character_id="tom", text="Hi"), ImageLine(url="i.png")]

    def test_dialogue_rejects_outcomes(self) -> None:
        with pytest.raises(GenerationShapeError) as exc_info:
            parse_dialogue([{"type": "text", "text": "x"}, {"type": "end_story"}])
        assert "end_story" in exc_info.value.errors[0]

    def test_dialogue_rejects_non_list(self) -> None:
        with pytest.raises(GenerationShapeError):
            parse_dialogue({"type": "text", "text": "x"})

    def test_dialogue_rejects_bad_item(self) -> None:
        with pytest.raises(GenerationShapeError):
            parse_dialogue([{"type": "text"}])

    def test_fragment_requires_target(self) -> None:
        raw = {
            "scenes": [{"id": "t1", "name": "One"}],
            "connections": {"sourceSceneConnection": {"type": "transition"}},
        }
        with pytest.raises(GenerationShapeError) as exc_info:
            parse_scene_fragment(raw)
        assert exc_info.value.kind == "fragment"

    def test_fragment_duplicate_ids(self) -> None:
        raw = {
            "scenes": [{"id": "t1", "name": "One"}, {"id": "t1", "name": "Two"}],
            "connections": {"sourceSceneConnection": {"type": "transition", "nextSceneId": "t1"}},
        }
        with pytest.raises(GenerationShapeError):
            parse_scene_fragment(raw)


class TestBuildStory:
    def test_builds_closed_story(self) -> None:
        story, characters = build_story_from_plan(parse_story_plan(RAW_PLAN), "Trip", story_id="st")

        assert story.id == "st"
        assert story.name == "Trip"
        assert list(story.scenes) == ["s1", "s2", "s3"]
        assert story.start_scene_id == "s1"
        assert set(characters) == {"mira", "tom"}

        choice = story.scenes["s2"].dialogue[-1]
        assert isinstance(choice, ChoiceLine)
        assert [c.next_scene_id for c in choice.choices] == ["s3", "s3"]

    def test_scene_contents(self) -> None:
        story, _ = build_story_from_plan(parse_story_plan(RAW_PLAN), "Trip")
        first = story.scenes["s1"]

        assert first.dialogue == [
            TextLine(text="Mira arrives at the station."),
            Transition(next_scene_id="s2"),
        ]
        assert first.description == "Mira arrives at the station."
        assert [(p.character_id, p.position) for p in first.characters] == [
            ("mira", "left"),
            ("tom", "right"),
        ]
        assert story.scenes["s3"].dialogue[-1] == EndStory()

    def test_staggered_layout(self) -> None:
        story, _ = build_story_from_plan(parse_story_plan(RAW_PLAN), "Trip")
        assert [s.position for s in story.scenes.values()] == [
            LayoutPosition(x=50, y=100),
            LayoutPosition(x=350, y=250),
            LayoutPosition(x=650, y=100),
        ]

    def test_characters_get_placeholder_sprite(self) -> None:
        _, characters = build_story_from_plan(parse_story_plan(RAW_PLAN), "Trip")
        mira = characters["mira"]

        assert mira.default_sprite_id == "normal"
        assert mira.sprites[0].url == "https://picsum.photos/seed/mira/600/800"
        assert characters["tom"].gender == "male"


class TestFillDialogue:
    def _story(self) -> tuple[Story, dict[str, Character]]:
        return build_story_from_plan(parse_story_plan(RAW_PLAN), "Trip")

    @pytest.mark.asyncio
    async def test_lines_replaced_outcome_kept(self) -> None:
        story, characters = self._story()
        generator = FakeGenerator()

        filled = await fill_dialogue(story, characters, generator)

        assert filled.scenes["s1"].dialogue == [
            TextLine(text="Lines for s1"),
            Transition(next_scene_id="s2"),
        ]
        assert sorted(generator.dialogue_calls) == ["s1", "s2", "s3"]

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_description(self) -> None:
        story, characters = self._story()
        generator = FakeGenerator(dialogue={"s2": RuntimeError("service down")})

        filled = await fill_dialogue(story, characters, generator)

        assert filled.scenes["s2"].dialogue[0] == TextLine(text="Tom offers help.")
        assert isinstance(filled.scenes["s2"].dialogue[-1], ChoiceLine)
        assert filled.scenes["s1"].dialogue[0] == TextLine(text="Lines for s1")
        assert filled.scenes["s3"].dialogue[0] == TextLine(text="Lines for s3")

    @pytest.mark.asyncio
    async def test_outcome_in_response_falls_back(self) -> None:
        story, characters = self._story()
        generator = FakeGenerator(dialogue={"s1": [{"type": "transition", "nextSceneId": "s3"}]})

        filled = await fill_dialogue(story, characters, generator)

        assert filled.scenes["s1"].dialogue == [
            TextLine(text="Mira arrives at the station."),
            Transition(next_scene_id="s2"),
        ]

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self) -> None:
        story, characters = self._story()
        generator = FakeGenerator(delay={"s3": 1.0})
        config = EngineConfig(generation=GenerationConfig(max_concurrency=3, dialogue_timeout=0.05))

        filled = await fill_dialogue(story, characters, generator, config=config)

        assert filled.scenes["s3"].dialogue == [TextLine(text="They leave."), EndStory()]
        assert filled.scenes["s1"].dialogue[0] == TextLine(text="Lines for s1")

    @pytest.mark.asyncio
    async def test_scene_without_description_falls_back_to_name(self) -> None:
        story = Story(
            id="s",
            name="S",
            scenes={"a": Scene(id="a", name="Quiet room", dialogue=[EndStory()])},
            start_scene_id="a",
        )
        generator = FakeGenerator(dialogue={"a": ValueError("nope")})

        filled = await fill_dialogue(story, {}, generator)

        assert filled.scenes["a"].dialogue == [TextLine(text="Quiet room"), EndStory()]


@pytest.mark.asyncio
async def test_plan_story_end_to_end() -> None:
    story, characters = await plan_story(FakeGenerator(), "A train journey", name="Trip")

    assert story.start_scene_id == "s1"
    assert set(characters) == {"mira", "tom"}
    assert all(scene.dialogue[0].text.startswith("Lines for") for scene in story.scenes.values())


@pytest.mark.asyncio
async def test_plan_story_without_dialogue() -> None:
    generator = FakeGenerator()
    story, _ = await plan_story(generator, "A train journey", with_dialogue=False)

    assert generator.dialogue_calls == []
    assert story.scenes["s1"].dialogue[0] == TextLine(text="Mira arrives at the station.")


class TestGenerateAndSplice:
    STRUCTURE: dict[str, Any] = {
        "scenes": [{"id": "n1", "name": "Detour", "characterIds": ["tom"]}],
        "connections": {"sourceSceneConnection": {"type": "transition", "nextSceneId": "n1"}},
    }

    @pytest.mark.asyncio
    async def test_splices_generated_structure(self, branching_story: Story, hero: Character) -> None:
        generator = FakeGenerator(structure=self.STRUCTURE)

        result = await generate_and_splice(
            generator, branching_story, "c", {"hero": hero}, "add a detour"
        )

        (new_id,) = [sid for sid in result.scenes if sid not in branching_story.scenes]
        assert result.scenes["c"].outcome == Transition(next_scene_id=new_id)
        assert result.scenes[new_id].characters == []

    @pytest.mark.asyncio
    async def test_missing_attachment_skips_generation(self, branching_story: Story) -> None:
        generator = FakeGenerator(structure=self.STRUCTURE)

        result = await generate_and_splice(generator, branching_story, "zzz", {}, "x")

        assert result is branching_story
        assert generator.structure_calls == 0

    @pytest.mark.asyncio
    async def test_bad_structure_raises(self, branching_story: Story) -> None:
        generator = FakeGenerator(structure={"scenes": []})

        with pytest.raises(GenerationShapeError):
            await generate_and_splice(generator, branching_story, "c", {}, "x")
