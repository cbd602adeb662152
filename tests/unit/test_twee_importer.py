"""Tests for Twee import."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from sceneweaver.config import AssetConfig, EngineConfig
from sceneweaver.export import TweeExporter, import_twee
from sceneweaver.graph import audit_story
from sceneweaver.models import (
    Character,
    ChoiceLine,
    ChoiceOption,
    EndStory,
    ImageLine,
    LayoutPosition,
    Project,
    Scene,
    SceneCharacter,
    SetVariableLine,
    Story,
    TextLine,
    Transition,
    VideoLine,
)

if TYPE_CHECKING:
    from pathlib import Path


def _by_name(story: Story) -> dict[str, Scene]:
    return {scene.name: scene for scene in story.scenes.values()}


def _twee(*passages: str) -> str:
    return "\n\n".join(passages) + "\n"


class TestRoundTrip:
    def test_exported_story_reads_back(self, project: Project, tmp_path: Path) -> None:
        text = TweeExporter().export(project, tmp_path).read_text()

        story, characters = import_twee(text, project.characters)
        scenes = _by_name(story)
        a, b, c = scenes["a"], scenes["b"], scenes["c"]

        assert story.name == "Night"
        assert story.start_scene_id == a.id
        assert characters == project.characters
        assert a.background == "gate.png"
        assert a.characters == [SceneCharacter(character_id="hero", position="left")]
        assert a.dialogue == [
            TextLine(text="Rain falls."),
            TextLine(character_id="hero", text="We go in."),
            ChoiceLine(
                choices=[
                    ChoiceOption(text="Sneak", next_scene_id=b.id),
                    ChoiceOption(text="Walk in", next_scene_id=c.id),
                ]
            ),
        ]
        assert b.dialogue == [TextLine(text="Quiet."), Transition(next_scene_id=c.id)]
        assert c.dialogue == [TextLine(text="The end."), EndStory()]
        assert not audit_story(story, characters).has_failures

    def test_variables_and_media_read_back(self, tmp_path: Path) -> None:
        scene = Scene(
            id="a",
            name="A",
            dialogue=[
                TextLine(text="Use <<macro>> here"),
                ImageLine(url="i.png"),
                VideoLine(url="v.mp4"),
                SetVariableLine(variable="gold", operation="add", value=2),
                SetVariableLine(variable="name", value="Ann"),
                SetVariableLine(variable="seen", value=True),
                EndStory(),
            ],
        )
        story = Story(
            id="s",
            name="S",
            scenes={"a": scene},
            start_scene_id="a",
            variables={"gold": 3, "title": "Sir", "brave": False},
        )
        text = TweeExporter().export(Project(id="p", name="P", stories={"s": story}), tmp_path)

        imported, _ = import_twee(text.read_text())
        (read_back,) = imported.scenes.values()

        assert imported.variables == {"gold": 3, "title": "Sir", "brave": False}
        assert read_back.dialogue == scene.dialogue


class TestPassages:
    def test_link_syntaxes(self) -> None:
        text = _twee(
            ":: Start\n[[Go->End]]\n[[End<-Back]]\n[[Stay|Start]]",
            ":: End\nDone.",
        )
        story, _ = import_twee(text)
        scenes = _by_name(story)
        outcome = scenes["Start"].dialogue[0]

        assert isinstance(outcome, ChoiceLine)
        assert [(c.text, c.next_scene_id) for c in outcome.choices] == [
            ("Go", scenes["End"].id),
            ("Back", scenes["End"].id),
            ("Stay", scenes["Start"].id),
        ]

    def test_bare_link_is_transition(self) -> None:
        story, _ = import_twee(_twee(":: One\n[[Two]]", ":: Two\nBye."))
        scenes = _by_name(story)
        assert scenes["One"].dialogue == [Transition(next_scene_id=scenes["Two"].id)]

    def test_unknown_target_is_unlinked(self) -> None:
        story, _ = import_twee(_twee(":: One\n[[Continue->Nowhere]]"))
        assert _by_name(story)["One"].dialogue == [Transition(next_scene_id="")]

    def test_italic_after_links_is_unlinked_option(self) -> None:
        story, _ = import_twee(_twee(":: One\n[[Stay->One]]\n//Elsewhere//"))
        outcome = _by_name(story)["One"].outcome

        assert isinstance(outcome, ChoiceLine)
        assert [c.next_scene_id for c in outcome.choices] == [story.start_scene_id, ""]

    def test_lone_italic_continue_is_unlinked_transition(self) -> None:
        story, _ = import_twee(_twee(":: One\n//Continue//"))
        assert _by_name(story)["One"].dialogue == [Transition(next_scene_id="")]

    def test_italic_narration_is_text(self) -> None:
        story, _ = import_twee(_twee(":: One\n//She whispers.//"))
        assert _by_name(story)["One"].dialogue == [
            TextLine(text="//She whispers.//"),
            EndStory(),
        ]

    def test_separate_link_groups_share_one_outcome(self) -> None:
        story, _ = import_twee(_twee(":: One\n[[A->One]]\nSome text.\n[[B->One]]"))
        dialogue = _by_name(story)["One"].dialogue

        assert [item.type for item in dialogue] == ["choice", "text"]
        assert [c.text for c in dialogue[0].choices] == ["A", "B"]

    def test_first_image_is_background(self) -> None:
        story, _ = import_twee(_twee(":: One\n[img[bg.png]]\n[img[later.png]]"))
        scene = _by_name(story)["One"]

        assert scene.background == "bg.png"
        assert scene.dialogue[0] == ImageLine(url="later.png")

    def test_passage_without_outcome_ends(self) -> None:
        story, _ = import_twee(_twee(":: One\nJust text."))
        assert _by_name(story)["One"].outcome == EndStory()

    def test_tags_and_metadata_stripped_from_names(self) -> None:
        story, _ = import_twee(_twee(':: Intro [start dark] {"position":"10,10"}\nHi.'))
        assert list(_by_name(story)) == ["Intro"]

    def test_grid_layout(self) -> None:
        story, _ = import_twee(_twee(":: A\nx", ":: B\nx", ":: C\nx", ":: D\nx"))
        positions = [scene.position for scene in story.scenes.values()]

        assert positions == [
            LayoutPosition(x=0, y=0),
            LayoutPosition(x=350, y=0),
            LayoutPosition(x=0, y=200),
            LayoutPosition(x=350, y=200),
        ]

    def test_no_passages(self) -> None:
        with pytest.raises(ValueError, match="No story passages"):
            import_twee(":: StoryTitle\nEmpty\n")


class TestStoryMetadata:
    def test_start_from_tag_without_story_data(self) -> None:
        story, _ = import_twee(_twee(":: First\nx", ":: Second [start]\ny"))
        assert story.scenes[story.start_scene_id].name == "Second"

    def test_start_defaults_to_first_passage(self) -> None:
        story, _ = import_twee(_twee(":: First\nx", ":: Second\ny"))
        assert story.scenes[story.start_scene_id].name == "First"

    def test_default_name(self) -> None:
        story, _ = import_twee(_twee(":: Only\nx"))
        assert story.name == "Imported Story"

    def test_invalid_story_data_ignored(self) -> None:
        story, _ = import_twee(_twee(":: StoryData\n{not json", ":: Only\nx"))
        assert story.scenes[story.start_scene_id].name == "Only"

    def test_story_id(self) -> None:
        story, _ = import_twee(_twee(":: Only\nx"), story_id="s9")
        assert story.id == "s9"


class TestSpeakers:
    def test_unknown_speaker_becomes_character(self) -> None:
        config = EngineConfig(assets=AssetConfig(sprite_url_template="sprites/{character_id}.png"))
        story, characters = import_twee(_twee(":: One\n''Mira:'' Hello."), config=config)
        (mira,) = characters.values()
        scene = _by_name(story)["One"]

        assert mira.name == "Mira"
        assert mira.id.startswith("char_")
        assert [(s.id, s.url) for s in mira.sprites] == [("normal", f"sprites/{mira.id}.png")]
        assert scene.dialogue[0] == TextLine(character_id=mira.id, text="Hello.")
        assert scene.characters == [SceneCharacter(character_id=mira.id, position="left")]

    def test_speaker_name_case_insensitive(self, hero: Character) -> None:
        story, characters = import_twee(_twee(":: One\n''HERO:'' Hi."), {"hero": hero})

        assert characters == {"hero": hero}
        assert _by_name(story)["One"].dialogue[0] == TextLine(character_id="hero", text="Hi.")

    def test_plain_speaker_only_for_known_names(self, hero: Character) -> None:
        text = _twee(":: One\nHero: Hi.\nNote: the door is locked.")
        story, characters = import_twee(text, {"hero": hero})
        dialogue = _by_name(story)["One"].dialogue

        assert dialogue[0] == TextLine(character_id="hero", text="Hi.")
        assert dialogue[1] == TextLine(text="Note: the door is locked.")
        assert list(characters) == ["hero"]

    def test_narrator_speaker(self) -> None:
        story, characters = import_twee(_twee(":: One\n''Narrator:'' Night falls."))

        assert characters == {}
        assert _by_name(story)["One"].dialogue[0] == TextLine(text="Night falls.")

    def test_speakers_placed_on_stage(self, hero: Character) -> None:
        text = _twee(":: One\n''Hero:'' A.\n''Mira:'' B.\n''Hero:'' C.")
        story, characters = import_twee(text, {"hero": hero})
        placements = _by_name(story)["One"].characters

        mira_id = next(cid for cid in characters if cid != "hero")
        assert [(p.character_id, p.position) for p in placements] == [
            ("hero", "left"),
            (mira_id, "right"),
        ]
