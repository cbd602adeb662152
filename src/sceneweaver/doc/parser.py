"""Doc-format text to Project.

The parser is permissive: it never raises on content. Lines it does not
recognize, and blank lines, are dropped, so a hand-edited document
degrades to a partially populated project instead of failing.

Values the document cannot express are taken from a prior snapshot of
the project, matched by id: story variables and start scene, scene
canvas positions, and character sprite URLs, default sprite and gender.

Each line is stripped and tried against the rules below, top to bottom;
the first match wins:

1. Section markers: ``# PROJECT:``, ``## CHARACTERS``, ``# STORY:``,
   ``## SCENE:``, and the ``---`` rule. These switch state and open
   records.
2. Inside the characters block: character bullets and their
   ``Appearance:``/``Style:``/``Sprites:`` lines.
3. Scene metadata (``BACKGROUND:``, ``DESCRIPTION:``), unless reading
   scene characters.
4. ``SCENE CHARACTERS:``, entering the scene-characters state.
5. In that state, placement lines. The first line that is not a
   placement leaves the state and falls through to the dialogue rules.
6. Dialogue rules, in order: transition, end marker, choice option,
   image, video, narrator, character line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

from sceneweaver.config import AssetConfig, EngineConfig
from sceneweaver.models.project import (
    DEFAULT_SPRITE_ID,
    Character,
    ChoiceLine,
    ChoiceOption,
    EndStory,
    ImageLine,
    LayoutPosition,
    Project,
    Scene,
    SceneCharacter,
    Sprite,
    Story,
    TextLine,
    Transition,
    VideoLine,
)
from sceneweaver.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from sceneweaver.models.project import DialogueItem, ScreenPosition

log = get_logger(__name__)

# Section markers
_PROJECT_RE = re.compile(r"^# PROJECT:\s*(.*?)\s*\(id: ([^)]*)\)$")
_STORY_RE = re.compile(r"^# STORY:\s*(.*?)\s*\(id: ([^)]*)\)$")
_SCENE_RE = re.compile(r"^## SCENE:\s*(.*?)\s*\(id: ([^)]*)\)$")
_CHARACTERS_MARKER = "## CHARACTERS"
_SEPARATOR = "---"

# Characters block
_CHARACTER_RE = re.compile(r"^- (.*) \(id: ([\w.-]*)\)$")
_APPEARANCE_RE = re.compile(r"^Appearance:\s?(.*)$")
_STYLE_RE = re.compile(r"^Style:\s?(.*)$")
_SPRITES_RE = re.compile(r"^Sprites:\s?(.*)$")

# Scene metadata
_BACKGROUND_RE = re.compile(r"^BACKGROUND:\s?(.*)$")
_DESCRIPTION_RE = re.compile(r"^DESCRIPTION:\s?(.*)$")
_SCENE_CHARACTERS_MARKERS = frozenset({"SCENE CHARACTERS:", "CHARACTERS:"})
_PLACEMENT_RE = re.compile(r"^- ([\w.-]+)(?: as ([\w.-]+))? at (left|center|right)$")

# Dialogue
_STORY_SUFFIX = r"(?:\s+\(story:\s*([^)]*)\))?"
_TRANSITION_RE = re.compile(rf"^->\s*(.*?){_STORY_SUFFIX}$")
_END_MARKER = "--- END ---"
_CHOICE_RE = re.compile(rf'^- "(.*)" ->\s*(.*?){_STORY_SUFFIX}$')
_IMAGE_RE = re.compile(r"^!\[Image\]\((.*)\)$")
_VIDEO_RE = re.compile(r"^!\[Video\]\((.*)\)$")
_NARRATOR_RE = re.compile(r"^>\s?(.*)$")
_CHARACTER_LINE_RE = re.compile(r"^([\w.-]+)(?:\s?\(([^)]*)\))?:\s?(.*)$")


class ParserState(Enum):
    DEFAULT = auto()
    PROJECT_CHARACTERS = auto()
    SCENE_CHARACTERS = auto()


@dataclass
class _CharacterDraft:
    id: str
    name: str
    appearance: str = ""
    talking_style: str = ""
    sprites: list[Sprite] = field(default_factory=list)
    default_sprite_id: str = DEFAULT_SPRITE_ID
    gender: str | None = None

    def build(self) -> Character:
        return Character.model_validate(
            {
                "id": self.id,
                "name": self.name,
                "appearance": self.appearance,
                "talking_style": self.talking_style,
                "sprites": self.sprites,
                "default_sprite_id": self.default_sprite_id,
                "gender": self.gender,
            }
        )


@dataclass
class _PlacementDraft:
    character_id: str
    sprite_id: str | None
    position: ScreenPosition


@dataclass
class _SceneDraft:
    id: str
    name: str
    position: LayoutPosition
    description: str | None = None
    background: str = ""
    placements: list[_PlacementDraft] = field(default_factory=list)
    dialogue: list[DialogueItem] = field(default_factory=list)

    def build(self, default_sprites: dict[str, str]) -> Scene:
        return Scene(
            id=self.id,
            name=self.name,
            description=self.description,
            background=self.background,
            characters=[
                SceneCharacter(
                    character_id=p.character_id,
                    sprite_id=p.sprite_id
                    or default_sprites.get(p.character_id, DEFAULT_SPRITE_ID),
                    position=p.position,
                )
                for p in self.placements
            ],
            dialogue=self.dialogue,
            position=self.position,
        )


@dataclass
class _StoryDraft:
    id: str
    name: str
    prior: Story | None
    scenes: dict[str, _SceneDraft] = field(default_factory=dict)

    def build(self, default_sprites: dict[str, str]) -> Story:
        scenes = {scene_id: draft.build(default_sprites) for scene_id, draft in self.scenes.items()}
        start = self.prior.start_scene_id if self.prior else ""
        if start not in scenes:
            start = next(iter(scenes), "")
        return Story(
            id=self.id,
            name=self.name,
            scenes=scenes,
            start_scene_id=start,
            variables=dict(self.prior.variables) if self.prior else {},
        )


class DocParser:
    """Single forward pass over a Doc-format document.

    A parser instance reads one document; use :func:`parse_doc`.
    """

    def __init__(self, prior: Project, assets: AssetConfig) -> None:
        self.prior = prior
        self.assets = assets
        self.state = ParserState.DEFAULT
        self.project_id = prior.id
        self.project_name = prior.name
        self.characters: dict[str, _CharacterDraft] = {}
        self.has_characters_block = False
        self.stories: dict[str, _StoryDraft] = {}
        self.story: _StoryDraft | None = None
        self.scene: _SceneDraft | None = None
        self.character: _CharacterDraft | None = None
        self.skipped = 0

    def feed(self, raw_line: str) -> None:
        line = raw_line.strip()
        if not line or line.startswith("//"):
            return
        if not self._feed(line):
            self.skipped += 1

    def _feed(self, line: str) -> bool:
        """Apply the first matching rule. Returns False if nothing matched."""
        if self._section_marker(line):
            return True

        if self.state is ParserState.PROJECT_CHARACTERS:
            return self._character_block_line(line)

        scene = self.scene
        if scene is None:
            return False

        if self.state is not ParserState.SCENE_CHARACTERS and _scene_metadata(scene, line):
            return True

        if line in _SCENE_CHARACTERS_MARKERS:
            self.state = ParserState.SCENE_CHARACTERS
            scene.placements = []
            return True

        if self.state is ParserState.SCENE_CHARACTERS:
            match = _PLACEMENT_RE.match(line)
            if match:
                character_id, sprite_id, position = match.groups()
                scene.placements.append(_PlacementDraft(character_id, sprite_id, position))
                return True
            self.state = ParserState.DEFAULT

        for pattern, handler in _DIALOGUE_RULES:
            match = pattern.match(line)
            if match:
                handler(scene, match)
                return True
        return False

    # -- rule 1: section markers ------------------------------------------

    def _section_marker(self, line: str) -> bool:
        if line == _CHARACTERS_MARKER:
            self.state = ParserState.PROJECT_CHARACTERS
            self.characters = {}
            self.has_characters_block = True
            self.character = None
            self.story = None
            self.scene = None
            return True

        if line == _SEPARATOR:
            self.state = ParserState.DEFAULT
            self.scene = None
            return True

        if match := _PROJECT_RE.match(line):
            self.project_name, self.project_id = match.group(1), match.group(2).strip()
            self.state = ParserState.DEFAULT
            return True

        if match := _STORY_RE.match(line):
            name, story_id = match.group(1), match.group(2).strip()
            if not story_id:
                return False
            self.story = _StoryDraft(story_id, name, self.prior.stories.get(story_id))
            self.stories[story_id] = self.story
            self.scene = None
            self.state = ParserState.DEFAULT
            return True

        if match := _SCENE_RE.match(line):
            self.state = ParserState.DEFAULT
            self.scene = None
            name, scene_id = match.group(1), match.group(2).strip()
            story = self.story
            if story is None or not scene_id:
                return False
            self.scene = _SceneDraft(scene_id, name, _prior_position(story, scene_id))
            story.scenes[scene_id] = self.scene
            return True

        return False

    # -- rule 2: characters block -----------------------------------------

    def _character_block_line(self, line: str) -> bool:
        if match := _CHARACTER_RE.match(line):
            name, character_id = match.group(1).strip(), match.group(2).strip()
            if not character_id:
                self.character = None
                return False
            self.character = self._open_character(character_id, name)
            self.characters[character_id] = self.character
            return True

        if self.character is None:
            return False

        if match := _APPEARANCE_RE.match(line):
            self.character.appearance = match.group(1).strip()
        elif match := _STYLE_RE.match(line):
            self.character.talking_style = match.group(1).strip()
        elif match := _SPRITES_RE.match(line):
            self._set_sprites(self.character, match.group(1))
        else:
            return False
        return True

    def _open_character(self, character_id: str, name: str) -> _CharacterDraft:
        known = self.prior.characters.get(character_id)
        if known is not None:
            return _CharacterDraft(
                id=character_id,
                name=name,
                appearance=known.appearance,
                talking_style=known.talking_style,
                sprites=list(known.sprites),
                default_sprite_id=known.default_sprite_id,
                gender=known.gender,
            )
        sprite_id = self.assets.default_sprite_id
        return _CharacterDraft(
            id=character_id,
            name=name,
            sprites=[Sprite(id=sprite_id, url=self.assets.sprite_url(character_id))],
            default_sprite_id=sprite_id,
        )

    def _set_sprites(self, draft: _CharacterDraft, listing: str) -> None:
        known = {sprite.id: sprite for sprite in draft.sprites}
        ids = [part.strip() for part in listing.split(",") if part.strip()]
        draft.sprites = [
            known.get(sprite_id) or Sprite(id=sprite_id, url=self.assets.sprite_url(draft.id))
            for sprite_id in ids
        ]
        if ids and draft.default_sprite_id not in ids:
            draft.default_sprite_id = ids[0]

    # -- result -----------------------------------------------------------

    def result(self) -> Project:
        if self.has_characters_block:
            characters = {cid: draft.build() for cid, draft in self.characters.items()}
        else:
            characters = dict(self.prior.characters)
        default_sprites = {cid: c.default_sprite_id for cid, c in characters.items()}
        stories = {sid: draft.build(default_sprites) for sid, draft in self.stories.items()}
        return self.prior.model_copy(
            update={
                "id": self.project_id or self.prior.id,
                "name": self.project_name,
                "characters": characters,
                "stories": stories,
            }
        )


def _story_id(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _prior_position(story: _StoryDraft, scene_id: str) -> LayoutPosition:
    if story.prior is not None and scene_id in story.prior.scenes:
        return story.prior.scenes[scene_id].position
    return LayoutPosition()


# -- rule 3: scene metadata -----------------------------------------------


def _scene_metadata(scene: _SceneDraft, line: str) -> bool:
    if match := _BACKGROUND_RE.match(line):
        scene.background = match.group(1).strip()
        return True
    if match := _DESCRIPTION_RE.match(line):
        scene.description = match.group(1).strip() or None
        return True
    return False


# -- rule 6: dialogue -----------------------------------------------------


def _on_transition(scene: _SceneDraft, match: re.Match[str]) -> None:
    target, story_id = match.groups()
    scene.dialogue.append(
        Transition(next_scene_id=target.strip(), next_story_id=_story_id(story_id))
    )


def _on_end(scene: _SceneDraft, match: re.Match[str]) -> None:
    scene.dialogue.append(EndStory())


def _on_choice(scene: _SceneDraft, match: re.Match[str]) -> None:
    text, target, story_id = match.groups()
    option = ChoiceOption(text=text, next_scene_id=target.strip(), next_story_id=_story_id(story_id))
    dialogue = scene.dialogue
    if dialogue and isinstance(dialogue[-1], ChoiceLine):
        dialogue[-1] = ChoiceLine(choices=[*dialogue[-1].choices, option])
    else:
        dialogue.append(ChoiceLine(choices=[option]))


def _on_image(scene: _SceneDraft, match: re.Match[str]) -> None:
    scene.dialogue.append(ImageLine(url=match.group(1).strip()))


def _on_video(scene: _SceneDraft, match: re.Match[str]) -> None:
    scene.dialogue.append(VideoLine(url=match.group(1).strip()))


def _on_narrator(scene: _SceneDraft, match: re.Match[str]) -> None:
    scene.dialogue.append(TextLine(character_id=None, text=match.group(1).strip()))


def _on_character_line(scene: _SceneDraft, match: re.Match[str]) -> None:
    character_id, sprite_id, text = match.groups()
    scene.dialogue.append(
        TextLine(
            character_id=character_id,
            sprite_id=(sprite_id or "").strip() or None,
            text=text.strip(),
        )
    )


_DIALOGUE_RULES: list[tuple[re.Pattern[str], Callable[[_SceneDraft, re.Match[str]], None]]] = [
    (_TRANSITION_RE, _on_transition),
    (re.compile(rf"^{re.escape(_END_MARKER)}$"), _on_end),
    (_CHOICE_RE, _on_choice),
    (_IMAGE_RE, _on_image),
    (_VIDEO_RE, _on_video),
    (_NARRATOR_RE, _on_narrator),
    (_CHARACTER_LINE_RE, _on_character_line),
]


def parse_doc(text: str, prior: Project, *, config: EngineConfig | None = None) -> Project:
    """Build a project from Doc-format ``text``.

    Never raises on document content. Stories that do not appear in the
    document are not part of the result.

    Args:
        text: The document.
        prior: Snapshot supplying values the document cannot express.
        config: Engine config (placeholder sprite settings).

    Returns:
        A new project; ``prior`` is not modified.
    """
    config = config or EngineConfig()
    parser = DocParser(prior, config.assets)
    for line in text.splitlines():
        parser.feed(line)
    project = parser.result()
    log.debug(
        "doc_parsed",
        project_id=project.id,
        stories=len(project.stories),
        scenes=sum(len(story.scenes) for story in project.stories.values()),
        skipped_lines=parser.skipped,
    )
    return project
