"""Scene-graph data model.

A Project owns Characters and Stories; a Story owns Scenes keyed by id;
a Scene owns an ordered list of dialogue items, at most one of which is
an outcome (choice, transition or end marker).

All models are frozen. Edits produce new values with ``model_copy``,
so a snapshot handed to a reader is never changed underneath it.

JSON uses camelCase field names (``startSceneId``, ``nextSceneId``);
Python attributes are snake_case. Both spellings are accepted on input.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

DEFAULT_SPRITE_ID = "normal"

ScreenPosition = Literal["left", "center", "right"]
DialogueLength = Literal["Short", "Medium", "Long"]
Gender = Literal["male", "female", "trans", "neutral"]
VariableValue = int | float | str | bool

# Character ids appear bare on Doc speaker and placement lines.
CHARACTER_ID_PATTERN = r"^[\w.-]+$"
CharacterId = Annotated[str, StringConstraints(pattern=CHARACTER_ID_PATTERN)]


class GraphModel(BaseModel):
    """Base for all scene-graph models."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Sprite(GraphModel):
    """A named sprite variant of a character."""

    id: str = Field(min_length=1)
    url: str = ""


class Character(GraphModel):
    """A character available to every story of a project."""

    id: CharacterId
    name: str
    appearance: str = ""
    talking_style: str = ""
    sprites: list[Sprite] = Field(default_factory=list)
    default_sprite_id: str = DEFAULT_SPRITE_ID
    gender: Gender | None = None

    def sprite_ids(self) -> list[str]:
        """Return sprite ids in declaration order."""
        return [sprite.id for sprite in self.sprites]


class SceneCharacter(GraphModel):
    """A character placed on stage in a scene."""

    character_id: CharacterId
    sprite_id: str = DEFAULT_SPRITE_ID
    position: ScreenPosition = "center"


class LayoutPosition(GraphModel):
    """Editor canvas position. Opaque to the engine."""

    x: float = 100
    y: float = 100


# ---------------------------------------------------------------------------
# Dialogue items
# ---------------------------------------------------------------------------


class TextLine(GraphModel):
    """A line of text. ``character_id`` is None for the narrator."""

    type: Literal["text"] = "text"
    character_id: CharacterId | None = None
    sprite_id: str | None = None
    text: str


class ImageLine(GraphModel):
    type: Literal["image"] = "image"
    url: str


class VideoLine(GraphModel):
    type: Literal["video"] = "video"
    url: str


class ChoiceOption(GraphModel):
    """One player option of a choice.

    ``next_story_id`` marks a cross-story jump; it is never checked
    against the project.
    """

    text: str
    next_scene_id: str
    next_story_id: str | None = None


class ChoiceLine(GraphModel):
    type: Literal["choice"] = "choice"
    choices: list[ChoiceOption] = Field(min_length=1)


class Transition(GraphModel):
    type: Literal["transition"] = "transition"
    next_scene_id: str
    next_story_id: str | None = None


class EndStory(GraphModel):
    type: Literal["end_story"] = "end_story"


class AIPromptConfig(GraphModel):
    dialogue_length: DialogueLength = "Medium"
    desired_outcome: Literal["auto", "transition", "choice", "end_story"] = "auto"
    use_continuity: bool = True
    ai_prompt: str = ""


class AIPromptLine(GraphModel):
    """Placeholder asking the generation service to write lines here.

    Not representable in the Doc format.
    """

    type: Literal["ai_prompt"] = "ai_prompt"
    id: str
    config: AIPromptConfig = Field(default_factory=AIPromptConfig)


class SetVariableLine(GraphModel):
    """Mutates a story variable when played. Not representable in the Doc format."""

    type: Literal["set_variable"] = "set_variable"
    variable: str = Field(min_length=1)
    operation: Literal["set", "add", "subtract"] = "set"
    value: VariableValue = 0


DialogueItem = Annotated[
    TextLine
    | ImageLine
    | VideoLine
    | ChoiceLine
    | Transition
    | EndStory
    | AIPromptLine
    | SetVariableLine,
    Field(discriminator="type"),
]

Outcome = ChoiceLine | Transition | EndStory

OUTCOME_TYPES = frozenset({"choice", "transition", "end_story"})


def is_outcome(item: DialogueItem) -> bool:
    """Return True for choice, transition and end-marker items."""
    return item.type in OUTCOME_TYPES


# ---------------------------------------------------------------------------
# Graph nodes
# ---------------------------------------------------------------------------


class Scene(GraphModel):
    """A node of the story graph."""

    id: str = Field(min_length=1)
    name: str
    description: str | None = None
    background: str = ""
    characters: list[SceneCharacter] = Field(default_factory=list)
    dialogue: list[DialogueItem] = Field(default_factory=list)
    position: LayoutPosition = Field(default_factory=LayoutPosition)

    @classmethod
    def empty(
        cls,
        scene_id: str,
        name: str = "New Scene",
        position: LayoutPosition | None = None,
    ) -> Scene:
        """Create a scene whose only item is an end marker.

        The end marker makes a fresh scene linkable-from straight away.
        """
        return cls(
            id=scene_id,
            name=name,
            dialogue=[EndStory()],
            position=position or LayoutPosition(),
        )

    @property
    def outcome_index(self) -> int | None:
        """Index of the first outcome item, or None."""
        for index, item in enumerate(self.dialogue):
            if is_outcome(item):
                return index
        return None

    @property
    def outcome(self) -> Outcome | None:
        for item in self.dialogue:
            if isinstance(item, ChoiceLine | Transition | EndStory):
                return item
        return None

    def with_outcome(self, outcome: Outcome) -> Scene:
        """Return a copy with the outcome slot replaced (or appended)."""
        dialogue = list(self.dialogue)
        index = self.outcome_index
        if index is None:
            dialogue.append(outcome)
        else:
            dialogue[index] = outcome
        return self.model_copy(update={"dialogue": dialogue})

    def target_scene_ids(self) -> list[str]:
        """Intra-story targets of this scene's outcome items, in order."""
        targets: list[str] = []
        for item in self.dialogue:
            match item:
                case Transition(next_story_id=None):
                    targets.append(item.next_scene_id)
                case ChoiceLine():
                    targets.extend(
                        c.next_scene_id for c in item.choices if c.next_story_id is None
                    )
                case _:
                    pass
        return targets


class Story(GraphModel):
    """A graph of scenes with a designated start scene."""

    id: str = Field(min_length=1)
    name: str
    scenes: dict[str, Scene] = Field(default_factory=dict)
    start_scene_id: str = ""
    variables: dict[str, VariableValue] = Field(default_factory=dict)

    def get_scene(self, scene_id: str) -> Scene | None:
        return self.scenes.get(scene_id)

    def with_scenes(self, scenes: dict[str, Scene], **updates: object) -> Story:
        """Return a copy with a new scene map (and optional field updates)."""
        return self.model_copy(update={"scenes": scenes, **updates})


class Project(GraphModel):
    """Top-level container: shared characters and a set of stories."""

    id: str = Field(min_length=1)
    name: str
    characters: dict[str, Character] = Field(default_factory=dict)
    stories: dict[str, Story] = Field(default_factory=dict)

    def get_story(self, story_id: str) -> Story | None:
        return self.stories.get(story_id)
