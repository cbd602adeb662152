"""Pydantic models for the scene graph and for generation proposals.

The graph models (Project, Story, Scene, dialogue items) are frozen
values. The proposal models describe what the content-generation
service hands back before it is validated and merged into a story.
"""

from sceneweaver.models.plan import (
    FragmentConnections,
    FragmentOutcome,
    FragmentScene,
    InternalConnection,
    PlanCharacter,
    PlanChoice,
    PlanOutcome,
    PlanScene,
    SceneFragment,
    StoryPlan,
    StoryShape,
    StructureType,
)
from sceneweaver.models.project import (
    CHARACTER_ID_PATTERN,
    DEFAULT_SPRITE_ID,
    OUTCOME_TYPES,
    AIPromptConfig,
    AIPromptLine,
    Character,
    CharacterId,
    ChoiceLine,
    ChoiceOption,
    DialogueItem,
    DialogueLength,
    EndStory,
    ImageLine,
    LayoutPosition,
    Outcome,
    Project,
    Scene,
    SceneCharacter,
    SetVariableLine,
    Sprite,
    Story,
    TextLine,
    Transition,
    VideoLine,
    is_outcome,
)

__all__ = [
    "CHARACTER_ID_PATTERN",
    "DEFAULT_SPRITE_ID",
    "OUTCOME_TYPES",
    "AIPromptConfig",
    "AIPromptLine",
    "Character",
    "CharacterId",
    "ChoiceLine",
    "ChoiceOption",
    "DialogueItem",
    "DialogueLength",
    "EndStory",
    "FragmentConnections",
    "FragmentOutcome",
    "FragmentScene",
    "ImageLine",
    "InternalConnection",
    "LayoutPosition",
    "Outcome",
    "PlanCharacter",
    "PlanChoice",
    "PlanOutcome",
    "PlanScene",
    "Project",
    "Scene",
    "SceneCharacter",
    "SceneFragment",
    "SetVariableLine",
    "Sprite",
    "Story",
    "StoryPlan",
    "StoryShape",
    "StructureType",
    "TextLine",
    "Transition",
    "VideoLine",
    "is_outcome",
]
