"""Content-generation service boundary.

The engine does not talk to any model provider itself. Callers pass an
object implementing :class:`ContentGenerator`; its methods return raw,
JSON-like proposals that go through the strict shape checks in
:mod:`sceneweaver.generation.planner` before the engine touches them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, Protocol

if TYPE_CHECKING:
    from sceneweaver.models.plan import StoryShape, StructureType
    from sceneweaver.models.project import Character, DialogueLength, Scene

DesiredOutcome = Literal["auto", "transition", "choice", "end_story", "text_only"]


class ContentGenerator(Protocol):
    """Protocol for content-generation services.

    Implementations may be slow or fail; the engine bounds each call
    with a timeout and treats failures per item.
    """

    async def generate_plan(
        self,
        prompt: str,
        length_hint: DialogueLength,
        structure_hint: StoryShape,
    ) -> dict[str, Any]:
        """Propose characters and an ordered scene list for a new story.

        The first scene is the intended start. Outcome targets should
        name scenes of the same plan but are not trusted to.
        """
        ...

    async def generate_dialogue(
        self,
        scene: Scene,
        story_context: list[Scene],
        characters: dict[str, Character],
        length_hint: DialogueLength,
        use_continuity: bool,
        desired_outcome: DesiredOutcome,
        freeform_prompt: str,
    ) -> list[dict[str, Any]]:
        """Write text, image and video lines for one scene.

        Must not return outcome items; the scene keeps its own outcome.
        """
        ...

    async def generate_structure(
        self,
        attachment: Scene,
        story_context: list[Scene],
        characters: dict[str, Character],
        prompt: str,
        structure_type: StructureType,
    ) -> dict[str, Any]:
        """Propose a small group of connected scenes to follow ``attachment``.

        Scenes carry temporary ids; connections say how ``attachment``
        and the new scenes link together.
        """
        ...
