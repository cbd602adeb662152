"""Merge a generated scene fragment into a story.

A fragment arrives keyed by temporary ids chosen by the generation
service. Splicing mints a fresh id for each temporary one, rewrites
every target through that table, installs the new scenes next to the
attachment scene on the canvas, and points the attachment scene's
outcome into the fragment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sceneweaver.config import EngineConfig
from sceneweaver.graph.ids import mint_id_map
from sceneweaver.models.project import (
    ChoiceLine,
    ChoiceOption,
    EndStory,
    LayoutPosition,
    Scene,
    SceneCharacter,
    Transition,
)
from sceneweaver.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Collection

    from sceneweaver.models.plan import FragmentOutcome, FragmentScene, SceneFragment
    from sceneweaver.models.project import DialogueItem, Story

log = get_logger(__name__)


class _Remapper:
    """Rewrites fragment-local targets to story scene ids.

    Temporary ids map through the minted table. A target that already
    names a scene of the story is kept (fragments may link back). Any
    other target becomes ``""``, the same unlinked marker the deletion
    cascade leaves behind.
    """

    def __init__(self, mapping: dict[str, str], existing: Collection[str]) -> None:
        self.mapping = mapping
        self.existing = existing

    def target(self, scene_id: str | None) -> str:
        if not scene_id:
            return ""
        if scene_id in self.mapping:
            return self.mapping[scene_id]
        if scene_id in self.existing:
            return scene_id
        return ""

    def outcome(self, outcome: FragmentOutcome) -> Transition | ChoiceLine:
        if outcome.type == "transition":
            return Transition(next_scene_id=self.target(outcome.next_scene_id))
        return ChoiceLine(
            choices=[
                ChoiceOption(text=choice.text, next_scene_id=self.target(choice.next_scene_id))
                for choice in outcome.choices or []
            ]
        )

    def item(self, item: DialogueItem) -> DialogueItem:
        match item:
            case Transition(next_story_id=None):
                return item.model_copy(update={"next_scene_id": self.target(item.next_scene_id)})
            case ChoiceLine():
                choices = [
                    c.model_copy(update={"next_scene_id": self.target(c.next_scene_id)})
                    if c.next_story_id is None
                    else c
                    for c in item.choices
                ]
                return item.model_copy(update={"choices": choices})
            case _:
                return item


def splice(
    story: Story,
    attachment_scene_id: str,
    fragment: SceneFragment,
    *,
    known_characters: Collection[str] | None = None,
    config: EngineConfig | None = None,
) -> Story:
    """Return a copy of ``story`` with ``fragment`` attached after a scene.

    Steps:
        1. Mint one fresh scene id per fragment id, disjoint from the story.
        2. Materialize fragment scenes under their fresh ids, fanned out
           on the canvas from the attachment scene. Each new scene ends
           with an end marker.
        3. Rewrite targets inside fragment scenes through the id table.
        4. Replace the attachment scene's outcome with the fragment's
           source connection (appended if it has no outcome).
        5. For each internal connection, replace the source scene's end
           marker (appended if absent) with the connection's outcome.

    Args:
        story: Story to extend.
        attachment_scene_id: Scene whose outcome will lead into the fragment.
        fragment: Generated scenes and connections, keyed by temporary ids.
        known_characters: If given, scene character ids outside this set
            are dropped from the new scenes.
        config: Layout and asset settings.

    Returns:
        The new story, or ``story`` itself when the attachment scene does
        not exist (nothing is applied).
    """
    config = config or EngineConfig()
    attachment = story.scenes.get(attachment_scene_id)
    if attachment is None:
        log.warning(
            "splice_rejected",
            story_id=story.id,
            attachment_scene_id=attachment_scene_id,
            reason="attachment scene not found",
        )
        return story

    mapping = mint_id_map([scene.id for scene in fragment.scenes], story.scenes)
    remap = _Remapper(mapping, story.scenes)

    scenes = dict(story.scenes)
    for index, fragment_scene in enumerate(fragment.scenes):
        fresh_id = mapping[fragment_scene.id]
        scenes[fresh_id] = _materialize(
            fragment_scene,
            fresh_id,
            _fan_position(attachment.position, index, config),
            remap,
            known_characters,
            config,
        )

    connections = fragment.connections
    scenes[attachment_scene_id] = attachment.with_outcome(
        remap.outcome(connections.source_scene_connection)
    )

    for connection in connections.internal_connections:
        source_id = mapping.get(connection.source_scene_id)
        if source_id is None:
            log.debug(
                "splice_connection_skipped",
                source_scene_id=connection.source_scene_id,
                reason="unknown source scene",
            )
            continue
        scenes[source_id] = _replace_end_marker(scenes[source_id], remap.outcome(connection.outcome))

    log.info(
        "fragment_spliced",
        story_id=story.id,
        attachment_scene_id=attachment_scene_id,
        new_scenes=len(mapping),
        internal_connections=len(connections.internal_connections),
    )
    return story.with_scenes(scenes)


def _materialize(
    fragment_scene: FragmentScene,
    scene_id: str,
    position: LayoutPosition,
    remap: _Remapper,
    known_characters: Collection[str] | None,
    config: EngineConfig,
) -> Scene:
    character_ids = [
        cid
        for cid in fragment_scene.character_ids
        if known_characters is None or cid in known_characters
    ]
    dialogue: list[DialogueItem] = [remap.item(item) for item in fragment_scene.dialogue]
    dialogue.append(EndStory())
    return Scene(
        id=scene_id,
        name=fragment_scene.name,
        description=fragment_scene.description or None,
        background=config.assets.background_url(scene_id),
        characters=[
            SceneCharacter(
                character_id=cid,
                sprite_id=config.assets.default_sprite_id,
                position="left" if n == 0 else "right",
            )
            for n, cid in enumerate(character_ids)
        ],
        dialogue=dialogue,
        position=position,
    )


def _fan_position(origin: LayoutPosition, index: int, config: EngineConfig) -> LayoutPosition:
    layout = config.layout
    return LayoutPosition(
        x=origin.x + layout.splice_offset_x + index * layout.splice_step_x,
        y=origin.y + index * layout.splice_step_y + layout.splice_offset_y,
    )


def _replace_end_marker(scene: Scene, outcome: Transition | ChoiceLine) -> Scene:
    dialogue = list(scene.dialogue)
    index = next((i for i, item in enumerate(dialogue) if isinstance(item, EndStory)), None)
    if index is None:
        dialogue.append(outcome)
    else:
        dialogue[index] = outcome
    return scene.model_copy(update={"dialogue": dialogue})
