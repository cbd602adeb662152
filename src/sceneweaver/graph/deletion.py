"""Scene deletion with reference nulling.

Deleting a scene does not cascade: scenes that pointed at it keep their
outcome item, with the target blanked to ``""``, so the editor can show
them as unlinked and the author can re-link them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sceneweaver.graph.errors import LastSceneError, SceneNotFoundError
from sceneweaver.models.project import ChoiceLine, Transition
from sceneweaver.observability.logging import get_logger

if TYPE_CHECKING:
    from sceneweaver.models.project import DialogueItem, Scene, Story

log = get_logger(__name__)


def delete_scene(story: Story, scene_id: str) -> Story:
    """Return a copy of ``story`` without ``scene_id``.

    Every intra-story transition or choice option that targeted the
    deleted scene gets an empty target. If the deleted scene was the
    start scene, the first remaining scene (map order) becomes the start.

    Cross-story targets (``next_story_id`` set) are left untouched even
    when their scene id matches.

    Raises:
        SceneNotFoundError: If the story has no such scene.
        LastSceneError: If it is the story's only scene.
    """
    if scene_id not in story.scenes:
        raise SceneNotFoundError(scene_id, list(story.scenes), context=f"story '{story.id}'")
    if len(story.scenes) <= 1:
        raise LastSceneError(story_id=story.id, scene_id=scene_id)

    scenes: dict[str, Scene] = {}
    nulled = 0
    for other_id, scene in story.scenes.items():
        if other_id == scene_id:
            continue
        dialogue = [_null_target(item, scene_id) for item in scene.dialogue]
        if dialogue != scene.dialogue:
            nulled += 1
            scene = scene.model_copy(update={"dialogue": dialogue})
        scenes[other_id] = scene

    start_scene_id = story.start_scene_id
    if start_scene_id == scene_id:
        start_scene_id = next(iter(scenes))

    log.info(
        "scene_deleted",
        story_id=story.id,
        scene_id=scene_id,
        scenes_relinked=nulled,
        start_scene_id=start_scene_id,
    )
    return story.with_scenes(scenes, start_scene_id=start_scene_id)


def _null_target(item: DialogueItem, scene_id: str) -> DialogueItem:
    match item:
        case Transition(next_scene_id=target, next_story_id=None) if target == scene_id:
            return item.model_copy(update={"next_scene_id": ""})
        case ChoiceLine():
            choices = [
                choice.model_copy(update={"next_scene_id": ""})
                if choice.next_scene_id == scene_id and choice.next_story_id is None
                else choice
                for choice in item.choices
            ]
            if choices == item.choices:
                return item
            return item.model_copy(update={"choices": choices})
        case _:
            return item
