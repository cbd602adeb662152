"""Reading order of a story's scenes.

Pure functions over a Story; nothing here modifies the graph.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sceneweaver.models.project import Transition

if TYPE_CHECKING:
    from sceneweaver.models.project import Story


def display_order(story: Story) -> list[str]:
    """Order scene ids for presenting a story as a document.

    Algorithm:
        1. Start at ``start_scene_id`` and follow each scene's first
           transition (choices are not followed) while the target is an
           unvisited scene of the story. Stop on a cycle, a missing
           target, or a scene without a transition.
        2. Append every scene not reached by the chain, in map order.

    Returns:
        Every scene id of the story exactly once.
    """
    order: list[str] = []
    visited: set[str] = set()

    current: str | None = story.start_scene_id
    while current and current in story.scenes and current not in visited:
        order.append(current)
        visited.add(current)
        current = _transition_target(story, current)

    order.extend(scene_id for scene_id in story.scenes if scene_id not in visited)
    return order


def _transition_target(story: Story, scene_id: str) -> str | None:
    for item in story.scenes[scene_id].dialogue:
        if isinstance(item, Transition):
            # Cross-story jumps leave this story's chain
            if item.next_story_id is not None:
                return None
            return item.next_scene_id
    return None
