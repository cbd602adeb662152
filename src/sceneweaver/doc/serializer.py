"""Project to Doc-format text.

The Doc format is a line-oriented, human-editable rendering of a
project: a characters block, then one section per story with one block
per scene. ``parse_doc`` in :mod:`sceneweaver.doc.parser` reads it back.

Layout::

    # PROJECT: <name> (id: <id>)

    ## CHARACTERS
    - <name> (id: <id>)
      Appearance: <text>
      Style: <text>
      Sprites: <id>, <id>

    ---

    # STORY: <name> (id: <id>)

    ## SCENE: <name> (id: <id>)
    DESCRIPTION: <text>
    BACKGROUND: <url>
    SCENE CHARACTERS:
    - <characterId>[ as <spriteId>] at <left|center|right>

    <speakerId>[ (<spriteId>)]: <text>
    > <narration>
    ![Image](<url>)
    ![Video](<url>)
    - "<choice text>" -> <sceneId>[ (story: <storyId>)]
    -> <sceneId>[ (story: <storyId>)]
    --- END ---

    ---

    ## SCENE: ...

AI-prompt placeholders and variable mutations have no Doc syntax; they
are left out of the text and a ``doc_item_dropped`` warning is logged
for each one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sceneweaver.graph.ordering import display_order
from sceneweaver.models.project import (
    DEFAULT_SPRITE_ID,
    AIPromptLine,
    ChoiceLine,
    EndStory,
    ImageLine,
    SetVariableLine,
    TextLine,
    Transition,
    VideoLine,
)
from sceneweaver.observability.logging import get_logger

if TYPE_CHECKING:
    from sceneweaver.models.project import (
        Character,
        DialogueItem,
        Project,
        Scene,
        SceneCharacter,
        Story,
    )

log = get_logger(__name__)

SEPARATOR = "---"
END_MARKER = "--- END ---"


def serialize_project(project: Project) -> str:
    """Render ``project`` as Doc-format text.

    Deterministic and side-effect free apart from logging.

    Returns:
        The document, ending with a newline.
    """
    lines: list[str] = [f"# PROJECT: {_one_line(project.name)} (id: {project.id})", ""]
    lines.append("## CHARACTERS")
    for character in project.characters.values():
        lines.extend(_character_lines(character))
    lines.extend(["", SEPARATOR, ""])

    for n, story in enumerate(project.stories.values()):
        if n:
            lines.append("")
        lines.extend(_story_lines(story, project))

    return "\n".join(lines) + "\n"


def unrepresentable_items(project: Project) -> list[tuple[str, str, int, str]]:
    """List dialogue items the Doc format cannot express.

    Returns:
        Tuples of (story_id, scene_id, item index, item type).
    """
    found: list[tuple[str, str, int, str]] = []
    for story in project.stories.values():
        for scene in story.scenes.values():
            for index, item in enumerate(scene.dialogue):
                if isinstance(item, AIPromptLine | SetVariableLine):
                    found.append((story.id, scene.id, index, item.type))
    return found


def _character_lines(character: Character) -> list[str]:
    lines = [
        f"- {_one_line(character.name)} (id: {character.id})",
        f"  Appearance: {_one_line(character.appearance)}",
        f"  Style: {_one_line(character.talking_style)}",
    ]
    if character.sprites:
        lines.append(f"  Sprites: {', '.join(character.sprite_ids())}")
    return lines


def _story_lines(story: Story, project: Project) -> list[str]:
    lines = [f"# STORY: {_one_line(story.name)} (id: {story.id})", ""]
    order = display_order(story)
    for n, scene_id in enumerate(order):
        lines.extend(_scene_lines(story, story.scenes[scene_id], project))
        if n < len(order) - 1:
            lines.extend(["", SEPARATOR, ""])
    return lines


def _scene_lines(story: Story, scene: Scene, project: Project) -> list[str]:
    lines = [f"## SCENE: {_one_line(scene.name)} (id: {scene.id})"]
    description = _one_line(scene.description or "")
    if description:
        lines.append(f"DESCRIPTION: {description}")
    background = _one_line(scene.background)
    if background:
        lines.append(f"BACKGROUND: {background}")
    if scene.characters:
        lines.append("SCENE CHARACTERS:")
        lines.extend(_placement_line(placement, project) for placement in scene.characters)
    lines.append("")

    for index, item in enumerate(scene.dialogue):
        rendered = _item_lines(item)
        if rendered is None:
            log.warning(
                "doc_item_dropped",
                story_id=story.id,
                scene_id=scene.id,
                index=index,
                item_type=item.type,
            )
            continue
        lines.extend(rendered)
    return lines


def _placement_line(placement: SceneCharacter, project: Project) -> str:
    character = project.characters.get(placement.character_id)
    default_sprite = character.default_sprite_id if character else DEFAULT_SPRITE_ID
    sprite = ""
    if placement.sprite_id and placement.sprite_id != default_sprite:
        sprite = f" as {placement.sprite_id}"
    return f"- {placement.character_id}{sprite} at {placement.position}"


def _item_lines(item: DialogueItem) -> list[str] | None:
    """Doc lines for one dialogue item; None when it has no Doc syntax."""
    match item:
        case TextLine() if not item.character_id:
            return [f"> {_one_line(item.text)}".rstrip()]
        case TextLine():
            sprite = f" ({item.sprite_id})" if item.sprite_id else ""
            return [f"{item.character_id}{sprite}: {_one_line(item.text)}".rstrip()]
        case ImageLine():
            return [f"![Image]({item.url})"]
        case VideoLine():
            return [f"![Video]({item.url})"]
        case ChoiceLine():
            return [
                _target_line(f'- "{_one_line(c.text)}" ->', c.next_scene_id, c.next_story_id)
                for c in item.choices
            ]
        case Transition():
            return [_target_line("->", item.next_scene_id, item.next_story_id)]
        case EndStory():
            return [END_MARKER]
        case AIPromptLine() | SetVariableLine():
            return None


def _target_line(prefix: str, scene_id: str, story_id: str | None) -> str:
    line = f"{prefix} {scene_id}".rstrip()
    if story_id:
        line += f" (story: {story_id})"
    return line


def _one_line(text: str) -> str:
    """Flatten line breaks so a value fits on its Doc line."""
    return " ".join(text.splitlines()).strip()
