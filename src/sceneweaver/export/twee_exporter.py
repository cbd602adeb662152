"""Twee/SugarCube export format.

Generates a Twee 3 file compatible with SugarCube 2 for one story. The
output can be imported into Twine or compiled directly with Tweego.
Each scene becomes a passage named by its scene id.

Format reference: https://twinery.org/cookbook/terms/terms_twee.html
SugarCube: https://www.motoslave.net/sugarcube/2/docs/
"""

from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING

from sceneweaver.graph.editing import require_story
from sceneweaver.graph.ordering import display_order
from sceneweaver.models.project import (
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
    from pathlib import Path

    from sceneweaver.models.project import (
        Character,
        DialogueItem,
        Project,
        Scene,
        Story,
        VariableValue,
    )

log = get_logger(__name__)

_SET_OPERATORS = {"set": "to", "add": "+=", "subtract": "-="}


class TweeExporter:
    """Export one story as Twee 3 / SugarCube 2 format."""

    format_name = "twee"

    def export(self, project: Project, output_dir: Path, *, story_id: str | None = None) -> Path:
        """Write a story as a .twee file.

        Args:
            project: Project holding the story and its characters.
            output_dir: Directory to write output files.
            story_id: Story to export; the first story when None.

        Returns:
            Path to the generated ``<story id>.twee`` file.

        Raises:
            StoryNotFoundError: If the story does not exist.
            ValueError: If the project has no stories.
        """
        if story_id is None:
            if not project.stories:
                msg = f"Project '{project.id}' has no stories to export"
                raise ValueError(msg)
            story_id = next(iter(project.stories))
        story = require_story(project, story_id)

        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / f"{story.id}.twee"

        lines: list[str] = []
        lines.extend(_story_header(story))
        lines.append("")
        if story.variables:
            lines.extend(_render_init_passage(story.variables))
            lines.append("")

        skipped = 0
        for scene_id in display_order(story):
            passage, dropped = _render_passage(
                story, story.scenes[scene_id], project.characters
            )
            skipped += dropped
            lines.extend(passage)
            lines.append("")

        output_file.write_text("\n".join(lines), encoding="utf-8")

        log.info(
            "twee_export_complete",
            story_id=story.id,
            passages=len(story.scenes),
            skipped_items=skipped,
            output=str(output_file),
        )

        return output_file


def _story_header(story: Story) -> list[str]:
    """Generate Twee 3 story header passages."""
    data = {
        "ifid": str(uuid.uuid4()).upper(),
        "format": "SugarCube",
        "format-version": "2.37.3",
    }
    if story.start_scene_id in story.scenes:
        data["start"] = story.start_scene_id
    return [
        f":: StoryTitle\n{story.name}",
        "",
        f":: StoryData\n{json.dumps(data)}",
    ]


def _render_init_passage(variables: dict[str, VariableValue]) -> list[str]:
    lines = [":: StoryInit"]
    for name, value in variables.items():
        lines.append(f"<<set ${name} to {_twee_value(value)}>>")
    return lines


def _render_passage(
    story: Story,
    scene: Scene,
    characters: dict[str, Character],
) -> tuple[list[str], int]:
    """Render a scene as Twee markup.

    Returns:
        Tuple of (passage lines, number of items left out).
    """
    tags = " [start]" if scene.id == story.start_scene_id else ""
    lines = [f":: {scene.id}{tags}"]
    if scene.background:
        lines.append(f"[img[{scene.background}]]")

    dropped = 0
    for item in scene.dialogue:
        rendered = _render_item(item, story, characters)
        if rendered is None:
            dropped += 1
            log.warning(
                "twee_item_skipped",
                story_id=story.id,
                scene_id=scene.id,
                item_type=item.type,
            )
            continue
        lines.extend(rendered)
    return lines, dropped


def _render_item(
    item: DialogueItem,
    story: Story,
    characters: dict[str, Character],
) -> list[str] | None:
    match item:
        case TextLine() if not item.character_id:
            return [_escape_sugarcube(item.text)]
        case TextLine():
            character = characters.get(item.character_id)
            speaker = character.name if character else item.character_id
            return [f"''{_escape_sugarcube(speaker)}:'' {_escape_sugarcube(item.text)}"]
        case ImageLine():
            return [f"[img[{item.url}]]"]
        case VideoLine():
            return [f'<video src="{item.url}" controls></video>']
        case ChoiceLine():
            return [
                _render_link(c.text, c.next_scene_id, c.next_story_id, story)
                for c in item.choices
            ]
        case Transition():
            return [_render_link("Continue", item.next_scene_id, item.next_story_id, story)]
        case EndStory():
            return ["''THE END''"]
        case SetVariableLine():
            operator = _SET_OPERATORS[item.operation]
            return [f"<<set ${item.variable} {operator} {_twee_value(item.value)}>>"]
        case AIPromptLine():
            return None


def _render_link(label: str, scene_id: str, story_id: str | None, story: Story) -> str:
    """Render a link; unlinked and cross-story targets become plain text."""
    text = _escape_sugarcube(label).replace("]", "")
    if story_id is None and scene_id in story.scenes:
        return f"[[{text}->{scene_id}]]"
    return f"//{text}//"


def _twee_value(value: VariableValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return json.dumps(value)
    return str(value)


def _escape_sugarcube(text: str) -> str:
    """Escape SugarCube macro delimiters to prevent unintended execution."""
    return text.replace("<<", "&lt;&lt;").replace(">>", "&gt;&gt;")
