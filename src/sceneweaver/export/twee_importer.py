"""Twee 3 import.

Reads a Twee file, such as one written by :class:`TweeExporter` or by
Twine, back into a story. Passages become scenes under freshly minted
ids; the passage name becomes the scene name.

Passage markup understood, one construct per line:

- ``[img[url]]``: the first one of a passage is its background, later
  ones are image lines
- ``<video src="url">``: video line
- ``[[text->target]]``, ``[[target<-text]]``, ``[[text|target]]`` and
  ``[[target]]``: links. Consecutive link lines form one choice; a lone
  ``Continue`` link, or a bare ``[[target]]``, is a transition.
  ``//text//`` right after a link is an option without a target.
- ``''THE END''``: end marker
- ``<<set $name to|+=|-= value>>``: variable update
- ``''Name:'' text``, or ``Name: text`` for a known character name:
  character line
- anything else: narrator line

A passage without an outcome ends the story.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from sceneweaver.config import EngineConfig
from sceneweaver.graph.ids import mint_id, mint_id_map
from sceneweaver.models.project import (
    Character,
    ChoiceLine,
    ChoiceOption,
    EndStory,
    ImageLine,
    LayoutPosition,
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
from sceneweaver.observability.logging import get_logger

if TYPE_CHECKING:
    from sceneweaver.models.project import DialogueItem, VariableValue

log = get_logger(__name__)

DEFAULT_STORY_NAME = "Imported Story"
NARRATOR_NAME = "Narrator"

_SPECIAL_PASSAGES = frozenset({"StoryTitle", "StoryData", "StoryInit"})

_HEADER_RE = re.compile(r"^::\s*(.*)$")
_TAGS_RE = re.compile(r"\[(.*?)\]")
_META_RE = re.compile(r"\{.*\}")
_IMAGE_RE = re.compile(r"^\[img\[(.*)\]\]$")
_VIDEO_RE = re.compile(r"""^<video\s+src=["']([^"']*)["'].*$""")
_LINK_LINE_RE = re.compile(r"^(?:\[\[[^\]]*\]\]\s*)+$")
_LINK_RE = re.compile(r"\[\[([^\]]*)\]\]")
_ITALIC_RE = re.compile(r"^//(.*)//$")
_END_MARKER = "''THE END''"
_SET_RE = re.compile(r"^<<set\s+\$([\w.]+)\s+(to|\+=|-=)\s+(.*?)\s*>>$")
_BOLD_SPEAKER_RE = re.compile(r"^''(.+?):''\s?(.*)$")
_PLAIN_SPEAKER_RE = re.compile(r"^([^:]+):\s*(.*)$")

_SET_OPERATIONS: dict[str, Literal["set", "add", "subtract"]] = {
    "to": "set",
    "+=": "add",
    "-=": "subtract",
}
_CONTINUE = "Continue"


@dataclass
class _Passage:
    name: str
    tags: list[str]
    body: list[str] = field(default_factory=list)


@dataclass
class _Link:
    text: str
    target: str
    bare: bool = False


def _split_passages(text: str) -> list[_Passage]:
    passages: list[_Passage] = []
    for line in text.splitlines():
        if match := _HEADER_RE.match(line):
            header = match.group(1)
            tags = [tag for group in _TAGS_RE.findall(header) for tag in group.split()]
            name = _META_RE.sub("", _TAGS_RE.sub("", header)).strip()
            passages.append(_Passage(name, tags))
        elif passages:
            passages[-1].body.append(line)
    return passages


def _parse_link(inner: str) -> _Link:
    if "->" in inner:
        text, _, target = inner.rpartition("->")
        return _Link(text, target)
    if "<-" in inner:
        target, _, text = inner.partition("<-")
        return _Link(text, target)
    if "|" in inner:
        text, _, target = inner.rpartition("|")
        return _Link(text, target)
    return _Link(inner, inner, bare=True)


def _parse_value(raw: str) -> VariableValue:
    try:
        value = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(value, bool | int | float | str):
        return value
    return raw


def _unescape(text: str) -> str:
    return text.replace("&lt;&lt;", "<<").replace("&gt;&gt;", ">>")


class _CharacterResolver:
    """Match speaker names to characters, minting ids for new names."""

    def __init__(self, known: dict[str, Character], config: EngineConfig) -> None:
        self.characters = dict(known)
        self.config = config
        self.by_name = {c.name.lower(): c.id for c in known.values()}
        self.created: list[str] = []

    def find(self, name: str) -> str | None:
        return self.by_name.get(name.strip().lower())

    def resolve(self, name: str) -> str | None:
        name = name.strip()
        if not name or name == NARRATOR_NAME:
            return None
        found = self.find(name)
        if found is not None:
            return found
        assets = self.config.assets
        character_id = mint_id("char", self.characters)
        self.characters[character_id] = Character(
            id=character_id,
            name=name,
            sprites=[Sprite(id=assets.default_sprite_id, url=assets.sprite_url(character_id))],
            default_sprite_id=assets.default_sprite_id,
        )
        self.by_name[name.lower()] = character_id
        self.created.append(character_id)
        return character_id


class _PassageReader:
    """Turn one passage body into scene fields."""

    def __init__(self, scene_ids: dict[str, str], resolver: _CharacterResolver) -> None:
        self.scene_ids = scene_ids
        self.resolver = resolver
        self.background = ""
        self.dialogue: list[DialogueItem] = []
        self.speakers: list[str] = []
        self.links: list[_Link] = []

    def read(self, body: list[str]) -> None:
        for raw_line in body:
            line = raw_line.strip()
            if line:
                self._line(line)
        self._flush_links()
        if not any(is_outcome(item) for item in self.dialogue):
            self.dialogue.append(EndStory())

    def _line(self, line: str) -> None:
        if _LINK_LINE_RE.match(line):
            self.links.extend(_parse_link(inner) for inner in _LINK_RE.findall(line))
            return
        if self.links and (match := _ITALIC_RE.match(line)):
            self.links.append(_Link(_unescape(match.group(1)), ""))
            return
        if line == f"//{_CONTINUE}//":
            self._emit_outcome(Transition(next_scene_id=""))
            return
        self._flush_links()

        if match := _IMAGE_RE.match(line):
            if not self.dialogue and not self.background:
                self.background = match.group(1)
            else:
                self.dialogue.append(ImageLine(url=match.group(1)))
        elif match := _VIDEO_RE.match(line):
            self.dialogue.append(VideoLine(url=match.group(1)))
        elif line == _END_MARKER:
            self._emit_outcome(EndStory())
        elif match := _SET_RE.match(line):
            variable, operator, value = match.groups()
            self.dialogue.append(
                SetVariableLine(
                    variable=variable,
                    operation=_SET_OPERATIONS[operator],
                    value=_parse_value(value),
                )
            )
        elif match := _BOLD_SPEAKER_RE.match(line):
            self._speak(self.resolver.resolve(_unescape(match.group(1))), match.group(2))
        elif (match := _PLAIN_SPEAKER_RE.match(line)) and (
            known := self.resolver.find(match.group(1))
        ):
            self._speak(known, match.group(2))
        else:
            self.dialogue.append(TextLine(text=_unescape(line)))

    def _speak(self, character_id: str | None, text: str) -> None:
        if character_id is not None and character_id not in self.speakers:
            self.speakers.append(character_id)
        self.dialogue.append(TextLine(character_id=character_id, text=_unescape(text.strip())))

    def _target(self, name: str) -> str:
        return self.scene_ids.get(name.strip(), "")

    def _flush_links(self) -> None:
        links, self.links = self.links, []
        if not links:
            return
        if len(links) == 1 and (links[0].bare or links[0].text == _CONTINUE):
            self._emit_outcome(Transition(next_scene_id=self._target(links[0].target)))
            return
        self._emit_outcome(
            ChoiceLine(
                choices=[
                    ChoiceOption(text=_unescape(link.text), next_scene_id=self._target(link.target))
                    for link in links
                ]
            )
        )

    def _emit_outcome(self, outcome: Transition | ChoiceLine | EndStory) -> None:
        """Add an outcome, folding it into the scene's outcome if there is one."""
        index = next((i for i, item in enumerate(self.dialogue) if is_outcome(item)), None)
        if index is None:
            self.dialogue.append(outcome)
            return
        existing = self.dialogue[index]
        if isinstance(outcome, EndStory):
            return
        if isinstance(existing, EndStory):
            self.dialogue[index] = outcome
            return
        options = _as_options(existing) + _as_options(outcome)
        self.dialogue[index] = ChoiceLine(choices=options)
        log.debug("twee_outcomes_merged", options=len(options))


def _as_options(item: DialogueItem) -> list[ChoiceOption]:
    match item:
        case ChoiceLine():
            return list(item.choices)
        case Transition():
            return [ChoiceOption(text=_CONTINUE, next_scene_id=item.next_scene_id)]
        case _:
            return []


def _story_data(passages: dict[str, _Passage]) -> dict[str, object]:
    data_passage = passages.get("StoryData")
    if data_passage is None:
        return {}
    raw = "\n".join(data_passage.body).strip()
    try:
        data = json.loads(raw)
    except ValueError:
        log.warning("twee_story_data_invalid")
        return {}
    return data if isinstance(data, dict) else {}


def _init_variables(passages: dict[str, _Passage]) -> dict[str, VariableValue]:
    init = passages.get("StoryInit")
    variables: dict[str, VariableValue] = {}
    if init is None:
        return variables
    for line in init.body:
        match = _SET_RE.match(line.strip())
        if match and match.group(2) == "to":
            variables[match.group(1)] = _parse_value(match.group(3))
    return variables


def import_twee(
    text: str,
    characters: dict[str, Character] | None = None,
    *,
    config: EngineConfig | None = None,
    story_id: str | None = None,
) -> tuple[Story, dict[str, Character]]:
    """Build a story from Twee 3 source.

    Speakers are matched to ``characters`` by name, case-insensitively;
    a name with no match becomes a new character with a placeholder
    sprite. Link targets that name no passage are left unlinked.

    Args:
        text: Twee source.
        characters: Characters already in the project, keyed by id.
        config: Layout and asset settings.
        story_id: Id for the story; minted when None.

    Returns:
        Tuple of (story, characters). The characters are the given ones
        plus any created for unknown speakers.

    Raises:
        ValueError: If the source holds no story passages.
    """
    config = config or EngineConfig()
    all_passages = _split_passages(text)
    special = {p.name: p for p in all_passages if p.name in _SPECIAL_PASSAGES}
    story_passages = [p for p in all_passages if p.name not in _SPECIAL_PASSAGES and p.name]
    if not story_passages:
        raise ValueError("No story passages found in Twee source")

    title = special.get("StoryTitle")
    name = next((line.strip() for line in title.body if line.strip()), "") if title else ""

    scene_ids = mint_id_map([p.name for p in story_passages], ())
    resolver = _CharacterResolver(characters or {}, config)
    columns = math.ceil(math.sqrt(len(story_passages)))
    layout = config.layout

    scenes: dict[str, Scene] = {}
    for index, passage in enumerate(story_passages):
        scene_id = scene_ids[passage.name]
        if scene_id in scenes:
            log.warning("twee_duplicate_passage", passage=passage.name)
            continue
        reader = _PassageReader(scene_ids, resolver)
        reader.read(passage.body)
        scenes[scene_id] = Scene(
            id=scene_id,
            name=passage.name,
            background=reader.background,
            characters=[
                SceneCharacter(
                    character_id=cid,
                    sprite_id=resolver.characters[cid].default_sprite_id,
                    position="left" if n == 0 else "right",
                )
                for n, cid in enumerate(reader.speakers)
            ],
            dialogue=reader.dialogue,
            position=LayoutPosition(
                x=(index % columns) * layout.import_step_x,
                y=(index // columns) * layout.import_step_y,
            ),
        )

    start_name = _story_data(special).get("start")
    start = scene_ids.get(start_name) if isinstance(start_name, str) else None
    if start is None:
        tagged = next((p for p in story_passages if "start" in p.tags), story_passages[0])
        start = scene_ids[tagged.name]

    story = Story(
        id=story_id or mint_id("story"),
        name=name or DEFAULT_STORY_NAME,
        scenes=scenes,
        start_scene_id=start,
        variables=_init_variables(special),
    )
    log.info(
        "twee_import_complete",
        story_id=story.id,
        scenes=len(scenes),
        new_characters=len(resolver.created),
    )
    return story, resolver.characters
