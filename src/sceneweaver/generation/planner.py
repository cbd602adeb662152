"""Turn generation-service proposals into story graph values.

Flow for a new story::

    generate_plan -> parse_story_plan -> validate_plan
        -> build_story_from_plan -> fill_dialogue

Flow for extending a story::

    generate_structure -> parse_scene_fragment -> splice

Shape problems in service output raise GenerationShapeError. Reference
problems inside a well-shaped plan are repaired by validate_plan.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

from pydantic import Field, TypeAdapter, ValidationError

from sceneweaver.config import EngineConfig
from sceneweaver.generation.batching import batch_generation_calls
from sceneweaver.graph.errors import GenerationShapeError
from sceneweaver.graph.ids import mint_id
from sceneweaver.graph.ordering import display_order
from sceneweaver.graph.plan_validation import validate_plan
from sceneweaver.graph.splice import splice
from sceneweaver.models.plan import SceneFragment, StoryPlan
from sceneweaver.models.project import (
    OUTCOME_TYPES,
    Character,
    ChoiceLine,
    ChoiceOption,
    EndStory,
    ImageLine,
    LayoutPosition,
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
    from sceneweaver.generation.base import ContentGenerator
    from sceneweaver.models.plan import PlanCharacter, PlanOutcome, PlanScene
    from sceneweaver.models.plan import StoryShape, StructureType
    from sceneweaver.models.project import DialogueItem, DialogueLength, Outcome

log = get_logger(__name__)

GeneratedLine = Annotated[TextLine | ImageLine | VideoLine, Field(discriminator="type")]

_lines_adapter: TypeAdapter[list[GeneratedLine]] = TypeAdapter(list[GeneratedLine])


# ---------------------------------------------------------------------------
# Shape checks
# ---------------------------------------------------------------------------


def parse_story_plan(raw: Any) -> StoryPlan:
    """Validate raw plan output.

    Raises:
        GenerationShapeError: If ``raw`` is not a well-shaped plan.
    """
    try:
        return StoryPlan.model_validate(raw)
    except ValidationError as e:
        raise GenerationShapeError.from_validation_error("plan", e) from e


def parse_dialogue(raw: Any) -> list[TextLine | ImageLine | VideoLine]:
    """Validate raw dialogue output for one scene.

    Only text, image and video lines are accepted; the scene's outcome
    is owned by the graph, not by the generated lines.

    Raises:
        GenerationShapeError: On a shape error or an outcome item.
    """
    if not isinstance(raw, list):
        raise GenerationShapeError("dialogue", [f"<root>: expected a list, got {type(raw).__name__}"])

    outcomes = [
        f"{index}: outcome item '{entry['type']}' not allowed in generated dialogue"
        for index, entry in enumerate(raw)
        if isinstance(entry, dict) and entry.get("type") in OUTCOME_TYPES
    ]
    if outcomes:
        raise GenerationShapeError("dialogue", outcomes)

    try:
        return _lines_adapter.validate_python(raw)
    except ValidationError as e:
        raise GenerationShapeError.from_validation_error("dialogue", e) from e


def parse_scene_fragment(raw: Any) -> SceneFragment:
    """Validate raw structure output.

    Raises:
        GenerationShapeError: If ``raw`` is not a well-shaped fragment.
    """
    try:
        return SceneFragment.model_validate(raw)
    except ValidationError as e:
        raise GenerationShapeError.from_validation_error("fragment", e) from e


# ---------------------------------------------------------------------------
# Plan -> story
# ---------------------------------------------------------------------------


def build_story_from_plan(
    plan: StoryPlan,
    name: str,
    config: EngineConfig | None = None,
    *,
    story_id: str | None = None,
) -> tuple[Story, dict[str, Character]]:
    """Materialize a plan as a story plus the characters it introduces.

    The plan is validated first, so every outcome of the built story
    targets one of its scenes. Each scene starts with its summary as a
    narrator line followed by its outcome.

    Args:
        plan: Shape-checked plan.
        name: Story name.
        config: Layout and asset settings.
        story_id: Id for the story; minted when None.

    Returns:
        Tuple of (story, characters keyed by id).
    """
    config = config or EngineConfig()
    characters = {c.id: _character_from_plan(c, config) for c in plan.characters}
    scenes_in_order = validate_plan(plan.scenes)

    scenes: dict[str, Scene] = {}
    for index, plan_scene in enumerate(scenes_in_order):
        scenes[plan_scene.id] = _scene_from_plan(plan_scene, index, characters, config)

    story = Story(
        id=story_id or mint_id("story"),
        name=name,
        scenes=scenes,
        start_scene_id=scenes_in_order[0].id,
    )
    log.info(
        "story_built_from_plan",
        story_id=story.id,
        scenes=len(scenes),
        characters=len(characters),
    )
    return story, characters


def _character_from_plan(plan_character: PlanCharacter, config: EngineConfig) -> Character:
    sprite_id = config.assets.default_sprite_id
    return Character(
        id=plan_character.id,
        name=plan_character.name,
        appearance=plan_character.appearance,
        talking_style=plan_character.talking_style,
        gender=plan_character.gender,
        sprites=[Sprite(id=sprite_id, url=config.assets.sprite_url(plan_character.id))],
        default_sprite_id=sprite_id,
    )


def _scene_from_plan(
    plan_scene: PlanScene,
    index: int,
    characters: dict[str, Character],
    config: EngineConfig,
) -> Scene:
    layout = config.layout
    on_stage = [cid for cid in plan_scene.character_ids if cid in characters]
    dialogue: list[DialogueItem] = []
    if plan_scene.summary:
        dialogue.append(TextLine(text=plan_scene.summary))
    dialogue.append(_outcome_from_plan(plan_scene.outcome))
    return Scene(
        id=plan_scene.id,
        name=plan_scene.name or plan_scene.id,
        description=plan_scene.summary or None,
        background=config.assets.background_url(plan_scene.id),
        characters=[
            SceneCharacter(
                character_id=cid,
                sprite_id=characters[cid].default_sprite_id,
                position="left" if n == 0 else "right",
            )
            for n, cid in enumerate(on_stage)
        ],
        dialogue=dialogue,
        position=LayoutPosition(
            x=layout.plan_origin_x + index * layout.plan_step_x,
            y=layout.plan_origin_y + (index % 2) * layout.plan_stagger_y,
        ),
    )


def _outcome_from_plan(outcome: PlanOutcome) -> Outcome:
    match outcome.type:
        case "transition":
            return Transition(next_scene_id=outcome.next_scene_id or "")
        case "choice":
            return ChoiceLine(
                choices=[
                    ChoiceOption(text=c.text, next_scene_id=c.next_scene_id or "")
                    for c in outcome.choices or []
                ]
            )
        case "end_story":
            return EndStory()


# ---------------------------------------------------------------------------
# Dialogue
# ---------------------------------------------------------------------------


async def fill_dialogue(
    story: Story,
    characters: dict[str, Character],
    generator: ContentGenerator,
    *,
    length_hint: DialogueLength = "Medium",
    use_continuity: bool = True,
    freeform_prompt: str = "",
    config: EngineConfig | None = None,
) -> Story:
    """Generate dialogue for every scene of ``story`` concurrently.

    Each scene's lines are replaced by generated ones and its outcome is
    kept at the end. A scene whose call fails, times out or returns
    malformed lines gets a single narrator line with its description
    instead; other scenes are unaffected.
    """
    config = config or EngineConfig()
    order = display_order(story)
    context = [story.scenes[scene_id] for scene_id in order]

    async def _generate(scene: Scene) -> list[TextLine | ImageLine | VideoLine]:
        raw = await generator.generate_dialogue(
            scene,
            context,
            characters,
            length_hint,
            use_continuity,
            "text_only",
            freeform_prompt,
        )
        return parse_dialogue(raw)

    results, errors = await batch_generation_calls(
        context,
        _generate,
        max_concurrency=config.generation.max_concurrency,
        timeout=config.generation.dialogue_timeout,
    )

    scenes = dict(story.scenes)
    for scene, lines in zip(context, results, strict=True):
        if lines is None:
            lines = [TextLine(text=scene.description or scene.name)]
        scenes[scene.id] = _with_lines(scene, lines)

    for index, error in errors:
        log.warning(
            "dialogue_fallback",
            story_id=story.id,
            scene_id=context[index].id,
            error=str(error) or type(error).__name__,
        )
    log.info(
        "dialogue_filled",
        story_id=story.id,
        scenes=len(context),
        fallbacks=len(errors),
    )
    return story.with_scenes(scenes)


def _with_lines(scene: Scene, lines: list[TextLine | ImageLine | VideoLine]) -> Scene:
    dialogue: list[DialogueItem] = list(lines)
    if scene.outcome is not None:
        dialogue.append(scene.outcome)
    return scene.model_copy(update={"dialogue": dialogue})


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


async def plan_story(
    generator: ContentGenerator,
    prompt: str,
    *,
    name: str = "New Story",
    length_hint: DialogueLength = "Medium",
    structure_hint: StoryShape = "branching",
    with_dialogue: bool = True,
    config: EngineConfig | None = None,
) -> tuple[Story, dict[str, Character]]:
    """Plan a new story from a prompt.

    Raises:
        GenerationShapeError: If the plan output is malformed.
    """
    config = config or EngineConfig()
    raw = await generator.generate_plan(prompt, length_hint, structure_hint)
    plan = parse_story_plan(raw)
    story, characters = build_story_from_plan(plan, name, config)
    if with_dialogue:
        story = await fill_dialogue(
            story,
            characters,
            generator,
            length_hint=length_hint,
            freeform_prompt=prompt,
            config=config,
        )
    return story, characters


async def generate_and_splice(
    generator: ContentGenerator,
    story: Story,
    attachment_scene_id: str,
    characters: dict[str, Character],
    prompt: str,
    structure_type: StructureType = "choice_branch",
    *,
    config: EngineConfig | None = None,
) -> Story:
    """Ask for a scene structure after ``attachment_scene_id`` and splice it in.

    Returns ``story`` unchanged, without calling the generator, when the
    attachment scene does not exist.

    Raises:
        GenerationShapeError: If the structure output is malformed.
    """
    attachment = story.scenes.get(attachment_scene_id)
    if attachment is None:
        log.warning(
            "splice_rejected",
            story_id=story.id,
            attachment_scene_id=attachment_scene_id,
            reason="attachment scene not found",
        )
        return story

    context = [story.scenes[scene_id] for scene_id in display_order(story)]
    raw = await generator.generate_structure(
        attachment, context, characters, prompt, structure_type
    )
    fragment = parse_scene_fragment(raw)
    return splice(
        story,
        attachment_scene_id,
        fragment,
        known_characters=characters,
        config=config,
    )
