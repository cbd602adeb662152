"""Rule-based story skeletons.

A skeleton is a closed scene plan built without the generation service.
Nodes on the main chain are one of four kinds:

- L (linear): a transition to the next node
- D (decision): a two-option choice; both options lead to the next node
- S (split): a choice between the next main node and a sub-branch
- T (terminal): the end of the story

The first main node is always linear and the last one terminal. A
sub-branch either rejoins the main chain further on or ends on its own.

The skeleton can become a new story (``build_story_from_plan``) or a
fragment attached after an existing scene (``skeleton_fragment`` and
``splice``). Its summaries are placeholders meant to be replaced by
``fill_dialogue``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from sceneweaver.models.plan import (
    FragmentConnections,
    FragmentOutcome,
    FragmentScene,
    InternalConnection,
    PlanChoice,
    PlanOutcome,
    PlanScene,
    SceneFragment,
)
from sceneweaver.models.project import TextLine
from sceneweaver.observability.logging import get_logger

log = get_logger(__name__)


@dataclass
class SkeletonConfig:
    """Size and branching knobs for :func:`generate_skeleton`.

    Attributes:
        main_branch_size: Nodes on the main chain, terminal included.
        split_branch_size: Nodes on each sub-branch.
        split_probability: Chance that an inner main node is a split.
        decision_probability: Chance that an inner main node is a decision.
        sub_decision_probability: Chance that an inner sub-branch node is
            a decision.
        reconnect_probability: Chance that a sub-branch rejoins the main
            chain, when there is room for it to do so.
    """

    main_branch_size: int = 10
    split_branch_size: int = 3
    split_probability: float = 0.15
    decision_probability: float = 0.15
    sub_decision_probability: float = 0.3
    reconnect_probability: float = 0.5

    def __post_init__(self) -> None:
        if self.main_branch_size < 1:
            raise ValueError(f"main_branch_size must be at least 1, got {self.main_branch_size}")
        if self.split_branch_size < 1:
            raise ValueError(f"split_branch_size must be at least 1, got {self.split_branch_size}")
        for name in (
            "split_probability",
            "decision_probability",
            "sub_decision_probability",
            "reconnect_probability",
        ):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")


def _linear(scene_id: str, next_id: str, label: str) -> PlanScene:
    return PlanScene(
        id=scene_id,
        name=f"[L] {label}",
        summary="A linear progression scene.",
        outcome=PlanOutcome(type="transition", next_scene_id=next_id),
    )


def _decision(scene_id: str, next_id: str, label: str) -> PlanScene:
    return PlanScene(
        id=scene_id,
        name=f"[D] {label}",
        summary="A moment of choice.",
        outcome=PlanOutcome(
            type="choice",
            choices=[
                PlanChoice(text="Option A", next_scene_id=next_id),
                PlanChoice(text="Option B", next_scene_id=next_id),
            ],
        ),
    )


def _split(scene_id: str, main_id: str, branch_id: str, label: str) -> PlanScene:
    return PlanScene(
        id=scene_id,
        name=f"[S] {label}",
        summary="The path diverges here.",
        outcome=PlanOutcome(
            type="choice",
            choices=[
                PlanChoice(text="Follow Main Path", next_scene_id=main_id),
                PlanChoice(text="Take Divergent Path", next_scene_id=branch_id),
            ],
        ),
    )


def _terminal(scene_id: str, label: str) -> PlanScene:
    return PlanScene(
        id=scene_id,
        name=f"[T] {label}",
        summary="The story ends here.",
        outcome=PlanOutcome(type="end_story"),
    )


def _main_kinds(config: SkeletonConfig, rng: random.Random) -> list[str]:
    size = config.main_branch_size
    kinds = ["L"] * size
    kinds[-1] = "T"
    for i in range(1, size - 1):
        roll = rng.random()
        if roll < config.split_probability:
            kinds[i] = "S"
        elif roll < config.split_probability + config.decision_probability:
            kinds[i] = "D"

    # At least one split whenever splits are wanted and the chain has room.
    if config.split_probability > 0 and size >= 4 and "S" not in kinds:
        kinds[size // 2] = "S"
    return kinds


def _sub_branch(
    start_id: str,
    parent_index: int,
    rejoin_id: str,
    config: SkeletonConfig,
    rng: random.Random,
) -> list[PlanScene]:
    length = config.split_branch_size
    ids = [start_id, *(f"node_sub_{parent_index}_{k}" for k in range(1, length))]
    scenes: list[PlanScene] = []
    for k, scene_id in enumerate(ids):
        if k == length - 1:
            if rejoin_id:
                scenes.append(_linear(scene_id, rejoin_id, f"Sub-Rejoin {parent_index}"))
            else:
                scenes.append(_terminal(scene_id, f"Sub-Ending {parent_index}"))
        elif rng.random() < config.sub_decision_probability:
            scenes.append(_decision(scene_id, ids[k + 1], f"Sub-Decision {parent_index}-{k}"))
        else:
            scenes.append(_linear(scene_id, ids[k + 1], f"Sub-Linear {parent_index}-{k}"))
    return scenes


def generate_skeleton(
    config: SkeletonConfig | None = None,
    rng: random.Random | None = None,
) -> list[PlanScene]:
    """Build a closed scene plan from structural rules.

    The first scene of the result is the first main node. Each
    sub-branch is listed just before the split node that opens it.

    Args:
        config: Sizes and probabilities; defaults when None.
        rng: Source of randomness. Pass a seeded ``random.Random`` for a
            repeatable skeleton.

    Returns:
        Plan scenes whose outcome targets all name scenes of the result.
    """
    config = config or SkeletonConfig()
    rng = rng or random.Random()
    size = config.main_branch_size
    main_ids = [f"node_main_{i}" for i in range(size)]
    kinds = _main_kinds(config, rng)

    scenes: list[PlanScene] = []
    for i, (scene_id, kind) in enumerate(zip(main_ids, kinds, strict=True)):
        next_id = main_ids[i + 1] if i < size - 1 else ""
        match kind:
            case "L":
                scenes.append(_linear(scene_id, next_id, f"Linear Node {i}"))
            case "D":
                scenes.append(_decision(scene_id, next_id, f"Decision Node {i}"))
            case "T":
                scenes.append(_terminal(scene_id, f"Ending Node {i}"))
            case "S":
                branch_id = f"node_split_{i}_branch_start"
                rejoin_id = ""
                remaining = size - 1 - i
                if (
                    config.split_branch_size < remaining
                    and rng.random() < config.reconnect_probability
                ):
                    rejoin_id = main_ids[min(size - 1, i + max(1, config.split_branch_size))]
                scenes.extend(_sub_branch(branch_id, i, rejoin_id, config, rng))
                scenes.append(_split(scene_id, next_id, branch_id, f"Split Node {i}"))

    log.debug(
        "skeleton_generated",
        main_nodes=size,
        scenes=len(scenes),
        splits=kinds.count("S"),
        decisions=kinds.count("D"),
    )
    return scenes


def skeleton_fragment(scenes: list[PlanScene]) -> SceneFragment:
    """Wrap plan scenes as a fragment entered through its first scene.

    Every outcome other than an end becomes an internal connection; end
    scenes keep the end marker they get when spliced.

    Raises:
        ValueError: If ``scenes`` is empty.
    """
    if not scenes:
        raise ValueError("a fragment needs at least one scene")

    internal = [
        InternalConnection(
            source_scene_id=scene.id,
            outcome=FragmentOutcome.model_validate(scene.outcome.model_dump()),
        )
        for scene in scenes
        if scene.outcome.type != "end_story"
    ]
    return SceneFragment(
        scenes=[
            FragmentScene(
                id=scene.id,
                name=scene.name or scene.id,
                description=scene.summary,
                character_ids=scene.character_ids,
                dialogue=[TextLine(text=scene.summary)] if scene.summary else [],
            )
            for scene in scenes
        ],
        connections=FragmentConnections(
            source_scene_connection=FragmentOutcome(type="transition", next_scene_id=scenes[0].id),
            internal_connections=internal,
        ),
    )
