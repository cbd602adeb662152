"""Reference repair for generated scene plans.

The generation service is asked to keep every outcome target inside the
plan but does not always do so. Rather than reject a plan over a bad
reference, each outcome is mechanically repaired so the validated plan
is closed: every transition and choice target names a scene of the plan.

Repair rule, applied per scene in list order:

- The *fallback* of scene ``i`` is scene ``i + 1``; the last scene has none.
- Transition: an unknown (or missing) target becomes the fallback; with
  no fallback the outcome becomes an end marker.
- Choice: each option with an unknown target is pointed at the fallback,
  or dropped when there is none. Zero surviving options turn the outcome
  into a transition to the fallback (end marker without one). A single
  surviving option turns it into a transition to that option's target.
- End markers are left alone.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sceneweaver.models.plan import PlanChoice, PlanOutcome, PlanScene
from sceneweaver.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

log = get_logger(__name__)


def validate_plan(scenes: Sequence[PlanScene]) -> list[PlanScene]:
    """Return a repaired copy of ``scenes`` that is closed over its own ids.

    The input list and its scenes are not modified.

    Args:
        scenes: Proposed scenes in plan order.

    Returns:
        New list of scenes, same order and ids, with outcomes repaired.
    """
    ids = [scene.id for scene in scenes]
    known = set(ids)
    validated: list[PlanScene] = []
    repairs = 0

    for index, scene in enumerate(scenes):
        fallback = ids[index + 1] if index < len(ids) - 1 else None
        outcome = _repair_outcome(scene.outcome, known, fallback)
        if outcome != scene.outcome:
            repairs += 1
            log.debug(
                "plan_outcome_repaired",
                scene_id=scene.id,
                before=scene.outcome.type,
                after=outcome.type,
            )
        validated.append(scene.model_copy(update={"outcome": outcome}, deep=True))

    if repairs:
        log.info("plan_repaired", scenes=len(validated), repaired=repairs)
    return validated


def _repair_outcome(outcome: PlanOutcome, known: set[str], fallback: str | None) -> PlanOutcome:
    match outcome.type:
        case "transition":
            target = _repair_target(outcome.next_scene_id, known, fallback)
            if target is None:
                return PlanOutcome(type="end_story")
            return PlanOutcome(type="transition", next_scene_id=target)
        case "choice":
            return _repair_choice(outcome.choices or [], known, fallback)
        case "end_story":
            return outcome.model_copy(deep=True)


def _repair_choice(choices: list[PlanChoice], known: set[str], fallback: str | None) -> PlanOutcome:
    kept: list[PlanChoice] = []
    for choice in choices:
        target = _repair_target(choice.next_scene_id, known, fallback)
        if target is not None:
            kept.append(PlanChoice(text=choice.text, next_scene_id=target))

    if not kept:
        if fallback is None:
            return PlanOutcome(type="end_story")
        return PlanOutcome(type="transition", next_scene_id=fallback)
    if len(kept) == 1:
        return PlanOutcome(type="transition", next_scene_id=kept[0].next_scene_id)
    return PlanOutcome(type="choice", choices=kept)


def _repair_target(target: str | None, known: set[str], fallback: str | None) -> str | None:
    if target and target in known:
        return target
    return fallback


def is_closed(scenes: Sequence[PlanScene]) -> bool:
    """True when every outcome target of ``scenes`` is one of their ids.

    Also requires that no choice outcome has exactly one option.
    """
    known = {scene.id for scene in scenes}
    for scene in scenes:
        outcome = scene.outcome
        if outcome.type == "transition" and outcome.next_scene_id not in known:
            return False
        if outcome.type == "choice":
            choices = outcome.choices or []
            if len(choices) == 1:
                return False
            if any(choice.next_scene_id not in known for choice in choices):
                return False
    return True
