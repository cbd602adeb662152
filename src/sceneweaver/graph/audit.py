"""Integrity checks for stories and projects.

Pure, deterministic functions. The permissive doc parser and hand edits
can leave a story in a transient state (no scenes, two outcomes in one
scene); these checks report such states instead of refusing to build
the model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sceneweaver.graph.validation_types import ValidationCheck, ValidationReport
from sceneweaver.models.project import ChoiceLine, Transition, is_outcome

if TYPE_CHECKING:
    from collections.abc import Collection

    from sceneweaver.models.project import Project, Story


def check_has_scenes(story: Story) -> ValidationCheck:
    if story.scenes:
        return ValidationCheck("has_scenes", "pass", f"{len(story.scenes)} scene(s)")
    return ValidationCheck("has_scenes", "fail", f"Story '{story.id}' has no scenes")


def check_start_scene(story: Story) -> ValidationCheck:
    """Verify the start scene id names a scene of the story."""
    if story.start_scene_id in story.scenes:
        return ValidationCheck("start_scene", "pass", f"Start scene: {story.start_scene_id}")
    if not story.start_scene_id:
        return ValidationCheck("start_scene", "fail", "No start scene set")
    return ValidationCheck(
        "start_scene", "fail", f"Start scene '{story.start_scene_id}' does not exist"
    )


def check_scene_keys(story: Story) -> ValidationCheck:
    mismatched = sorted(key for key, scene in story.scenes.items() if key != scene.id)
    if mismatched:
        return ValidationCheck(
            "scene_keys", "fail", f"Scene map keys differ from scene ids: {', '.join(mismatched)}"
        )
    return ValidationCheck("scene_keys", "pass")


def check_outcomes(story: Story) -> list[ValidationCheck]:
    """Each scene has at most one outcome, and it is the last non-text item."""
    checks: list[ValidationCheck] = []
    for scene_id, scene in story.scenes.items():
        positions = [i for i, item in enumerate(scene.dialogue) if is_outcome(item)]
        if len(positions) > 1:
            checks.append(
                ValidationCheck(
                    "single_outcome",
                    "fail",
                    f"Scene '{scene_id}' has {len(positions)} outcome items",
                )
            )
            continue
        if positions:
            trailing = [item for item in scene.dialogue[positions[0] + 1 :] if item.type != "text"]
            if trailing:
                checks.append(
                    ValidationCheck(
                        "trailing_outcome",
                        "warn",
                        f"Scene '{scene_id}' has {len(trailing)} non-text item(s) after its outcome",
                    )
                )
    if not checks:
        checks.append(ValidationCheck("single_outcome", "pass", "Every scene has at most one outcome"))
    return checks


def check_targets(story: Story) -> list[ValidationCheck]:
    """Intra-story targets resolve; blank targets are reported as unlinked."""
    broken: list[str] = []
    unlinked: list[str] = []
    for scene_id, scene in story.scenes.items():
        for item in scene.dialogue:
            match item:
                case Transition(next_story_id=None):
                    targets = [item.next_scene_id]
                case ChoiceLine():
                    targets = [c.next_scene_id for c in item.choices if c.next_story_id is None]
                case _:
                    continue
            for target in targets:
                if not target:
                    unlinked.append(scene_id)
                elif target not in story.scenes:
                    broken.append(f"{scene_id} -> {target}")

    checks: list[ValidationCheck] = []
    if broken:
        checks.append(
            ValidationCheck("targets_resolve", "fail", f"Dangling targets: {', '.join(broken)}")
        )
    else:
        checks.append(ValidationCheck("targets_resolve", "pass"))
    if unlinked:
        checks.append(
            ValidationCheck(
                "unlinked_outcomes",
                "warn",
                f"Scenes with unlinked outcomes: {', '.join(sorted(set(unlinked)))}",
            )
        )
    return checks


def check_scene_characters(story: Story, characters: Collection[str]) -> ValidationCheck:
    missing = sorted(
        {
            f"{scene_id}:{placement.character_id}"
            for scene_id, scene in story.scenes.items()
            for placement in scene.characters
            if placement.character_id not in characters
        }
    )
    if missing:
        return ValidationCheck(
            "scene_characters", "warn", f"Unknown characters on stage: {', '.join(missing)}"
        )
    return ValidationCheck("scene_characters", "pass")


def audit_story(story: Story, characters: Collection[str] | None = None) -> ValidationReport:
    """Run all story checks.

    Args:
        story: Story to check.
        characters: Known character ids; the on-stage character check is
            skipped when None.
    """
    report = ValidationReport()
    report.checks.append(check_has_scenes(story))
    report.checks.append(check_start_scene(story))
    report.checks.append(check_scene_keys(story))
    report.checks.extend(check_outcomes(story))
    report.checks.extend(check_targets(story))
    if characters is not None:
        report.checks.append(check_scene_characters(story, characters))
    return report


def audit_project(project: Project) -> dict[str, ValidationReport]:
    """Audit every story of ``project``, keyed by story id."""
    return {
        story_id: audit_story(story, project.characters)
        for story_id, story in project.stories.items()
    }
