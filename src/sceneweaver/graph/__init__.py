"""Graph algorithms over the scene model.

Every operation takes immutable values and returns new ones; callers
holding an older snapshot never see it change.
"""

from sceneweaver.graph.audit import audit_project, audit_story
from sceneweaver.graph.deletion import delete_scene
from sceneweaver.graph.editing import (
    add_scene,
    create_project,
    create_story,
    put_story,
    remove_story,
    replace_scene,
    require_story,
    set_start_scene,
)
from sceneweaver.graph.errors import (
    GenerationShapeError,
    GraphIntegrityError,
    LastSceneError,
    SceneNotFoundError,
    StoryNotFoundError,
)
from sceneweaver.graph.ids import mint_id, mint_id_map
from sceneweaver.graph.ordering import display_order
from sceneweaver.graph.plan_validation import is_closed, validate_plan
from sceneweaver.graph.splice import splice
from sceneweaver.graph.validation_types import ValidationCheck, ValidationReport

__all__ = [
    "GenerationShapeError",
    "GraphIntegrityError",
    "LastSceneError",
    "SceneNotFoundError",
    "StoryNotFoundError",
    "ValidationCheck",
    "ValidationReport",
    "add_scene",
    "audit_project",
    "audit_story",
    "create_project",
    "create_story",
    "delete_scene",
    "display_order",
    "is_closed",
    "mint_id",
    "mint_id_map",
    "put_story",
    "remove_story",
    "replace_scene",
    "require_story",
    "set_start_scene",
    "splice",
    "validate_plan",
]
