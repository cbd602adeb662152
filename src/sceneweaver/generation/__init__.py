"""Boundary to the content-generation service.

The engine only consumes proposals: a story plan, per-scene dialogue
lines and scene fragments. Everything the service returns is
shape-checked before it reaches the graph.
"""

from sceneweaver.generation.base import ContentGenerator, DesiredOutcome
from sceneweaver.generation.batching import batch_generation_calls
from sceneweaver.generation.planner import (
    build_story_from_plan,
    fill_dialogue,
    generate_and_splice,
    parse_dialogue,
    parse_scene_fragment,
    parse_story_plan,
    plan_story,
)
from sceneweaver.generation.scheduler import SkeletonConfig, generate_skeleton, skeleton_fragment

__all__ = [
    "ContentGenerator",
    "DesiredOutcome",
    "SkeletonConfig",
    "batch_generation_calls",
    "build_story_from_plan",
    "fill_dialogue",
    "generate_and_splice",
    "generate_skeleton",
    "parse_dialogue",
    "parse_scene_fragment",
    "parse_story_plan",
    "plan_story",
    "skeleton_fragment",
]
