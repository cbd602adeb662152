"""Editor actions on projects and stories.

Every function returns a new value and leaves its arguments untouched.
"""

from __future__ import annotations

from sceneweaver.config import EngineConfig
from sceneweaver.graph.errors import SceneNotFoundError, StoryNotFoundError
from sceneweaver.graph.ids import mint_id
from sceneweaver.models.project import Project, Scene, Story
from sceneweaver.observability.logging import get_logger

log = get_logger(__name__)

START_SCENE_ID = "start"


def create_project(name: str = "New Project") -> Project:
    """Create a project with a single fresh story."""
    story = create_story()
    return Project(id=mint_id("proj"), name=name, stories={story.id: story})


def create_story(name: str = "New Story", story_id: str | None = None) -> Story:
    """Create a story with one ``start`` scene seeded with an end marker."""
    start = Scene.empty(START_SCENE_ID, "Start Scene")
    return Story(
        id=story_id or mint_id("story"),
        name=name,
        scenes={start.id: start},
        start_scene_id=start.id,
    )


def add_scene(
    story: Story,
    name: str = "New Scene",
    *,
    config: EngineConfig | None = None,
) -> tuple[Story, str]:
    """Add an empty scene to ``story``.

    Returns:
        Tuple of (new story, id of the added scene).
    """
    config = config or EngineConfig()
    scene_id = mint_id("scene", story.scenes)
    scene = Scene.empty(scene_id, name).model_copy(
        update={"background": config.assets.background_url(scene_id)}
    )
    log.debug("scene_added", story_id=story.id, scene_id=scene_id)
    return story.with_scenes({**story.scenes, scene_id: scene}), scene_id


def replace_scene(story: Story, scene: Scene) -> Story:
    """Return a copy of ``story`` with an existing scene replaced.

    Raises:
        SceneNotFoundError: If the story has no scene with ``scene.id``.
    """
    if scene.id not in story.scenes:
        raise SceneNotFoundError(scene.id, list(story.scenes), context=f"story '{story.id}'")
    return story.with_scenes({**story.scenes, scene.id: scene})


def set_start_scene(story: Story, scene_id: str) -> Story:
    """Return a copy of ``story`` starting at ``scene_id``.

    Raises:
        SceneNotFoundError: If the story has no such scene.
    """
    if scene_id not in story.scenes:
        raise SceneNotFoundError(scene_id, list(story.scenes), context="start scene")
    return story.model_copy(update={"start_scene_id": scene_id})


def require_story(project: Project, story_id: str) -> Story:
    """Look up a story or raise StoryNotFoundError."""
    story = project.stories.get(story_id)
    if story is None:
        raise StoryNotFoundError(story_id, list(project.stories))
    return story


def put_story(project: Project, story: Story) -> Project:
    """Return a copy of ``project`` with ``story`` added or replaced."""
    return project.model_copy(update={"stories": {**project.stories, story.id: story}})


def remove_story(project: Project, story_id: str) -> Project:
    """Return a copy of ``project`` without the given story.

    Raises:
        StoryNotFoundError: If the project has no such story.
    """
    require_story(project, story_id)
    stories = {sid: story for sid, story in project.stories.items() if sid != story_id}
    log.info("story_removed", project_id=project.id, story_id=story_id)
    return project.model_copy(update={"stories": stories})
