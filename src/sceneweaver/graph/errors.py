"""Scene-graph error types.

Structural precondition violations (deleting the last scene, referring
to a scene that does not exist) are raised as ``GraphIntegrityError``
subclasses. Each can format itself as feedback suitable for showing to
an editor user or feeding back to the generation service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches

from pydantic import ValidationError


class GraphIntegrityError(Exception):
    """Base class for rejected graph operations.

    Subclasses implement to_feedback().
    """

    def to_feedback(self) -> str:
        """Format error as an actionable message."""
        raise NotImplementedError


@dataclass
class SceneNotFoundError(GraphIntegrityError):
    """Raised when an operation names a scene the story does not have.

    Attributes:
        scene_id: The ID that was referenced but doesn't exist.
        available: Scene IDs that do exist.
        context: Description of where the reference occurred.
    """

    scene_id: str
    available: list[str] = field(default_factory=list)
    context: str = ""

    def __post_init__(self) -> None:
        msg = f"Scene '{self.scene_id}' not found"
        if self.context:
            msg += f" ({self.context})"
        super().__init__(msg)

    def suggestions(self) -> list[str]:
        """Scene ids close to the missing one (likely typos)."""
        return get_close_matches(self.scene_id, self.available, n=3, cutoff=0.6)

    def to_feedback(self) -> str:
        lines = [f"Scene `{self.scene_id}` does not exist."]
        if self.context:
            lines.append(f"Context: {self.context}")
        suggestions = self.suggestions()
        if suggestions:
            lines.append("Did you mean: " + ", ".join(f"`{s}`" for s in suggestions))
        elif self.available:
            shown = sorted(self.available)[:10]
            more = f" ... and {len(self.available) - 10} more" if len(self.available) > 10 else ""
            lines.append("Valid scene ids: " + ", ".join(shown) + more)
        return "\n".join(lines)


@dataclass
class StoryNotFoundError(GraphIntegrityError):
    """Raised when a project has no story with the given id."""

    story_id: str
    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(f"Story '{self.story_id}' not found")

    def to_feedback(self) -> str:
        if not self.available:
            return f"Story `{self.story_id}` does not exist; the project has no stories."
        return (
            f"Story `{self.story_id}` does not exist. "
            f"Valid story ids: {', '.join(sorted(self.available))}"
        )


@dataclass
class LastSceneError(GraphIntegrityError):
    """Raised when deleting the only scene of a story.

    A story always keeps at least one scene so it has a start node.
    """

    story_id: str
    scene_id: str

    def __post_init__(self) -> None:
        super().__init__(
            f"Cannot delete scene '{self.scene_id}': it is the last scene of story '{self.story_id}'"
        )

    def to_feedback(self) -> str:
        return (
            f"Scene `{self.scene_id}` is the only scene in story `{self.story_id}`. "
            "Add another scene before deleting this one."
        )


class GenerationShapeError(ValueError):
    """Raised when content-generation output has the wrong shape.

    Reference errors inside a well-shaped proposal are repaired, not
    raised; this error is for output the repair step cannot work with
    (missing fields, wrong types, outcome items where only lines are
    allowed).

    Attributes:
        kind: Which proposal was being read ("plan", "dialogue", "fragment").
        errors: Human-readable problems, one per entry.
    """

    def __init__(self, kind: str, errors: list[str]) -> None:
        self.kind = kind
        self.errors = errors
        shown = "; ".join(errors[:5])
        more = f" (+{len(errors) - 5} more)" if len(errors) > 5 else ""
        super().__init__(f"Invalid {kind} from generation service: {shown}{more}")

    @classmethod
    def from_validation_error(cls, kind: str, error: ValidationError) -> GenerationShapeError:
        """Build from a pydantic ValidationError, one entry per failing field."""
        problems = []
        for detail in error.errors():
            location = ".".join(str(part) for part in detail["loc"]) or "<root>"
            problems.append(f"{location}: {detail['msg']}")
        return cls(kind, problems)
