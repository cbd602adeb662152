"""Shapes of content-generation service output.

The generation service proposes scene plans and scene fragments keyed by
temporary ids. These models are the strict gate between raw service
output and the engine: a proposal that does not fit them is rejected
outright, while reference errors *inside* a well-shaped proposal are
repaired later by the plan validator.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from sceneweaver.models.project import CharacterId, Gender, TextLine

StructureType = Literal["choice_branch", "linear_sequence"]
StoryShape = Literal["branching", "linear"]


class ProposalModel(BaseModel):
    """Base for generation proposals. Mutable, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlanChoice(ProposalModel):
    text: str
    next_scene_id: str | None = None


class PlanOutcome(ProposalModel):
    """Tentative outcome of a proposed scene."""

    type: Literal["transition", "choice", "end_story"]
    next_scene_id: str | None = None
    choices: list[PlanChoice] | None = None


class PlanScene(ProposalModel):
    id: str = Field(min_length=1)
    name: str = ""
    summary: str = ""
    character_ids: list[CharacterId] = Field(default_factory=list)
    outcome: PlanOutcome


class PlanCharacter(ProposalModel):
    id: CharacterId
    name: str
    appearance: str = ""
    talking_style: str = ""
    gender: Gender | None = None


class StoryPlan(ProposalModel):
    """A proposed story: characters plus an ordered scene list."""

    characters: list[PlanCharacter] = Field(default_factory=list)
    scenes: list[PlanScene] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Scene fragments (structures spliced into an existing story)
# ---------------------------------------------------------------------------


class FragmentOutcome(ProposalModel):
    """A connection expressed as a transition or a choice."""

    type: Literal["transition", "choice"]
    next_scene_id: str | None = None
    choices: list[PlanChoice] | None = None

    @model_validator(mode="after")
    def _check_targets(self) -> FragmentOutcome:
        if self.type == "transition" and not self.next_scene_id:
            msg = "transition connection requires nextSceneId"
            raise ValueError(msg)
        if self.type == "choice" and not self.choices:
            msg = "choice connection requires at least one choice"
            raise ValueError(msg)
        return self


class FragmentScene(ProposalModel):
    id: str = Field(min_length=1)
    name: str
    description: str = ""
    character_ids: list[CharacterId] = Field(default_factory=list)
    dialogue: list[TextLine] = Field(default_factory=list)


class InternalConnection(ProposalModel):
    source_scene_id: str = Field(min_length=1)
    outcome: FragmentOutcome


class FragmentConnections(ProposalModel):
    source_scene_connection: FragmentOutcome
    internal_connections: list[InternalConnection] = Field(default_factory=list)


class SceneFragment(ProposalModel):
    """Temporarily keyed scenes plus how they connect."""

    scenes: list[FragmentScene] = Field(min_length=1)
    connections: FragmentConnections

    @model_validator(mode="after")
    def _unique_ids(self) -> SceneFragment:
        ids = [scene.id for scene in self.scenes]
        if len(ids) != len(set(ids)):
            msg = "fragment scene ids must be unique"
            raise ValueError(msg)
        return self
