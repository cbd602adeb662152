"""Exporter protocol.

Exporters read a project snapshot and write one output file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pathlib import Path

    from sceneweaver.models.project import Project


class Exporter(Protocol):
    """Protocol for project export format handlers."""

    format_name: str

    def export(self, project: Project, output_dir: Path, *, story_id: str | None = None) -> Path:
        """Export to the given output directory.

        Args:
            project: Project snapshot.
            output_dir: Directory to write output files.
            story_id: Story to export, for formats that hold a single
                story. Defaults to the first story of the project.

        Returns:
            Path to the main output file.
        """
        ...
