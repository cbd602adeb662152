"""JSON export format.

Writes the whole project as camelCase JSON, the same shape the engine
reads back as a snapshot.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from sceneweaver.models.project import Project


class JsonExporter:
    """Export project as a JSON backup."""

    format_name = "json"

    def export(
        self,
        project: Project,
        output_dir: Path,
        *,
        story_id: str | None = None,  # noqa: ARG002 - always the whole project
    ) -> Path:
        """Write project data as formatted JSON.

        Returns:
            Path to the generated ``project.json`` file.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / "project.json"

        data = project.model_dump(mode="json", by_alias=True)
        output_file.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

        return output_file
