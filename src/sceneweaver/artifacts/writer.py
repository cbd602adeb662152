"""Snapshot writing to JSON or YAML files."""

from __future__ import annotations

import json
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from pydantic import BaseModel
from ruamel.yaml import YAML

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class ArtifactWriteError(Exception):
    """Raised when a snapshot file can't be written."""

    def __init__(self, kind: str, path: Path, reason: str) -> None:
        self.kind = kind
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write {kind} artifact at {path}: {reason}")


class ArtifactWriter:
    """Write snapshots to disk. The file suffix picks YAML or JSON."""

    def __init__(self) -> None:
        self._yaml = YAML()
        self._yaml.default_flow_style = False
        self._yaml.indent(mapping=2, sequence=4, offset=2)

    def write(self, artifact: BaseModel | dict[str, Any], path: Path, kind: str = "project") -> Path:
        """Write a snapshot.

        Models are dumped with their camelCase aliases.

        Returns:
            Path to the written file.

        Raises:
            ArtifactWriteError: If the file can't be written.
        """
        if isinstance(artifact, BaseModel):
            data = artifact.model_dump(mode="json", by_alias=True)
        else:
            data = artifact

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                if path.suffix.lower() in YAML_SUFFIXES:
                    self._yaml.dump(data, f)
                else:
                    f.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        except OSError as e:
            raise ArtifactWriteError(kind, path, str(e)) from e
        return path
