"""Snapshot reading from JSON or YAML files."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TypeVar

from pydantic import BaseModel
from ruamel.yaml import YAML

T = TypeVar("T", bound=BaseModel)


class ArtifactNotFoundError(Exception):
    """Raised when a snapshot file doesn't exist."""

    def __init__(self, kind: str, path: Path) -> None:
        self.kind = kind
        self.path = path
        super().__init__(f"Artifact not found: {kind} at {path}")


class ArtifactParseError(Exception):
    """Raised when a snapshot file can't be parsed."""

    def __init__(self, kind: str, path: Path, reason: str) -> None:
        self.kind = kind
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse {kind} artifact at {path}: {reason}")


class ArtifactReader:
    """Read snapshots (projects, plans, fragments) from disk.

    JSON is read through the YAML loader, which accepts it as a subset.
    """

    def __init__(self) -> None:
        self._yaml = YAML(typ="safe")

    def read(self, path: Path, kind: str = "project") -> object:
        """Read a snapshot as raw data.

        Args:
            path: File to read.
            kind: What the file holds, for error messages.

        Returns:
            The loaded data (usually a dict or list).

        Raises:
            ArtifactNotFoundError: If the file doesn't exist.
            ArtifactParseError: If the file can't be parsed or is empty.
        """
        if not path.exists():
            raise ArtifactNotFoundError(kind, path)

        try:
            with path.open("r", encoding="utf-8") as f:
                data = self._yaml.load(f)
        except Exception as e:
            raise ArtifactParseError(kind, path, str(e)) from e
        if data is None:
            raise ArtifactParseError(kind, path, "Empty file")
        return data

    def read_validated(self, path: Path, model: type[T], kind: str = "project") -> T:
        """Read and validate a snapshot against a Pydantic model.

        Raises:
            ArtifactNotFoundError: If the file doesn't exist.
            ArtifactParseError: If the file can't be parsed.
            pydantic.ValidationError: If validation fails.
        """
        data = self.read(path, kind)
        return model.model_validate(data)
