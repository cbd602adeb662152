"""Reading and writing project snapshots."""

from sceneweaver.artifacts.reader import (
    ArtifactNotFoundError,
    ArtifactParseError,
    ArtifactReader,
)
from sceneweaver.artifacts.writer import ArtifactWriteError, ArtifactWriter

__all__ = [
    "ArtifactNotFoundError",
    "ArtifactParseError",
    "ArtifactReader",
    "ArtifactWriteError",
    "ArtifactWriter",
]
