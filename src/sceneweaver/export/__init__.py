"""Export format handlers (Twee, JSON) and Twee import."""

from __future__ import annotations

from sceneweaver.export.base import Exporter
from sceneweaver.export.json_exporter import JsonExporter
from sceneweaver.export.twee_exporter import TweeExporter
from sceneweaver.export.twee_importer import import_twee

_EXPORTERS: dict[str, type[JsonExporter | TweeExporter]] = {
    "json": JsonExporter,
    "twee": TweeExporter,
}


def get_exporter(format_name: str) -> JsonExporter | TweeExporter:
    """Get an exporter instance by format name.

    Args:
        format_name: Export format ("json" or "twee").

    Returns:
        Exporter instance.

    Raises:
        ValueError: If the format is not supported.
    """
    cls = _EXPORTERS.get(format_name)
    if cls is None:
        supported = ", ".join(sorted(_EXPORTERS))
        msg = f"Unknown export format '{format_name}'. Supported: {supported}"
        raise ValueError(msg)
    return cls()


__all__ = [
    "Exporter",
    "JsonExporter",
    "TweeExporter",
    "get_exporter",
    "import_twee",
]
