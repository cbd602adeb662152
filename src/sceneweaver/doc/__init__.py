"""Doc format: a plain-text rendering of a project that can be edited by hand."""

from sceneweaver.doc.parser import DocParser, ParserState, parse_doc
from sceneweaver.doc.serializer import serialize_project, unrepresentable_items

__all__ = [
    "DocParser",
    "ParserState",
    "parse_doc",
    "serialize_project",
    "unrepresentable_items",
]
