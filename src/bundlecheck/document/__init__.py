"""Document tree access and pointer addressing."""

from .node import (
    DocumentNode,
    escape_step,
    format_pointer,
    is_empty_value,
    json_type_name,
    parse_pointer,
    resolve_pointer,
    unescape_step,
)
from .parser import parse_document
from .resources import ResourceRef, is_bundle, iter_resources, resources_of_type

__all__ = [
    "DocumentNode",
    "ResourceRef",
    "escape_step",
    "format_pointer",
    "is_bundle",
    "is_empty_value",
    "iter_resources",
    "json_type_name",
    "parse_document",
    "parse_pointer",
    "resolve_pointer",
    "resources_of_type",
    "unescape_step",
]
