"""Resource-relative field paths.

A field path is a dotted list of element names, each optionally followed by
an explicit array index: ``name[0].given``. Without an index, resolution
fans out over every element of an array, so ``name.given`` addresses all
given names of all names.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from ..document.node import DocumentNode

_SEGMENT_RE = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<index>\d+)\])?$")


@dataclass(frozen=True)
class FieldSegment:
    name: str
    index: int | None = None

    def __str__(self) -> str:
        return self.name if self.index is None else f"{self.name}[{self.index}]"


@dataclass
class FieldResolution:
    """Nodes a field path resolved to, and the deepest node that exists."""
    nodes: list[DocumentNode] = field(default_factory=list)
    nearest: DocumentNode | None = None

    @property
    def found(self) -> bool:
        return bool(self.nodes)

    @property
    def anchor(self) -> DocumentNode | None:
        """Node a finding about this path should point at."""
        return self.nodes[0] if self.nodes else self.nearest


def parse_field_path(path: str) -> tuple[FieldSegment, ...]:
    """Parse a field path into segments.

    Raises:
        ValueError: If any segment is malformed.
    """
    if not path or not path.strip():
        raise ValueError("Field path cannot be empty")
    segments = []
    for part in path.strip().split("."):
        match = _SEGMENT_RE.match(part)
        if not match:
            raise ValueError(f"Invalid field path segment {part!r} in {path!r}")
        index = match.group("index")
        segments.append(FieldSegment(match.group("name"), int(index) if index is not None else None))
    return tuple(segments)


def strip_indices(path: str) -> str:
    """``name[0].given`` -> ``name.given``."""
    return re.sub(r"\[\d+\]", "", path)


def resolve_field(node: DocumentNode, path: str | tuple[FieldSegment, ...],
                  expand_last: bool = True) -> FieldResolution:
    """Resolve a field path relative to ``node``.

    Args:
        node: Resource (or any object) node to resolve from
        path: Field path text or parsed segments
        expand_last: When False, an array reached by the final segment is
            returned as one node instead of its elements

    Returns:
        FieldResolution with matched nodes and the nearest existing ancestor
    """
    segments = parse_field_path(path) if isinstance(path, str) else path
    current = [node]
    nearest = node

    for position, segment in enumerate(segments):
        last = position == len(segments) - 1
        reached = []
        for candidate in current:
            child = candidate.child(segment.name)
            if child is None:
                continue
            if child.kind == "array":
                if segment.index is not None:
                    item = child.child(segment.index)
                    if item is not None:
                        reached.append(item)
                elif last and not expand_last:
                    reached.append(child)
                else:
                    reached.extend(item for _, item in child.children())
            elif segment.index is None or segment.index == 0:
                reached.append(child)
        if not reached:
            return FieldResolution([], nearest)
        current = reached
        nearest = reached[0]

    return FieldResolution(current, nearest)


def collect_values(subject: Any, dotted_path: str) -> list[Any]:
    """Raw values at a dotted path under a raw JSON value, fanning out over arrays."""
    values = subject if isinstance(subject, list) else [subject]
    for name in dotted_path.split("."):
        reached = []
        for value in values:
            if not isinstance(value, dict) or name not in value:
                continue
            child = value[name]
            if isinstance(child, list):
                reached.extend(child)
            else:
                reached.append(child)
        values = reached
    return values


def value_text(value: Any) -> str:
    """Text form used for comparisons: JSON booleans render as true/false."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)
