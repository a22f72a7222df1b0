"""Read-only document tree view and RFC 6901 pointers.

A :class:`DocumentNode` pairs a raw parsed JSON value with the pointer steps
that lead to it from the document root. Nodes never copy or modify the
underlying value; children are produced on demand.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from ..errors import PointerResolutionError

Step = str | int


def escape_step(step: Step) -> str:
    """Escape one pointer step (``~`` -> ``~0``, ``/`` -> ``~1``)."""
    return str(step).replace("~", "~0").replace("/", "~1")


def unescape_step(token: str) -> str:
    """Reverse :func:`escape_step`."""
    return token.replace("~1", "/").replace("~0", "~")


def format_pointer(steps: Sequence[Step]) -> str:
    """Format pointer steps as an RFC 6901 string ("" is the root)."""
    return "".join(f"/{escape_step(step)}" for step in steps)


def parse_pointer(pointer: str) -> list[str]:
    """Split an RFC 6901 string into unescaped reference tokens."""
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        raise PointerResolutionError(f"Pointer must start with '/': {pointer!r}")
    return [unescape_step(token) for token in pointer[1:].split("/")]


def value_kind(value: Any) -> str:
    """JSON kind of a raw value: object, array, scalar or null."""
    if value is None:
        return "null"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return "scalar"


def json_type_name(value: Any) -> str:
    """JSON type name used in finding details."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def is_empty_value(value: Any) -> bool:
    """True for null, blank strings, empty arrays and empty objects."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class DocumentNode:
    """Immutable view of one node in a parsed document."""
    value: Any
    steps: tuple[Step, ...] = ()

    @property
    def pointer(self) -> str:
        return format_pointer(self.steps)

    @property
    def kind(self) -> str:
        return value_kind(self.value)

    @property
    def is_root(self) -> bool:
        return not self.steps

    def is_empty(self) -> bool:
        return is_empty_value(self.value)

    def parent_steps(self) -> tuple[Step, ...]:
        """Steps of the enclosing node; the root is its own parent."""
        return self.steps[:-1]

    def child(self, key: Step) -> "DocumentNode | None":
        """Return the child at an object key or array index, if it exists."""
        if isinstance(self.value, dict) and isinstance(key, str):
            if key in self.value:
                return DocumentNode(self.value[key], self.steps + (key,))
            return None
        if isinstance(self.value, list) and isinstance(key, int):
            if 0 <= key < len(self.value):
                return DocumentNode(self.value[key], self.steps + (key,))
        return None

    def children(self) -> Iterator[tuple[Step, "DocumentNode"]]:
        """Yield ``(step, node)`` for every object member or array element."""
        if isinstance(self.value, dict):
            for key in self.value:
                yield key, DocumentNode(self.value[key], self.steps + (key,))
        elif isinstance(self.value, list):
            for index, item in enumerate(self.value):
                yield index, DocumentNode(item, self.steps + (index,))

    def get(self, key: str, default: Any = None) -> Any:
        """Raw member value of an object node."""
        if isinstance(self.value, dict):
            return self.value.get(key, default)
        return default


def resolve_pointer(root: DocumentNode, pointer: str) -> DocumentNode:
    """Resolve an RFC 6901 pointer against ``root``.

    Raises:
        PointerResolutionError: If any step does not exist.
    """
    node = root
    for token in parse_pointer(pointer):
        if isinstance(node.value, list):
            if not token.isdigit() or (len(token) > 1 and token.startswith("0")):
                raise PointerResolutionError(f"Invalid array index {token!r} in {pointer!r}")
            next_node = node.child(int(token))
        else:
            next_node = node.child(token)
        if next_node is None:
            raise PointerResolutionError(f"Pointer {pointer!r} does not resolve at {token!r}")
        node = next_node
    return node
