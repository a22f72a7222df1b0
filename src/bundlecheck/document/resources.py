"""Resource discovery inside bundles and single-resource documents."""

from dataclasses import dataclass

from .node import DocumentNode

BUNDLE = "Bundle"


@dataclass(frozen=True)
class ResourceRef:
    """A resource instance located in the document."""
    resource_type: str
    node: DocumentNode
    entry_index: int | None = None


def is_bundle(root: DocumentNode) -> bool:
    return root.get("resourceType") == BUNDLE


def iter_resources(root: DocumentNode) -> list[ResourceRef]:
    """List resource instances in document order.

    For a Bundle these are the ``entry[i].resource`` objects that carry a
    string ``resourceType``. Any other root with a ``resourceType`` is
    treated as a single resource.
    """
    if not is_bundle(root):
        resource_type = root.get("resourceType")
        if isinstance(resource_type, str) and resource_type:
            return [ResourceRef(resource_type, root)]
        return []

    entries = root.child("entry")
    if entries is None or entries.kind != "array":
        return []

    resources = []
    for index, entry in entries.children():
        resource = entry.child("resource")
        if resource is None or resource.kind != "object":
            continue
        resource_type = resource.get("resourceType")
        if isinstance(resource_type, str) and resource_type:
            resources.append(ResourceRef(resource_type, resource, index))
    return resources


def resources_of_type(root: DocumentNode, resource_type: str) -> list[ResourceRef]:
    """Resource instances of one type, in document order."""
    return [ref for ref in iter_resources(root) if ref.resource_type == resource_type]
