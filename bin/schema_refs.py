"""
Collect the `components.schemas` entries a subtree of an OpenAPI document
depends on, following `#/components/schemas/<name>` references transitively.

Only the structurally significant fields named by a `ScanFields` are walked,
so descriptions, examples and vendor extensions never contribute refs.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional

from openapi_document import Json, SchemaRegistry


SCHEMA_REF_PREFIX = "#/components/schemas/"


@dataclass(frozen=True)
class ScanFields:
    # value is a subtree
    direct: tuple[str, ...]
    # value is an array of subtrees
    each: tuple[str, ...]
    # value is an object whose values are subtrees
    values: tuple[str, ...]

    def without(self, *names: str) -> "ScanFields":
        return replace(
            self,
            direct=tuple(f for f in self.direct if f not in names),
            each=tuple(f for f in self.each if f not in names),
            values=tuple(f for f in self.values if f not in names),
        )


_COMPOSITION_KEYS = ("allOf", "anyOf", "oneOf")

FULL_SCAN = ScanFields(
    direct=("schema", "items", "additionalProperties", "not", "requestBody"),
    each=_COMPOSITION_KEYS + ("parameters",),
    values=("properties", "content", "responses", "headers"),
)

SCAN_PROFILES: dict[str, ScanFields] = {
    "full": FULL_SCAN,
    "no-parameters": FULL_SCAN.without("parameters"),
    "minimal": FULL_SCAN.without("parameters", *_COMPOSITION_KEYS),
}


def schema_name_from_ref(ref: Any) -> Optional[str]:
    if isinstance(ref, str) and ref.startswith(SCHEMA_REF_PREFIX):
        return ref[len(SCHEMA_REF_PREFIX) :]
    return None


def scan_schema_refs(
    node: Json,
    registry: SchemaRegistry,
    *,
    fields: ScanFields = FULL_SCAN,
    required: Optional[set[str]] = None,
) -> set[str]:
    """
    Add every schema name reachable from `node` to `required` and return it.

    A name is added only if the registry defines it, and a schema body is
    scanned only the first time its name is added, which also makes
    self-referencing schemas terminate.
    """
    if required is None:
        required = set()

    if isinstance(node, list):
        for item in node:
            scan_schema_refs(item, registry, fields=fields, required=required)
        return required

    if not isinstance(node, dict):
        return required

    name = schema_name_from_ref(node.get("$ref"))
    if name is not None and name not in required and name in registry.schemas:
        required.add(name)
        scan_schema_refs(registry.schemas[name], registry, fields=fields, required=required)

    for key in fields.direct:
        if key in node:
            scan_schema_refs(node[key], registry, fields=fields, required=required)

    for key in fields.each:
        items = node.get(key)
        if isinstance(items, list):
            for item in items:
                scan_schema_refs(item, registry, fields=fields, required=required)

    for key in fields.values:
        children = node.get(key)
        if isinstance(children, dict):
            for child in children.values():
                scan_schema_refs(child, registry, fields=fields, required=required)

    return required


def find_required_schemas(path_item: Json, registry: SchemaRegistry, *, fields: ScanFields = FULL_SCAN) -> set[str]:
    """Schemas needed by every operation (and path-level entry) of one path item."""
    if not isinstance(path_item, dict):
        raise TypeError(f"Path item must be an object (got {type(path_item).__name__}).")
    required: set[str] = set()
    for value in path_item.values():
        scan_schema_refs(value, registry, fields=fields, required=required)
    return required
