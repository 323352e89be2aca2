"""
Load an OpenAPI/Swagger document and index its reusable components.

JSON is the primary input format. Files ending in `.yaml`/`.yml` are parsed
with PyYAML so the same tooling works on YAML specs.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml


Json = Union[dict[str, Any], list[Any], str, int, float, bool, None]


class SplitterError(Exception):
    """Base class for errors raised while splitting a document."""


class FormatError(SplitterError):
    """The input is unreadable, not JSON/YAML, or not shaped like an OpenAPI document."""


@dataclass(frozen=True)
class SchemaRegistry:
    """Schema definitions by name, plus every other component category."""

    schemas: dict[str, Json]
    other_components: dict[str, Json]


def load_document(path: Path) -> Json:
    path = Path(path)
    if not path.is_file():
        raise FormatError(f"Input file does not exist: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FormatError(f"Failed to read input file {path}: {e}") from e

    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise FormatError(f"Failed to parse input YAML file {path}: {e}") from e
        except RecursionError as e:
            raise FormatError(f"Input YAML file {path} is nested too deeply") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise FormatError(f"Failed to parse input JSON file {path}: {e}") from e
    except RecursionError as e:
        raise FormatError(f"Input JSON file {path} is nested too deeply") from e


def validate_document(doc: Json, *, require_version_marker: bool = True) -> dict[str, Any]:
    """
    Check the few structural facts the splitter relies on and return the
    document narrowed to an object.

    Only `paths` is mandatory. The `openapi`/`swagger` marker check can be
    relaxed for hand-written fragments.
    """
    if not isinstance(doc, dict):
        raise FormatError(f"Invalid Swagger/OpenAPI format: top-level must be an object (got {type(doc).__name__}).")
    if not isinstance(doc.get("paths"), dict):
        raise FormatError("Invalid Swagger/OpenAPI format: missing or invalid 'paths' section")
    if require_version_marker and "openapi" not in doc and "swagger" not in doc:
        raise FormatError("Invalid Swagger/OpenAPI format: missing 'openapi' or 'swagger' field")
    return doc


def load_openapi(path: Path, *, require_version_marker: bool = True) -> dict[str, Any]:
    return validate_document(load_document(path), require_version_marker=require_version_marker)


def version_marker(doc: dict[str, Any]) -> Optional[tuple[str, Json]]:
    for key in ("openapi", "swagger"):
        if key in doc:
            return key, doc[key]
    return None


def build_schema_registry(components: Json) -> SchemaRegistry:
    """
    Split `components` into the schema table and everything else.

    Missing `components` or `components.schemas` is fine and yields an empty
    table. Values are aliased, not copied.
    """
    if components is None:
        return SchemaRegistry(schemas={}, other_components={})
    if not isinstance(components, dict):
        raise FormatError(f"Top-level 'components' must be an object (got {type(components).__name__}).")

    schemas = components.get("schemas")
    if schemas is None:
        schemas = {}
    if not isinstance(schemas, dict):
        raise FormatError(f"'components.schemas' must be an object (got {type(schemas).__name__}).")

    other = {group: value for group, value in components.items() if group != "schemas"}
    return SchemaRegistry(schemas=dict(schemas), other_components=other)
