"""
Tests for loading, validating and indexing OpenAPI documents.
"""
import json

import pytest

from openapi_document import (
    FormatError,
    build_schema_registry,
    load_document,
    load_openapi,
    validate_document,
    version_marker,
)


def write_json(tmp_path, doc, name="openapi.json"):
    p = tmp_path / name
    p.write_text(json.dumps(doc), encoding="utf-8")
    return p


def test_load_json_document(tmp_path):
    p = write_json(tmp_path, {"openapi": "3.0.0", "paths": {}})
    assert load_document(p) == {"openapi": "3.0.0", "paths": {}}


def test_load_yaml_document(tmp_path):
    p = tmp_path / "openapi.yaml"
    p.write_text("openapi: 3.0.0\npaths:\n  /pets:\n    get: {}\n", encoding="utf-8")
    doc = load_openapi(p)
    assert doc["paths"] == {"/pets": {"get": {}}}


def test_missing_file_is_format_error(tmp_path):
    with pytest.raises(FormatError, match="does not exist"):
        load_document(tmp_path / "nope.json")


def test_invalid_json_is_format_error(tmp_path):
    p = tmp_path / "broken.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(FormatError, match="Failed to parse"):
        load_document(p)


def test_invalid_yaml_is_format_error(tmp_path):
    p = tmp_path / "broken.yml"
    p.write_text("paths: [unclosed\n", encoding="utf-8")
    with pytest.raises(FormatError):
        load_document(p)


@pytest.mark.parametrize(
    "doc",
    [
        [],
        {"openapi": "3.0.0"},
        {"openapi": "3.0.0", "paths": []},
        {"openapi": "3.0.0", "paths": None},
    ],
)
def test_paths_object_is_required(doc):
    with pytest.raises(FormatError):
        validate_document(doc)


def test_version_marker_required_unless_lenient():
    doc = {"paths": {}}
    with pytest.raises(FormatError, match="'openapi' or 'swagger'"):
        validate_document(doc)
    assert validate_document(doc, require_version_marker=False) is doc


def test_swagger_marker_accepted():
    assert validate_document({"swagger": "2.0", "paths": {}}) == {"swagger": "2.0", "paths": {}}
    assert version_marker({"swagger": "2.0", "paths": {}}) == ("swagger", "2.0")
    assert version_marker({"paths": {}}) is None


def test_registry_without_components_is_empty():
    registry = build_schema_registry(None)
    assert registry.schemas == {}
    assert registry.other_components == {}


def test_registry_without_schemas_keeps_other_categories():
    security = {"api_key": {"type": "apiKey", "in": "header", "name": "X-Key"}}
    registry = build_schema_registry({"securitySchemes": security})
    assert registry.schemas == {}
    assert registry.other_components == {"securitySchemes": security}
    assert registry.other_components["securitySchemes"] is security


def test_registry_splits_schemas_from_other_categories():
    pet = {"type": "object"}
    components = {"schemas": {"Pet": pet}, "responses": {"NotFound": {"description": "x"}}}
    registry = build_schema_registry(components)
    assert registry.schemas == {"Pet": pet}
    assert registry.schemas["Pet"] is pet
    assert "schemas" not in registry.other_components
    assert set(registry.other_components) == {"responses"}


@pytest.mark.parametrize("components", [[], "x", {"schemas": []}])
def test_registry_rejects_wrong_types(components):
    with pytest.raises(FormatError):
        build_schema_registry(components)


def test_non_utf8_input_is_format_error(tmp_path):
    p = tmp_path / "latin1.json"
    p.write_bytes(b'{"openapi": "3.0.0", "paths": {"/\xff": {}}}')
    with pytest.raises(FormatError, match="Failed to read"):
        load_document(p)


def test_deeply_nested_json_is_format_error(tmp_path):
    p = tmp_path / "deep.json"
    p.write_text("[" * 100000 + "]" * 100000, encoding="utf-8")
    with pytest.raises(FormatError, match="nested too deeply"):
        load_document(p)
