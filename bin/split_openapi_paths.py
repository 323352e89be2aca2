#!/usr/bin/env python3
"""
Split an OpenAPI/Swagger document into one self-contained document per path.

Every generated file keeps the shared `info` and `servers` blocks, every
non-schema component category verbatim, and only the `components.schemas`
entries the path actually references (transitively). The path's operations
are copied unchanged, `$ref` strings included.

Usage:
    python bin/split_openapi_paths.py openapi.json
    python bin/split_openapi_paths.py openapi.json out/ --scan-profile minimal
    python bin/split_openapi_paths.py openapi.yaml --config splitter.yaml -v

Filenames are derived from the path string, so distinct paths can map to the
same file (`/a/b` and `/a_b` both become `a_b.json`). The later path wins; a
warning names both.
"""

import argparse
import json
import logging
import re
import sys
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from openapi_document import (
    FormatError,
    Json,
    SchemaRegistry,
    SplitterError,
    build_schema_registry,
    load_document,
    load_openapi,
    version_marker,
)
from schema_refs import FULL_SCAN, SCAN_PROFILES, ScanFields, find_required_schemas


LOGGER_NAME = "split_openapi_paths"
LOG_FORMAT = "[%(asctime)s] [%(levelname)-7s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_OUTPUT_DIR = "output"
MAX_FILENAME_LENGTH = 100
FILENAME_SUFFIX = ".json"
UNNAMED_API = "unnamed_api"


class ConfigError(SplitterError):
    """The splitter config file or a command-line override is invalid."""


class IOSetupError(SplitterError):
    """The output directory cannot be created or written to."""


class PathProcessingError(SplitterError):
    """Scanning, assembling or writing the document for one path failed."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


@dataclass(frozen=True)
class SplitterConfig:
    scan_fields: ScanFields = FULL_SCAN
    require_version_marker: bool = True
    keep_version_marker: bool = False
    max_filename_length: int = MAX_FILENAME_LENGTH
    indent: Optional[int] = 2


@dataclass
class SplitSummary:
    # a path whose file was later overwritten by a colliding path stays listed
    written: dict[str, Path] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    # (filename, overwritten path, overwriting path)
    collisions: list[tuple[str, str, str]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.written)

    @property
    def failures(self) -> int:
        return len(self.failed)


_CONFIG_KEYS: set[str] = {
    "scan_profile",
    "scan_fields",
    "require_version_marker",
    "keep_version_marker",
    "max_filename_length",
    "indent",
}


def _string_tuple(value: Any, *, label: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise ConfigError(f"Config {label} must be a list of non-empty strings.")
    return tuple(value)


def _scan_profile(name: Any) -> ScanFields:
    if name not in SCAN_PROFILES:
        choices = ", ".join(sorted(SCAN_PROFILES))
        raise ConfigError(f"Unknown scan profile {name!r} (expected one of: {choices}).")
    return SCAN_PROFILES[name]


def _check_filename_length(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= len(FILENAME_SUFFIX):
        raise ConfigError(f"max_filename_length must be an integer greater than {len(FILENAME_SUFFIX)} (got {value!r}).")
    return value


def config_from_mapping(raw: dict[str, Any]) -> SplitterConfig:
    unknown = set(raw) - _CONFIG_KEYS
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(sorted(unknown))}.")

    config = SplitterConfig()
    if "scan_profile" in raw:
        config = replace(config, scan_fields=_scan_profile(raw["scan_profile"]))

    if "scan_fields" in raw:
        fields_raw = raw["scan_fields"]
        if not isinstance(fields_raw, dict):
            raise ConfigError("Config scan_fields must be an object with 'direct', 'each' and/or 'values' lists.")
        extra = set(fields_raw) - {"direct", "each", "values"}
        if extra:
            raise ConfigError(f"Unknown scan_fields key(s): {', '.join(sorted(extra))}.")
        base = config.scan_fields
        config = replace(
            config,
            scan_fields=ScanFields(
                direct=_string_tuple(fields_raw.get("direct", list(base.direct)), label="scan_fields.direct"),
                each=_string_tuple(fields_raw.get("each", list(base.each)), label="scan_fields.each"),
                values=_string_tuple(fields_raw.get("values", list(base.values)), label="scan_fields.values"),
            ),
        )

    for key in ("require_version_marker", "keep_version_marker"):
        if key in raw:
            if not isinstance(raw[key], bool):
                raise ConfigError(f"Config {key} must be true or false.")
            config = replace(config, **{key: raw[key]})

    if "max_filename_length" in raw:
        config = replace(config, max_filename_length=_check_filename_length(raw["max_filename_length"]))

    if "indent" in raw:
        indent = raw["indent"]
        if indent is not None and (isinstance(indent, bool) or not isinstance(indent, int) or indent < 0):
            raise ConfigError(f"Config indent must be a non-negative integer or null (got {indent!r}).")
        config = replace(config, indent=indent)

    return config


def load_config(path: Path) -> SplitterConfig:
    try:
        raw = load_document(Path(path))
    except FormatError as e:
        raise ConfigError(f"Cannot load config: {e}") from e
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a JSON/YAML object at top-level (got {type(raw).__name__}).")
    return config_from_mapping(raw)


def make_filename(path: str, *, max_length: int = MAX_FILENAME_LENGTH) -> str:
    name = re.sub(r"[^A-Za-z0-9-]", "_", path)
    name = re.sub(r"_+", "_", name).strip("_")
    if not name:
        name = UNNAMED_API
    stem_budget = max_length - len(FILENAME_SUFFIX)
    if len(name) > stem_budget:
        name = name[:stem_budget]
    return name + FILENAME_SUFFIX


def assemble_path_document(
    path: str,
    path_item: Json,
    *,
    info: Json = None,
    servers: Json = None,
    registry: SchemaRegistry,
    required: set[str],
    marker: Optional[tuple[str, Json]] = None,
) -> dict[str, Any]:
    """
    Build the standalone document for one path.

    `info`/`servers` are included when not None. Only the `components`,
    `components.schemas` and `paths` wrappers are new objects; everything
    else is shared with the source document.
    """
    out: dict[str, Any] = {}
    if marker is not None:
        out[marker[0]] = marker[1]
    if info is not None:
        out["info"] = info
    if servers is not None:
        out["servers"] = servers

    components: dict[str, Any] = dict(registry.other_components)
    if required:
        components["schemas"] = {name: body for name, body in registry.schemas.items() if name in required}
    if components:
        out["components"] = components

    out["paths"] = {path: path_item}
    return out


def prepare_output_dir(output_dir: Path, *, log: Optional[logging.Logger] = None) -> Path:
    log = log or logging.getLogger(LOGGER_NAME)
    out = Path(output_dir).absolute()
    try:
        if not out.exists():
            out.mkdir(parents=True)
            log.info("Created output directory: %s", out)
        elif not out.is_dir():
            raise IOSetupError(f"Output path exists but is not a directory: {out}")
        with tempfile.NamedTemporaryFile(dir=out, prefix=".probe-", suffix=".tmp"):
            pass
    except OSError as e:
        raise IOSetupError(f"Failed to prepare output directory: {out} - {e}") from e
    return out


def write_path_document(
    output_dir: Path,
    filename: str,
    document: Json,
    *,
    path: str,
    indent: Optional[int] = 2,
) -> Path:
    target = Path(output_dir) / filename
    try:
        content = json.dumps(document, indent=indent, ensure_ascii=False) + ("\n" if indent is not None else "")
        data = content.encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise PathProcessingError(path, f"cannot serialize document: {e}") from e
    try:
        target.write_bytes(data)
    except OSError as e:
        raise PathProcessingError(path, f"failed to write API file {target}: {e}") from e
    return target


def split_document(
    doc: dict[str, Any],
    output_dir: Path,
    *,
    config: SplitterConfig = SplitterConfig(),
    log: Optional[logging.Logger] = None,
) -> SplitSummary:
    """
    Write one document per entry of `doc["paths"]` into `output_dir`.

    `doc` must already be validated and `output_dir` must exist. A failure on
    one path is logged and recorded in the summary; the remaining paths are
    still processed.
    """
    log = log or logging.getLogger(LOGGER_NAME)
    registry = build_schema_registry(doc.get("components"))
    marker = version_marker(doc) if config.keep_version_marker else None
    summary = SplitSummary()
    owners: dict[str, str] = {}

    for path, path_item in doc["paths"].items():
        try:
            try:
                required = find_required_schemas(path_item, registry, fields=config.scan_fields)
            except (TypeError, RecursionError) as e:
                raise PathProcessingError(path, f"cannot scan path item: {e}") from e
            try:
                document = assemble_path_document(
                    path,
                    path_item,
                    info=doc.get("info"),
                    servers=doc.get("servers"),
                    registry=registry,
                    required=required,
                    marker=marker,
                )
                filename = make_filename(path, max_length=config.max_filename_length)
            except (TypeError, ValueError) as e:
                raise PathProcessingError(path, f"cannot assemble document: {e}") from e
            target = write_path_document(output_dir, filename, document, path=path, indent=config.indent)
        except PathProcessingError as e:
            summary.failed[path] = e.message
            log.warning("Failed to process API path: %s - %s", path, e.message)
            continue

        previous = owners.get(filename)
        if previous is not None:
            summary.collisions.append((filename, previous, path))
            log.warning("Filename collision: %s for path %s overwrote the file for path %s", filename, path, previous)
        owners[filename] = path
        summary.written[path] = target
        log.debug("Created API file: %s (%d schema(s))", target, len(required))

    log.info("Processing complete. Success: %d, Failures: %d", summary.succeeded, summary.failures)
    return summary


def split_file(
    input_path: Path,
    output_dir: Path,
    *,
    config: SplitterConfig = SplitterConfig(),
    log: Optional[logging.Logger] = None,
) -> SplitSummary:
    log = log or logging.getLogger(LOGGER_NAME)
    doc = load_openapi(Path(input_path), require_version_marker=config.require_version_marker)
    out = prepare_output_dir(Path(output_dir), log=log)
    return split_document(doc, out, config=config, log=log)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Split an OpenAPI/Swagger document into one standalone document per path."
    )
    p.add_argument("input", help="Path to the OpenAPI/Swagger JSON (or YAML) document.")
    p.add_argument(
        "output_dir",
        nargs="?",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Directory to write the per-path documents into (default: {DEFAULT_OUTPUT_DIR}).",
    )
    p.add_argument(
        "--config",
        default=None,
        help="Optional JSON/YAML config file. Command-line options override its values.",
    )
    p.add_argument(
        "--scan-profile",
        choices=sorted(SCAN_PROFILES),
        default=None,
        help="Which OpenAPI fields are followed when collecting schema refs (default: full).",
    )
    p.add_argument(
        "--lenient",
        action="store_true",
        help="Do not require an 'openapi' or 'swagger' field in the input.",
    )
    p.add_argument(
        "--keep-version-marker",
        action="store_true",
        help="Copy the 'openapi'/'swagger' version field into every generated document.",
    )
    p.add_argument(
        "--max-filename-length",
        type=int,
        default=None,
        help=f"Maximum length of generated filenames, extension included (default: {MAX_FILENAME_LENGTH}).",
    )
    p.add_argument(
        "--no-pretty",
        action="store_true",
        help="Emit compact JSON instead of pretty-printed output.",
    )
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every file written.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    return p.parse_args(argv)


def _configure_logging(args: argparse.Namespace) -> logging.Logger:
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level)
    return log


def _build_config(args: argparse.Namespace) -> SplitterConfig:
    config = load_config(Path(args.config)) if args.config else SplitterConfig()
    if args.scan_profile:
        config = replace(config, scan_fields=_scan_profile(args.scan_profile))
    if args.lenient:
        config = replace(config, require_version_marker=False)
    if args.keep_version_marker:
        config = replace(config, keep_version_marker=True)
    if args.max_filename_length is not None:
        config = replace(config, max_filename_length=_check_filename_length(args.max_filename_length))
    if args.no_pretty:
        config = replace(config, indent=None)
    return config


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    log = _configure_logging(args)

    try:
        config = _build_config(args)
        split_file(Path(args.input), Path(args.output_dir), config=config, log=log)
    except (FormatError, ConfigError) as e:
        log.error("Error processing Swagger file: %s", e)
        return 2
    except IOSetupError as e:
        log.error("Error preparing output: %s", e)
        return 1

    log.info("Split Swagger file into individual API files in: %s", Path(args.output_dir).absolute())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
