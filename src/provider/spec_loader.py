"""Manifest loading with validation.

SECURITY: The manifest size is checked before it is read. Every resource
config is validated by its adapter's pydantic model at the boundary, so an
apply never starts with a value AWS would reject for shape reasons.

Manifest format::

    resources:
      - name: main-link
        kind: aws_apigatewayv2_vpc_link
        config:
          name: main
          subnet_ids: [subnet-1, subnet-2]

A Kubernetes-style wrapper (``apiVersion``/``kind``/``spec``) is accepted
too, with ``resources`` under ``spec``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from .config import MAX_MANIFEST_FILE_SIZE_BYTES
from .registry import AdapterRegistry

logger = logging.getLogger(__name__)

VALID_RESOURCE_NAME_PATTERN = r"^[A-Za-z][A-Za-z0-9_.-]{0,127}$"


class ManifestLoadError(Exception):
    """Raised when manifest loading or validation fails."""

    pass


@dataclass(frozen=True)
class DeclaredResource:
    """One resource declared in a manifest."""

    name: str
    kind: str
    config: BaseModel


@dataclass
class Manifest:
    """Validated manifest, resources in declaration order."""

    path: Path
    resources: list[DeclaredResource] = field(default_factory=list)

    def names(self) -> list[str]:
        return [r.name for r in self.resources]

    def get(self, name: str) -> DeclaredResource | None:
        for resource in self.resources:
            if resource.name == name:
                return resource
        return None


def _format_validation_error(e: ValidationError) -> str:
    errors = []
    for error in e.errors():
        loc = ".".join(str(x) for x in error["loc"])
        msg = error["msg"]
        errors.append(f"  - {loc}: {msg}")
    return "\n".join(errors)


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        raise ManifestLoadError(f"Manifest file not found: {path}")

    # SECURITY: Check file size before reading to prevent DoS
    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise ManifestLoadError(f"Failed to stat manifest file {path}: {e}") from e

    if file_size > MAX_MANIFEST_FILE_SIZE_BYTES:
        raise ManifestLoadError(
            f"Manifest file exceeds maximum size of {MAX_MANIFEST_FILE_SIZE_BYTES} bytes: {path}"
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestLoadError(f"Failed to read manifest file {path}: {e}") from e

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ManifestLoadError(f"Invalid YAML in {path}: {e}") from e


def load_manifest(path: Path, registry: AdapterRegistry) -> Manifest:
    """Load and validate a manifest from YAML.

    Args:
        path: Manifest file.
        registry: Adapters used to validate each resource's config.

    Returns:
        Validated manifest.

    Raises:
        ManifestLoadError: If the manifest cannot be loaded or fails validation.
    """
    raw_data = _read_yaml(path)

    if not isinstance(raw_data, dict):
        raise ManifestLoadError(f"Manifest file must contain a YAML mapping: {path}")

    # Support both flat format and Kubernetes-style wrapper
    if "apiVersion" in raw_data and "spec" in raw_data:
        body = raw_data.get("spec", {})
        if not isinstance(body, dict):
            raise ManifestLoadError(f"Spec section must be a mapping: {path}")
    else:
        body = raw_data

    entries = body.get("resources")
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise ManifestLoadError(f"'resources' must be a list: {path}")

    manifest = Manifest(path=path)
    seen: set[str] = set()
    problems: list[str] = []

    for index, entry in enumerate(entries):
        where = f"resources[{index}]"
        if not isinstance(entry, dict):
            problems.append(f"  - {where}: must be a mapping")
            continue

        unknown = sorted(set(entry) - {"name", "kind", "config"})
        if unknown:
            problems.append(f"  - {where}: unknown keys {unknown}")
            continue

        name = entry.get("name")
        kind = entry.get("kind")
        raw_config = entry.get("config") or {}

        if not isinstance(name, str) or not re.match(VALID_RESOURCE_NAME_PATTERN, name):
            problems.append(f"  - {where}.name: invalid resource name {name!r}")
            continue
        if name in seen:
            problems.append(f"  - {where}.name: duplicate resource name '{name}'")
            continue
        seen.add(name)

        if not isinstance(kind, str) or kind not in registry:
            problems.append(
                f"  - {where}.kind: unknown resource kind {kind!r}, "
                f"expected one of {registry.kinds()}"
            )
            continue

        if not isinstance(raw_config, dict):
            problems.append(f"  - {where}.config: must be a mapping")
            continue

        try:
            config = registry.get(kind).validate_config(raw_config)
        except ValidationError as e:
            nested = _format_validation_error(e).replace("  - ", "      - ")
            problems.append(f"  - {where} ({name}):\n{nested}")
            continue

        manifest.resources.append(DeclaredResource(name=name, kind=kind, config=config))

    if problems:
        error_list = "\n".join(problems)
        raise ManifestLoadError(f"Validation failed for {path}:\n{error_list}")

    logger.info(
        "Loaded manifest",
        extra={"manifest": str(path), "resource_count": len(manifest.resources)},
    )
    return manifest
