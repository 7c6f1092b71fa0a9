"""Local state file.

Maps each declared resource name to the last known ResourceState. The file
is JSON, written atomically (temp file in the same directory, then rename)
so an interrupted apply never leaves a truncated state behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .config import MAX_STATE_FILE_SIZE_BYTES
from .resource import ResourceState

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1


class StateError(Exception):
    """Raised when the state file cannot be read or written."""

    pass


class StateStore:
    """Resource states keyed by declared name, backed by a JSON file."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._resources: dict[str, ResourceState] = {}

    @property
    def path(self) -> Path:
        return self._path

    @classmethod
    def load(cls, path: Path) -> StateStore:
        """Load a state file, or start empty if it does not exist.

        Raises:
            StateError: If the file is too large, unreadable or malformed.
        """
        store = cls(path)
        if not path.exists():
            logger.info("No state file, starting empty", extra={"state_file": str(path)})
            return store

        try:
            file_size = path.stat().st_size
        except OSError as e:
            raise StateError(f"Failed to stat state file {path}: {e}") from e

        if file_size > MAX_STATE_FILE_SIZE_BYTES:
            raise StateError(
                f"State file exceeds maximum size of {MAX_STATE_FILE_SIZE_BYTES} bytes: {path}"
            )

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StateError(f"Failed to read state file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise StateError(f"Invalid JSON in state file {path}: {e}") from e

        if not isinstance(data, dict):
            raise StateError(f"State file must contain a JSON object: {path}")

        version = data.get("version")
        if version != STATE_FORMAT_VERSION:
            raise StateError(
                f"Unsupported state format version {version!r} in {path}, "
                f"expected {STATE_FORMAT_VERSION}"
            )

        resources = data.get("resources") or {}
        if not isinstance(resources, dict):
            raise StateError(f"'resources' must be an object in state file {path}")

        try:
            for name, entry in resources.items():
                store._resources[name] = ResourceState.from_dict(entry)
        except (KeyError, TypeError, AttributeError) as e:
            raise StateError(f"Malformed resource entry in state file {path}: {e}") from e

        logger.info(
            "Loaded state",
            extra={"state_file": str(path), "resource_count": len(store._resources)},
        )
        return store

    def get(self, name: str) -> ResourceState | None:
        return self._resources.get(name)

    def put(self, name: str, state: ResourceState) -> None:
        self._resources[name] = state

    def remove(self, name: str) -> ResourceState | None:
        return self._resources.pop(name, None)

    def names(self) -> list[str]:
        """Resource names in insertion order."""
        return list(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, name: object) -> bool:
        return name in self._resources

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": STATE_FORMAT_VERSION,
            "resources": {name: state.to_dict() for name, state in self._resources.items()},
        }

    def save(self) -> None:
        """Write the state file atomically.

        Raises:
            StateError: If the file cannot be written.
        """
        content = json.dumps(self.to_dict(), indent=2, sort_keys=True)
        directory = self._path.parent if str(self._path.parent) else Path(".")

        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                    f.write("\n")
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StateError(f"Failed to write state file {self._path}: {e}") from e

        logger.debug(
            "Saved state",
            extra={"state_file": str(self._path), "resource_count": len(self._resources)},
        )
