"""Resource adapter contract.

An adapter is the Create/Read/Update/Delete bundle for one resource kind.
It translates between a typed configuration model and the service API, and
reports the resulting remote attributes as a ResourceState.

Conventions shared by every adapter:
- ``read`` and ``update`` return None when the remote object is gone; the
  caller drops it from state
- ``delete`` treats a missing object as already deleted
- any other remote error propagates unchanged
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel

from .config import (
    DEFAULT_CREATE_TIMEOUT_SECONDS,
    DEFAULT_DELETE_TIMEOUT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
)
from .diff_suppress import DiffSuppressor, StructuralFormat, SuppressionConfig
from .errors import ResourceNotFoundError
from .tags import diff_tags

logger = logging.getLogger(__name__)


class PlanAction(str, Enum):
    """What an apply would do with one resource."""

    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    NO_CHANGE = "no_change"


@dataclass
class ResourceState:
    """Known remote state of one resource."""

    kind: str
    id: str
    attributes: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"kind": self.kind, "id": self.id, "attributes": self.attributes}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ResourceState:
        """Create from dictionary."""
        return cls(
            kind=data["kind"],
            id=data["id"],
            attributes=dict(data.get("attributes") or {}),
        )


@dataclass(frozen=True)
class OperationTimeouts:
    """Wait budgets for operations that settle asynchronously."""

    create_seconds: float = DEFAULT_CREATE_TIMEOUT_SECONDS
    delete_seconds: float = DEFAULT_DELETE_TIMEOUT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS


class ResourceAdapter(ABC):
    """Base class for resource adapters.

    Subclasses set ``kind`` and ``config_model`` and implement the four
    operations. Fields listed in ``force_new_fields`` cannot be updated in
    place; a change to one of them plans a replacement. Fields listed in
    ``suppressed_fields`` hold structured documents compared by content.
    """

    kind: ClassVar[str]
    config_model: ClassVar[type[BaseModel]]
    force_new_fields: ClassVar[frozenset[str]] = frozenset()
    suppressed_fields: ClassVar[Mapping[str, StructuralFormat]] = {}

    def __init__(
        self,
        *,
        timeouts: OperationTimeouts | None = None,
        cancel_event: threading.Event | None = None,
        suppression: SuppressionConfig | None = None,
    ) -> None:
        self._timeouts = timeouts or OperationTimeouts()
        self._cancel_event = cancel_event
        self._suppressor = DiffSuppressor(
            fields=dict(self.suppressed_fields),
            config=suppression or SuppressionConfig(),
        )

    def validate_config(self, raw: Mapping[str, Any]) -> BaseModel:
        """Parse raw manifest values into this adapter's typed config.

        Raises:
            pydantic.ValidationError: If the values are invalid.
        """
        return self.config_model.model_validate(raw)

    @abstractmethod
    def create(self, config: Any) -> ResourceState:
        """Create the remote object and return its settled state."""

    @abstractmethod
    def read(self, resource_id: str) -> ResourceState | None:
        """Read the remote object, None if it no longer exists."""

    @abstractmethod
    def update(self, prior: ResourceState, config: Any) -> ResourceState | None:
        """Update in place, None if the object vanished meanwhile."""

    @abstractmethod
    def delete(self, resource_id: str) -> None:
        """Delete the remote object; a missing object counts as deleted."""

    def import_state(self, import_id: str) -> ResourceState:
        """Adopt an existing remote object by identifier.

        Raises:
            ResourceNotFoundError: If nothing exists under ``import_id``.
        """
        state = self.read(import_id)
        if state is None:
            raise ResourceNotFoundError(self.kind, import_id)
        return state

    def diff(self, prior: ResourceState, config: BaseModel) -> list[str]:
        """List configuration fields whose desired value differs remotely."""
        changed: list[str] = []

        for name, desired in config.model_dump().items():
            current = prior.attributes.get(name)

            if name == "tags":
                if not diff_tags(current, desired).is_empty:
                    changed.append(name)
                continue

            if not self._suppressor.suppress(self.kind, name, current, desired):
                changed.append(name)

        return changed

    def plan(self, prior: ResourceState | None, config: BaseModel) -> PlanAction:
        """Decide the action needed to converge ``prior`` on ``config``."""
        if prior is None:
            return PlanAction.CREATE

        return self.action_for(self.diff(prior, config))

    def action_for(self, changed: list[str]) -> PlanAction:
        """Action for an existing resource whose ``changed`` fields differ."""
        if not changed:
            return PlanAction.NO_CHANGE
        if self.force_new_fields.intersection(changed):
            return PlanAction.REPLACE
        return PlanAction.UPDATE

    def _log_gone(self, resource_id: str) -> None:
        logger.warning(
            "Resource not found, removing from state",
            extra={"kind": self.kind, "resource_id": resource_id},
        )
