"""Reconciler converging remote resources on a manifest.

The reconciler:
1. Refreshes every resource known to the state file (vanished ones drop out)
2. Plans one action per resource by diffing desired config against the
   refreshed attributes
3. Creates, updates and replaces in manifest order, then deletes resources
   that are in state but no longer declared
4. Saves state after every step, so an interrupted apply loses nothing

The first failing step stops the run. Its error is reported in the
ReconcileResult; the state file reflects everything done up to that point.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .errors import ProviderError, WaitCancelledError
from .registry import AdapterRegistry
from .resource import PlanAction, ResourceState
from .spec_loader import DeclaredResource, Manifest
from .state import StateStore

logger = logging.getLogger(__name__)


class ReconcileError(ProviderError):
    """Raised when a reconciler request is invalid for the current state."""

    pass


@dataclass(frozen=True)
class ResourceChange:
    """A planned action for one named resource."""

    name: str
    kind: str
    action: PlanAction
    changed_fields: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "action": self.action.value,
            "changed_fields": list(self.changed_fields),
        }


@dataclass
class ReconcileResult:
    """Result of an apply or destroy run."""

    dry_run: bool = False
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    changes: list[ResourceChange] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    replaced: int = 0
    deleted: int = 0
    error: Exception | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def success(self) -> bool:
        """Check if the run succeeded."""
        return self.error is None

    @property
    def pending_changes(self) -> list[ResourceChange]:
        return [c for c in self.changes if c.action is not PlanAction.NO_CHANGE]


class Reconciler:
    """Plans and applies manifests against the state file."""

    def __init__(
        self,
        registry: AdapterRegistry,
        store: StateStore,
        *,
        dry_run: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._registry = registry
        self._store = store
        self._dry_run = dry_run
        self._cancel_event = cancel_event

    @property
    def store(self) -> StateStore:
        return self._store

    def refresh(self, *, persist: bool = True) -> dict[str, ResourceState]:
        """Re-read every resource in state.

        Args:
            persist: Write refreshed attributes (and drop vanished
                resources) to the state file.

        Returns:
            Current state per resource name, vanished resources omitted.
        """
        current: dict[str, ResourceState] = {}

        for name in self._store.names():
            prior = self._store.get(name)
            if prior is None:
                continue
            adapter = self._registry.get(prior.kind)
            state = adapter.read(prior.id)

            if state is None:
                logger.warning(
                    "Resource vanished remotely",
                    extra={"resource": name, "kind": prior.kind, "resource_id": prior.id},
                )
                if persist:
                    self._store.remove(name)
                continue

            current[name] = state
            if persist:
                self._store.put(name, state)

        if persist:
            self._store.save()
        return current

    def plan(self, manifest: Manifest, *, refresh: bool = True) -> list[ResourceChange]:
        """Compute the changes an apply would make, without making them."""
        if refresh:
            current = self.refresh(persist=False)
        else:
            current = {}
            for name in self._store.names():
                state = self._store.get(name)
                if state is not None:
                    current[name] = state
        return self._plan(manifest, current)

    def _plan(
        self, manifest: Manifest, current: dict[str, ResourceState]
    ) -> list[ResourceChange]:
        changes: list[ResourceChange] = []

        for resource in manifest.resources:
            prior = current.get(resource.name)
            adapter = self._registry.get(resource.kind)

            if prior is not None and prior.kind != resource.kind:
                changes.append(
                    ResourceChange(resource.name, resource.kind, PlanAction.REPLACE, ("kind",))
                )
                continue

            if prior is None:
                changes.append(ResourceChange(resource.name, resource.kind, PlanAction.CREATE))
                continue

            changed = adapter.diff(prior, resource.config)
            action = adapter.action_for(changed)
            changes.append(ResourceChange(resource.name, resource.kind, action, tuple(changed)))

        declared = set(manifest.names())
        for name in reversed(list(current)):
            if name not in declared:
                changes.append(ResourceChange(name, current[name].kind, PlanAction.DELETE))

        return changes

    def apply(self, manifest: Manifest) -> ReconcileResult:
        """Converge remote resources on the manifest."""
        result = ReconcileResult(dry_run=self._dry_run)

        try:
            current = self.refresh(persist=not self._dry_run)
            result.changes = self._plan(manifest, current)

            if self._dry_run:
                logger.info(
                    "Dry run, no changes applied",
                    extra={"pending_changes": len(result.pending_changes)},
                )
            else:
                for change in result.changes:
                    self._check_cancelled()
                    declared = manifest.get(change.name)
                    self._execute(change, declared, current.get(change.name), result)
        except Exception as e:
            result.error = e
        finally:
            result.end_time = datetime.now(UTC)

        self._log_result("apply", result)
        return result

    def destroy(self) -> ReconcileResult:
        """Delete every resource in state, most recently added first."""
        result = ReconcileResult(dry_run=self._dry_run)

        try:
            for name in reversed(self._store.names()):
                prior = self._store.get(name)
                if prior is None:
                    continue
                change = ResourceChange(name, prior.kind, PlanAction.DELETE)
                result.changes.append(change)
                if self._dry_run:
                    continue
                self._check_cancelled()
                self._execute(change, None, prior, result)
        except Exception as e:
            result.error = e
        finally:
            result.end_time = datetime.now(UTC)

        self._log_result("destroy", result)
        return result

    def import_resource(self, name: str, kind: str, import_id: str) -> ResourceState:
        """Adopt an existing remote object into state under ``name``.

        Raises:
            ReconcileError: If ``name`` is already in state.
            KeyError: If ``kind`` is unknown.
            ResourceNotFoundError: If nothing exists under ``import_id``.
            MalformedIdError: If ``import_id`` does not match the kind's ID format.
        """
        if name in self._store:
            raise ReconcileError(f"Resource '{name}' is already managed")

        adapter = self._registry.get(kind)
        state = adapter.import_state(import_id)

        self._store.put(name, state)
        self._store.save()

        logger.info(
            "Imported resource",
            extra={"resource": name, "kind": kind, "resource_id": state.id},
        )
        return state

    def _execute(
        self,
        change: ResourceChange,
        declared: DeclaredResource | None,
        prior: ResourceState | None,
        result: ReconcileResult,
    ) -> None:
        extra = {
            "resource": change.name,
            "kind": change.kind,
            "action": change.action.value,
            "fields": list(change.changed_fields),
        }

        match change.action:
            case PlanAction.NO_CHANGE:
                return

            case PlanAction.CREATE:
                assert declared is not None
                logger.info("Creating resource", extra=extra)
                self._create(change.name, declared)
                result.created += 1

            case PlanAction.UPDATE:
                assert declared is not None and prior is not None
                logger.info("Updating resource", extra=extra)
                state = self._registry.get(declared.kind).update(prior, declared.config)
                if state is None:
                    # Vanished between refresh and update
                    self._store.remove(change.name)
                    self._store.save()
                    self._create(change.name, declared)
                    result.created += 1
                else:
                    self._store.put(change.name, state)
                    self._store.save()
                    result.updated += 1

            case PlanAction.REPLACE:
                assert declared is not None and prior is not None
                logger.info("Replacing resource", extra=extra)
                self._delete(change.name, prior)
                self._create(change.name, declared)
                result.replaced += 1

            case PlanAction.DELETE:
                assert prior is not None
                logger.info("Deleting resource", extra=extra)
                self._delete(change.name, prior)
                result.deleted += 1

    def _create(self, name: str, declared: DeclaredResource) -> None:
        state = self._registry.get(declared.kind).create(declared.config)
        self._store.put(name, state)
        self._store.save()

    def _delete(self, name: str, prior: ResourceState) -> None:
        self._registry.get(prior.kind).delete(prior.id)
        self._store.remove(name)
        self._store.save()

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise WaitCancelledError("Reconciliation cancelled")

    def _log_result(self, operation: str, result: ReconcileResult) -> None:
        """Log run result with structured data."""
        extra: dict[str, Any] = {
            "operation": operation,
            "dry_run": result.dry_run,
            "duration_seconds": result.duration_seconds,
            "pending_changes": len(result.pending_changes),
            "created_count": result.created,
            "updated_count": result.updated,
            "replaced_count": result.replaced,
            "deleted_count": result.deleted,
        }

        if result.error is not None:
            extra["error"] = str(result.error)
            extra["error_type"] = type(result.error).__name__
            logger.error("Reconciliation failed", extra=extra)
        else:
            logger.info("Reconciliation result", extra=extra)
