"""Tag reconciliation.

Computes the smallest set of tag operations that moves a resource's remote
tags to the desired set, and applies it through the service's own
add/remove calls.

Removals run before additions. If the removal call fails the addition is not
attempted; if the addition fails after a successful removal the resource is
left partially updated. Remote tag APIs are idempotent per call, so running
the whole reconciliation again against the actual current tags converges.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Keys with this prefix are managed by AWS and cannot be set or removed
SYSTEM_TAG_PREFIX = "aws:"

TagSet = dict[str, str]


@dataclass(frozen=True)
class TagDiff:
    """Tag operations needed to reach the desired set.

    Attributes:
        additions: Keys to set, new or with a changed value.
        removals: Keys to delete.
    """

    additions: dict[str, str] = field(default_factory=dict)
    removals: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.additions and not self.removals


def ignore_system_tags(tags: Mapping[str, str] | None) -> TagSet:
    """Drop AWS-reserved keys from a tag set."""
    if not tags:
        return {}
    return {k: v for k, v in tags.items() if not k.startswith(SYSTEM_TAG_PREFIX)}


def diff_tags(current: Mapping[str, str] | None, desired: Mapping[str, str] | None) -> TagDiff:
    """Compute the operations that turn ``current`` into ``desired``.

    Keys present in both with the same value appear in neither side of the
    result.
    """
    current = ignore_system_tags(current)
    desired = ignore_system_tags(desired)

    additions = {k: v for k, v in desired.items() if k not in current or current[k] != v}
    removals = frozenset(k for k in current if k not in desired)

    return TagDiff(additions=additions, removals=removals)


def apply_tag_diff(
    diff: TagDiff,
    add: Callable[[TagSet], object],
    remove: Callable[[frozenset[str]], object],
) -> None:
    """Apply a tag diff, removals first.

    Args:
        diff: Operations to perform.
        add: Sets the given tags remotely. Only called with a non-empty set.
        remove: Deletes the given keys remotely. Only called with a
            non-empty set.
    """
    if diff.removals:
        logger.debug("Removing tags", extra={"tag_keys": sorted(diff.removals)})
        remove(diff.removals)

    if diff.additions:
        logger.debug("Setting tags", extra={"tag_keys": sorted(diff.additions)})
        add(dict(diff.additions))


def reconcile_tags(
    current: Mapping[str, str] | None,
    desired: Mapping[str, str] | None,
    add: Callable[[TagSet], object],
    remove: Callable[[frozenset[str]], object],
) -> TagDiff:
    """Diff against the actual current tags and apply the result.

    Returns:
        The diff that was applied.
    """
    diff = diff_tags(current, desired)
    apply_tag_diff(diff, add, remove)
    return diff
