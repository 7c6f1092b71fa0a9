"""Polling wait for eventually-consistent remote state.

Remote objects (a VPC link, for example) change state asynchronously after
the request that created them has returned. ``wait_for`` polls a status
callback until the object reaches a target state, a failure state, or the
deadline passes.

The loop blocks the calling thread. Sleeping between polls goes through
``threading.Event.wait`` so a cancellation signal (for example set from a
SIGTERM handler) interrupts the sleep instead of waiting it out.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .errors import (
    ResourceNotFoundError,
    TerminalStateError,
    UnexpectedStateError,
    WaitCancelledError,
    WaitTimeoutError,
)

logger = logging.getLogger(__name__)

# Remote operations are bounded to minutes, a fixed interval is enough
DEFAULT_WAIT_TIMEOUT_SECONDS = 300.0
DEFAULT_POLL_INTERVAL_SECONDS = 3.0

# Floor for the poll interval, prevents busy-polling the remote API
MIN_POLL_INTERVAL_SECONDS = 0.01

StatusPoll = Callable[[], str]


def _as_frozenset(states: Iterable[str]) -> frozenset[str]:
    if isinstance(states, str):
        return frozenset((states,))
    return frozenset(states)


@dataclass(frozen=True)
class WaitSpec:
    """What to wait for and for how long.

    Attributes:
        pending: States in which polling continues.
        target: States that end the wait successfully.
        failure: States that end the wait with TerminalStateError.
        timeout_seconds: Wall-clock budget for the whole wait.
        poll_interval_seconds: Delay between polls (floored at
            MIN_POLL_INTERVAL_SECONDS).
        not_found_is_success: Treat a vanished object as success, used
            when waiting for deletion.
    """

    pending: frozenset[str]
    target: frozenset[str]
    failure: frozenset[str] = frozenset()
    timeout_seconds: float = DEFAULT_WAIT_TIMEOUT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    not_found_is_success: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "pending", _as_frozenset(self.pending))
        object.__setattr__(self, "target", _as_frozenset(self.target))
        object.__setattr__(self, "failure", _as_frozenset(self.failure))

        errors: list[str] = []

        if not self.target and not self.not_found_is_success:
            errors.append("at least one target state is required")

        overlaps = (
            ("pending", "target", self.pending & self.target),
            ("pending", "failure", self.pending & self.failure),
            ("target", "failure", self.target & self.failure),
        )
        for left, right, common in overlaps:
            if common:
                errors.append(f"{left} and {right} states overlap: {sorted(common)}")

        if self.timeout_seconds <= 0:
            errors.append("timeout_seconds must be positive")
        if self.poll_interval_seconds <= 0:
            errors.append("poll_interval_seconds must be positive")

        if errors:
            raise ValueError("Invalid WaitSpec: " + "; ".join(errors))

    @property
    def interval(self) -> float:
        """Effective delay between polls."""
        return max(self.poll_interval_seconds, MIN_POLL_INTERVAL_SECONDS)


def wait_for(
    poll: StatusPoll,
    spec: WaitSpec,
    *,
    cancel_event: threading.Event | None = None,
    description: str = "",
) -> str | None:
    """Poll until the remote object reaches a target state.

    Args:
        poll: Returns the current status string. Raises
            ResourceNotFoundError when the object does not exist.
        spec: States, timeout and interval.
        cancel_event: Optional cancellation signal, checked before each
            poll and while sleeping.
        description: Short subject used in logs and error messages.

    Returns:
        The target status reached, or None when the object disappeared and
        ``spec.not_found_is_success`` is set.

    Raises:
        TerminalStateError: A failure state was reported.
        UnexpectedStateError: A status outside all known sets was reported.
        WaitTimeoutError: The deadline passed while still pending.
        WaitCancelledError: ``cancel_event`` was set.
        ResourceNotFoundError: The object vanished and that is not success.
    """
    # Event.wait doubles as an interruptible sleep
    signal = cancel_event if cancel_event is not None else threading.Event()

    deadline = time.monotonic() + spec.timeout_seconds
    last_status: str | None = None
    polls = 0

    while True:
        if signal.is_set():
            raise WaitCancelledError(f"Wait cancelled{_subject(description)}")

        try:
            status = poll()
        except ResourceNotFoundError:
            if spec.not_found_is_success:
                logger.debug(
                    "Object gone, wait complete",
                    extra={"wait_subject": description, "polls": polls + 1},
                )
                return None
            raise
        polls += 1

        if status in spec.target:
            logger.debug(
                "Target state reached",
                extra={"wait_subject": description, "status": status, "polls": polls},
            )
            return status

        if status in spec.failure:
            raise TerminalStateError(status, description)

        if status not in spec.pending:
            raise UnexpectedStateError(status, description)

        last_status = status
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise WaitTimeoutError(last_status, spec.timeout_seconds, description)

        logger.debug(
            "Still pending",
            extra={"wait_subject": description, "status": status, "polls": polls},
        )

        if signal.wait(min(spec.interval, remaining)):
            raise WaitCancelledError(f"Wait cancelled{_subject(description)}")


def _subject(description: str) -> str:
    return f" for {description}" if description else ""
