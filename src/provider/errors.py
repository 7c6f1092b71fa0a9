"""Exception hierarchy shared by the reconciliation core and the adapters.

Errors are surfaced to the caller verbatim. Nothing in the core retries;
retry policy belongs to the calling adapter (and to botocore's own
retry configuration for individual API calls).
"""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for all provider errors."""

    pass


class MalformedIdError(ProviderError, ValueError):
    """Raised when a composite identifier cannot be encoded or decoded."""

    pass


class ResourceNotFoundError(ProviderError):
    """Raised when a remote object does not exist (or no longer exists)."""

    def __init__(self, kind: str, resource_id: str) -> None:
        self.kind = kind
        self.resource_id = resource_id
        super().__init__(f"{kind} '{resource_id}' not found")


class WaitError(ProviderError):
    """Base class for state-wait failures."""

    pass


class WaitTimeoutError(WaitError):
    """The wait deadline passed while the remote object was still pending."""

    def __init__(self, last_status: str | None, timeout_seconds: float, description: str = "") -> None:
        self.last_status = last_status
        self.timeout_seconds = timeout_seconds
        subject = f" for {description}" if description else ""
        super().__init__(
            f"Timeout after {timeout_seconds:g}s waiting{subject} "
            f"(last status: {last_status!r})"
        )


class TerminalStateError(WaitError):
    """The remote object reached a known failure state."""

    def __init__(self, status: str, description: str = "") -> None:
        self.status = status
        subject = f"{description} " if description else ""
        super().__init__(f"{subject}reached terminal failure state {status!r}")


class UnexpectedStateError(WaitError):
    """The remote object reported a status outside the known state sets."""

    def __init__(self, status: str, description: str = "") -> None:
        self.status = status
        subject = f"{description} " if description else ""
        super().__init__(f"{subject}reported unexpected state {status!r}")


class WaitCancelledError(WaitError):
    """The caller cancelled the wait."""

    pass


class AdapterError(ProviderError):
    """Raised when an adapter operation fails for a non-recoverable reason."""

    pass
