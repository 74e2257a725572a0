"""
vmctl exception hierarchy.

Every failure mode has a typed exception that inherits from
:class:`VMError`. Hard failures (ambiguous selectors, unexpected states,
transport errors) are raised; soft not-found conditions are returned as
``None`` by the operations themselves and never reach this module.
"""

from __future__ import annotations

from collections.abc import Iterable


# ── Base ──────────────────────────────────────────────────────────────
class VMError(Exception):
    """Root exception for all vmctl errors."""


# ── Compute ───────────────────────────────────────────────────────────
class ComputeError(VMError):
    """Base exception for compute/VM backend operations."""


class InstanceNotFoundError(ComputeError):
    """VM instance not found where one was required."""


class AmbiguousSelectorError(ComputeError):
    """More than one instance matched a selector expected to be unique."""

    def __init__(self, selector: str, count: int) -> None:
        self.selector = selector
        self.count = count
        super().__init__(
            f"Selector {selector!r} matched {count} instances; "
            "identifiers and tags used for lookup must be unique"
        )


class StateChangeError(ComputeError):
    """The backend acknowledged a state change for no instance at all."""


# ── Reconciliation ────────────────────────────────────────────────────
class ReconciliationError(ComputeError):
    """Base exception for failures while waiting on a target state."""


class UnexpectedStateError(ReconciliationError):
    """Instance reported a status outside the acceptable set."""

    def __init__(self, operation: str, status: str, expected: Iterable[str]) -> None:
        self.operation = operation
        self.status = status
        self.expected = frozenset(expected)
        super().__init__(
            f"Tried to {operation} but instance reported status {status!r} "
            f"(expected one of {sorted(self.expected)})"
        )


class ReconciliationTimeoutError(ReconciliationError):
    """Poll budget (attempts or wall-clock) exhausted before the terminal state."""


class ReconciliationCancelledError(ReconciliationError):
    """The wait was cancelled by the caller."""


# ── Credentials ───────────────────────────────────────────────────────
class CredentialError(VMError):
    """Base exception for credential loading."""


class MalformedCredentialsError(CredentialError):
    """Credential file is missing columns or has a mismatched row."""


# ── SSH ───────────────────────────────────────────────────────────────
class SSHError(VMError):
    """Base exception for the remote command channel."""


class NoPublicAddressError(SSHError):
    """The instance has no public address to connect to (is it running?)."""


class SSHConnectionError(SSHError):
    """TCP connection or SSH handshake failed."""


class SSHAuthenticationError(SSHError):
    """The server rejected the private key."""
