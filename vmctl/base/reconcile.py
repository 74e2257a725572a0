"""Instance-state reconciliation.

A state-change request is only an acknowledgement that a transition was
*requested*. :func:`wait_for_state` polls the backend until the instance
reaches the operation's terminal status, so callers never act on an
instance (e.g. open an SSH session) before it is reachable.

Any status outside the acceptable transient set is fatal: an instance that
crashed on boot would otherwise keep the loop waiting forever.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from vmctl.base.backoff import backoff_delays, sleep_or_cancel
from vmctl.base.config import PollConfig
from vmctl.base.exceptions import (
    AmbiguousSelectorError,
    InstanceNotFoundError,
    ReconciliationCancelledError,
    ReconciliationTimeoutError,
    StateChangeError,
    UnexpectedStateError,
)
from vmctl.base.logger import vm_logger


@dataclass(frozen=True)
class ReconciliationTarget:
    """Desired terminal status plus the statuses acceptable on the way there."""

    operation: str
    terminal: str
    transient: frozenset[str]

    def accepts(self, status: str) -> bool:
        return status == self.terminal or status in self.transient


STARTING = ReconciliationTarget("start", "running", frozenset({"pending", "running"}))
STOPPING = ReconciliationTarget("stop", "stopped", frozenset({"stopping", "stopped"}))
# Only used to check acknowledgements; terminate is never polled.
TERMINATING = ReconciliationTarget(
    "terminate", "terminated", frozenset({"shutting-down", "terminated"})
)


def check_acknowledgement(
    target: ReconciliationTarget,
    changes: Sequence[Any] | None,
    instance_id: str,
) -> None:
    """Require that exactly one instance transitioned.

    Args:
        target: Operation that was requested.
        changes: State-change records returned by the backend.
        instance_id: Identifier the request was issued for.

    Raises:
        StateChangeError: Nothing transitioned, or a different instance did.
        AmbiguousSelectorError: More than one instance transitioned.
    """
    count = len(changes or ())
    if count == 0:
        raise StateChangeError(
            f"Tried to {target.operation} instance '{instance_id}', none changed state"
        )
    if count > 1:
        raise AmbiguousSelectorError(instance_id, count)
    acknowledged = changes[0].get("InstanceId")  # type: ignore[index]
    if acknowledged != instance_id:
        raise StateChangeError(
            f"Tried to {target.operation} instance '{instance_id}', "
            f"backend acknowledged '{acknowledged}' instead"
        )


def wait_for_state(
    fetch_status: Callable[[], str | None],
    target: ReconciliationTarget,
    poll: PollConfig | None = None,
    *,
    instance_id: str | None = None,
    cancel: threading.Event | None = None,
) -> str:
    """Block until *fetch_status* reports the target's terminal status.

    Args:
        fetch_status: Returns the instance's current status, or ``None`` if
            the instance no longer resolves.
        target: Terminal and transient statuses for this operation.
        poll: Delay, backoff and budget settings. Defaults to ``PollConfig()``.
        instance_id: Used for log context and error messages only.
        cancel: Setting this event aborts the wait.

    Returns:
        The terminal status.

    Raises:
        InstanceNotFoundError: The instance disappeared while polling.
        UnexpectedStateError: A status outside the acceptable set was seen.
        ReconciliationTimeoutError: ``max_attempts`` or ``timeout`` exceeded.
        ReconciliationCancelledError: *cancel* was set.
    """
    poll = poll or PollConfig()
    deadline = None if poll.timeout is None else time.monotonic() + poll.timeout
    delays = backoff_delays(poll.interval, poll.max_interval, poll.backoff_factor)
    attempts = 0

    while True:
        if cancel is not None and cancel.is_set():
            raise ReconciliationCancelledError(
                f"Wait for '{instance_id}' to {target.operation} was cancelled"
            )

        status = fetch_status()
        attempts += 1
        vm_logger.debug(
            f"Poll {attempts} while waiting for '{target.terminal}'",
            instance_id=instance_id,
            operation=target.operation,
            status=status,
        )

        if status is None:
            raise InstanceNotFoundError(
                f"Instance '{instance_id}' disappeared while waiting to {target.operation}"
            )
        if status == target.terminal:
            return status
        if status not in target.transient:
            raise UnexpectedStateError(target.operation, status, target.transient)

        if poll.max_attempts is not None and attempts >= poll.max_attempts:
            raise ReconciliationTimeoutError(
                f"Instance '{instance_id}' still '{status}' after {attempts} polls"
            )
        delay = next(delays)
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ReconciliationTimeoutError(
                    f"Instance '{instance_id}' still '{status}' after {poll.timeout}s"
                )
            delay = min(delay, remaining)
        if sleep_or_cancel(delay, cancel):
            raise ReconciliationCancelledError(
                f"Wait for '{instance_id}' to {target.operation} was cancelled"
            )
