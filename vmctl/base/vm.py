"""Capability contracts for compute backends.

``VMCore``, ``VMAdmin`` and ``VMNetwork`` are independent interfaces, not a
hierarchy. A backend inherits whichever subset it supports and callers
type against the narrowest one they need; the SSH layer, for instance,
only requires :class:`VMNetwork`.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class VMCore(ABC):
    """Lifecycle of an instance that already exists."""

    @classmethod
    @abstractmethod
    def retrieve(
        cls,
        instance_id: str,
        config: BaseModel | dict[str, Any] | None = None,
    ) -> VMCore | None:
        """Resolve a handle for *instance_id*.

        Does not wait for any particular state.

        Args:
            instance_id: Provider-assigned identifier.
            config: Credentials context for the backend client.

        Returns:
            The handle, or ``None`` if no instance matches.

        Raises:
            AmbiguousSelectorError: More than one instance matches.
            ComputeError: The lookup itself failed.
        """

    @abstractmethod
    def status(self) -> str | None:
        """Return the current backend status, or ``None`` if the instance is gone."""

    @abstractmethod
    def start(self, cancel: threading.Event | None = None) -> str:
        """Start the instance and block until it is ``running``.

        Must not be called on an instance that is already running.

        Returns:
            The terminal status.

        Raises:
            StateChangeError: The backend started nothing.
            AmbiguousSelectorError: The backend started more than one instance.
            ReconciliationError: The wait failed, timed out or was cancelled.
        """

    @abstractmethod
    def stop(self, cancel: threading.Event | None = None) -> str:
        """Stop the instance and block until it is ``stopped``.

        Must not be called on an instance that is already stopped.
        Raises the same errors as :meth:`start`.
        """


class VMAdmin(ABC):
    """Creation and destruction of instances."""

    @classmethod
    @abstractmethod
    def create(cls, config: BaseModel | dict[str, Any] | None = None, **kwargs: Any) -> VMAdmin:
        """Launch a new instance and return its handle."""

    @abstractmethod
    def terminate(self) -> str:
        """Terminate the instance. Irreversible.

        Only the backend's acknowledgement is checked; the instance is not
        polled to its terminal state.

        Returns:
            The status reported in the acknowledgement.
        """


class VMNetwork(ABC):
    """Network reachability of an instance."""

    @abstractmethod
    def get_public_ip(self) -> str | None:
        """Return the public IPv4 address, or ``None`` if there is none (e.g. not running)."""
