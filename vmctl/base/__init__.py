"""Capability contracts and core utilities.

Every compute backend implements some subset of the contracts defined
here. Import them to type-hint your own code or to write test doubles.
"""

from .vm import VMCore, VMAdmin, VMNetwork
from .config import AWSConfig, PollConfig, SSHConfig
from .reconcile import (
    ReconciliationTarget,
    STARTING,
    STOPPING,
    check_acknowledgement,
    wait_for_state,
)
from .supported_services import existing_cloud_providers


__all__ = [
    "VMCore",
    "VMAdmin",
    "VMNetwork",
    "AWSConfig",
    "PollConfig",
    "SSHConfig",
    "ReconciliationTarget",
    "STARTING",
    "STOPPING",
    "check_acknowledgement",
    "wait_for_state",
    "existing_cloud_providers",
]
