"""vmctl: lifecycle and remote shell for a single cloud instance.

Import :func:`retrieve_instance` to get a handle with a single call::

    from vmctl import retrieve_instance

    vm = retrieve_instance("aws", "i-0abc1234", {"region_name": "us-east-2"})
    vm.start()
"""

from .base import (
    VMCore,
    VMAdmin,
    VMNetwork,
    AWSConfig,
    PollConfig,
    SSHConfig,
)
from .factory import retrieve_instance, create_instance
from .ssh import SSHAgent, CommandResult

__all__ = [
    "VMCore",
    "VMAdmin",
    "VMNetwork",
    "AWSConfig",
    "PollConfig",
    "SSHConfig",
    "SSHAgent",
    "CommandResult",
    "retrieve_instance",
    "create_instance",
]
