"""AWS provider implementations."""

from .credentials import Credential, export_to_env, export_to_env_from
from .instance import Instance

__all__ = [
    "Credential",
    "Instance",
    "export_to_env",
    "export_to_env_from",
]
