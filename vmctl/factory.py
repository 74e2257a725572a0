"""Backend factory.

Provides :func:`retrieve_instance` and :func:`create_instance`, the
entry-points for obtaining instance handles. Both dispatch to the
provider-specific backend based on ``cloud_provider`` and validate the
config into that provider's credentials context first.
"""

from typing import Any

from pydantic import BaseModel

from vmctl.base import PollConfig, existing_cloud_providers
from vmctl.base.config import validate_config
from vmctl.aws.factory import BACKEND as AWS_BACKEND


# Provider registry: cloud_provider -> backend instance type
_FACTORY_REGISTRY: dict[str, type] = {
    "aws": AWS_BACKEND,
}


def backend_for(cloud_provider: str) -> type:
    """Return the backend instance type for *cloud_provider*.

    Raises:
        ValueError: If the cloud provider is not supported.
    """
    if cloud_provider not in _FACTORY_REGISTRY:
        raise ValueError(f"Unsupported cloud provider: {cloud_provider}")
    return _FACTORY_REGISTRY[cloud_provider]


def retrieve_instance(
    cloud_provider: existing_cloud_providers,
    instance_id: str,
    config: dict | BaseModel | None = None,
    poll: PollConfig | None = None,
) -> Any:
    """
    Resolve an existing instance on the given provider.
    Args:
        cloud_provider: The cloud provider (e.g. 'aws').
        instance_id: Provider-assigned identifier.
        config: Credentials context, as a dict or validated model.
        poll: Reconciliation settings for the returned handle.
    Returns:
        The instance handle, or None if nothing matches.
    Raises:
        ValueError: If the cloud provider is not supported.
        AmbiguousSelectorError: If more than one instance matches.
    """
    backend = backend_for(cloud_provider)
    return backend.retrieve(instance_id, validate_config(cloud_provider, config), poll=poll)


def create_instance(
    cloud_provider: existing_cloud_providers,
    config: dict | BaseModel | None = None,
    **kwargs: Any,
) -> Any:
    """
    Launch a new instance on the given provider.
    Args:
        cloud_provider: The cloud provider (e.g. 'aws').
        config: Credentials context, as a dict or validated model.
        **kwargs: Backend-specific launch options (image_id, instance_type, tag, ...).
    Returns:
        Handle on the new instance.
    Raises:
        ValueError: If the cloud provider is not supported.
    """
    backend = backend_for(cloud_provider)
    return backend.create(validate_config(cloud_provider, config), **kwargs)
