"""
Pydantic configuration models.

``AWSConfig`` is the explicit credentials context handed to every backend
client, so credentials never have to travel through process-wide state.
``PollConfig`` bounds the reconciliation loop and ``SSHConfig`` describes
the remote shell endpoint.
"""

from __future__ import annotations

import os
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_REGION = "us-east-2"
DEFAULT_ROLE_SESSION_NAME = "minecraft-session"


class AWSConfig(BaseModel):
    """Credentials context for the AWS backend.

    Credentials are resolved in order:
    1. Explicit values passed in the config dict.
    2. Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY,
       AWS_SESSION_TOKEN, AWS_DEFAULT_REGION). The credential variables are
       only consulted when no access key was passed explicitly.
    3. If neither is set, credential fields are left as None so boto3 can
       fall back to its own credential chain. The region defaults to
       ``us-east-2``.

    When ``role_arn`` is set the backend assumes that role through STS
    before talking to EC2.
    """

    model_config = ConfigDict(extra="forbid")

    aws_access_key_id: str | None = Field(default=None, description="AWS access key ID")
    aws_secret_access_key: str | None = Field(default=None, description="AWS secret access key")
    aws_session_token: str | None = Field(default=None, description="Temporary session token")
    region_name: str = Field(default=DEFAULT_REGION, description="AWS region (e.g. 'us-east-2')")
    role_arn: str | None = Field(default=None, description="IAM role to assume via STS")
    role_session_name: str = Field(
        default=DEFAULT_ROLE_SESSION_NAME, description="STS session name when assuming a role"
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to environment variables for missing credentials.

        The key pair and session token are read from the environment as one
        group, and only when neither key was given explicitly, so an explicit
        key is never paired with another key's session token.
        """
        values = dict(values)
        credential_env = {
            "aws_access_key_id": "AWS_ACCESS_KEY_ID",
            "aws_secret_access_key": "AWS_SECRET_ACCESS_KEY",
            "aws_session_token": "AWS_SESSION_TOKEN",
        }
        if not values.get("aws_access_key_id") and not values.get("aws_secret_access_key"):
            for field, env_var in credential_env.items():
                env_value = os.environ.get(env_var)
                if env_value and not values.get(field):
                    values[field] = env_value
        if not values.get("region_name"):
            env_region = os.environ.get("AWS_DEFAULT_REGION")
            if env_region:
                values["region_name"] = env_region
        return values


class PollConfig(BaseModel):
    """Bounds for the start/stop reconciliation loop.

    The delay between polls starts at ``interval`` and grows by
    ``backoff_factor`` up to ``max_interval``. ``max_attempts`` and
    ``timeout`` cap the wait; ``None`` leaves that dimension unbounded.
    """

    model_config = ConfigDict(extra="forbid")

    interval: float = Field(default=2.0, ge=0, description="Initial delay between polls (s)")
    backoff_factor: float = Field(default=1.5, ge=1, description="Delay multiplier per poll")
    max_interval: float = Field(default=15.0, ge=0, description="Cap on the delay between polls (s)")
    max_attempts: int | None = Field(default=None, ge=1, description="Maximum number of polls")
    timeout: float | None = Field(default=600.0, gt=0, description="Wall-clock budget (s)")


class SSHConfig(BaseModel):
    """Remote shell endpoint settings."""

    model_config = ConfigDict(extra="forbid")

    username: str = Field(default="ubuntu", description="Login account of the instance image")
    port: int = Field(default=22, gt=0, lt=65536)
    timeout: float = Field(default=30.0, gt=0, description="Connect timeout (s)")


# Map provider names to their config models for dynamic validation
CONFIG_REGISTRY: dict[str, type[BaseModel]] = {
    "aws": AWSConfig,
}


def validate_config(cloud_provider: str, config: dict | BaseModel | None) -> BaseModel:
    """Validate and return a typed config model for the given provider.

    Args:
        cloud_provider: The cloud provider name (e.g. 'aws').
        config: Raw configuration dictionary, or an already validated model.

    Returns:
        A validated Pydantic config model.

    Raises:
        ValueError: If the provider is unknown.
        pydantic.ValidationError: If the config is invalid.
    """
    model = CONFIG_REGISTRY.get(cloud_provider)
    if model is None:
        raise ValueError(f"No config model registered for provider: {cloud_provider}")
    if isinstance(config, model):
        return config
    if isinstance(config, BaseModel):
        config = config.model_dump()
    return model(**(config or {}))


__all__ = [
    "AWSConfig",
    "PollConfig",
    "SSHConfig",
    "CONFIG_REGISTRY",
    "DEFAULT_REGION",
    "validate_config",
]
