"""AWS EC2 implementation of the VM capability contracts."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, NoReturn

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from vmctl.base.async_support import AsyncMixin
from vmctl.base.config import AWSConfig, PollConfig, validate_config
from vmctl.base.exceptions import (
    AmbiguousSelectorError,
    ComputeError,
    CredentialError,
    InstanceNotFoundError,
)
from vmctl.base.logger import vm_logger
from vmctl.base.reconcile import (
    STARTING,
    STOPPING,
    TERMINATING,
    ReconciliationTarget,
    check_acknowledgement,
    wait_for_state,
)
from vmctl.base.vm import VMAdmin, VMCore, VMNetwork

DEFAULT_IMAGE_ID = "ami-07efac79022b86107"  # ubuntu
DEFAULT_INSTANCE_TYPE = "t2.micro"
DEFAULT_TAG = ("minecraft", "minecraft")

_PROVIDER = "aws"

_ERROR_MAP: dict[str, type[ComputeError]] = {
    "InvalidInstanceID.NotFound": InstanceNotFoundError,
    "InvalidInstanceID.Malformed": InstanceNotFoundError,
}

InstancePredicate = Callable[[dict[str, Any]], bool]


def _handle(e: ClientError, msg: str) -> NoReturn:
    exc = _ERROR_MAP.get(e.response["Error"]["Code"])
    raise (exc or ComputeError)(msg) from e


def ec2_client(config: AWSConfig) -> Any:
    """Build an EC2 client from an explicit credentials context.

    If ``config.role_arn`` is set, the given credentials are only used to
    call STS ``AssumeRole`` and the EC2 client runs on the temporary
    credentials it returns.
    """
    credentials = {
        "aws_access_key_id": config.aws_access_key_id,
        "aws_secret_access_key": config.aws_secret_access_key,
        "aws_session_token": config.aws_session_token,
    }
    if config.role_arn:
        try:
            sts = boto3.client("sts", region_name=config.region_name, **credentials)
            resp = sts.assume_role(
                RoleArn=config.role_arn,
                RoleSessionName=config.role_session_name,
            )
        except (ClientError, BotoCoreError) as e:
            raise CredentialError(f"Failed to assume role '{config.role_arn}'") from e
        assumed = resp["Credentials"]
        credentials = {
            "aws_access_key_id": assumed["AccessKeyId"],
            "aws_secret_access_key": assumed["SecretAccessKey"],
            "aws_session_token": assumed["SessionToken"],
        }
    return boto3.client("ec2", region_name=config.region_name, **credentials)


# ── Lookup / filter ───────────────────────────────────────────────────

def list_instances(client: Any) -> list[dict[str, Any]]:
    """Return every instance visible to *client*, flattened across reservations.

    Raises:
        ComputeError: On EC2 API failure.
    """
    instances: list[dict[str, Any]] = []
    params: dict[str, Any] = {}
    try:
        while True:
            resp = client.describe_instances(**params)
            for reservation in resp.get("Reservations", []):
                instances.extend(reservation.get("Instances", []))
            token = resp.get("NextToken")
            if not token:
                return instances
            params["NextToken"] = token
    except ClientError as e:
        _handle(e, "Failed to list instances")


def filter_instances(client: Any, predicate: InstancePredicate) -> list[dict[str, Any]]:
    """Return all listed instances for which *predicate* holds (possibly none)."""
    return [inst for inst in list_instances(client) if predicate(inst)]


def has_id(instance_id: str) -> InstancePredicate:
    return lambda inst: inst.get("InstanceId") == instance_id


def has_tag(key: str, value: str) -> InstancePredicate:
    """Predicate matching instances carrying the tag ``key=value``."""

    def _match(inst: dict[str, Any]) -> bool:
        return any(
            tag.get("Key") == key and tag.get("Value") == value
            for tag in inst.get("Tags", [])
        )

    return _match


def find_unique(
    client: Any, predicate: InstancePredicate, selector: str
) -> dict[str, Any] | None:
    """Return the single instance matching *predicate*.

    Returns:
        The instance description, or ``None`` if nothing matches.

    Raises:
        AmbiguousSelectorError: More than one instance matches.
    """
    matches = filter_instances(client, predicate)
    if not matches:
        return None
    if len(matches) > 1:
        raise AmbiguousSelectorError(selector, len(matches))
    return matches[0]


def get_instance(client: Any, instance_id: str) -> dict[str, Any] | None:
    """Return the description of *instance_id*, or ``None`` if it is not listed."""
    return find_unique(client, has_id(instance_id), instance_id)


def state_of(inst: dict[str, Any]) -> str:
    try:
        return inst["State"]["Name"]  # type: ignore[no-any-return]
    except KeyError:
        raise ComputeError(
            f"Instance '{inst.get('InstanceId')}' has no state in its description"
        ) from None


# ── Instance handle ───────────────────────────────────────────────────

class Instance(VMCore, VMAdmin, VMNetwork, AsyncMixin):
    """Handle on one EC2 instance.

    Every public method has an awaitable ``a``-prefixed twin
    (``aretrieve``, ``astart``, ...) generated by :class:`AsyncMixin`.

    Attributes:
        client: boto3 EC2 client, owned exclusively by this handle.
        image_id: AMI captured at retrieval time. May go stale.
        instance_type: Instance type captured at retrieval time. May go stale.
        poll: Settings for the start/stop reconciliation loop.
    """

    def __init__(
        self,
        client: Any,
        instance_id: str,
        image_id: str | None = None,
        instance_type: str | None = None,
        poll: PollConfig | None = None,
    ) -> None:
        self.client = client
        self._instance_id = instance_id
        self.image_id = image_id
        self.instance_type = instance_type
        self.poll = poll or PollConfig()

    @property
    def instance_id(self) -> str:
        return self._instance_id

    def __repr__(self) -> str:
        return (
            f"Instance(instance_id={self._instance_id!r}, image_id={self.image_id!r}, "
            f"instance_type={self.instance_type!r})"
        )

    @classmethod
    def _from_description(
        cls, client: Any, inst: dict[str, Any], poll: PollConfig | None
    ) -> Instance:
        return cls(
            client,
            inst["InstanceId"],
            image_id=inst.get("ImageId"),
            instance_type=inst.get("InstanceType"),
            poll=poll,
        )

    # -- VMCore ---------------------------------------------------------

    @classmethod
    def retrieve(
        cls,
        instance_id: str,
        config: AWSConfig | dict[str, Any] | None = None,
        poll: PollConfig | None = None,
    ) -> Instance | None:
        """Resolve a handle for an existing EC2 instance.

        Args:
            instance_id: EC2 instance ID (e.g. ``i-0abcd1234``).
            config: Credentials context; a dict is validated into ``AWSConfig``.
            poll: Reconciliation settings for the returned handle.

        Returns:
            The handle, or ``None`` if no instance has that ID.

        Raises:
            AmbiguousSelectorError: The listing holds the ID more than once.
            ComputeError: On EC2 API failure.
        """
        client = ec2_client(validate_config(_PROVIDER, config))
        inst = get_instance(client, instance_id)
        if inst is None:
            vm_logger.info(
                "Instance not found", provider=_PROVIDER, instance_id=instance_id,
                operation="retrieve",
            )
            return None
        return cls._from_description(client, inst, poll)

    @classmethod
    def find_by_tag(
        cls,
        key: str = DEFAULT_TAG[0],
        value: str = DEFAULT_TAG[1],
        config: AWSConfig | dict[str, Any] | None = None,
        poll: PollConfig | None = None,
    ) -> Instance | None:
        """Resolve the single instance tagged ``key=value``.

        Returns:
            The handle, or ``None`` if no instance carries the tag.

        Raises:
            AmbiguousSelectorError: More than one instance carries the tag.
        """
        client = ec2_client(validate_config(_PROVIDER, config))
        inst = find_unique(client, has_tag(key, value), f"{key}={value}")
        if inst is None:
            return None
        return cls._from_description(client, inst, poll)

    def status(self) -> str | None:
        inst = get_instance(self.client, self._instance_id)
        if inst is None:
            return None
        return state_of(inst)

    def start(self, cancel: threading.Event | None = None) -> str:
        """Start this instance and wait until it is ``running``."""
        try:
            resp = self.client.start_instances(InstanceIds=[self._instance_id])
        except ClientError as e:
            _handle(e, f"Failed to start instance '{self._instance_id}'")
        return self._reconcile(STARTING, resp.get("StartingInstances"), cancel)

    def stop(self, cancel: threading.Event | None = None) -> str:
        """Stop this instance (keeping its EBS volumes) and wait until it is ``stopped``."""
        try:
            resp = self.client.stop_instances(InstanceIds=[self._instance_id])
        except ClientError as e:
            _handle(e, f"Failed to stop instance '{self._instance_id}'")
        return self._reconcile(STOPPING, resp.get("StoppingInstances"), cancel)

    def _reconcile(
        self,
        target: ReconciliationTarget,
        changes: list[dict[str, Any]] | None,
        cancel: threading.Event | None,
    ) -> str:
        check_acknowledgement(target, changes, self._instance_id)
        vm_logger.info(
            f"Requested {target.operation}, waiting for '{target.terminal}'",
            provider=_PROVIDER, instance_id=self._instance_id, operation=target.operation,
        )
        try:
            status = wait_for_state(
                self.status, target, self.poll,
                instance_id=self._instance_id, cancel=cancel,
            )
        except ComputeError:
            vm_logger.error(
                f"Failed to {target.operation} instance",
                provider=_PROVIDER, instance_id=self._instance_id,
                operation=target.operation, exc_info=True,
            )
            raise
        vm_logger.info(
            f"Instance reached '{status}'",
            provider=_PROVIDER, instance_id=self._instance_id,
            operation=target.operation, status=status,
        )
        return status

    # -- VMAdmin --------------------------------------------------------

    @classmethod
    def create(
        cls,
        config: AWSConfig | dict[str, Any] | None = None,
        image_id: str = DEFAULT_IMAGE_ID,
        instance_type: str = DEFAULT_INSTANCE_TYPE,
        tag: tuple[str, str] = DEFAULT_TAG,
        poll: PollConfig | None = None,
        **kwargs: Any,
    ) -> Instance:
        """Launch exactly one EC2 instance tagged with *tag*.

        Supported kwargs:
            key_name, security_group_ids, subnet_id, user_data.

        Returns:
            Handle on the new instance. It is not waited on; call
            :meth:`status` or wrap with :func:`wait_for_state` as needed.
        """
        client = ec2_client(validate_config(_PROVIDER, config))
        params: dict[str, Any] = {
            "ImageId": image_id,
            "InstanceType": instance_type,
            "MinCount": 1,
            "MaxCount": 1,
            "TagSpecifications": [
                {
                    "ResourceType": "instance",
                    "Tags": [{"Key": tag[0], "Value": tag[1]}],
                }
            ],
        }
        if "key_name" in kwargs:
            params["KeyName"] = kwargs["key_name"]
        if "security_group_ids" in kwargs:
            params["SecurityGroupIds"] = kwargs["security_group_ids"]
        if "subnet_id" in kwargs:
            params["SubnetId"] = kwargs["subnet_id"]
        if "user_data" in kwargs:
            params["UserData"] = kwargs["user_data"]
        try:
            resp = client.run_instances(**params)
        except ClientError as e:
            _handle(e, f"Failed to create instance from '{image_id}'")
        launched = resp.get("Instances", [])
        if len(launched) != 1:
            raise ComputeError(f"Expected one launched instance, got {len(launched)}")
        inst = launched[0]
        vm_logger.info(
            "Launched instance", provider=_PROVIDER, instance_id=inst["InstanceId"],
            operation="create",
        )
        return cls(
            client,
            inst["InstanceId"],
            image_id=inst.get("ImageId", image_id),
            instance_type=inst.get("InstanceType", instance_type),
            poll=poll,
        )

    def terminate(self) -> str:
        """Terminate this instance permanently.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
            AmbiguousSelectorError: More than one instance was terminated.
        """
        try:
            resp = self.client.terminate_instances(InstanceIds=[self._instance_id])
        except ClientError as e:
            _handle(e, f"Failed to terminate instance '{self._instance_id}'")
        changes = resp.get("TerminatingInstances")
        check_acknowledgement(TERMINATING, changes, self._instance_id)
        status = changes[0].get("CurrentState", {}).get("Name", "shutting-down")
        vm_logger.warning(
            "Terminated instance", provider=_PROVIDER, instance_id=self._instance_id,
            operation="terminate", status=status,
        )
        return status  # type: ignore[no-any-return]

    # -- VMNetwork ------------------------------------------------------

    def get_public_ip(self) -> str | None:
        inst = get_instance(self.client, self._instance_id)
        if inst is None:
            return None
        return inst.get("PublicIpAddress")
