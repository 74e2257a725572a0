"""vmctl CLI: instance lifecycle and remote commands from the command line.

Usage examples::

    vmctl --credentials credentials.csv status i-0abc1234
    vmctl --credentials credentials.csv start i-0abc1234
    vmctl exec i-0abc1234 --key ~/.ssh/minecraft.pem --run uptime
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, NoReturn

_OPERATIONS = ["status", "start", "stop", "terminate", "ip", "exec"]


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ``vmctl`` CLI.

    Returns:
        Configured :class:`~argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(
        prog="vmctl",
        description="Manage a single cloud instance",
    )
    parser.add_argument(
        "--provider", "-p",
        default="aws",
        choices=["aws"],
        help="Cloud provider",
    )
    parser.add_argument(
        "--credentials",
        type=str,
        default=None,
        help="Console credentials CSV (falls back to the AWS environment)",
    )
    parser.add_argument(
        "--region", "-r",
        type=str,
        default=None,
        help="Region override",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="{}",
        help='JSON config string (e.g. \'{"role_arn":"arn:aws:iam::1:role/x"}\')',
    )
    parser.add_argument(
        "--poll",
        type=str,
        default="{}",
        help='JSON poll settings (e.g. \'{"interval":1,"timeout":300}\')',
    )
    parser.add_argument("operation", choices=_OPERATIONS, help="Operation to perform")
    parser.add_argument("instance_id", help="Instance identifier")
    parser.add_argument("--key", "-k", type=str, help="Private key file (exec only)")
    parser.add_argument("--user", "-u", type=str, default="ubuntu", help="SSH user (exec only)")
    parser.add_argument("--run", "-x", type=str, help="Remote command (exec only)")
    return parser


def _fail(message: str) -> NoReturn:
    print(message, file=sys.stderr)
    sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Resolves the instance, runs the requested operation and prints the
    result. ``exec`` exits with the remote command's exit status.

    Args:
        argv: Optional argument list (defaults to ``sys.argv``).
    """
    parser = _build_parser()
    ns = parser.parse_args(argv)

    try:
        config: dict[str, Any] = json.loads(ns.config)
        poll_settings: dict[str, Any] = json.loads(ns.poll)
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON option: {e}")
    if not isinstance(config, dict) or not isinstance(poll_settings, dict):
        _fail("Invalid JSON option: --config and --poll must be JSON objects")

    # Lazy-import to keep --help fast
    from pydantic import ValidationError

    from vmctl.aws.credentials import Credential
    from vmctl.base.config import PollConfig, SSHConfig
    from vmctl.base.exceptions import VMError
    from vmctl.factory import retrieve_instance
    from vmctl.ssh import SSHAgent

    if ns.operation == "exec" and (not ns.key or not ns.run):
        _fail("exec requires --key and --run")

    try:
        if ns.credentials:
            cred = Credential.from_csv(ns.credentials)
            config.setdefault("aws_access_key_id", cred.access_key_id)
            config.setdefault("aws_secret_access_key", cred.secret_access_key)
        if ns.region:
            config["region_name"] = ns.region
        vm = retrieve_instance(ns.provider, ns.instance_id, config, poll=PollConfig(**poll_settings))
        if vm is None:
            _fail(f"Instance '{ns.instance_id}' not found")

        if ns.operation == "status":
            print(vm.status())
        elif ns.operation == "start":
            print(vm.start())
        elif ns.operation == "stop":
            print(vm.stop())
        elif ns.operation == "terminate":
            print(vm.terminate())
        elif ns.operation == "ip":
            print(vm.get_public_ip() or "")
        else:
            with SSHAgent.connect(vm, ns.key, SSHConfig(username=ns.user)) as agent:
                result = agent.execute(ns.run)
            sys.stdout.write(result.stdout)
            sys.stderr.write(result.stderr)
            sys.exit(result.exit_status)
    except (VMError, ValidationError, ValueError) as e:
        _fail(f"Operation failed: {e}")


if __name__ == "__main__":
    main()
