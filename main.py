import sys

from vmctl import SSHAgent, retrieve_instance
from vmctl.aws.credentials import Credential


def main():
    # Example usage: boot the server, check it, shut it down again
    credentials_csv, instance_id, key_path = sys.argv[1:4]

    cred = Credential.from_csv(credentials_csv)
    vm = retrieve_instance("aws", instance_id, cred.to_config())
    if vm is None:
        print(f"No instance {instance_id}")
        return

    print(f"Starting {vm}: {vm.start()}")
    with SSHAgent.connect(vm, key_path) as agent:
        result = agent.execute("uptime")
        print(f"uptime: {result.stdout.strip()} (exit {result.exit_status})")
    print(f"Stopping {vm}: {vm.stop()}")

if __name__ == "__main__":
    main()
