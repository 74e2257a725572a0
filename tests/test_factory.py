from unittest.mock import patch, MagicMock
import pytest

from vmctl.factory import retrieve_instance, create_instance, backend_for
from vmctl.aws.instance import Instance
from vmctl.base import AWSConfig, PollConfig, VMCore, VMNetwork

CONFIG = {
    "aws_access_key_id": "k",
    "aws_secret_access_key": "s",
    "region_name": "us-east-1",
}


class TestRetrieveInstance:
    @patch("vmctl.aws.instance.boto3")
    def test_aws(self, mock_boto):
        client = MagicMock()
        client.describe_instances.return_value = {
            "Reservations": [{"Instances": [{"InstanceId": "i-1", "State": {"Name": "stopped"}}]}]
        }
        mock_boto.client.return_value = client
        poll = PollConfig(interval=0)
        result = retrieve_instance("aws", "i-1", CONFIG, poll=poll)
        assert isinstance(result, VMCore)
        assert isinstance(result, VMNetwork)
        assert result.poll is poll

    @patch("vmctl.aws.instance.boto3")
    def test_aws_not_found(self, mock_boto):
        mock_boto.client.return_value.describe_instances.return_value = {"Reservations": []}
        assert retrieve_instance("aws", "i-1", CONFIG) is None

    @patch("vmctl.aws.instance.boto3")
    def test_accepts_model(self, mock_boto):
        mock_boto.client.return_value.describe_instances.return_value = {"Reservations": []}
        retrieve_instance("aws", "i-1", AWSConfig(**CONFIG))
        assert mock_boto.client.call_args[1]["region_name"] == "us-east-1"

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported cloud provider"):
            retrieve_instance("azure", "i-1", {})


class TestCreateInstance:
    @patch("vmctl.aws.instance.boto3")
    def test_aws(self, mock_boto):
        mock_boto.client.return_value.run_instances.return_value = {
            "Instances": [{"InstanceId": "i-new"}]
        }
        result = create_instance("aws", CONFIG, instance_type="t3.small")
        assert result.instance_id == "i-new"
        assert result.instance_type == "t3.small"

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported cloud provider"):
            create_instance("gcp", {})


class TestBackendFor:
    def test_aws(self):
        assert backend_for("aws") is Instance
