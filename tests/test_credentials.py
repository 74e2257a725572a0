"""Tests for console credential parsing and environment export."""

from unittest.mock import patch
import os
import pytest

from vmctl.aws.credentials import (
    Credential,
    export_to_env,
    export_to_env_from,
)
from vmctl.aws.instance import Instance
from vmctl.base.config import AWSConfig
from vmctl.base.exceptions import CredentialError, MalformedCredentialsError

HEADER = "User name,Password,Access key ID,Secret access key,Console login link"


@pytest.fixture
def write_csv(tmp_path):
    def _write(text: str):
        path = tmp_path / "credentials.csv"
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def aws_env(monkeypatch):
    # register the variables so monkeypatch restores them after export
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "before")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "before")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "before")
    monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)


class TestParse:
    def test_valid(self, write_csv):
        cred = Credential.from_csv(write_csv(f"{HEADER}\nu,p,id,key,link\n"))
        assert cred.access_key_id == "id"
        assert cred.secret_access_key == "key"

    def test_reordered_headers(self, write_csv):
        text = (
            "Secret access key,Console login link,User name,Access key ID,Password\n"
            "key,link,u,id,p\n"
        )
        cred = Credential.from_csv(write_csv(text))
        assert cred == Credential("id", "key")

    def test_only_first_row(self, write_csv):
        text = f"{HEADER}\nu,p,id,key,link\nu2,p2,id2,key2,link2\n"
        assert Credential.from_csv(write_csv(text)).access_key_id == "id"

    def test_empty_password_column(self, write_csv):
        cred = Credential.from_csv(write_csv(f"{HEADER}\ndeploy,,AKIA1,s3cr3t,https://x\n"))
        assert cred.access_key_id == "AKIA1"

    def test_byte_order_mark(self, write_csv):
        cred = Credential.from_csv(write_csv(f"\ufeff{HEADER}\nu,p,id,key,link\n"))
        assert cred.access_key_id == "id"

    def test_column_count_mismatch(self, write_csv):
        with pytest.raises(MalformedCredentialsError):
            Credential.from_csv(write_csv(f"{HEADER}\nu,p,id,key\n"))

    def test_missing_column(self, write_csv):
        text = "User name,Password,Access key ID,Console login link\nu,p,id,link\n"
        with pytest.raises(MalformedCredentialsError, match="Secret access key"):
            Credential.from_csv(write_csv(text))

    def test_no_data_row(self, write_csv):
        with pytest.raises(MalformedCredentialsError):
            Credential.from_csv(write_csv(f"{HEADER}\n"))

    def test_empty_file(self, write_csv):
        with pytest.raises(MalformedCredentialsError):
            Credential.from_csv(write_csv(""))

    def test_missing_file(self, tmp_path):
        with pytest.raises(CredentialError):
            Credential.from_csv(tmp_path / "nope.csv")

    def test_repr_hides_secret(self):
        assert "s3cr3t" not in repr(Credential("id", "s3cr3t"))

    def test_to_config(self):
        cfg = Credential("id", "key").to_config(region_name="eu-west-1")
        assert cfg.aws_access_key_id == "id"
        assert cfg.aws_secret_access_key == "key"
        assert cfg.region_name == "eu-west-1"

    def test_to_config_ignores_env_session_token(self, monkeypatch):
        monkeypatch.setenv("AWS_SESSION_TOKEN", "stale-token-from-other-key")
        cfg = Credential("id", "key").to_config(aws_session_token=None)
        assert cfg.aws_session_token is None

    @patch("vmctl.aws.instance.boto3")
    def test_retrieve_client_gets_no_env_token(self, mock_boto, monkeypatch):
        monkeypatch.setenv("AWS_SESSION_TOKEN", "stale-token-from-other-key")
        mock_boto.client.return_value.describe_instances.return_value = {"Reservations": []}
        Instance.retrieve("i-1", Credential("id", "key").to_config())
        kwargs = mock_boto.client.call_args[1]
        assert kwargs["aws_access_key_id"] == "id"
        assert kwargs["aws_secret_access_key"] == "key"
        assert kwargs["aws_session_token"] is None


class TestExport:
    def test_export(self, aws_env):
        export_to_env(Credential("id", "key"))
        assert os.environ["AWS_ACCESS_KEY_ID"] == "id"
        assert os.environ["AWS_SECRET_ACCESS_KEY"] == "key"
        assert "AWS_SESSION_TOKEN" not in os.environ

    def test_export_session_token(self, aws_env):
        export_to_env(Credential("id", "key"), session_token="tok")
        assert os.environ["AWS_SESSION_TOKEN"] == "tok"

    def test_end_to_end(self, aws_env, write_csv):
        path = write_csv(f"{HEADER}\nu,p,id,key,link\n")
        cred = export_to_env_from(path)
        assert cred == Credential("id", "key")
        assert os.environ["AWS_ACCESS_KEY_ID"] == "id"
        assert os.environ["AWS_SECRET_ACCESS_KEY"] == "key"

        cfg = AWSConfig()
        assert cfg.aws_access_key_id == "id"
        assert cfg.aws_secret_access_key == "key"
