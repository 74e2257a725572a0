"""Tests for the vmctl command-line entry point."""

from unittest.mock import patch, MagicMock
import pytest

from vmctl.cli import main
from vmctl.base.exceptions import UnexpectedStateError

HEADER = "User name,Password,Access key ID,Secret access key,Console login link"


@pytest.fixture
def backend():
    fake = MagicMock()
    vm = MagicMock()
    fake.retrieve.return_value = vm
    with patch.dict("vmctl.factory._FACTORY_REGISTRY", {"aws": fake}):
        yield fake, vm


class TestCLI:
    def test_status(self, backend, capsys):
        _, vm = backend
        vm.status.return_value = "running"
        main(["status", "i-1"])
        assert capsys.readouterr().out.strip() == "running"

    def test_start(self, backend, capsys):
        _, vm = backend
        vm.start.return_value = "running"
        main(["start", "i-1"])
        vm.start.assert_called_once()
        assert "running" in capsys.readouterr().out

    def test_ip(self, backend, capsys):
        _, vm = backend
        vm.get_public_ip.return_value = None
        main(["ip", "i-1"])
        assert capsys.readouterr().out == "\n"

    def test_credentials_file(self, backend, tmp_path):
        fake, vm = backend
        vm.status.return_value = "stopped"
        path = tmp_path / "creds.csv"
        path.write_text(f"{HEADER}\nu,p,id,key,link\n")
        main(["--credentials", str(path), "--region", "eu-west-1", "status", "i-1"])
        config = fake.retrieve.call_args[0][1]
        assert config.aws_access_key_id == "id"
        assert config.aws_secret_access_key == "key"
        assert config.region_name == "eu-west-1"

    def test_poll_settings(self, backend):
        fake, vm = backend
        main(["--poll", '{"interval": 0, "max_attempts": 5}', "stop", "i-1"])
        poll = fake.retrieve.call_args[1]["poll"]
        assert poll.max_attempts == 5

    def test_not_found(self, backend, capsys):
        fake, _ = backend
        fake.retrieve.return_value = None
        with pytest.raises(SystemExit) as exc:
            main(["status", "i-404"])
        assert exc.value.code == 1
        assert "not found" in capsys.readouterr().err

    def test_operation_failure(self, backend, capsys):
        _, vm = backend
        vm.start.side_effect = UnexpectedStateError("start", "terminated", {"pending"})
        with pytest.raises(SystemExit) as exc:
            main(["start", "i-1"])
        assert exc.value.code == 1
        assert "terminated" in capsys.readouterr().err

    def test_invalid_json(self, capsys):
        with pytest.raises(SystemExit):
            main(["--config", "{bad", "status", "i-1"])
        assert "Invalid JSON" in capsys.readouterr().err

    @pytest.mark.parametrize("option", ["--config", "--poll"])
    def test_json_must_be_object(self, option, backend, capsys):
        fake, _ = backend
        with pytest.raises(SystemExit) as exc:
            main([option, "[]", "status", "i-1"])
        assert exc.value.code == 1
        assert "must be JSON objects" in capsys.readouterr().err
        fake.retrieve.assert_not_called()

    def test_exec_requires_key(self, backend):
        with pytest.raises(SystemExit):
            main(["exec", "i-1", "--run", "uptime"])

    @patch("vmctl.ssh.SSHAgent.connect")
    def test_exec(self, mock_connect, backend, capsys):
        agent = MagicMock()
        agent.__enter__.return_value = agent
        agent.execute.return_value = MagicMock(stdout="up\n", stderr="", exit_status=0)
        mock_connect.return_value = agent
        with pytest.raises(SystemExit) as exc:
            main(["exec", "i-1", "--key", "/k.pem", "--run", "uptime"])
        assert exc.value.code == 0
        agent.execute.assert_called_once_with("uptime")
        assert capsys.readouterr().out == "up\n"
