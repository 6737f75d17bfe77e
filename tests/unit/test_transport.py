from pathlib import Path
from unittest.mock import MagicMock

import paramiko
import pytest

from bussie_deploy.config import DeployConfig
from bussie_deploy.exceptions import CommandError, ConfigurationError, RemoteError
from bussie_deploy.pipeline import Selection, deploy
from bussie_deploy.transport import OpenSSHTransport, ParamikoTransport, open_transport


def _paramiko_client(exit_code: int = 0, stderr: bytes = b"") -> MagicMock:
    client = MagicMock()
    stdout = MagicMock()
    stdout.channel.recv_exit_status.return_value = exit_code
    stdout.read.return_value = b"Loaded image: mijn_bussie:latest\n"
    err = MagicMock()
    err.read.return_value = stderr
    client.exec_command.return_value = (MagicMock(), stdout, err)
    return client


def test_openssh_transport_runs_scp_and_ssh(runner) -> None:
    config = DeployConfig()
    transport = OpenSSHTransport(config, runner)
    transport.upload(Path("docker_images/mijn_bussie.tar"), "~/Images")
    transport.execute("docker compose up -d")
    assert runner.calls[0][0] == "scp"
    assert runner.calls[1][0] == "ssh"
    assert runner.calls[1][-1] == "docker compose up -d"


def test_openssh_transport_raises_command_error(make_runner) -> None:
    transport = OpenSSHTransport(DeployConfig(), make_runner(fail_on="ssh"))
    with pytest.raises(CommandError):
        transport.execute("true")


def test_paramiko_upload_maps_home_relative_path() -> None:
    client = _paramiko_client()
    sftp = client.open_sftp.return_value
    transport = ParamikoTransport(DeployConfig(), client=client)
    transport.upload(Path("/tmp/x/mijn_bussie.tar"), "~/Images")
    sftp.put.assert_called_once_with("/tmp/x/mijn_bussie.tar", "Images/mijn_bussie.tar")
    sftp.close.assert_called_once()


def test_paramiko_upload_error_is_wrapped() -> None:
    client = _paramiko_client()
    client.open_sftp.return_value.put.side_effect = OSError("no such directory")
    transport = ParamikoTransport(DeployConfig(), client=client)
    with pytest.raises(RemoteError, match="mijn_bussie.tar"):
        transport.upload(Path("mijn_bussie.tar"), "/srv/images")


def test_paramiko_channel_errors_are_wrapped() -> None:
    client = _paramiko_client()
    client.open_sftp.return_value.put.side_effect = paramiko.SSHException("channel closed")
    client.exec_command.side_effect = paramiko.SSHException("channel closed")
    transport = ParamikoTransport(DeployConfig(), client=client)
    with pytest.raises(RemoteError, match="channel closed"):
        transport.upload(Path("mijn_bussie.tar"), "~/Images")
    with pytest.raises(RemoteError, match="channel closed"):
        transport.execute("docker compose down")

    client.open_sftp.side_effect = paramiko.SSHException("sftp refused")
    with pytest.raises(RemoteError, match="sftp refused"):
        transport.upload(Path("mijn_bussie.tar"), "~/Images")


def test_keep_going_records_paramiko_upload_failure(deploy_config, runner) -> None:
    deploy_config.keep_going = True
    client = _paramiko_client()
    client.open_sftp.return_value.put.side_effect = paramiko.SSHException("channel closed")
    transport = ParamikoTransport(deploy_config, client=client)
    report = deploy(Selection.MAIN, deploy_config, runner, transport)
    assert set(report.failures) == {"transfer:main"}
    assert isinstance(report.failures["transfer:main"], RemoteError)
    assert report.completed == ["build:main", "reload"]


def test_paramiko_execute_checks_exit_status() -> None:
    client = _paramiko_client()
    transport = ParamikoTransport(DeployConfig(), client=client)
    transport.execute("cd ~/Services/MijnBussie")
    client.exec_command.assert_called_once_with("cd ~/Services/MijnBussie")

    failing = ParamikoTransport(DeployConfig(), client=_paramiko_client(1, b"compose: not found"))
    with pytest.raises(RemoteError, match="compose: not found"):
        failing.execute("docker compose down")


def test_paramiko_connects_with_user_and_key(monkeypatch) -> None:
    client = _paramiko_client()
    monkeypatch.setattr(paramiko, "SSHClient", MagicMock(return_value=client))
    config = DeployConfig(ssh_port=2200, ssh_key=Path("/keys/id"))
    with ParamikoTransport(config) as transport:
        transport.execute("true")
    client.connect.assert_called_once_with(
        hostname="babette", port=2200, username="emma", key_filename="/keys/id", timeout=10
    )
    client.close.assert_called_once()


def test_paramiko_connection_failure(monkeypatch) -> None:
    client = _paramiko_client()
    client.connect.side_effect = paramiko.SSHException("auth failed")
    monkeypatch.setattr(paramiko, "SSHClient", MagicMock(return_value=client))
    transport = ParamikoTransport(DeployConfig(remote_host="babette"))
    with pytest.raises(RemoteError, match="babette"):
        transport.execute("true")
    assert client.connect.call_args.kwargs["username"] is None


def test_open_transport(runner) -> None:
    assert isinstance(open_transport(DeployConfig(), runner), OpenSSHTransport)
    assert isinstance(open_transport(DeployConfig(transport="paramiko")), ParamikoTransport)
    dry = DeployConfig(transport="paramiko", dry_run=True)
    assert isinstance(open_transport(dry, runner), OpenSSHTransport)
    with pytest.raises(ConfigurationError):
        open_transport(DeployConfig(transport="telnet"))
