from pathlib import Path

import pytest

from bussie_deploy.commands import (
    build_scp_command,
    build_ssh_command,
    dry_run_runner,
    quote_remote_path,
    run_command,
)
from bussie_deploy.config import DeployConfig
from bussie_deploy.exceptions import CommandError


def test_build_ssh_command_includes_port_and_key(tmp_path: Path) -> None:
    key_path = tmp_path / "id_ed25519"
    config = DeployConfig(remote_host="emma@babette", ssh_port=2222, ssh_key=key_path)
    command = build_ssh_command(config, "echo ok")
    assert command[0] == "ssh"
    assert command[1:3] == ["-p", "2222"]
    assert "BatchMode=yes" in command
    assert command[command.index("-i") + 1] == str(key_path)
    assert command[-2:] == ["emma@babette", "echo ok"]


def test_build_scp_command_targets_remote_directory() -> None:
    config = DeployConfig()
    command = build_scp_command(config, Path("docker_images/mijn_bussie.tar"), "~/Images")
    assert command[0] == "scp"
    assert command[1:3] == ["-P", "22"]
    assert "-i" not in command
    assert command[-2:] == ["docker_images/mijn_bussie.tar", "emma@babette:~/Images/"]


def test_run_command_raises_on_failure(make_runner) -> None:
    runner = make_runner(fail_on="docker build", returncode=3)
    with pytest.raises(CommandError) as excinfo:
        run_command(["docker", "build", "."], runner)
    assert excinfo.value.returncode == 3
    assert excinfo.value.command == ["docker", "build", "."]
    assert "boom" in str(excinfo.value)


def test_run_command_without_check_returns_result(make_runner) -> None:
    runner = make_runner(fail_on="false")
    result = run_command(["false"], runner, check=False)
    assert result.returncode == 1


def test_run_command_stringifies_arguments(runner) -> None:
    run_command(["docker", "save", Path("a.tar")], runner)
    assert runner.calls == [["docker", "save", "a.tar"]]
    assert runner.kwargs[0]["text"] is True


def test_dry_run_runner_succeeds_without_running() -> None:
    result = dry_run_runner(["docker", "build", "."], check=False)
    assert result.returncode == 0


@pytest.mark.parametrize(
    "path, expected",
    [
        ("~/Images", "~/Images"),
        ("~/My Images", "~/'My Images'"),
        ("/srv/images", "/srv/images"),
        ("/srv/my images", "'/srv/my images'"),
        ("~", "~"),
    ],
)
def test_quote_remote_path_keeps_home_expansion(path: str, expected: str) -> None:
    assert quote_remote_path(path) == expected
